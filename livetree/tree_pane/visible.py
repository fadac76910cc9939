"""Visible-row projection: flatten a tree under the current expansion set."""

from __future__ import annotations

from dataclasses import dataclass

from ..file_tree_model import FolderNode, TreeNode


@dataclass(frozen=True)
class VisibleNode:
    """One renderable row: the node plus its indentation depth."""

    node: TreeNode
    depth: int


def flatten_visible(tree: TreeNode | None, expanded: set[str] | frozenset[str]) -> list[VisibleNode]:
    """Return rows in depth-first pre-order, descending only into expanded folders.

    The root is depth 0. Collapsed folders contribute their own row but none of
    their subtree. Uses an explicit stack and is recomputed from scratch on
    every tree or expansion change.
    """
    if tree is None:
        return []
    rows: list[VisibleNode] = []
    stack: list[tuple[TreeNode, int]] = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        rows.append(VisibleNode(node, depth))
        if isinstance(node, FolderNode) and node.path in expanded:
            for child in reversed(node.children):
                stack.append((child, depth + 1))
    return rows


def index_of_path(rows: list[VisibleNode], path: str | None) -> int | None:
    """Return the row index whose node path equals ``path``."""
    if path is None:
        return None
    for idx, row in enumerate(rows):
        if row.node.path == path:
            return idx
    return None


__all__ = ["VisibleNode", "flatten_visible", "index_of_path"]
