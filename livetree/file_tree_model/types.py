"""Domain datatypes for snapshot trees of files and folders."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

ROOT_KEY = "root"


@dataclass(frozen=True)
class FileNode:
    """Leaf entry with metadata observed from the filesystem."""

    name: str
    path: str
    extension: str | None = None
    size_in_bytes: int = 0
    modified_at: str = ""


@dataclass(frozen=True)
class FolderNode:
    """Directory entry with ordered, recursively nested children."""

    name: str
    path: str
    children: tuple["TreeNode", ...] = ()


TreeNode = FolderNode | FileNode


def child_path(parent_path: str, name: str) -> str:
    """Join one name segment under ``parent_path`` using ``/``."""
    return f"{parent_path}/{name}"


def iter_tree(root: TreeNode) -> Iterator[tuple[TreeNode, int]]:
    """Yield ``(node, depth)`` pairs in depth-first pre-order."""
    stack: list[tuple[TreeNode, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if isinstance(node, FolderNode):
            for child in reversed(node.children):
                stack.append((child, depth + 1))


def collect_folder_paths(root: TreeNode) -> set[str]:
    """Return paths of folder nodes only."""
    return {node.path for node, _depth in iter_tree(root) if isinstance(node, FolderNode)}


def find_node_by_path(root: TreeNode | None, path: str | None) -> TreeNode | None:
    """Locate the node whose path equals ``path``.

    Descends only into folders whose path is a prefix of the target, so lookups
    stay proportional to depth times fan-out rather than tree size.
    """
    if root is None or not path:
        return None
    stack: list[TreeNode] = [root]
    while stack:
        node = stack.pop()
        if node.path == path:
            return node
        if isinstance(node, FolderNode) and path.startswith(node.path + "/"):
            stack.extend(node.children)
    return None


__all__ = [
    "ROOT_KEY",
    "FileNode",
    "FolderNode",
    "TreeNode",
    "child_path",
    "iter_tree",
    "collect_folder_paths",
    "find_node_by_path",
]
