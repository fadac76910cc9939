"""Structural keys for snapshots.

A structural key covers node paths, names, and folder shape only. Size,
modification time, and extension are ignored so metadata-only churn (an mtime
bump, a rewrite with the same name) compares equal. Children are folded in
path order, which makes the key independent of listing order.
"""

from __future__ import annotations

import hashlib

from .types import FolderNode, TreeNode


def _update_digest(digest, token: str) -> None:
    """Append a token plus separator byte to a hash digest."""
    digest.update(token.encode("utf-8", errors="surrogateescape"))
    digest.update(b"\0")


def _leaf_key(node: TreeNode) -> str:
    digest = hashlib.blake2b(digest_size=20)
    _update_digest(digest, "file")
    _update_digest(digest, f"path:{node.path}")
    _update_digest(digest, f"name:{node.name}")
    return digest.hexdigest()


def _folder_key(node: FolderNode, child_keys: list[tuple[str, str]]) -> str:
    digest = hashlib.blake2b(digest_size=20)
    _update_digest(digest, "folder")
    _update_digest(digest, f"path:{node.path}")
    _update_digest(digest, f"name:{node.name}")
    _update_digest(digest, f"children:{len(child_keys)}")
    for _path, key in sorted(child_keys):
        _update_digest(digest, key)
    return digest.hexdigest()


def structural_key(tree: TreeNode) -> str:
    """Return the order-independent structural digest of ``tree``.

    Uses an explicit post-order stack; each folder's key is computed once all
    of its children have been keyed.
    """
    keys: dict[str, str] = {}
    stack: list[tuple[TreeNode, bool]] = [(tree, False)]
    while stack:
        node, children_done = stack.pop()
        if not isinstance(node, FolderNode):
            keys[node.path] = _leaf_key(node)
            continue
        if children_done:
            child_keys = [(child.path, keys[child.path]) for child in node.children]
            keys[node.path] = _folder_key(node, child_keys)
            continue
        stack.append((node, True))
        for child in node.children:
            stack.append((child, False))
    return keys[tree.path]


def structurally_equal(left: TreeNode | None, right: TreeNode | None) -> bool:
    """Return whether two trees have the same path/name/shape structure."""
    if left is None or right is None:
        return left is right
    if left is right:
        return True
    return structural_key(left) == structural_key(right)


__all__ = ["structural_key", "structurally_equal"]
