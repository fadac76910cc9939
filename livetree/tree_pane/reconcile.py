"""Merge an incoming snapshot into existing view state."""

from __future__ import annotations

import time
from collections.abc import Callable

from ..file_tree_model import ROOT_KEY, FolderNode, collect_folder_paths, structurally_equal
from .state import TreeViewState


def prune_expanded(expanded: set[str], tree: FolderNode) -> set[str]:
    """Keep only folder paths still present in ``tree``; ``"root"`` always stays."""
    pruned = expanded & collect_folder_paths(tree)
    pruned.add(ROOT_KEY)
    return pruned


def reconcile_snapshot(
    state: TreeViewState,
    snapshot: FolderNode,
    *,
    clock: Callable[[], float] = time.time,
) -> bool:
    """Apply ``snapshot`` to ``state``; return ``True`` if the tree was replaced.

    A structurally identical snapshot is a no-op. Otherwise expansion is pruned
    to surviving folders and the selected path is kept as-is, even when the
    node it names no longer exists.
    """
    if state.tree is None:
        state.tree = snapshot
        state.last_updated = clock()
        state.dirty = True
        return True

    if structurally_equal(state.tree, snapshot):
        return False

    state.expanded = prune_expanded(state.expanded, snapshot)
    state.tree = snapshot
    state.last_updated = clock()
    state.dirty = True
    return True


__all__ = ["prune_expanded", "reconcile_snapshot"]
