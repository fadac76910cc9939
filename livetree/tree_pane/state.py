"""View state for one tree pane: snapshot, expansion, selection and connection flags."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..file_tree_model import ROOT_KEY, FolderNode


@dataclass
class TreeViewState:
    tree: FolderNode | None = None
    expanded: set[str] = field(default_factory=lambda: {ROOT_KEY})
    selected_path: str | None = None
    last_updated: float | None = None
    loading: bool = True
    error: str | None = None
    watching: bool = False
    watch_error: str | None = None
    focused: bool = False
    dirty: bool = True
