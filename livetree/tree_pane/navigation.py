"""Keyboard navigation for the tree pane: arrows plus cyclic type-ahead.

Key tokens match ``livetree.runtime.input.read_key``: ``"UP"``, ``"DOWN"``,
``"LEFT"``, ``"RIGHT"``, ``"ENTER_CR"``/``"ENTER_LF"``, and single printable
characters. Modifier chords arrive as multi-character tokens (``CTRL_*``,
``ALT_*``) and never feed type-ahead.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from ..file_tree_model import FolderNode
from .state import TreeViewState
from .visible import VisibleNode, flatten_visible, index_of_path

TYPEAHEAD_TIMEOUT_SECONDS = 0.4
ENTER_KEYS = frozenset({"ENTER_CR", "ENTER_LF"})


@dataclass(frozen=True)
class NavigationOutcome:
    handled: bool
    selection_changed: bool = False
    expansion_changed: bool = False


NOT_HANDLED = NavigationOutcome(handled=False)
HANDLED_NOOP = NavigationOutcome(handled=True)


def is_typeahead_key(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


class TypeaheadBuffer:
    """Lowercase query that accumulates keystrokes until an idle timeout."""

    def __init__(
        self,
        timeout_seconds: float = TYPEAHEAD_TIMEOUT_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._monotonic = monotonic
        self._query = ""
        self._last_key_at = 0.0

    def _expired(self, now: float) -> bool:
        return (now - self._last_key_at) >= self.timeout_seconds

    @property
    def query(self) -> str:
        """Current query, or ``""`` once the idle timeout has elapsed."""
        if self._query and self._expired(self._monotonic()):
            self._query = ""
        return self._query

    def push(self, char: str) -> str:
        """Append ``char`` (lowercased), restart the idle timer, and return the query."""
        now = self._monotonic()
        if self._query and self._expired(now):
            self._query = ""
        self._query += char.lower()
        self._last_key_at = now
        return self._query

    def reset(self) -> None:
        self._query = ""


def find_typeahead_match(rows: list[VisibleNode], query: str, current_idx: int | None) -> int | None:
    """Return the first row whose name starts with ``query`` (case-insensitive).

    Scanning starts just after ``current_idx`` and wraps around, ending on the
    current row itself. Without a current row the scan starts at the top.
    """
    if not rows or not query:
        return None
    needle = query.lower()
    total = len(rows)
    start = 0 if current_idx is None else current_idx + 1
    for offset in range(total):
        idx = (start + offset) % total
        if rows[idx].node.name.lower().startswith(needle):
            return idx
    return None


class KeyboardNavigator:
    """Translate key tokens into selection and expansion changes on ``TreeViewState``.

    ``on_selection_change(path, index)`` runs after every selection move so the
    host can scroll the row into view and keep focus on the tree container.
    """

    def __init__(
        self,
        state: TreeViewState,
        *,
        typeahead: TypeaheadBuffer | None = None,
        on_selection_change: Callable[[str, int], None] | None = None,
    ) -> None:
        self.state = state
        self.typeahead = typeahead or TypeaheadBuffer()
        self.on_selection_change = on_selection_change

    def visible_rows(self) -> list[VisibleNode]:
        return flatten_visible(self.state.tree, self.state.expanded)

    def handle_key(self, key: str) -> NavigationOutcome:
        """Handle one key token and report what changed."""
        rows = self.visible_rows()
        if key == "DOWN":
            return self._move(rows, 1)
        if key == "UP":
            return self._move(rows, -1)
        if key == "RIGHT":
            return self._set_selected_expanded(rows, True)
        if key == "LEFT":
            return self._set_selected_expanded(rows, False)
        if key in ENTER_KEYS:
            return self._toggle_selected(rows)
        if is_typeahead_key(key):
            return self._typeahead(rows, key)
        return NOT_HANDLED

    def select_index(self, rows: list[VisibleNode], idx: int) -> NavigationOutcome:
        path = rows[idx].node.path
        changed = path != self.state.selected_path
        self.state.selected_path = path
        if changed:
            self.state.dirty = True
        if self.on_selection_change is not None:
            self.on_selection_change(path, idx)
        return NavigationOutcome(handled=True, selection_changed=changed)

    def toggle_expanded(self, path: str) -> bool:
        """Flip expansion for ``path``; return the new expanded flag."""
        if path in self.state.expanded:
            self.state.expanded.discard(path)
            expanded = False
        else:
            self.state.expanded.add(path)
            expanded = True
        self.state.dirty = True
        return expanded

    def _current_row(self, rows: list[VisibleNode]) -> tuple[int, VisibleNode] | None:
        idx = index_of_path(rows, self.state.selected_path)
        if idx is None:
            return None
        return idx, rows[idx]

    def _move(self, rows: list[VisibleNode], step: int) -> NavigationOutcome:
        if not rows:
            return HANDLED_NOOP
        current = index_of_path(rows, self.state.selected_path)
        if current is None:
            target = 0 if step > 0 else len(rows) - 1
        else:
            target = (current + step) % len(rows)
        return self.select_index(rows, target)

    def _set_selected_expanded(self, rows: list[VisibleNode], expand: bool) -> NavigationOutcome:
        current = self._current_row(rows)
        if current is None:
            return HANDLED_NOOP
        _idx, row = current
        if not isinstance(row.node, FolderNode):
            return HANDLED_NOOP
        is_expanded = row.node.path in self.state.expanded
        if is_expanded == expand:
            return HANDLED_NOOP
        self.toggle_expanded(row.node.path)
        return NavigationOutcome(handled=True, expansion_changed=True)

    def _toggle_selected(self, rows: list[VisibleNode]) -> NavigationOutcome:
        current = self._current_row(rows)
        if current is None or not isinstance(current[1].node, FolderNode):
            return HANDLED_NOOP
        self.toggle_expanded(current[1].node.path)
        return NavigationOutcome(handled=True, expansion_changed=True)

    def _typeahead(self, rows: list[VisibleNode], key: str) -> NavigationOutcome:
        query = self.typeahead.push(key)
        match = find_typeahead_match(rows, query, index_of_path(rows, self.state.selected_path))
        if match is None:
            return HANDLED_NOOP
        return self.select_index(rows, match)


__all__ = [
    "TYPEAHEAD_TIMEOUT_SECONDS",
    "NavigationOutcome",
    "TypeaheadBuffer",
    "find_typeahead_match",
    "is_typeahead_key",
    "KeyboardNavigator",
]
