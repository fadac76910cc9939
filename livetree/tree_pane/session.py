"""Client-side session: stream messages in, key events in, rendered rows out.

``TreeSession`` is single-threaded. Background producers (the remote stream
thread or an in-process subscriber pump) only call ``enqueue_message``; the
owner applies queued messages with ``drain_messages`` between key events so a
snapshot never lands in the middle of a navigation step.
"""

from __future__ import annotations

import logging
import queue
import time
from collections.abc import Callable
from typing import Any

from ..errors import LiveTreeError
from ..file_tree_model import FolderNode, node_from_payload
from ..server.messages import MESSAGE_CONNECTED, MESSAGE_ERROR, MESSAGE_UPDATE
from .navigation import TYPEAHEAD_TIMEOUT_SECONDS, KeyboardNavigator, NavigationOutcome, TypeaheadBuffer
from .reconcile import reconcile_snapshot
from .rendering import render_pane
from .state import TreeViewState
from .viewport import TreeViewport
from .visible import VisibleNode

logger = logging.getLogger(__name__)


class TreeSession:
    """Own one tree view: state, navigator, viewport and pending stream messages."""

    def __init__(
        self,
        *,
        typeahead_timeout_seconds: float = TYPEAHEAD_TIMEOUT_SECONDS,
        visible_rows: int = 20,
        monotonic: Callable[[], float] = time.monotonic,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = TreeViewState()
        self.viewport = TreeViewport(visible_rows)
        self._clock = clock
        self._pending: queue.Queue[dict[str, Any]] = queue.Queue()
        self.navigator = KeyboardNavigator(
            self.state,
            typeahead=TypeaheadBuffer(typeahead_timeout_seconds, monotonic),
            on_selection_change=self._on_selection_change,
        )

    def visible_rows(self) -> list[VisibleNode]:
        return self.navigator.visible_rows()

    def _on_selection_change(self, _path: str, index: int) -> None:
        self.viewport.scroll_to(index, len(self.visible_rows()))
        # Focus stays on the tree container; rows are never focus targets.
        self.state.focused = True
        self.state.dirty = True

    def load_initial(self, fetch: Callable[[], FolderNode]) -> bool:
        """Fetch the first snapshot; on failure enter the blocking error state."""
        self.state.loading = True
        try:
            tree = fetch()
        except LiveTreeError as exc:
            logger.warning("initial tree load failed: %s", exc)
            self.state.loading = False
            self.state.error = str(exc)
            self.state.dirty = True
            return False
        self.state.loading = False
        self.state.error = None
        reconcile_snapshot(self.state, tree, clock=self._clock)
        return True

    def apply_message(self, message: dict[str, Any]) -> bool:
        """Apply one stream message; return ``True`` if the view needs a redraw."""
        kind = message.get("type")
        if kind == MESSAGE_CONNECTED:
            self.state.watching = True
            self.state.watch_error = None
            self.state.dirty = True
            return True
        if kind == MESSAGE_UPDATE:
            try:
                tree = node_from_payload(message.get("tree"))
            except ValueError as exc:
                logger.warning("discarding malformed update: %s", exc)
                return False
            if not isinstance(tree, FolderNode):
                logger.warning("discarding update whose root is not a folder")
                return False
            self.state.loading = False
            self.state.error = None
            changed = reconcile_snapshot(self.state, tree, clock=self._clock)
            if changed:
                self.viewport.resize(self.viewport.visible_rows, len(self.visible_rows()))
            return changed
        if kind == MESSAGE_ERROR:
            self.state.watching = False
            self.state.watch_error = str(message.get("message") or "watch error")
            self.state.dirty = True
            return True
        logger.debug("ignoring stream message of type %r", kind)
        return False

    def enqueue_message(self, message: dict[str, Any]) -> None:
        """Queue a message from any thread; it is applied by ``drain_messages``."""
        self._pending.put(message)

    def drain_messages(self) -> bool:
        """Apply every queued message; return ``True`` if any changed the view."""
        changed = False
        while True:
            try:
                message = self._pending.get_nowait()
            except queue.Empty:
                return changed
            changed = self.apply_message(message) or changed

    def handle_key(self, key: str) -> NavigationOutcome:
        outcome = self.navigator.handle_key(key)
        if outcome.expansion_changed:
            self.viewport.resize(self.viewport.visible_rows, len(self.visible_rows()))
        return outcome

    def resize(self, visible_rows: int) -> None:
        self.viewport.resize(visible_rows, len(self.visible_rows()))
        self.state.dirty = True

    def render(self, width: int) -> list[str]:
        """Return the lines to draw and clear the dirty flag."""
        rows = self.visible_rows()
        lines = render_pane(
            self.state,
            rows,
            self.viewport.window(len(rows)),
            typeahead_query=self.navigator.typeahead.query,
            width=width,
        )
        self.state.dirty = False
        return lines


__all__ = ["TreeSession"]
