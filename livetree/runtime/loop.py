"""Interactive browse loop for the terminal tree viewer.

Coordinates stream-message draining, rendering and key dispatch on one
thread. Stream producers (an in-process subscriber pump or the remote SSE
client) run on daemon threads and only enqueue messages on the session.
"""

from __future__ import annotations

import shutil
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..remote import LiveTreeStreamClient, fetch_tree
from ..server.service import LiveTreeService
from ..tree_pane.rendering import FOOTER_LINES
from ..tree_pane.session import TreeSession
from .config import LiveTreeSettings
from .input import read_key
from .terminal import TerminalController

QUIT_KEYS = frozenset({"ESC", "CTRL_C"})


@dataclass(frozen=True)
class BrowseLoopTiming:
    """Timing constants controlling interactive loop behavior."""

    key_poll_ms: int = 50


def run_browse_loop(
    session: TreeSession,
    terminal: TerminalController,
    stdin_fd: int,
    timing: BrowseLoopTiming | None = None,
    *,
    read: Callable[[int, int | None], str] = read_key,
    terminal_size: Callable[[], tuple[int, int]] | None = None,
) -> None:
    """Run the browse loop until a quit key arrives.

    Each iteration resizes the viewport to the terminal, applies queued stream
    messages, redraws when dirty, then waits briefly for one key.
    """
    active_timing = timing or BrowseLoopTiming()

    def size() -> tuple[int, int]:
        if terminal_size is not None:
            return terminal_size()
        term = shutil.get_terminal_size((80, 24))
        return term.columns, term.lines

    shown_query = ""
    with terminal.raw_mode():
        while True:
            columns, lines = size()
            tree_rows = max(1, lines - FOOTER_LINES)
            if tree_rows != session.viewport.visible_rows:
                session.resize(tree_rows)

            session.drain_messages()

            query = session.navigator.typeahead.query
            if query != shown_query:
                shown_query = query
                session.state.dirty = True

            if session.state.dirty:
                terminal.draw(session.render(columns), lines)

            key = read(stdin_fd, active_timing.key_poll_ms)
            if not key:
                continue
            if key in QUIT_KEYS:
                return
            session.handle_key(key)


class _SubscriberPump:
    """Move messages from an in-process subscriber into the session queue."""

    def __init__(self, service: LiveTreeService, session: TreeSession) -> None:
        self.service = service
        self.session = session
        self.subscriber = service.connect()
        self._thread = threading.Thread(target=self._run, name="livetree-pump", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        while self.subscriber.alive:
            message = self.subscriber.next_message(timeout=0.5)
            if message is not None:
                self.session.enqueue_message(message)

    def stop(self) -> None:
        self.service.disconnect(self.subscriber)
        self._thread.join(timeout=2.0)


def _new_session(settings: LiveTreeSettings) -> TreeSession:
    return TreeSession(typeahead_timeout_seconds=settings.typeahead_timeout_seconds)


def browse_local(root: Path, settings: LiveTreeSettings | None = None) -> None:
    """Browse ``root`` with an in-process watch service."""
    active = settings or LiveTreeSettings()
    session = _new_session(active)
    service = LiveTreeService(root, active)
    session.load_initial(service.read_snapshot)
    pump = _SubscriberPump(service, session)
    pump.start()
    try:
        terminal = TerminalController(sys.stdin.fileno(), sys.stdout.fileno())
        run_browse_loop(session, terminal, sys.stdin.fileno())
    finally:
        pump.stop()
        service.close()


def browse_remote(base_url: str, settings: LiveTreeSettings | None = None) -> None:
    """Browse the tree served by a running ``livetree serve`` at ``base_url``."""
    active = settings or LiveTreeSettings()
    session = _new_session(active)
    session.load_initial(lambda: fetch_tree(base_url))
    client = LiveTreeStreamClient(
        base_url,
        session.enqueue_message,
        reconnect_seconds=active.reconnect_delay_seconds,
    )
    client.start()
    try:
        terminal = TerminalController(sys.stdin.fileno(), sys.stdout.fileno())
        run_browse_loop(session, terminal, sys.stdin.fileno())
    finally:
        client.stop()


__all__ = ["QUIT_KEYS", "BrowseLoopTiming", "run_browse_loop", "browse_local", "browse_remote"]
