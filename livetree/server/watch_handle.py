"""Recursive OS-level directory watch backed by watchdog."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import WatchFailure

logger = logging.getLogger(__name__)

# Access notifications (opened/closed) do not change the tree.
_CHANGE_EVENT_TYPES = {"created", "deleted", "modified", "moved"}


class WatchHandle(Protocol):
    """Minimal lifecycle the aggregator needs from a recursive watch."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def is_alive(self) -> bool: ...


def is_hidden_relative(root: Path, raw_path: str | bytes) -> bool:
    """Return whether ``raw_path`` has a dot-prefixed component below ``root``."""
    path = Path(os.fsdecode(raw_path))
    try:
        relative = path.relative_to(root)
    except ValueError:
        return False
    return any(part.startswith(".") for part in relative.parts)


class _ChangeForwarder(FileSystemEventHandler):
    """Forward relevant watchdog events as a bare "something changed" signal.

    Losing the watched root itself is reported once through ``on_failure``
    instead, since the OS watch is gone with it.
    """

    def __init__(
        self,
        root: Path,
        on_change: Callable[[], None],
        show_hidden: bool,
        on_failure: Callable[[BaseException], None] | None = None,
    ) -> None:
        super().__init__()
        self._root = root
        self._on_change = on_change
        self._show_hidden = show_hidden
        self._on_failure = on_failure
        self._failed = False

    def _visible(self, raw_path: str | bytes) -> bool:
        return self._show_hidden or not is_hidden_relative(self._root, raw_path)

    def _is_root(self, raw_path: str | bytes) -> bool:
        return Path(os.fsdecode(raw_path)) == self._root

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _CHANGE_EVENT_TYPES:
            return
        if event.event_type in ("deleted", "moved") and self._is_root(event.src_path):
            self._report_root_lost(event.event_type)
            return
        dest_path = getattr(event, "dest_path", "")
        if not self._visible(event.src_path) and not (dest_path and self._visible(dest_path)):
            return
        logger.debug("File change detected: %s - %s", event.event_type, event.src_path)
        self._on_change()

    def _report_root_lost(self, event_type: str) -> None:
        if self._failed:
            return
        self._failed = True
        logger.warning("Watched root %s was %s", self._root, event_type)
        if self._on_failure is not None:
            self._on_failure(WatchFailure(f"Watched root {self._root} was {event_type}"))


class WatchdogWatchHandle:
    """One recursive watchdog observer rooted at the watched directory."""

    def __init__(
        self,
        root: Path,
        on_change: Callable[[], None],
        show_hidden: bool = False,
        on_failure: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._handler = _ChangeForwarder(self._root, on_change, show_hidden, on_failure)
        self._observer: Observer | None = None

    def start(self) -> None:
        """Begin watching the root recursively; raise ``WatchFailure`` on error."""
        if self._observer is not None:
            return
        observer = Observer()
        try:
            observer.schedule(self._handler, str(self._root), recursive=True)
            observer.start()
        except Exception as exc:
            raise WatchFailure(f"Failed to watch {self._root}: {exc}") from exc
        self._observer = observer
        logger.info("Watching %s for changes", self._root)

    def stop(self) -> None:
        """Stop watching and clean up."""
        if self._observer is None:
            return
        observer = self._observer
        self._observer = None
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=5)
        logger.info("Stopped watching %s", self._root)

    def is_alive(self) -> bool:
        """Return whether the observer and every emitter thread are running.

        watchdog stops an emitter whose watched directory disappears while
        the observer thread itself keeps running.
        """
        observer = self._observer
        if observer is None or not observer.is_alive():
            return False
        emitters = observer.emitters
        return bool(emitters) and all(emitter.is_alive() for emitter in emitters)


WatchFactory = Callable[[Callable[[], None], Callable[[BaseException], None]], WatchHandle]


def watchdog_watch_factory(root: Path, show_hidden: bool = False) -> WatchFactory:
    """Bind ``root`` and return a factory the aggregator calls on every (re)arm."""

    def create(on_change: Callable[[], None], on_failure: Callable[[BaseException], None]) -> WatchHandle:
        return WatchdogWatchHandle(root, on_change, show_hidden=show_hidden, on_failure=on_failure)

    return create


__all__ = [
    "WatchFactory",
    "WatchHandle",
    "WatchdogWatchHandle",
    "is_hidden_relative",
    "watchdog_watch_factory",
]
