"""Watch-debounce aggregator: raw filesystem events in, deduplicated snapshots out.

The aggregator is a small state machine (``IDLE`` -> ``PENDING`` -> ``IDLE``)
driven by commands on one queue and executed by one dedicated worker thread.
The watch callback, subscriber lifecycle hooks, and tests only enqueue
commands, so slow directory reads never block event intake or registration.
The quiet-period timer is the worker's queue wait timing out at the deadline.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from collections.abc import Callable
from queue import Empty, Queue

from ..errors import WatchFailure
from ..file_tree_model import FolderNode, structural_key
from .messages import error_message
from .registry import SubscriberRegistry
from .watch_handle import WatchFactory, WatchHandle

logger = logging.getLogger(__name__)


class WatchState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"


class _Command(enum.Enum):
    RAW_CHANGE = "raw_change"
    WATCH_FAILED = "watch_failed"
    ARM = "arm"
    DISARM = "disarm"
    SYNC = "sync"
    STOP = "stop"


class WatchDebounceAggregator:
    """Own the single watch handle and debounce timer for one watched root."""

    def __init__(
        self,
        registry: SubscriberRegistry,
        *,
        snapshot: Callable[[], FolderNode],
        watch_factory: WatchFactory,
        debounce_seconds: float = 1.0,
        retry_backoff_seconds: float = 1.0,
        health_check_seconds: float = 1.0,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._snapshot = snapshot
        self._watch_factory = watch_factory
        self._debounce_seconds = debounce_seconds
        self._retry_backoff_seconds = retry_backoff_seconds
        self._health_check_seconds = health_check_seconds
        self._monotonic = monotonic

        self._commands: Queue[tuple[_Command, object]] = Queue()
        self._thread_lock = threading.Lock()
        self._worker: threading.Thread | None = None

        # Worker-owned state below; read-only from other threads.
        self._state = WatchState.IDLE
        self._deadline: float | None = None
        self._retry_at: float | None = None
        self._handle: WatchHandle | None = None
        self._generation = 0
        self._last_key: str | None = None
        self._last_read_at: float | None = None
        self.cycles = 0
        self.reads = 0

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def retry_pending(self) -> bool:
        return self._retry_at is not None

    # ------------------------------------------------------------------
    # Inputs (any thread)
    # ------------------------------------------------------------------

    def notify_change(self) -> None:
        """Record one raw filesystem event."""
        self._commands.put((_Command.RAW_CHANGE, None))

    def notify_watch_failure(self, error: BaseException, generation: int | None = None) -> None:
        """Report that the watch handle of ``generation`` (default: current) died."""
        self._commands.put((_Command.WATCH_FAILED, (generation, error)))

    def request_arm(self) -> None:
        """Create the watch handle if absent and prime the latest snapshot."""
        self.start()
        self._commands.put((_Command.ARM, None))

    def request_disarm(self) -> None:
        """Tear down the watch handle if no subscribers remain when processed."""
        self._commands.put((_Command.DISARM, None))

    def sync(self, timeout: float = 5.0) -> bool:
        """Block until every command queued before this call has been handled."""
        if not self.running:
            return True
        done = threading.Event()
        self._commands.put((_Command.SYNC, done))
        return done.wait(timeout)

    @property
    def running(self) -> bool:
        worker = self._worker
        return worker is not None and worker.is_alive()

    def start(self) -> None:
        """Start the worker thread if it is not already running."""
        with self._thread_lock:
            if self.running:
                return
            worker = threading.Thread(
                target=self._run,
                name="livetree-watch-aggregator",
                daemon=True,
            )
            self._worker = worker
        worker.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Tear down the watch handle and stop the worker thread."""
        with self._thread_lock:
            worker = self._worker
        if worker is None or not worker.is_alive():
            return
        self._commands.put((_Command.STOP, None))
        worker.join(timeout=timeout)

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _next_timeout(self) -> float | None:
        candidates: list[float] = []
        if self._state is WatchState.PENDING and self._deadline is not None:
            candidates.append(self._deadline)
        if self._retry_at is not None:
            candidates.append(self._retry_at)
        if self._handle is not None:
            candidates.append(self._monotonic() + self._health_check_seconds)
        if not candidates:
            return None
        return max(0.0, min(candidates) - self._monotonic())

    def _run(self) -> None:
        while True:
            try:
                command, payload = self._commands.get(timeout=self._next_timeout())
            except Empty:
                self._on_timer()
                continue

            try:
                if command is _Command.STOP:
                    self._teardown()
                    return
                self._dispatch(command, payload)
            except Exception:
                logger.exception("Watch aggregator failed handling %s", command.value)

    def _dispatch(self, command: _Command, payload: object) -> None:
        if command is _Command.RAW_CHANGE:
            self._on_raw_change()
        elif command is _Command.WATCH_FAILED:
            assert isinstance(payload, tuple)
            generation, error = payload
            self._on_reported_failure(generation, error)
        elif command is _Command.ARM:
            self._on_arm()
        elif command is _Command.DISARM:
            self._on_disarm()
        elif command is _Command.SYNC:
            assert isinstance(payload, threading.Event)
            payload.set()

    def _on_raw_change(self) -> None:
        if self._handle is None:
            # Straggler event from a handle that was already torn down.
            return
        self._state = WatchState.PENDING
        self._deadline = self._monotonic() + self._debounce_seconds

    def _on_timer(self) -> None:
        now = self._monotonic()
        if self._state is WatchState.PENDING and self._deadline is not None and now >= self._deadline:
            self._state = WatchState.IDLE
            self._deadline = None
            self._run_cycle()

        if self._retry_at is not None and now >= self._retry_at:
            self._retry_at = None
            if self._registry.count() > 0:
                logger.info("Restarting file watcher after error")
                self._arm_and_prime()
            else:
                logger.debug("Skipping watcher restart: no subscribers")

        if self._handle is not None and not self._handle.is_alive():
            self._on_watch_failure(WatchFailure("file watcher stopped unexpectedly"))

    def _on_reported_failure(self, generation: int | None, error: BaseException) -> None:
        if self._handle is None or (generation is not None and generation != self._generation):
            logger.debug("Ignoring failure from a released file watcher: %s", error)
            return
        self._on_watch_failure(error)

    def _on_arm(self) -> None:
        if self._handle is not None or self._retry_at is not None:
            return
        if self._registry.count() == 0:
            return
        self._arm_and_prime()

    def _on_disarm(self) -> None:
        if self._registry.count() > 0:
            return
        self._teardown()
        self._retry_at = None

    def _arm_and_prime(self) -> None:
        self._generation += 1
        generation = self._generation
        handle = self._watch_factory(
            self.notify_change,
            lambda error: self.notify_watch_failure(error, generation),
        )
        try:
            handle.start()
        except Exception as exc:
            self._on_watch_failure(exc if isinstance(exc, WatchFailure) else WatchFailure(str(exc)))
            return
        self._handle = handle
        self._prime()

    def _prime(self) -> None:
        """Read once at arm time unless a read already happened this quiet period."""
        now = self._monotonic()
        recently_read = (
            self._last_read_at is not None
            and (now - self._last_read_at) < self._debounce_seconds
            and self._registry.latest is not None
        )
        if recently_read:
            return
        self._run_cycle()

    def _teardown(self) -> None:
        handle = self._handle
        self._handle = None
        self._state = WatchState.IDLE
        self._deadline = None
        if handle is None:
            return
        try:
            handle.stop()
        except Exception:
            logger.exception("Failed to stop file watcher cleanly")

    def _on_watch_failure(self, error: BaseException) -> None:
        logger.error("File watcher error: %s", error)
        self._teardown()
        self._registry.broadcast(error_message(str(error) or "file watcher failed"))
        if self._registry.count() > 0:
            self._retry_at = self._monotonic() + self._retry_backoff_seconds
        else:
            self._retry_at = None

    def _run_cycle(self) -> None:
        """Snapshot, compare structural keys, and broadcast only on change."""
        self.cycles += 1
        try:
            tree = self._snapshot()
        except Exception as exc:
            logger.error("Error processing file change: %s", exc)
            self._registry.broadcast(error_message(str(exc)))
            return
        self.reads += 1
        self._last_read_at = self._monotonic()
        key = structural_key(tree)

        with self._registry.locked():
            if key == self._last_key:
                logger.debug("Tree structure unchanged, skipping update")
                return
            self._last_key = key
            delivered = self._registry.publish(tree)
        logger.info("Tree structure changed, sent update to %d subscriber(s)", delivered)


__all__ = ["WatchState", "WatchDebounceAggregator"]
