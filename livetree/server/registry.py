"""Subscriber set with non-blocking fan-out of stream messages."""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from queue import Empty, Full, Queue

from ..errors import TransportFailure
from ..file_tree_model import TreeNode
from .messages import connected_message, update_message

logger = logging.getLogger(__name__)

_CLOSED = object()

# Room for ``connected`` plus the latest snapshot on registration.
_MIN_QUEUE = 2


class Subscriber:
    """One connected output channel: a bounded FIFO plus a liveness flag.

    The registry is the only producer; the connection handler is the only
    consumer. Per-subscriber ordering is the queue's FIFO order.
    """

    def __init__(self, subscriber_id: int, max_queue: int) -> None:
        self.subscriber_id = subscriber_id
        self.alive = True
        self._queue: Queue[object] = Queue(maxsize=max(_MIN_QUEUE, max_queue))

    def deliver(self, message: dict[str, object]) -> None:
        """Enqueue without blocking; raise ``TransportFailure`` if refused."""
        if not self.alive:
            raise TransportFailure(f"subscriber {self.subscriber_id} is closed")
        try:
            self._queue.put_nowait(message)
        except Full as exc:
            raise TransportFailure(f"subscriber {self.subscriber_id} is saturated") from exc

    def next_message(self, timeout: float | None = None) -> dict[str, object] | None:
        """Return the next queued message, or ``None`` on timeout or close."""
        try:
            item = self._queue.get(timeout=timeout)
        except Empty:
            return None
        if item is _CLOSED:
            return None
        return item  # type: ignore[return-value]

    def drain(self) -> list[dict[str, object]]:
        """Return all queued messages without waiting."""
        out: list[dict[str, object]] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except Empty:
                break
            if item is not _CLOSED:
                out.append(item)  # type: ignore[arg-type]
        return out

    def close(self) -> None:
        """Mark closed and wake a blocked consumer when there is room."""
        if not self.alive:
            return
        self.alive = False
        try:
            self._queue.put_nowait(_CLOSED)
        except Full:
            pass


class SubscriberRegistry:
    """Currently-connected subscribers plus the most recent snapshot.

    All mutation happens under one re-entrant lock. The aggregator holds the
    same lock around compare-update-broadcast, so a concurrent ``register``
    observes either the previous or the new snapshot, never a mix.
    """

    def __init__(
        self,
        max_queue: int = 64,
        on_empty: Callable[[], None] | None = None,
    ) -> None:
        self._max_queue = max_queue
        self._on_empty = on_empty
        self._lock = threading.RLock()
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count(1)
        self._latest: TreeNode | None = None

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    @property
    def latest(self) -> TreeNode | None:
        with self._lock:
            return self._latest

    def count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def register(self) -> Subscriber:
        """Add a subscriber and queue ``connected`` plus the latest snapshot."""
        with self._lock:
            subscriber = Subscriber(next(self._ids), self._max_queue)
            self._subscribers[subscriber.subscriber_id] = subscriber
            subscriber.deliver(connected_message())
            if self._latest is not None:
                subscriber.deliver(update_message(self._latest))
            logger.debug("Subscriber %d registered (%d total)", subscriber.subscriber_id, len(self._subscribers))
            return subscriber

    def unregister(self, subscriber: Subscriber) -> bool:
        """Remove ``subscriber``; repeated calls are no-ops returning ``False``."""
        with self._lock:
            removed = self._remove(subscriber)
            emptied = removed and not self._subscribers
        if emptied and self._on_empty is not None:
            self._on_empty()
        return removed

    def _remove(self, subscriber: Subscriber) -> bool:
        subscriber.close()
        if self._subscribers.pop(subscriber.subscriber_id, None) is None:
            return False
        logger.debug("Subscriber %d removed (%d remaining)", subscriber.subscriber_id, len(self._subscribers))
        return True

    def broadcast(self, message: dict[str, object]) -> int:
        """Deliver ``message`` to every subscriber; drop the ones that refuse it.

        Returns the number of subscribers that accepted the message.
        """
        delivered = 0
        with self._lock:
            dead: list[Subscriber] = []
            for subscriber in list(self._subscribers.values()):
                try:
                    subscriber.deliver(message)
                except TransportFailure as exc:
                    logger.info("Dropping subscriber: %s", exc)
                    dead.append(subscriber)
                    continue
                delivered += 1
            removed_any = False
            for subscriber in dead:
                removed_any = self._remove(subscriber) or removed_any
            emptied = removed_any and not self._subscribers
        if emptied and self._on_empty is not None:
            self._on_empty()
        return delivered

    def publish(self, tree: TreeNode) -> int:
        """Remember ``tree`` as the latest snapshot and broadcast it as ``update``."""
        with self._lock:
            self._latest = tree
            return self.broadcast(update_message(tree))

    def close_all(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()
        for subscriber in subscribers:
            subscriber.close()


__all__ = ["Subscriber", "SubscriberRegistry"]
