"""Process-wide live-tree service: one registry, one aggregator, one watch.

The service is an explicitly constructed object handed to the HTTP layer, so
tests can build independent instances. The watch handle lives only while at
least one subscriber is connected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from ..file_tree_model import FolderNode, build_file_tree
from ..runtime.config import LiveTreeSettings
from .aggregator import WatchDebounceAggregator
from .messages import HEARTBEAT_FRAME, encode_sse
from .registry import Subscriber, SubscriberRegistry
from .watch_handle import WatchFactory, watchdog_watch_factory

logger = logging.getLogger(__name__)


class LiveTreeService:
    """Compose snapshotter, aggregator, and subscriber registry for one root."""

    def __init__(
        self,
        root: Path,
        settings: LiveTreeSettings | None = None,
        *,
        root_name: str | None = None,
        watch_factory: WatchFactory | None = None,
        health_check_seconds: float = 1.0,
    ) -> None:
        self.root = Path(root)
        self.settings = settings or LiveTreeSettings()
        self.root_name = root_name
        self.registry = SubscriberRegistry(
            max_queue=self.settings.subscriber_queue_size,
            on_empty=self._on_last_subscriber_gone,
        )
        if watch_factory is None:
            watch_factory = watchdog_watch_factory(self.root, show_hidden=self.settings.show_hidden)
        self.aggregator = WatchDebounceAggregator(
            self.registry,
            snapshot=self.read_snapshot,
            watch_factory=watch_factory,
            debounce_seconds=self.settings.debounce_seconds,
            retry_backoff_seconds=self.settings.retry_backoff_seconds,
            health_check_seconds=health_check_seconds,
        )

    def read_snapshot(self) -> FolderNode:
        """Read a fresh snapshot of the root; raises ``IOFailure``."""
        return build_file_tree(
            self.root,
            show_hidden=self.settings.show_hidden,
            root_name=self.root_name,
        )

    def connect(self) -> Subscriber:
        """Register a subscriber and make sure the shared watch is armed."""
        subscriber = self.registry.register()
        self.aggregator.request_arm()
        return subscriber

    def disconnect(self, subscriber: Subscriber) -> None:
        self.registry.unregister(subscriber)

    def subscriber_count(self) -> int:
        return self.registry.count()

    def _on_last_subscriber_gone(self) -> None:
        logger.debug("Last subscriber disconnected; releasing file watcher")
        self.aggregator.request_disarm()

    def iter_events(self, subscriber: Subscriber, heartbeat_seconds: float | None = None) -> Iterator[str]:
        """Yield SSE frames for ``subscriber`` until it is closed.

        Emits a comment heartbeat when idle so proxies keep the stream open.
        Unregisters the subscriber when the generator is closed.
        """
        interval = heartbeat_seconds if heartbeat_seconds is not None else self.settings.heartbeat_seconds
        try:
            while subscriber.alive:
                message = subscriber.next_message(timeout=interval)
                if message is None:
                    if not subscriber.alive:
                        break
                    yield HEARTBEAT_FRAME
                    continue
                yield encode_sse(message)
        finally:
            self.disconnect(subscriber)

    def close(self) -> None:
        """Drop all subscribers and stop the aggregator worker."""
        self.registry.close_all()
        self.aggregator.stop()


__all__ = ["LiveTreeService"]
