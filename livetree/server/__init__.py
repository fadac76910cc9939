"""Server side of live tree synchronization.

Watch-debounce aggregation, subscriber fan-out, SSE framing, and the Flask
endpoints that expose them.
"""

from __future__ import annotations

from .aggregator import WatchDebounceAggregator, WatchState
from .messages import connected_message, encode_sse, error_message, update_message
from .registry import Subscriber, SubscriberRegistry
from .service import LiveTreeService

__all__ = [
    "WatchDebounceAggregator",
    "WatchState",
    "Subscriber",
    "SubscriberRegistry",
    "LiveTreeService",
    "connected_message",
    "update_message",
    "error_message",
    "encode_sse",
]
