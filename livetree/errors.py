"""Error taxonomy shared by the snapshot, watch, and transport layers."""

from __future__ import annotations


class LiveTreeError(Exception):
    """Base class for livetree failures."""


class IOFailure(LiveTreeError):
    """Snapshot root is missing/unreadable or an entry could not be stat'ed."""


class WatchFailure(LiveTreeError):
    """The OS-level recursive watch could not be started or died."""


class TransportFailure(LiveTreeError):
    """A subscriber channel refused a message (saturated or closed)."""


__all__ = [
    "LiveTreeError",
    "IOFailure",
    "WatchFailure",
    "TransportFailure",
]
