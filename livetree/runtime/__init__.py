"""Terminal runtime: settings, key decoding, terminal control and the browse loop.

The browse entry points are imported lazily because the server package
imports ``runtime.config`` and the loop imports the server.
"""

from __future__ import annotations


def browse_local(*args, **kwargs):
    """Lazily import the local browse entrypoint to avoid package-import cycles."""
    from .loop import browse_local as _browse_local

    return _browse_local(*args, **kwargs)


def browse_remote(*args, **kwargs):
    """Lazily import the remote browse entrypoint to avoid package-import cycles."""
    from .loop import browse_remote as _browse_remote

    return _browse_remote(*args, **kwargs)


__all__ = ["browse_local", "browse_remote"]
