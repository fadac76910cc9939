"""Flask surface: initial snapshot fetch plus the live-update event stream."""

from __future__ import annotations

import logging

from flask import Flask, Response, jsonify, stream_with_context

from ..errors import IOFailure
from ..file_tree_model import node_to_payload
from .service import LiveTreeService

logger = logging.getLogger(__name__)

TREE_ENDPOINT = "/api/file-tree"
WATCH_ENDPOINT = "/api/file-tree/watch"


def create_app(service: LiveTreeService) -> Flask:
    """Build a Flask app bound to ``service``."""
    app = Flask(__name__)
    app.extensions["livetree"] = service

    @app.get(TREE_ENDPOINT)
    def get_tree():
        try:
            tree = service.read_snapshot()
        except IOFailure as exc:
            logger.error("Failed to build file tree: %s", exc)
            return jsonify({"message": f"Failed to build file tree: {exc}"}), 500
        return jsonify(node_to_payload(tree))

    @app.get(WATCH_ENDPOINT)
    def watch_tree():
        subscriber = service.connect()
        response = Response(
            stream_with_context(service.iter_events(subscriber)),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )
        response.call_on_close(lambda: service.disconnect(subscriber))
        return response

    return app


__all__ = ["TREE_ENDPOINT", "WATCH_ENDPOINT", "create_app"]
