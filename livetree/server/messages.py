"""Live-update stream messages and server-sent-event framing."""

from __future__ import annotations

import json

from ..file_tree_model import TreeNode, node_to_payload

MESSAGE_CONNECTED = "connected"
MESSAGE_UPDATE = "update"
MESSAGE_ERROR = "error"

HEARTBEAT_FRAME = ": heartbeat\n\n"


def connected_message() -> dict[str, object]:
    return {"type": MESSAGE_CONNECTED}


def update_message(tree: TreeNode) -> dict[str, object]:
    return {"type": MESSAGE_UPDATE, "tree": node_to_payload(tree)}


def error_message(message: str) -> dict[str, object]:
    return {"type": MESSAGE_ERROR, "message": message}


def encode_sse(message: dict[str, object]) -> str:
    """Frame one message as a single ``data:`` event terminated by a blank line."""
    return f"data: {json.dumps(message, separators=(',', ':'))}\n\n"


__all__ = [
    "MESSAGE_CONNECTED",
    "MESSAGE_UPDATE",
    "MESSAGE_ERROR",
    "HEARTBEAT_FRAME",
    "connected_message",
    "update_message",
    "error_message",
    "encode_sse",
]
