"""HTTP client for a running ``livetree serve`` instance.

``fetch_tree`` pulls one snapshot; ``LiveTreeStreamClient`` follows the SSE
watch stream on a daemon thread and reconnects after a fixed backoff. Every
(re)connection begins with a ``connected`` message and a full ``update``, so a
reconnecting client never needs to replay missed events.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from typing import Any

import requests

from .errors import IOFailure, TransportFailure
from .file_tree_model import FolderNode, node_from_payload
from .server.messages import error_message

logger = logging.getLogger(__name__)

TREE_PATH = "/api/file-tree"
WATCH_PATH = "/api/file-tree/watch"
DEFAULT_TIMEOUT = 10.0
USER_AGENT = "livetree"


def _url(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + path


def fetch_tree(base_url: str, *, timeout: float = DEFAULT_TIMEOUT) -> FolderNode:
    """GET the current snapshot; raise ``IOFailure`` on transport or server errors."""
    url = _url(base_url, TREE_PATH)
    try:
        response = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        raise IOFailure(f"could not reach {url}: {exc}") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise IOFailure(f"{url} returned a non-JSON body (HTTP {response.status_code})") from exc

    if response.status_code != 200:
        message = payload.get("message") if isinstance(payload, dict) else None
        raise IOFailure(message or f"{url} returned HTTP {response.status_code}")

    try:
        tree = node_from_payload(payload)
    except ValueError as exc:
        raise IOFailure(f"malformed tree payload: {exc}") from exc
    if not isinstance(tree, FolderNode):
        raise IOFailure("tree payload root is not a folder")
    return tree


def iter_sse_messages(lines: Iterable[str | bytes]) -> Iterator[dict[str, Any]]:
    """Yield decoded JSON messages from SSE text lines.

    ``data:`` lines accumulate until a blank line ends the event. Comment lines
    (``: heartbeat``) and other fields are ignored, as are events whose data is
    not a JSON object.
    """
    data_lines: list[str] = []
    for raw in lines:
        line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        line = line.rstrip("\r\n")
        if not line:
            if data_lines:
                text = "\n".join(data_lines)
                data_lines = []
                try:
                    message = json.loads(text)
                except json.JSONDecodeError:
                    logger.debug("skipping non-JSON event data: %r", text[:80])
                    continue
                if isinstance(message, dict):
                    yield message
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field == "data":
            data_lines.append(value[1:] if value.startswith(" ") else value)


class LiveTreeStreamClient:
    """Follow the watch stream and hand every message to ``on_message``.

    Connection failures and server-side stream ends are reported as
    ``error`` messages before the client waits ``reconnect_seconds`` and
    reconnects.
    """

    def __init__(
        self,
        base_url: str,
        on_message: Callable[[dict[str, Any]], None],
        *,
        reconnect_seconds: float = 1.0,
        connect_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.url = _url(base_url, WATCH_PATH)
        self.on_message = on_message
        self.reconnect_seconds = reconnect_seconds
        self.connect_timeout = connect_timeout
        self.connections = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._response: requests.Response | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="livetree-stream", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 2.0) -> None:
        self._stop.set()
        with self._lock:
            response = self._response
        if response is not None:
            # Closing the response unblocks a read waiting on the socket.
            response.close()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.stream_once()
                reason = "watch stream closed by server"
            except TransportFailure as exc:
                reason = str(exc)
            if self._stop.is_set():
                return
            logger.info("%s; reconnecting in %.1fs", reason, self.reconnect_seconds)
            self.on_message(error_message(reason))
            self._stop.wait(self.reconnect_seconds)

    def stream_once(self) -> None:
        """Open one watch connection and forward messages until it ends."""
        try:
            response = requests.get(
                self.url,
                headers={"Accept": "text/event-stream", "User-Agent": USER_AGENT},
                stream=True,
                timeout=(self.connect_timeout, None),
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise TransportFailure(f"watch connection failed: {exc}") from exc

        self.connections += 1
        with self._lock:
            self._response = response
        try:
            for message in iter_sse_messages(response.iter_lines(decode_unicode=True)):
                if self._stop.is_set():
                    return
                self.on_message(message)
        except requests.exceptions.RequestException as exc:
            if not self._stop.is_set():
                raise TransportFailure(f"watch stream interrupted: {exc}") from exc
        finally:
            with self._lock:
                self._response = None
            response.close()


__all__ = ["fetch_tree", "iter_sse_messages", "LiveTreeStreamClient"]
