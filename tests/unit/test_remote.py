"""Tests for the HTTP snapshot fetch, SSE parsing and the reconnecting stream client."""

from __future__ import annotations

import threading
import unittest
from unittest.mock import MagicMock, patch

import requests

from livetree.errors import IOFailure, TransportFailure
from livetree.file_tree_model import FolderNode
from livetree.remote import LiveTreeStreamClient, fetch_tree, iter_sse_messages

TREE_PAYLOAD = {"type": "folder", "name": "p", "path": "root", "children": []}


def _response(status: int = 200, payload: object = None, lines: list[str] | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    resp.iter_lines.return_value = iter(lines or [])
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"HTTP {status}")
    return resp


class FetchTreeTests(unittest.TestCase):
    def test_fetch_tree_decodes_snapshot(self) -> None:
        with patch("requests.get", return_value=_response(payload=TREE_PAYLOAD)) as mock_get:
            tree = fetch_tree("http://localhost:3000/")

        self.assertEqual(tree, FolderNode("p", "root", ()))
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "http://localhost:3000/api/file-tree")
        self.assertIn("timeout", kwargs)

    def test_error_payload_raises_io_failure_with_server_message(self) -> None:
        resp = _response(status=500, payload={"message": "Failed to build file tree: gone"})
        with patch("requests.get", return_value=resp):
            with self.assertRaisesRegex(IOFailure, "Failed to build file tree"):
                fetch_tree("http://localhost:3000")

    def test_connection_error_raises_io_failure(self) -> None:
        with patch("requests.get", side_effect=requests.exceptions.ConnectionError("refused")):
            with self.assertRaises(IOFailure):
                fetch_tree("http://localhost:3000")

    def test_non_json_body_raises_io_failure(self) -> None:
        resp = _response()
        resp.json.side_effect = ValueError("no json")
        with patch("requests.get", return_value=resp):
            with self.assertRaises(IOFailure):
                fetch_tree("http://localhost:3000")

    def test_file_root_is_rejected(self) -> None:
        resp = _response(payload={"type": "file", "name": "a", "path": "root"})
        with patch("requests.get", return_value=resp):
            with self.assertRaises(IOFailure):
                fetch_tree("http://localhost:3000")


class SseParsingTests(unittest.TestCase):
    def test_parses_data_frames_and_skips_heartbeats(self) -> None:
        lines = [
            'data: {"type":"connected"}',
            "",
            ": heartbeat",
            "",
            b'data: {"type":"error","message":"x"}',
            "",
        ]
        self.assertEqual(
            list(iter_sse_messages(lines)),
            [{"type": "connected"}, {"type": "error", "message": "x"}],
        )

    def test_multi_line_data_is_joined(self) -> None:
        lines = ['data: {"type":', 'data: "connected"}', ""]
        self.assertEqual(list(iter_sse_messages(lines)), [{"type": "connected"}])

    def test_invalid_json_and_non_objects_are_skipped(self) -> None:
        lines = ["data: not-json", "", "data: [1, 2]", "", "event: ping", "data: {}", ""]
        self.assertEqual(list(iter_sse_messages(lines)), [{}])

    def test_unterminated_event_is_not_emitted(self) -> None:
        self.assertEqual(list(iter_sse_messages(['data: {"type":"connected"}'])), [])


class StreamClientTests(unittest.TestCase):
    def test_stream_once_forwards_messages(self) -> None:
        received: list[dict] = []
        client = LiveTreeStreamClient("http://h", received.append)
        resp = _response(lines=['data: {"type":"connected"}', "", "data: {\"type\":\"update\",\"tree\":{}}", ""])

        with patch("requests.get", return_value=resp) as mock_get:
            client.stream_once()

        self.assertEqual([m["type"] for m in received], ["connected", "update"])
        self.assertEqual(mock_get.call_args[0][0], "http://h/api/file-tree/watch")
        self.assertTrue(mock_get.call_args[1]["stream"])
        self.assertEqual(client.connections, 1)
        resp.close.assert_called()

    def test_stream_once_wraps_connection_errors(self) -> None:
        client = LiveTreeStreamClient("http://h", lambda _m: None)
        with patch("requests.get", side_effect=requests.exceptions.ConnectionError("refused")):
            with self.assertRaises(TransportFailure):
                client.stream_once()

    def test_stream_once_wraps_http_errors(self) -> None:
        client = LiveTreeStreamClient("http://h", lambda _m: None)
        with patch("requests.get", return_value=_response(status=503)):
            with self.assertRaises(TransportFailure):
                client.stream_once()

    def test_reconnects_after_failure_and_reports_error(self) -> None:
        received: list[dict] = []
        second_connection = threading.Event()

        def on_message(message: dict) -> None:
            received.append(message)
            if message["type"] == "connected":
                second_connection.set()

        responses = [
            requests.exceptions.ConnectionError("refused"),
            _response(lines=['data: {"type":"connected"}', ""]),
        ]

        def fake_get(*_args, **_kwargs):
            if responses:
                item = responses.pop(0)
                if isinstance(item, Exception):
                    raise item
                return item
            return _response(lines=[])

        client = LiveTreeStreamClient("http://h", on_message, reconnect_seconds=0.01)
        with patch("requests.get", side_effect=fake_get):
            client.start()
            try:
                self.assertTrue(second_connection.wait(2.0))
            finally:
                client.stop()

        self.assertEqual(received[0]["type"], "error")
        self.assertIn("refused", received[0]["message"])
        self.assertIn({"type": "connected"}, received)
        self.assertFalse(client.running)


if __name__ == "__main__":
    unittest.main()
