"""Tests for the watchdog-backed change forwarder."""

from __future__ import annotations

import shutil
import tempfile
import time
import unittest
from pathlib import Path

from watchdog.events import (
    DirDeletedEvent,
    DirMovedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from livetree.errors import WatchFailure
from livetree.server.watch_handle import WatchdogWatchHandle, _ChangeForwarder, is_hidden_relative


class HiddenPathTests(unittest.TestCase):
    def test_dot_component_below_root_is_hidden(self) -> None:
        root = Path("/srv/tree")
        self.assertTrue(is_hidden_relative(root, "/srv/tree/.git/index"))
        self.assertTrue(is_hidden_relative(root, b"/srv/tree/src/.cache"))
        self.assertFalse(is_hidden_relative(root, "/srv/tree/src/main.py"))
        self.assertFalse(is_hidden_relative(root, "/elsewhere/.hidden"))


class ChangeForwarderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.calls: list[int] = []
        self.root = Path("/srv/tree")

    def _forwarder(self, show_hidden: bool = False) -> _ChangeForwarder:
        return _ChangeForwarder(self.root, lambda: self.calls.append(1), show_hidden)

    def test_structural_events_are_forwarded(self) -> None:
        forwarder = self._forwarder()
        forwarder.dispatch(FileCreatedEvent("/srv/tree/a.txt"))
        forwarder.dispatch(FileModifiedEvent("/srv/tree/a.txt"))
        self.assertEqual(len(self.calls), 2)

    def test_close_events_are_ignored(self) -> None:
        self._forwarder().dispatch(FileClosedEvent("/srv/tree/a.txt"))
        self.assertEqual(self.calls, [])

    def test_hidden_paths_are_ignored_unless_show_hidden(self) -> None:
        self._forwarder().dispatch(FileCreatedEvent("/srv/tree/.git/HEAD"))
        self.assertEqual(self.calls, [])
        self._forwarder(show_hidden=True).dispatch(FileCreatedEvent("/srv/tree/.git/HEAD"))
        self.assertEqual(self.calls, [1])

    def test_move_out_of_hidden_directory_is_forwarded(self) -> None:
        self._forwarder().dispatch(FileMovedEvent("/srv/tree/.tmp/x", "/srv/tree/x"))
        self.assertEqual(self.calls, [1])

    def test_losing_the_root_reports_failure_once(self) -> None:
        failures: list[BaseException] = []
        forwarder = _ChangeForwarder(self.root, lambda: self.calls.append(1), False, failures.append)

        forwarder.dispatch(DirDeletedEvent("/srv/tree"))
        forwarder.dispatch(DirMovedEvent("/srv/tree", "/srv/elsewhere"))

        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], WatchFailure)
        self.assertEqual(self.calls, [])

    def test_deleting_a_child_directory_is_a_change(self) -> None:
        failures: list[BaseException] = []
        forwarder = _ChangeForwarder(self.root, lambda: self.calls.append(1), False, failures.append)
        forwarder.dispatch(DirDeletedEvent("/srv/tree/src"))
        self.assertEqual(self.calls, [1])
        self.assertEqual(failures, [])


class WatchdogWatchHandleTests(unittest.TestCase):
    def test_start_and_stop_lifecycle(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            handle = WatchdogWatchHandle(Path(tmp), lambda: None)
            handle.start()
            try:
                self.assertTrue(handle.is_alive())
            finally:
                handle.stop()
            self.assertFalse(handle.is_alive())

    def test_missing_root_raises_watch_failure(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            handle = WatchdogWatchHandle(Path(tmp) / "missing", lambda: None)
            with self.assertRaises(WatchFailure):
                handle.start()

    def test_deleted_root_stops_reporting_alive(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "tree"
            root.mkdir()
            failures: list[BaseException] = []
            handle = WatchdogWatchHandle(root, lambda: None, on_failure=failures.append)
            handle.start()
            try:
                shutil.rmtree(root)
                deadline = time.monotonic() + 5.0
                while handle.is_alive() and time.monotonic() < deadline:
                    time.sleep(0.02)
                self.assertFalse(handle.is_alive())
            finally:
                handle.stop()


if __name__ == "__main__":
    unittest.main()
