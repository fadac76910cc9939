"""Tests for the client session: stream messages, initial load, key routing."""

from __future__ import annotations

import unittest

from livetree.errors import IOFailure
from livetree.file_tree_model import FileNode, FolderNode, node_to_payload
from livetree.server.messages import connected_message, error_message, update_message
from livetree.tree_pane.session import TreeSession


def _tree(*names: str) -> FolderNode:
    return FolderNode("p", "root", tuple(FileNode(n, f"root/{n}") for n in names))


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TreeSessionMessageTests(unittest.TestCase):
    def test_connected_sets_watching(self) -> None:
        session = TreeSession()
        self.assertTrue(session.apply_message(connected_message()))
        self.assertTrue(session.state.watching)

    def test_update_adopts_tree_and_clears_loading(self) -> None:
        session = TreeSession()

        self.assertTrue(session.apply_message(update_message(_tree("a"))))

        self.assertFalse(session.state.loading)
        self.assertEqual([r.node.name for r in session.visible_rows()], ["p", "a"])

    def test_identical_update_reports_no_change(self) -> None:
        session = TreeSession()
        session.apply_message(update_message(_tree("a")))
        self.assertFalse(session.apply_message(update_message(_tree("a"))))

    def test_error_keeps_last_good_tree(self) -> None:
        session = TreeSession()
        session.apply_message(connected_message())
        session.apply_message(update_message(_tree("a")))

        session.apply_message(error_message("watcher died"))

        self.assertFalse(session.state.watching)
        self.assertEqual(session.state.watch_error, "watcher died")
        self.assertIsNotNone(session.state.tree)

    def test_reconnect_clears_watch_error(self) -> None:
        session = TreeSession()
        session.apply_message(error_message("gone"))
        session.apply_message(connected_message())
        self.assertIsNone(session.state.watch_error)
        self.assertTrue(session.state.watching)

    def test_malformed_update_is_discarded(self) -> None:
        session = TreeSession()
        self.assertFalse(session.apply_message({"type": "update", "tree": {"type": "bogus"}}))
        self.assertFalse(session.apply_message({"type": "update", "tree": node_to_payload(FileNode("a", "root"))}))
        self.assertIsNone(session.state.tree)

    def test_unknown_message_type_is_ignored(self) -> None:
        self.assertFalse(TreeSession().apply_message({"type": "ping"}))

    def test_messages_apply_only_when_drained(self) -> None:
        session = TreeSession()
        session.apply_message(update_message(_tree("a")))
        session.enqueue_message(update_message(_tree("a", "b")))

        self.assertEqual(len(session.visible_rows()), 2)
        self.assertTrue(session.drain_messages())
        self.assertEqual(len(session.visible_rows()), 3)
        self.assertFalse(session.drain_messages())


class TreeSessionLoadTests(unittest.TestCase):
    def test_load_initial_success(self) -> None:
        session = TreeSession(clock=_Clock())
        self.assertTrue(session.load_initial(lambda: _tree("a")))
        self.assertFalse(session.state.loading)
        self.assertIsNone(session.state.error)
        self.assertEqual(session.state.last_updated, 0.0)

    def test_load_initial_failure_enters_error_state(self) -> None:
        def fail() -> FolderNode:
            raise IOFailure("Tree root /x does not exist.")

        session = TreeSession()

        self.assertFalse(session.load_initial(fail))
        self.assertFalse(session.state.loading)
        self.assertEqual(session.state.error, "Tree root /x does not exist.")


class TreeSessionKeyTests(unittest.TestCase):
    def test_selection_scrolls_viewport_and_focuses_container(self) -> None:
        session = TreeSession(visible_rows=3)
        session.apply_message(update_message(_tree(*"abcdefg")))

        for _ in range(6):
            session.handle_key("DOWN")

        self.assertEqual(session.state.selected_path, "root/e")
        self.assertTrue(session.state.focused)
        self.assertEqual(session.viewport.tree_start, 3)

    def test_wrap_to_top_scrolls_back(self) -> None:
        session = TreeSession(visible_rows=3)
        session.apply_message(update_message(_tree(*"abcdefg")))
        session.handle_key("UP")
        self.assertEqual(session.viewport.tree_start, 5)
        session.handle_key("DOWN")
        self.assertEqual(session.viewport.tree_start, 0)

    def test_render_clears_dirty_flag(self) -> None:
        session = TreeSession(visible_rows=5)
        session.apply_message(update_message(_tree("a")))
        lines = session.render(40)
        self.assertEqual(len(lines), 4)
        self.assertFalse(session.state.dirty)


if __name__ == "__main__":
    unittest.main()
