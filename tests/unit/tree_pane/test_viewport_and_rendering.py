"""Tests for viewport scrolling and tree-pane row formatting."""

from __future__ import annotations

import re
import unittest

from livetree.file_tree_model import FileNode, FolderNode
from livetree.tree_pane.rendering import (
    DETAILS_PLACEHOLDER,
    clip_text,
    display_width,
    format_details,
    format_row,
    format_size,
    format_status,
    render_pane,
)
from livetree.tree_pane.state import TreeViewState
from livetree.tree_pane.viewport import TreeViewport, scroll_into_view
from livetree.tree_pane.visible import VisibleNode, flatten_visible

ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


def _plain(text: str) -> str:
    return ANSI_RE.sub("", text)


class ViewportTests(unittest.TestCase):
    def test_scroll_down_keeps_selection_on_last_visible_row(self) -> None:
        self.assertEqual(scroll_into_view(0, 12, 5, 30), 8)

    def test_scroll_up_moves_start_to_selection(self) -> None:
        self.assertEqual(scroll_into_view(10, 3, 5, 30), 3)

    def test_visible_selection_does_not_scroll(self) -> None:
        self.assertEqual(scroll_into_view(4, 6, 5, 30), 4)

    def test_start_is_clamped_to_content(self) -> None:
        self.assertEqual(scroll_into_view(25, 26, 10, 28), 18)
        self.assertEqual(scroll_into_view(3, 1, 10, 4), 0)

    def test_tree_viewport_window_and_resize(self) -> None:
        viewport = TreeViewport(visible_rows=3)

        self.assertTrue(viewport.scroll_to(5, 10))
        self.assertEqual(list(viewport.window(10)), [3, 4, 5])
        self.assertFalse(viewport.scroll_to(4, 10))

        viewport.resize(8, 10)
        self.assertEqual(viewport.tree_start, 2)
        self.assertEqual(list(viewport.window(10)), list(range(2, 10)))


class RowFormattingTests(unittest.TestCase):
    def test_folder_rows_show_expansion_marker(self) -> None:
        folder = VisibleNode(FolderNode("src", "root/src", ()), 1)

        self.assertEqual(_plain(format_row(folder, {"root/src"})), "  ▾ src/")
        self.assertEqual(_plain(format_row(folder, set())), "  ▸ src/")

    def test_file_rows_are_indented_and_large_files_get_size_label(self) -> None:
        small = VisibleNode(FileNode("a.ts", "root/a.ts", "ts", 10), 2)
        large = VisibleNode(FileNode("big.bin", "root/big.bin", "bin", 20 * 1024), 1)

        self.assertEqual(_plain(format_row(small, set())), "      a.ts")
        self.assertEqual(_plain(format_row(large, set())), "    big.bin [20 KB]")

    def test_rows_are_clipped_to_width(self) -> None:
        row = VisibleNode(FileNode("a-very-long-file-name.txt", "root/x", "txt"), 0)
        self.assertEqual(display_width(_plain(format_row(row, set(), width=10))), 10)

    def test_selected_row_is_padded_and_reversed(self) -> None:
        row = VisibleNode(FileNode("a", "root/a"), 0)
        text = format_row(row, set(), selected=True, width=12)
        self.assertTrue(text.startswith("\033[7m"))
        self.assertEqual(len(_plain(text)), 12)

    def test_wide_characters_count_double(self) -> None:
        self.assertEqual(display_width("日本"), 4)
        self.assertEqual(clip_text("日本語", 5), "日本")

    def test_status_line_reflects_watch_state(self) -> None:
        state = TreeViewState(loading=False, watching=True)
        self.assertIn("live", _plain(format_status(state)))

        state.watching = False
        state.watch_error = "watcher died"
        self.assertIn("watcher died", _plain(format_status(state)))

        state.error = "root missing"
        self.assertIn("error: root missing", _plain(format_status(state)))

    def test_status_line_shows_typeahead_query(self) -> None:
        state = TreeViewState(loading=False)
        self.assertIn("find: ab", _plain(format_status(state, typeahead_query="ab")))

    def test_render_pane_emits_window_details_and_status(self) -> None:
        tree = FolderNode("p", "root", tuple(FileNode(n, f"root/{n}") for n in "abcde"))
        state = TreeViewState(tree=tree, loading=False, selected_path="root/c")
        rows = flatten_visible(tree, state.expanded)

        lines = render_pane(state, rows, range(2, 5), width=20)

        self.assertEqual(len(lines), 5)
        self.assertTrue(_plain(lines[3]).startswith("root/c"))
        self.assertEqual(_plain(lines[0]).strip(), "b")
        self.assertTrue(lines[1].startswith("\033[7m"))


class DetailsLineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = FolderNode(
            "project",
            "root",
            (
                FolderNode("src", "root/src", (FileNode("a.ts", "root/src/a.ts", "ts", 2048, "2024-05-01T10:00:00.000Z"),)),
                FileNode("Makefile", "root/Makefile", None, 12),
            ),
        )

    def test_selected_file_shows_path_extension_size_and_mtime(self) -> None:
        state = TreeViewState(tree=self.tree, loading=False, selected_path="root/src/a.ts")
        self.assertEqual(
            _plain(format_details(state, width=120)),
            "root/src/a.ts  .ts  2.0 KB  modified 2024-05-01T10:00:00.000Z",
        )

    def test_file_without_extension(self) -> None:
        state = TreeViewState(tree=self.tree, loading=False, selected_path="root/Makefile")
        self.assertEqual(_plain(format_details(state)), "root/Makefile  no extension  12 B")

    def test_selected_folder_shows_child_count(self) -> None:
        state = TreeViewState(tree=self.tree, loading=False, selected_path="root/src")
        self.assertEqual(_plain(format_details(state)), "root/src  folder, 1 item")

    def test_placeholder_without_or_with_stale_selection(self) -> None:
        state = TreeViewState(tree=self.tree, loading=False)
        self.assertEqual(_plain(format_details(state)), DETAILS_PLACEHOLDER)
        state.selected_path = "root/deleted.txt"
        self.assertEqual(_plain(format_details(state)), DETAILS_PLACEHOLDER)

    def test_details_are_clipped_to_width(self) -> None:
        state = TreeViewState(tree=self.tree, loading=False, selected_path="root/src/a.ts")
        self.assertEqual(display_width(_plain(format_details(state, width=16))), 16)

    def test_format_size_units(self) -> None:
        self.assertEqual(format_size(0), "0 B")
        self.assertEqual(format_size(1536), "1.5 KB")
        self.assertEqual(format_size(5 * 1024 * 1024), "5.0 MB")
        self.assertEqual(format_size(3 * 1024**3), "3.0 GB")


if __name__ == "__main__":
    unittest.main()
