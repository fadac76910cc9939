"""Tree viewport scrolling: keep the selected row on screen."""

from __future__ import annotations


def scroll_into_view(tree_start: int, selected_idx: int, visible_rows: int, total_rows: int) -> int:
    """Return a new first-visible-row index that shows ``selected_idx``.

    Scrolls the minimum distance and clamps so the viewport never runs past
    the last row.
    """
    rows = max(1, visible_rows)
    start = tree_start
    if selected_idx < start:
        start = selected_idx
    elif selected_idx >= start + rows:
        start = selected_idx - rows + 1
    return max(0, min(start, max(0, total_rows - rows)))


class TreeViewport:
    """Visible window over the rows of the tree pane."""

    def __init__(self, visible_rows: int = 20) -> None:
        self.visible_rows = max(1, visible_rows)
        self.tree_start = 0

    def resize(self, visible_rows: int, total_rows: int) -> None:
        self.visible_rows = max(1, visible_rows)
        self.tree_start = max(0, min(self.tree_start, max(0, total_rows - self.visible_rows)))

    def scroll_to(self, selected_idx: int, total_rows: int) -> bool:
        """Scroll so ``selected_idx`` is visible; return whether the window moved."""
        previous = self.tree_start
        self.tree_start = scroll_into_view(previous, selected_idx, self.visible_rows, total_rows)
        return self.tree_start != previous

    def window(self, total_rows: int) -> range:
        start = max(0, min(self.tree_start, total_rows))
        return range(start, min(total_rows, start + self.visible_rows))


__all__ = ["scroll_into_view", "TreeViewport"]
