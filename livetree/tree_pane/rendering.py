"""Formatting helpers for tree-pane rows and the status line."""

from __future__ import annotations

import time
import unicodedata
from dataclasses import dataclass

from ..file_tree_model import FileNode, FolderNode, find_node_by_path
from .state import TreeViewState
from .visible import VisibleNode

SIZE_LABEL_MIN_BYTES = 10 * 1024
DETAILS_PLACEHOLDER = "Select an item to see its details"

# Lines drawn below the tree rows: details, then status.
FOOTER_LINES = 2


@dataclass(frozen=True)
class PaneTheme:
    """ANSI palette used by the tree pane."""

    reset: str = "\033[0m"
    reverse: str = "\033[7m"
    marker: str = "\033[38;5;44m"
    folder: str = "\033[1;34m"
    file: str = "\033[38;5;252m"
    size: str = "\033[38;5;109m"
    status_ok: str = "\033[38;5;42m"
    status_warn: str = "\033[38;5;214m"
    status_dim: str = "\033[2;38;5;250m"


DEFAULT_THEME = PaneTheme()


def char_width(ch: str) -> int:
    if unicodedata.combining(ch):
        return 0
    return 2 if unicodedata.east_asian_width(ch) in {"W", "F"} else 1


def display_width(text: str) -> int:
    """Return terminal column width, counting wide characters as two columns."""
    return sum(char_width(ch) for ch in text)


def clip_text(text: str, max_cols: int) -> str:
    """Trim unstyled ``text`` to at most ``max_cols`` display columns."""
    if max_cols <= 0:
        return ""
    out: list[str] = []
    col = 0
    for ch in text:
        w = char_width(ch)
        if col + w > max_cols:
            break
        out.append(ch)
        col += w
    return "".join(out)


def format_row(
    row: VisibleNode,
    expanded: set[str],
    *,
    selected: bool = False,
    width: int = 80,
    theme: PaneTheme | None = None,
) -> str:
    """Render one visible row as ANSI-styled text clipped to ``width`` columns."""
    active = theme or DEFAULT_THEME
    node = row.node
    indent = "  " * row.depth
    if isinstance(node, FolderNode):
        marker = "▾ " if node.path in expanded else "▸ "
        label = node.name + "/"
        color = active.folder
    else:
        marker = "  "
        label = node.name
        color = active.file

    suffix = ""
    if isinstance(node, FileNode) and node.size_in_bytes >= SIZE_LABEL_MIN_BYTES:
        suffix = f" [{node.size_in_bytes // 1024} KB]"

    room = max(0, width - display_width(indent) - display_width(marker))
    label = clip_text(label, room)
    room -= display_width(label)
    suffix = clip_text(suffix, room)
    padding = " " * max(0, room - display_width(suffix)) if selected else ""

    text = f"{indent}{active.marker}{marker}{active.reset}{color}{label}{active.reset}"
    if suffix:
        text += f"{active.size}{suffix}{active.reset}"
    if selected:
        # Re-enable reverse video after each inner reset so the bar spans the row.
        text = active.reverse + text.replace(active.reset, active.reset + active.reverse) + padding + active.reset
    return text


def format_status(
    state: TreeViewState,
    *,
    typeahead_query: str = "",
    width: int = 80,
    theme: PaneTheme | None = None,
) -> str:
    """Render the one-line status bar: connection state, last update, type-ahead."""
    active = theme or DEFAULT_THEME
    if state.loading:
        parts = [(active.status_dim, "loading…")]
    elif state.error:
        parts = [(active.status_warn, f"error: {state.error}")]
    elif state.watching:
        parts = [(active.status_ok, "● live")]
    elif state.watch_error:
        parts = [(active.status_warn, f"○ {state.watch_error}")]
    else:
        parts = [(active.status_dim, "○ not watching")]

    if state.last_updated is not None:
        stamp = time.strftime("%H:%M:%S", time.localtime(state.last_updated))
        parts.append((active.status_dim, f"updated {stamp}"))
    if typeahead_query:
        parts.append((active.marker, f"find: {typeahead_query}"))

    out: list[str] = []
    room = width
    for color, text in parts:
        sep = "  " if out else ""
        clipped = clip_text(sep + text, room)
        if not clipped:
            break
        out.append(f"{color}{clipped}{active.reset}")
        room -= display_width(clipped)
    return "".join(out)


def format_size(size_in_bytes: int) -> str:
    if size_in_bytes < 1024:
        return f"{size_in_bytes} B"
    size = size_in_bytes / 1024
    for unit in ("KB", "MB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"



def format_details(
    state: TreeViewState,
    *,
    width: int = 80,
    theme: PaneTheme | None = None,
) -> str:
    """Describe the selected node, or a placeholder when nothing resolves.

    Files show extension, size and modification time; folders show how many
    direct children they hold.
    """
    active = theme or DEFAULT_THEME
    node = find_node_by_path(state.tree, state.selected_path)
    if node is None:
        return f"{active.status_dim}{clip_text(DETAILS_PLACEHOLDER, width)}{active.reset}"

    if isinstance(node, FolderNode):
        count = len(node.children)
        facts = [f"folder, {count} item{'s' if count != 1 else ''}"]
    else:
        facts = [
            f".{node.extension}" if node.extension else "no extension",
            format_size(node.size_in_bytes),
        ]
        if node.modified_at:
            facts.append(f"modified {node.modified_at}")

    head = clip_text(node.path, width)
    tail = clip_text("  " + "  ".join(facts), width - display_width(head))
    text = f"{active.file}{head}{active.reset}"
    if tail:
        text += f"{active.size}{tail}{active.reset}"
    return text


def render_pane(
    state: TreeViewState,
    rows: list[VisibleNode],
    window: range,
    *,
    typeahead_query: str = "",
    width: int = 80,
    theme: PaneTheme | None = None,
) -> list[str]:
    """Return display lines for the rows in ``window``, then details and status."""
    lines = [
        format_row(
            rows[idx],
            state.expanded,
            selected=rows[idx].node.path == state.selected_path,
            width=width,
            theme=theme,
        )
        for idx in window
    ]
    if not rows and not state.loading:
        lines.append(clip_text("(empty)", width))
    lines.append(format_details(state, width=width, theme=theme))
    lines.append(format_status(state, typeahead_query=typeahead_query, width=width, theme=theme))
    return lines


__all__ = [
    "PaneTheme",
    "DEFAULT_THEME",
    "display_width",
    "clip_text",
    "FOOTER_LINES",
    "format_details",
    "format_row",
    "format_size",
    "format_status",
    "render_pane",
]
