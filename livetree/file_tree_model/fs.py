"""Filesystem scanning and snapshot construction for file/folder trees."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..errors import IOFailure
from .types import ROOT_KEY, FileNode, FolderNode, TreeNode, child_path


@dataclass(frozen=True)
class DirectoryChild:
    """One visible directory child plus the metadata captured while listing."""

    name: str
    fs_path: Path
    is_dir: bool
    size_in_bytes: int = 0
    mtime_ns: int = 0


def extract_extension(name: str) -> str | None:
    """Return the lowercase suffix after the last dot, or ``None``.

    Leading-dot names such as ``.gitignore`` have no extension.
    """
    idx = name.rfind(".")
    if idx <= 0 or idx == len(name) - 1:
        return None
    return name[idx + 1 :].lower()


def format_mtime(mtime_ns: int) -> str:
    """Render ``st_mtime_ns`` as an ISO-8601 UTC timestamp with millisecond precision."""
    moment = datetime.fromtimestamp(mtime_ns / 1_000_000_000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_hidden_name(name: str) -> bool:
    return name.startswith(".")


def list_directory_children(directory: Path, show_hidden: bool = False) -> list[DirectoryChild]:
    """List regular files and directories directly under ``directory``.

    Symlinks are not followed and other entry kinds are skipped. Results are
    sorted folders first, then by name in plain code-point order. Any listing or
    stat failure raises ``IOFailure``.
    """
    children: list[DirectoryChild] = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                name = entry.name
                if not show_hidden and is_hidden_name(name):
                    continue
                if entry.is_dir(follow_symlinks=False):
                    children.append(DirectoryChild(name=name, fs_path=Path(entry.path), is_dir=True))
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
                st = entry.stat(follow_symlinks=False)
                children.append(
                    DirectoryChild(
                        name=name,
                        fs_path=Path(entry.path),
                        is_dir=False,
                        size_in_bytes=int(st.st_size),
                        mtime_ns=int(st.st_mtime_ns),
                    )
                )
    except OSError as exc:
        raise IOFailure(f"Failed to read {directory}: {exc}") from exc

    children.sort(key=lambda item: (not item.is_dir, item.name))
    return children


def _ensure_directory(root: Path) -> None:
    """Raise ``IOFailure`` unless ``root`` exists and is a directory."""
    try:
        st = root.stat()
    except FileNotFoundError as exc:
        raise IOFailure(f"Tree root {root} does not exist.") from exc
    except OSError as exc:
        raise IOFailure(f"Failed to stat tree root {root}: {exc}") from exc
    if not stat.S_ISDIR(st.st_mode):
        raise IOFailure(f"Expected {root} to be a directory.")


def build_file_tree(
    root: Path,
    *,
    show_hidden: bool = False,
    root_name: str | None = None,
) -> FolderNode:
    """Build a complete snapshot of ``root`` as a ``FolderNode`` keyed ``"root"``.

    Directories are listed with an explicit work stack so deeply nested trees
    do not hit the interpreter recursion limit. Folder nodes are then assembled
    bottom-up in reverse discovery order.
    """
    root = Path(root)
    _ensure_directory(root)

    listings: dict[str, list[DirectoryChild]] = {}
    discovery_order: list[str] = []
    stack: list[tuple[Path, str]] = [(root, ROOT_KEY)]
    while stack:
        directory, tree_path = stack.pop()
        children = list_directory_children(directory, show_hidden)
        listings[tree_path] = children
        discovery_order.append(tree_path)
        for child in children:
            if child.is_dir:
                stack.append((child.fs_path, child_path(tree_path, child.name)))

    built: dict[str, tuple[TreeNode, ...]] = {}
    for tree_path in reversed(discovery_order):
        nodes: list[TreeNode] = []
        for child in listings[tree_path]:
            node_path = child_path(tree_path, child.name)
            if child.is_dir:
                nodes.append(FolderNode(name=child.name, path=node_path, children=built.pop(node_path)))
            else:
                nodes.append(
                    FileNode(
                        name=child.name,
                        path=node_path,
                        extension=extract_extension(child.name),
                        size_in_bytes=child.size_in_bytes,
                        modified_at=format_mtime(child.mtime_ns),
                    )
                )
        built[tree_path] = tuple(nodes)

    display_name = root_name or root.resolve().name or str(root)
    return FolderNode(name=display_name, path=ROOT_KEY, children=built[ROOT_KEY])


__all__ = [
    "DirectoryChild",
    "extract_extension",
    "format_mtime",
    "is_hidden_name",
    "list_directory_children",
    "build_file_tree",
]
