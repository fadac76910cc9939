"""Domain model for snapshot trees of files and folders.

This package contains non-UI tree primitives:
- file/folder node datatypes with nested children
- filesystem scanning that produces immutable snapshots
- structural keys that ignore volatile metadata
- JSON payload codec used on the wire
"""

from __future__ import annotations

from .fs import DirectoryChild, build_file_tree, extract_extension, list_directory_children
from .structure import structural_key, structurally_equal
from .types import (
    ROOT_KEY,
    FileNode,
    FolderNode,
    TreeNode,
    collect_folder_paths,
    find_node_by_path,
    iter_tree,
)
from .wire import node_from_payload, node_to_payload

__all__ = [
    "ROOT_KEY",
    "FileNode",
    "FolderNode",
    "TreeNode",
    "iter_tree",
    "collect_folder_paths",
    "find_node_by_path",
    "DirectoryChild",
    "extract_extension",
    "list_directory_children",
    "build_file_tree",
    "structural_key",
    "structurally_equal",
    "node_to_payload",
    "node_from_payload",
]
