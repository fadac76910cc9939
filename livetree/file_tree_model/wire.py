"""JSON payload codec for snapshot trees.

Payload keys mirror the browser-facing shape: ``type``, ``name``, ``path``,
plus ``extension``/``sizeInBytes``/``modifiedAt`` on files and ``children``
on folders.
"""

from __future__ import annotations

from .types import FileNode, FolderNode, TreeNode


def node_to_payload(root: TreeNode) -> dict[str, object]:
    """Convert a tree into nested JSON-ready dicts without recursion."""
    out: dict[int, dict[str, object]] = {}
    stack: list[tuple[TreeNode, bool]] = [(root, False)]
    while stack:
        node, children_done = stack.pop()
        if isinstance(node, FileNode):
            out[id(node)] = {
                "type": "file",
                "name": node.name,
                "path": node.path,
                "extension": node.extension,
                "sizeInBytes": node.size_in_bytes,
                "modifiedAt": node.modified_at,
            }
            continue
        if not children_done:
            stack.append((node, True))
            stack.extend((child, False) for child in node.children)
            continue
        out[id(node)] = {
            "type": "folder",
            "name": node.name,
            "path": node.path,
            "children": [out.pop(id(child)) for child in node.children],
        }
    return out[id(root)]


def _require_str(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"node field {key!r} must be a non-empty string")
    return value


def _file_from_payload(payload: dict) -> FileNode:
    extension = payload.get("extension")
    if extension is not None and not isinstance(extension, str):
        raise ValueError("node field 'extension' must be a string or null")
    size = payload.get("sizeInBytes", 0)
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ValueError("node field 'sizeInBytes' must be a non-negative integer")
    modified_at = payload.get("modifiedAt", "")
    if not isinstance(modified_at, str):
        raise ValueError("node field 'modifiedAt' must be a string")
    return FileNode(
        name=_require_str(payload, "name"),
        path=_require_str(payload, "path"),
        extension=extension,
        size_in_bytes=size,
        modified_at=modified_at,
    )


def node_from_payload(payload: object) -> TreeNode:
    """Decode and validate a JSON payload into ``FileNode``/``FolderNode`` values.

    Raises ``ValueError`` for any malformed node. Folders are assembled
    bottom-up from an explicit stack.
    """
    built: dict[int, TreeNode] = {}
    stack: list[tuple[object, bool]] = [(payload, False)]
    while stack:
        raw, children_done = stack.pop()
        if not isinstance(raw, dict):
            raise ValueError("tree node payload must be an object")
        kind = raw.get("type")
        if kind == "file":
            built[id(raw)] = _file_from_payload(raw)
            continue
        if kind != "folder":
            raise ValueError(f"unknown node type {kind!r}")
        children = raw.get("children", [])
        if not isinstance(children, list):
            raise ValueError("node field 'children' must be a list")
        if not children_done:
            stack.append((raw, True))
            stack.extend((child, False) for child in children)
            continue
        built[id(raw)] = FolderNode(
            name=_require_str(raw, "name"),
            path=_require_str(raw, "path"),
            children=tuple(built.pop(id(child)) for child in children),
        )
    return built[id(payload)]


__all__ = ["node_to_payload", "node_from_payload"]
