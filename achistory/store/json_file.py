"""
Repository tree persisted to a single JSON file.

Changes are kept in memory until :meth:`JsonFileSession.save`; ``refresh``
drops them and reloads the file.
"""

from __future__ import annotations

import base64
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

from achistory.errors import StoreIOError
from achistory.store.base import NT_UNSTRUCTURED, PropertyValue
from achistory.store.memory import MemoryNode, MemorySession

FORMAT_VERSION = 1


def _encode_value(value: PropertyValue) -> Dict[str, Any]:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"type": "Boolean", "value": value}
    if isinstance(value, int):
        return {"type": "Long", "value": value}
    if isinstance(value, datetime):
        return {"type": "Date", "value": value.isoformat()}
    if isinstance(value, bytes):
        return {"type": "Binary", "value": base64.b64encode(value).decode("ascii")}
    return {"type": "String", "value": value}


def _decode_value(raw: Dict[str, Any]) -> PropertyValue:
    kind = raw.get("type", "String")
    value = raw.get("value")
    if kind == "Boolean":
        return bool(value)
    if kind == "Long":
        return int(value)
    if kind == "Date":
        return datetime.fromisoformat(value)
    if kind == "Binary":
        return base64.b64decode(value)
    return str(value)


def _dump_node(node: MemoryNode) -> Dict[str, Any]:
    return {
        "type": node.node_type,
        "properties": {name: _encode_value(node.get_property(name)) for name in node.property_names()},
        "children": [{"name": child.name, **_dump_node(child)} for child in node.get_nodes()],
    }


class JsonFileSession(MemorySession):
    """Session whose tree is loaded from and saved to ``path``"""

    def __init__(self, path: Union[str, Path], read_only: bool = False):
        super().__init__(read_only=read_only)
        self.path = Path(path).expanduser()
        self.refresh()

    def refresh(self) -> None:
        self._root = MemoryNode(self, "", self._root.node_type)
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self._load_into(self._root, data.get("root") or {})
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise StoreIOError(f"Cannot read repository file ({e})", str(self.path)) from e

    def _load_into(self, node: MemoryNode, data: Dict[str, Any]) -> None:
        for name, raw in (data.get("properties") or {}).items():
            node._properties[name] = _decode_value(raw)
        for child_data in data.get("children") or []:
            child = MemoryNode(self, child_data["name"], child_data.get("type", NT_UNSTRUCTURED), node)
            node._children[child.name] = child
            self._load_into(child, child_data)

    def save(self) -> None:
        payload = {"version": FORMAT_VERSION, "root": _dump_node(self._root)}
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StoreIOError(f"Cannot write repository file ({e})", str(self.path)) from e
