"""
In-memory repository tree.

Children keep insertion order; ``order_before`` rearranges them. Used
directly in tests and as the base of :class:`~achistory.store.json_file.JsonFileSession`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from achistory.errors import (
    AccessDeniedError,
    ConstraintViolationError,
    ItemExistsError,
    PathNotFoundError,
)
from achistory.store.base import NT_UNSTRUCTURED, ROOT_NODE_TYPE, Node, PropertyValue, Session

_ILLEGAL_NAME_CHARS = set("/[]*|")


def _validate_name(name: str) -> None:
    if not name or name in (".", "..") or any(ch in _ILLEGAL_NAME_CHARS for ch in name):
        raise ConstraintViolationError(f"Invalid node name '{name}'")


class MemoryNode(Node):
    def __init__(
        self,
        session: "MemorySession",
        name: str,
        node_type: str,
        parent: Optional["MemoryNode"] = None,
    ):
        self._session = session
        self._name = name
        self._node_type = node_type
        self._parent = parent
        self._children: Dict[str, MemoryNode] = {}
        self._properties: Dict[str, PropertyValue] = {}
        self._removed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        if self._parent is None:
            return "/"
        parent_path = self._parent.path
        return f"{parent_path.rstrip('/')}/{self._name}"

    @property
    def node_type(self) -> str:
        return self._node_type

    @property
    def is_removed(self) -> bool:
        return self._removed

    def _check_alive(self) -> None:
        if self._removed:
            raise PathNotFoundError("Node has been removed", self.path)

    def _check_writable(self) -> None:
        self._check_alive()
        if self._session.read_only:
            raise AccessDeniedError("Session is read-only", self.path)

    def _child(self, name: str) -> "MemoryNode":
        child = self._children.get(name)
        if child is None:
            raise PathNotFoundError("No such node", f"{self.path.rstrip('/')}/{name}")
        return child

    def has_node(self, rel_path: str) -> bool:
        try:
            self.get_node(rel_path)
        except PathNotFoundError:
            return False
        return True

    def get_node(self, rel_path: str) -> "MemoryNode":
        self._check_alive()
        current = self
        for segment in [s for s in rel_path.split("/") if s]:
            current = current._child(segment)
        return current

    def add_node(self, rel_path: str, node_type: str = NT_UNSTRUCTURED) -> "MemoryNode":
        self._check_writable()
        parent_path, _, name = rel_path.strip("/").rpartition("/")
        parent = self.get_node(parent_path) if parent_path else self
        _validate_name(name)
        if name in parent._children:
            raise ItemExistsError("Node already exists", f"{parent.path.rstrip('/')}/{name}")
        child = MemoryNode(self._session, name, node_type, parent)
        parent._children[name] = child
        return child

    def get_nodes(self) -> List["MemoryNode"]:
        self._check_alive()
        return list(self._children.values())

    def order_before(self, src_name: str, dest_name: Optional[str]) -> None:
        self._check_writable()
        src = self._child(src_name)
        if dest_name == src_name:
            return
        if dest_name is not None:
            self._child(dest_name)
        reordered: Dict[str, MemoryNode] = {}
        for name, child in self._children.items():
            if name == src_name:
                continue
            if name == dest_name:
                reordered[src_name] = src
            reordered[name] = child
        if dest_name is None:
            reordered[src_name] = src
        self._children = reordered

    def has_property(self, name: str) -> bool:
        self._check_alive()
        return name in self._properties

    def get_property(self, name: str) -> PropertyValue:
        self._check_alive()
        if name not in self._properties:
            raise PathNotFoundError("No such property", f"{self.path.rstrip('/')}/{name}")
        return self._properties[name]

    def set_property(self, name: str, value: Optional[PropertyValue]) -> None:
        self._check_writable()
        if value is None:
            self._properties.pop(name, None)
            return
        if not isinstance(value, (str, bool, int, datetime, bytes)):
            raise ConstraintViolationError(
                f"Unsupported value type {type(value).__name__} for property '{name}'", self.path
            )
        self._properties[name] = value

    def property_names(self) -> List[str]:
        self._check_alive()
        return list(self._properties)

    def remove(self) -> None:
        self._check_writable()
        if self._parent is None:
            raise ConstraintViolationError("Cannot remove the root node", self.path)
        self._parent._children.pop(self._name, None)
        self._mark_removed()

    def _mark_removed(self) -> None:
        for child in self._children.values():
            child._mark_removed()
        self._removed = True


class MemorySession(Session):
    """Session over a tree that lives only in this process"""

    def __init__(self, read_only: bool = False):
        self.read_only = read_only
        self._root = MemoryNode(self, "", ROOT_NODE_TYPE)

    @property
    def root(self) -> MemoryNode:
        return self._root

    def save(self) -> None:
        """Changes are live immediately; nothing to flush"""

    def refresh(self) -> None:
        """Nothing is pending in a pure in-memory tree"""
