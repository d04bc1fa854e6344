"""
Session/node abstraction over a hierarchical repository.

The history layer only needs a small subset of what a content repository
offers: ordered child nodes, typed properties, sibling reordering and file
resources. Concrete stores implement :class:`Node` and :class:`Session`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Union

from achistory.errors import PathNotFoundError

PropertyValue = Union[str, bool, int, datetime, bytes]

NT_UNSTRUCTURED = "nt:unstructured"
NT_FILE = "nt:file"
NT_RESOURCE = "nt:resource"
NT_ORDERED_FOLDER = "sling:OrderedFolder"
ROOT_NODE_TYPE = "rep:root"

JCR_CONTENT = "jcr:content"
JCR_DATA = "jcr:data"
JCR_MIMETYPE = "jcr:mimeType"
JCR_LAST_MODIFIED = "jcr:lastModified"


class Node(ABC):
    """A node in the repository tree"""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def path(self) -> str: ...

    @property
    @abstractmethod
    def node_type(self) -> str: ...

    @abstractmethod
    def has_node(self, rel_path: str) -> bool: ...

    @abstractmethod
    def get_node(self, rel_path: str) -> "Node":
        """Return the descendant at ``rel_path`` or raise PathNotFoundError"""

    @abstractmethod
    def add_node(self, rel_path: str, node_type: str = NT_UNSTRUCTURED) -> "Node":
        """Create a node; the parent of ``rel_path`` must already exist"""

    @abstractmethod
    def get_nodes(self) -> List["Node"]:
        """Direct children in stored order"""

    @abstractmethod
    def order_before(self, src_name: str, dest_name: Optional[str]) -> None:
        """Move child ``src_name`` before ``dest_name`` (to the end if None)"""

    @abstractmethod
    def has_property(self, name: str) -> bool: ...

    @abstractmethod
    def get_property(self, name: str) -> PropertyValue: ...

    @abstractmethod
    def set_property(self, name: str, value: Optional[PropertyValue]) -> None:
        """Set a property; ``None`` removes it"""

    @abstractmethod
    def property_names(self) -> List[str]: ...

    @abstractmethod
    def remove(self) -> None: ...

    def get_or_add_node(self, rel_path: str, node_type: str = NT_UNSTRUCTURED) -> "Node":
        """Return the node at ``rel_path``, creating missing segments with ``node_type``"""
        current: Node = self
        for segment in [s for s in rel_path.split("/") if s]:
            if current.has_node(segment):
                current = current.get_node(segment)
            else:
                current = current.add_node(segment, node_type)
        return current

    def first_child(self) -> Optional["Node"]:
        children = self.get_nodes()
        return children[0] if children else None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.path} ({self.node_type})>"


class Session(ABC):
    """Handle to a repository; owned by a single caller for the duration of a call"""

    @property
    @abstractmethod
    def root(self) -> Node: ...

    @abstractmethod
    def save(self) -> None:
        """Persist pending changes"""

    @abstractmethod
    def refresh(self) -> None:
        """Discard pending changes and reload the current state"""

    def get_node(self, abs_path: str) -> Node:
        rel_path = abs_path.strip("/")
        if not rel_path:
            return self.root
        return self.root.get_node(rel_path)

    def node_exists(self, abs_path: str) -> bool:
        try:
            self.get_node(abs_path)
        except PathNotFoundError:
            return False
        return True


def put_file(parent: Node, name: str, mime_type: str, data: bytes) -> Node:
    """Create or replace a file resource ``name`` below ``parent``"""
    file_node = parent.get_or_add_node(name, NT_FILE)
    content = file_node.get_or_add_node(JCR_CONTENT, NT_RESOURCE)
    content.set_property(JCR_MIMETYPE, mime_type)
    content.set_property(JCR_DATA, data)
    content.set_property(JCR_LAST_MODIFIED, datetime.now(timezone.utc))
    return file_node


def read_file(file_node: Node) -> bytes:
    data = file_node.get_node(JCR_CONTENT).get_property(JCR_DATA)
    if isinstance(data, str):
        return data.encode("utf-8")
    if not isinstance(data, bytes):
        raise PathNotFoundError("file has no binary data", file_node.path)
    return data
