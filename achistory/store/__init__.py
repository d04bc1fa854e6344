"""Hierarchical store abstraction and reference implementations."""

from achistory.store.base import (
    JCR_CONTENT,
    JCR_DATA,
    JCR_MIMETYPE,
    NT_FILE,
    NT_ORDERED_FOLDER,
    NT_UNSTRUCTURED,
    Node,
    PropertyValue,
    Session,
    put_file,
    read_file,
)
from achistory.store.json_file import JsonFileSession
from achistory.store.memory import MemoryNode, MemorySession

__all__ = [
    "JCR_CONTENT",
    "JCR_DATA",
    "JCR_MIMETYPE",
    "NT_FILE",
    "NT_ORDERED_FOLDER",
    "NT_UNSTRUCTURED",
    "Node",
    "PropertyValue",
    "Session",
    "put_file",
    "read_file",
    "JsonFileSession",
    "MemoryNode",
    "MemorySession",
]
