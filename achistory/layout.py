"""
Stored layout of history entries.

Node and property names must stay stable: entries written by earlier
releases are read back with the same names.
"""

from __future__ import annotations

import logging

from achistory.store import NT_ORDERED_FOLDER, NT_UNSTRUCTURED, Node, Session

logger = logging.getLogger("achistory.layout")

STATISTICS_ROOT_NODE = "var/statistics"
ACHISTORY_ROOT_NODE = "achistory"
HISTORY_ROOT_PATH = f"/{STATISTICS_ROOT_NODE}/{ACHISTORY_ROOT_NODE}"

HISTORY_NODE_NAME_PREFIX = "history_"
LOG_FILE_NAME = "actool.log"
LOG_FILE_NAME_VERBOSE = "actool-verbose.log"
LOG_MIME_TYPE = "text/plain"

PROPERTY_TIMESTAMP = "timestamp"
PROPERTY_MESSAGES = "messages"  # legacy consolidated body, read-only
PROPERTY_EXECUTION_TIME = "executionTime"
PROPERTY_SUCCESS = "success"
PROPERTY_INSTALLATION_DATE = "installationDate"
PROPERTY_INSTALLED_FROM = "installedFrom"
PROPERTY_SLING_RESOURCE_TYPE = "sling:resourceType"

HISTORY_RESOURCE_TYPE = "/apps/netcentric/actool/components/historyRenderer"


def safe_get_node(base: Node, name: str, node_type: str) -> Node:
    """Return child ``name`` of ``base``, creating it with ``node_type`` if absent"""
    if base.has_node(name):
        return base.get_node(name)
    logger.debug("create node: %s", name)
    return base.get_or_add_node(name, node_type)


def get_history_root(session: Session) -> Node:
    """Resolve the history container, creating it on first use"""
    statistics = safe_get_node(session.root, STATISTICS_ROOT_NODE, NT_UNSTRUCTURED)
    return safe_get_node(statistics, ACHISTORY_ROOT_NODE, NT_ORDERED_FOLDER)


def is_history_node(node: Node) -> bool:
    return node.name.startswith(HISTORY_NODE_NAME_PREFIX)


def find_history_root(session: Session) -> Node:
    """Resolve the history container without creating it; raises PathNotFoundError"""
    return session.get_node(HISTORY_ROOT_PATH)
