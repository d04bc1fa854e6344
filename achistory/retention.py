"""
Retention of history entries.

Entries are ranked by their stored ``timestamp`` property, never by their
position in the container: the recorder moves new entries to the top, so
child order says nothing reliable about age.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from achistory.layout import PROPERTY_TIMESTAMP, is_history_node
from achistory.store import Node

logger = logging.getLogger("achistory.retention")


def _timestamp_key(node: Node) -> Tuple[int, str]:
    timestamp = node.get_property(PROPERTY_TIMESTAMP) if node.has_property(PROPERTY_TIMESTAMP) else 0
    return (int(timestamp), node.name)


def sorted_history_nodes(history_root: Node) -> List[Node]:
    """History entries below ``history_root``, newest first"""
    entries = [node for node in history_root.get_nodes() if is_history_node(node)]
    return sorted(entries, key=_timestamp_key, reverse=True)


def prune_history(history_root: Node, keep_count: int) -> List[str]:
    """
    Delete all but the ``keep_count`` newest history entries.

    Args:
        history_root: Container holding the entries
        keep_count: Number of entries to keep; 0 or less removes all of them

    Returns:
        Paths of the removed entries
    """
    removed: List[str] = []
    for node in sorted_history_nodes(history_root)[max(keep_count, 0):]:
        path = node.path
        logger.debug("delete obsolete history node: %s", path)
        node.remove()
        removed.append(path)
    return removed
