"""
Persisting installation logs as history entries.

Each run becomes one node ``history_<epoch-millis>_via_<origin>`` below
``/var/statistics/achistory``, holding the run's metadata plus the plain and
verbose log bodies as ``text/plain`` files. After writing, old entries are
pruned and the new entry is moved to the top of the container.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable, Optional

from achistory.layout import (
    HISTORY_NODE_NAME_PREFIX,
    HISTORY_RESOURCE_TYPE,
    LOG_FILE_NAME,
    LOG_FILE_NAME_VERBOSE,
    LOG_MIME_TYPE,
    PROPERTY_EXECUTION_TIME,
    PROPERTY_INSTALLATION_DATE,
    PROPERTY_INSTALLED_FROM,
    PROPERTY_SLING_RESOURCE_TYPE,
    PROPERTY_SUCCESS,
    PROPERTY_TIMESTAMP,
    get_history_root,
    safe_get_node,
)
from achistory.models import HistoryOrigin, InstallationLog
from achistory.retention import prune_history
from achistory.store import NT_UNSTRUCTURED, Node, Session, put_file

logger = logging.getLogger("achistory.recorder")

_UNSAFE_NAME_CHARS = re.compile(r"[/\[\]*|\s]+")


def _current_millis() -> int:
    return time.time_ns() // 1_000_000


def history_node_name(
    install_log: InstallationLog, origin: HistoryOrigin, millis: int
) -> str:
    """Entry name; a non-blank package name wins over ``origin``"""
    name = f"{HISTORY_NODE_NAME_PREFIX}{millis}"
    package_name = (install_log.crx_package_name or "").strip()
    if package_name:
        return f"{name}_via_hook_in_{_UNSAFE_NAME_CHARS.sub('_', package_name)}"
    return f"{name}_via_{HistoryOrigin(origin).value}"


def set_history_node_properties(history_node: Node, install_log: InstallationLog) -> None:
    installation_date = install_log.installation_date
    history_node.set_property(PROPERTY_INSTALLATION_DATE, installation_date.isoformat())
    history_node.set_property(PROPERTY_SUCCESS, bool(install_log.success))
    history_node.set_property(PROPERTY_EXECUTION_TIME, int(install_log.execution_time_ms))
    history_node.set_property(PROPERTY_TIMESTAMP, int(installation_date.timestamp() * 1000))
    history_node.set_property(PROPERTY_SLING_RESOURCE_TYPE, HISTORY_RESOURCE_TYPE)

    installed_from = install_log.installed_from
    if installed_from is not None:
        history_node.set_property(PROPERTY_INSTALLED_FROM, installed_from)


def persist_history(
    session: Session,
    install_log: InstallationLog,
    nr_of_histories_to_save: int,
    origin: HistoryOrigin = HistoryOrigin.API,
    clock: Optional[Callable[[], int]] = None,
) -> Node:
    """
    Store ``install_log`` as a new history entry and apply retention.

    Args:
        session: Store session, owned by the caller for the duration of the call
        install_log: Log of the finished installation run
        nr_of_histories_to_save: Number of newest entries to keep
        origin: What triggered the run (ignored when the log names a package)
        clock: Epoch-millis source, defaults to the system clock

    Returns:
        The created entry node

    Raises:
        StoreAccessError: The store could not be written
    """
    history_root = get_history_root(session)
    millis = (clock or _current_millis)()
    name = history_node_name(install_log, origin, millis)

    new_node = safe_get_node(history_root, name, NT_UNSTRUCTURED)
    path = new_node.path
    set_history_node_properties(new_node, install_log)

    put_file(
        new_node,
        LOG_FILE_NAME_VERBOSE,
        LOG_MIME_TYPE,
        install_log.verbose_message_history.encode("utf-8"),
    )
    put_file(new_node, LOG_FILE_NAME, LOG_MIME_TYPE, install_log.message_history.encode("utf-8"))

    removed = prune_history(history_root, nr_of_histories_to_save)

    if path in removed:
        logger.debug("new history node %s fell outside retention of %d", path, nr_of_histories_to_save)
    else:
        previous = history_root.first_child()
        if previous is not None and previous.name != new_node.name:
            history_root.order_before(new_node.name, previous.name)

    install_log.add_message(logger, f"Saved history in node: {path}")
    return new_node
