"""
Rendering stored history entries as readable reports.

Rendering never raises: any failure is appended to the report as an
``ERROR while retrieving log`` line and logged.
"""

from __future__ import annotations

import html
import logging
from typing import Callable, Optional

from achistory.errors import RenderError
from achistory.layout import (
    LOG_FILE_NAME,
    LOG_FILE_NAME_VERBOSE,
    PROPERTY_EXECUTION_TIME,
    PROPERTY_INSTALLATION_DATE,
    PROPERTY_MESSAGES,
    PROPERTY_SUCCESS,
    find_history_root,
)
from achistory.store import Node, Session, read_file

logger = logging.getLogger("achistory.formatter")

TEXT_LINE_BREAK = "\n"
HTML_LINE_BREAK = "<br />"


def _read_body(history_node: Node, include_verbose: bool) -> str:
    # Entries written by old releases carry the whole log in one property
    if history_node.has_property(PROPERTY_MESSAGES):
        return str(history_node.get_property(PROPERTY_MESSAGES))
    file_name = LOG_FILE_NAME_VERBOSE if include_verbose else LOG_FILE_NAME
    return read_file(history_node.get_node(file_name)).decode("utf-8")


def render_log(
    session: Session,
    entry_name: str,
    line_break: str,
    include_verbose: bool,
    escape: Optional[Callable[[str], str]] = None,
) -> str:
    """
    Assemble the report for history entry ``entry_name``.

    Args:
        session: Store session
        entry_name: Name of the entry below the history container
        line_break: Token used between lines (``\\n`` or ``<br />``)
        include_verbose: Use the verbose body instead of the plain one
        escape: Optional transformation applied to stored text before line breaks are inserted

    Returns:
        The report; on failure the partial report plus an error line
    """
    esc = escape or (lambda text: text)
    parts = []
    try:
        history_node = find_history_root(session).get_node(entry_name)
        parts.append(
            "Installation triggered: "
            + esc(str(history_node.get_property(PROPERTY_INSTALLATION_DATE)))
        )
        body = _read_body(history_node, include_verbose)
        parts.append(line_break + esc(body).replace("\n", line_break))
        parts.append(
            f"{line_break}Execution time: {int(history_node.get_property(PROPERTY_EXECUTION_TIME))} ms"
        )
        success = bool(history_node.get_property(PROPERTY_SUCCESS))
        parts.append(f"{line_break}Success: {str(success).lower()}")
    except Exception as e:
        error = RenderError(f"ERROR while retrieving log: {e}", cause=e)
        logger.error("%s", error, exc_info=e)
        parts.append(line_break + esc(str(error)))
    return "".join(parts)


def render_text(session: Session, entry_name: str, include_verbose: bool = False) -> str:
    return render_log(session, entry_name, TEXT_LINE_BREAK, include_verbose)


def render_html(session: Session, entry_name: str, include_verbose: bool = False) -> str:
    return render_log(session, entry_name, HTML_LINE_BREAK, include_verbose, escape=html.escape)
