"""Installation history persistence for the access control tool.

Exposes a best-effort __version__ attribute so the CLI can surface the
current package version without failing in editable/dev mode.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from achistory.formatter import render_html, render_log, render_text
from achistory.history import (
    HistoryService,
    get_history_service,
    get_history_summaries,
    list_entries,
)
from achistory.layout import get_history_root
from achistory.models import HistoryOrigin, HistorySummary, InstallationLog
from achistory.recorder import persist_history
from achistory.retention import prune_history

try:
    __version__ = version("achistory")  # Distribution name as defined in pyproject
except PackageNotFoundError:
    __version__ = "0.0.0-dev"


def get_version() -> str:
    """Return the resolved package version (lightweight helper)."""
    return __version__


__all__ = [
    "__version__",
    "get_version",
    "HistoryOrigin",
    "HistoryService",
    "HistorySummary",
    "InstallationLog",
    "get_history_root",
    "get_history_service",
    "get_history_summaries",
    "list_entries",
    "persist_history",
    "prune_history",
    "render_html",
    "render_log",
    "render_text",
]
