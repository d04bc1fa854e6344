"""
History Module

Listing of stored installation histories and a small service bundling a
store session with the configured retention.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from achistory.config import Settings, load_settings
from achistory.errors import PathNotFoundError
from achistory.formatter import render_html, render_text
from achistory.layout import (
    PROPERTY_EXECUTION_TIME,
    PROPERTY_INSTALLATION_DATE,
    PROPERTY_INSTALLED_FROM,
    PROPERTY_SUCCESS,
    PROPERTY_TIMESTAMP,
    find_history_root,
    get_history_root,
    is_history_node,
)
from achistory.models import HistoryOrigin, HistorySummary, InstallationLog
from achistory.recorder import persist_history
from achistory.retention import prune_history
from achistory.store import JsonFileSession, Node, Session

logger = logging.getLogger("achistory.history")


def _optional(node: Node, name: str, default: Any) -> Any:
    return node.get_property(name) if node.has_property(name) else default


def _summarize(index: int, node: Node) -> HistorySummary:
    return HistorySummary(
        index=index,
        name=node.name,
        path=node.path,
        installation_date=str(_optional(node, PROPERTY_INSTALLATION_DATE, "")),
        timestamp=int(_optional(node, PROPERTY_TIMESTAMP, 0)),
        success=bool(_optional(node, PROPERTY_SUCCESS, False)),
        execution_time_ms=int(_optional(node, PROPERTY_EXECUTION_TIME, 0)),
        installed_from=_optional(node, PROPERTY_INSTALLED_FROM, None),
    )


def get_history_summaries(session: Session) -> List[HistorySummary]:
    """History entries in container order (newest first), numbered from 1"""
    try:
        history_root = find_history_root(session)
    except PathNotFoundError:
        return []
    entries = [node for node in history_root.get_nodes() if is_history_node(node)]
    return [_summarize(index, node) for index, node in enumerate(entries, start=1)]


def list_entries(session: Session) -> List[str]:
    """One ``"{n}. {path} ({date}) ({status})"`` line per stored history entry"""
    return [summary.to_line() for summary in get_history_summaries(session)]


class HistoryService:
    """Stored installation histories of one repository"""

    def __init__(
        self,
        session: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.session = session
        self.settings = settings or Settings()
        self.clock = clock

    def persist(
        self, install_log: InstallationLog, origin: HistoryOrigin = HistoryOrigin.API
    ) -> str:
        """Store ``install_log``, apply retention, save; returns the entry path"""
        node = persist_history(
            self.session,
            install_log,
            self.settings.nr_of_histories_to_save,
            origin=origin,
            clock=self.clock,
        )
        path = node.path
        self.session.save()
        return path

    def list_entries(self) -> List[str]:
        return list_entries(self.session)

    def summaries(self) -> List[HistorySummary]:
        return get_history_summaries(self.session)

    def latest(self) -> Optional[HistorySummary]:
        summaries = self.summaries()
        return summaries[0] if summaries else None

    def render_text(self, entry_name: str, include_verbose: bool = False) -> str:
        return render_text(self.session, entry_name, include_verbose)

    def render_html(self, entry_name: str, include_verbose: bool = False) -> str:
        return render_html(self.session, entry_name, include_verbose)

    def prune(self, keep: Optional[int] = None) -> List[str]:
        """Apply retention now (``keep`` defaults to the configured count)"""
        keep_count = self.settings.nr_of_histories_to_save if keep is None else keep
        removed = prune_history(get_history_root(self.session), keep_count)
        self.session.save()
        if removed:
            logger.info("pruned %d history entries", len(removed))
        return removed

    def get_stats(self) -> Dict[str, Any]:
        summaries = self.summaries()
        if not summaries:
            return {"total": 0, "succeeded": 0, "failed": 0, "newest": None, "oldest": None}

        by_age = sorted(summaries, key=lambda s: (s.timestamp, s.name))
        succeeded = sum(1 for s in summaries if s.success)
        return {
            "total": len(summaries),
            "succeeded": succeeded,
            "failed": len(summaries) - succeeded,
            "newest": by_age[-1].installation_date,
            "oldest": by_age[0].installation_date,
        }


# Global instance for convenience
_history_service: Optional[HistoryService] = None


def get_history_service(settings: Optional[Settings] = None) -> HistoryService:
    """Get or create the global history service backed by the configured JSON store"""
    global _history_service
    if _history_service is None:
        settings = settings or load_settings()
        _history_service = HistoryService(JsonFileSession(settings.store_path), settings)
    return _history_service


def reset_history_service() -> None:
    """Forget the global service (mainly for tests)"""
    global _history_service
    _history_service = None
