"""
Data handed to and returned from the history layer.
"""

from __future__ import annotations

import logging
import os
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class HistoryOrigin(str, Enum):
    """What triggered an installation run; becomes the ``_via_<origin>`` name suffix"""

    API = "api"
    JMX = "jmx"
    WEBCONSOLE = "webconsole"
    SCHEDULER = "scheduler"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def common_prefix(names: List[str]) -> str:
    """Longest common string prefix (not path-segment aware); empty for no names"""
    if not names:
        return ""
    return os.path.commonprefix(list(names))


@dataclass
class InstallationLog:
    """Messages and outcome of a single installation run"""

    installation_date: datetime = field(default_factory=_now)
    success: bool = True
    execution_time_ms: int = 0
    crx_package_name: Optional[str] = None
    config_file_contents_by_name: Optional[Dict[str, str]] = None
    messages: List[str] = field(default_factory=list)
    verbose_messages: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.execution_time_ms < 0:
            raise ValueError("execution_time_ms must be >= 0")

    @staticmethod
    def _stamp(message: str) -> str:
        return f"{datetime.now().strftime('%H:%M:%S.%f')[:-3]} {message}"

    def add_message(self, logger: logging.Logger, message: str) -> None:
        logger.info(message)
        line = self._stamp(message)
        self.messages.append(line)
        self.verbose_messages.append(line)

    def add_verbose_message(self, logger: logging.Logger, message: str) -> None:
        logger.debug(message)
        self.verbose_messages.append(self._stamp(message))

    def add_warning(self, logger: logging.Logger, message: str) -> None:
        logger.warning(message)
        line = self._stamp(f"WARNING: {message}")
        self.messages.append(line)
        self.verbose_messages.append(line)

    def add_error(
        self, logger: logging.Logger, message: str, exc: Optional[BaseException] = None
    ) -> None:
        """Record an error and mark the run as failed"""
        logger.error(message, exc_info=exc)
        self.success = False
        line = self._stamp(f"ERROR: {message}")
        self.messages.append(line)
        self.verbose_messages.append(line)
        if exc is not None:
            self.verbose_messages.append(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()
            )

    @property
    def message_history(self) -> str:
        return "\n".join(self.messages)

    @property
    def verbose_message_history(self) -> str:
        return "\n".join(self.verbose_messages)

    @property
    def installed_from(self) -> Optional[str]:
        """Package name plus common prefix of the config files; None without config files map"""
        if self.config_file_contents_by_name is None:
            return None
        return (self.crx_package_name or "") + common_prefix(
            list(self.config_file_contents_by_name.keys())
        )


class HistorySummary(BaseModel):
    """Read-only view of a stored history entry"""

    index: int = Field(..., ge=1)
    name: str
    path: str
    installation_date: str = ""
    timestamp: int = 0
    success: bool = False
    execution_time_ms: int = 0
    installed_from: Optional[str] = None

    @property
    def status(self) -> str:
        return "ok" if self.success else "failed"

    def to_line(self) -> str:
        return f"{self.index}. {self.path} ({self.installation_date}) ({self.status})"
