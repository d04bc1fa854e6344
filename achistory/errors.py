"""
Error types raised by the history layer.

Store failures propagate to callers of persist/prune/list unchanged.
Render failures never leave the formatter; they are turned into an inline
diagnostic line and logged.
"""

from __future__ import annotations

from typing import Optional


class AcHistoryError(Exception):
    """Base class for all achistory errors"""


class StoreAccessError(AcHistoryError):
    """Failure reported by the underlying repository store"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        message = super().__str__()
        if self.path and self.path not in message:
            return f"{message}: {self.path}"
        return message


class PathNotFoundError(StoreAccessError):
    """Node or property does not exist"""


class ItemExistsError(StoreAccessError):
    """A node with the same name already exists"""


class AccessDeniedError(StoreAccessError):
    """Session is not allowed to modify the store"""


class ConstraintViolationError(StoreAccessError):
    """Operation violates a structural constraint (e.g. invalid node name)"""


class StoreIOError(StoreAccessError):
    """Backing storage could not be read or written"""


class RenderError(AcHistoryError):
    """Failure while assembling a log report"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ConfigError(AcHistoryError):
    """Invalid configuration file or value"""
