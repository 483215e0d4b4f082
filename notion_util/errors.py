"""
Exceptions and error logging for notion-util.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class NotionUtilError(Exception):
    """Base class for all notion-util errors."""


class IdentifierNotFoundError(NotionUtilError, ValueError):
    """A locator did not contain an extractable page id."""

    def __init__(self, message: str, locator: str = ""):
        super().__init__(message)
        self.locator = locator


class CollectionNotFoundError(NotionUtilError):
    """A page snapshot had no collection or collection view."""


class TransactionError(NotionUtilError):
    """The store rejected a submitted transaction.

    The exception message is the server's error message, verbatim.
    """

    def __init__(self, message: str, error: dict | None = None):
        super().__init__(message)
        self.error = error or {}


class TodayNoteNotFoundError(NotionUtilError):
    """Today's note could not be found, even after creating it."""


class StoreClientError(NotionUtilError):
    """Error communicating with the document store."""


class ConfigError(NotionUtilError):
    """Invalid or incomplete configuration."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting NOTION_UTIL_HOME."""
    home = os.environ.get("NOTION_UTIL_HOME")
    if home:
        return Path(home) / "errors.log"
    return Path.home() / ".notion-util" / "errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; carry on
    return log_path
