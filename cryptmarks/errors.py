"""
Exception types and error logging for cryptmarks.

Backend errors propagate unchanged through the cache to the caller.
The CLI logs full stack traces for debugging while showing clean messages.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path

from .logging_config import redact_urls


class CryptmarksError(Exception):
    """Base class for all cryptmarks errors."""


class ConfigurationError(CryptmarksError, ValueError):
    """Unknown or unset backend selector, or an unusable configuration."""


class StorageIOError(CryptmarksError, OSError):
    """The underlying file could not be read or written."""


class DecryptionFailed(CryptmarksError):
    """The cipher could not decrypt the stored payload."""


class EncryptionFailed(CryptmarksError):
    """The cipher could not encrypt the payload."""


class ParseError(CryptmarksError, ValueError):
    """The decrypted payload is not a JSON array of records."""


class InvalidURL(CryptmarksError, ValueError):
    """A bookmark URL is not an http(s) URL with a usable host."""

    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url!r}")
        self.url = url


class InvalidBookmark(CryptmarksError, ValueError):
    """A bookmark field has the wrong type (e.g. a non-string description)."""


class DuplicateBookmark(CryptmarksError):
    """A bookmark with the same URL already exists."""

    def __init__(self, url: str):
        super().__init__(f"Bookmark already exists: {url}")
        self.url = url


class NotFound(CryptmarksError):
    """No bookmark matches the requested URL."""

    def __init__(self, url: str):
        super().__init__(f"Bookmark not found: {url}")
        self.url = url


class NoBookmarks(CryptmarksError):
    """The store holds no bookmarks."""

    def __init__(self, message: str = "No bookmarks"):
        super().__init__(message)


def _error_log_path() -> Path:
    """Resolve error log path, respecting CRYPTMARKS_HOME."""
    store = os.environ.get("CRYPTMARKS_HOME")
    if store:
        return Path(store) / "cryptmarks-errors.log"
    return Path.home() / ".cryptmarks" / "cryptmarks-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file, with URLs redacted.

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
            f.write(f"[{timestamp}] {type(exc).__name__}")
            if context:
                f.write(f" {context}")
            f.write("\n")
            text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            f.write(redact_urls(text))
    except OSError:
        pass  # error log is best-effort
    return log_path
