"""
Logging configuration for cryptmarks.

Quiet by default; ``--verbose`` or CRYPTMARKS_VERBOSE=1 turns on debug
output to stderr.
"""

import logging
import re
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Bookmark URLs are store keys; files next to the store must not hold them
_URL_RE = re.compile(r"\b[a-zA-Z][a-zA-Z0-9+.-]*://\S+")
URL_PLACEHOLDER = "<url>"


def redact_urls(text: str) -> str:
    """Replace anything that looks like a URL with a placeholder."""
    return _URL_RE.sub(URL_PLACEHOLDER, text)


class RedactingFormatter(logging.Formatter):
    """Formatter that strips URLs from the message and any traceback."""

    def format(self, record: logging.LogRecord) -> str:
        return redact_urls(super().format(record))


def configure_quiet_mode(quiet: bool = True):
    """
    Keep library chatter off the terminal.

    Args:
        quiet: If True, only warnings and errors reach stderr.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("cryptmarks").setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("cryptmarks").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a bookmark store.

    Writes to {store_path}/cryptmarks-ops.log using a rotating file handler
    (1MB max, 3 backups). The store directory sits next to the encrypted
    file, so this log records operations and counts only: URLs are
    redacted by the formatter, and descriptions and passphrases are never
    logged.
    Returns the handler so it can be removed on close().
    """
    log_path = Path(store_path) / "cryptmarks-ops.log"
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(RedactingFormatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    cm_logger = logging.getLogger("cryptmarks")
    cm_logger.addHandler(handler)
    # Let INFO through to the file even in quiet mode
    if cm_logger.level == logging.NOTSET or cm_logger.level > logging.INFO:
        cm_logger.setLevel(logging.INFO)

    return handler
