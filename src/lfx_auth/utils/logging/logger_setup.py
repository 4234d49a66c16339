"""Logger setup for lfx-auth.

All modules log through children of the package logger (named APP_NAME)
with dict messages: {"event": ..., "message": ..., **fields}.

Logging destinations (configured by configure_logging):
- Console (stderr): human-readable, at the configured level
- File (optional): JSONL with ISO 8601 timestamps, at the configured level

Until configure_logging() is called nothing is attached, so library users
keep full control through the standard logging configuration.
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_logging",
    "get_logger",
]

import logging
import sys
from pathlib import Path

from lfx_auth.constants import APP_NAME
from lfx_auth.utils.logging.iso_formatter import ISO8601Formatter


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output.

    Extracts 'message' or 'event' field from dict messages for cleaner stderr output.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human-readable console output.

        Args:
            record: The log record to format.

        Returns:
            str: Formatted log message with level prefix.
        """
        if isinstance(record.msg, dict):
            msg = record.msg.get("message") or record.msg.get("event", "")
            return f"{record.levelname}: {msg}"
        return f"{record.levelname}: {record.getMessage()}"


def get_logger(area: str) -> logging.Logger:
    """Get a child of the package logger, e.g. get_logger("directory")."""
    return logging.getLogger(f"{APP_NAME}.{area}")


def configure_logging(level: str | int = logging.INFO, log_file: Path | None = None) -> logging.Logger:
    """Attach console (and optionally JSONL file) handlers to the package logger.

    Safe to call more than once: existing handlers are closed and replaced.

    Args:
        level: Log level name or number.
        log_file: Optional JSONL log file; parent directory is created.

    Returns:
        logging.Logger: The configured package logger.

    Raises:
        OSError: If the log directory or file cannot be created.
    """
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(level)
    logger.propagate = False  # Don't propagate to root logger

    # Close and remove any existing handlers to avoid duplicates and resource leaks
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(ConsoleFormatter())
    logger.addHandler(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(ISO8601Formatter())
        logger.addHandler(file_handler)

    return logger
