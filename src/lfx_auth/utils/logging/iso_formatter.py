"""Log formatting utilities for JSONL output.

Provides ISO 8601 timestamp formatting for JSONL logs.
"""

from __future__ import annotations

__all__ = ["ISO8601Formatter"]

import json
import logging
from datetime import datetime, timezone


class ISO8601Formatter(logging.Formatter):
    """Custom formatter with ISO 8601 timestamps (UTC) for JSONL output.

    Format: YYYY-MM-DDTHH:MM:SS.sssZ
    Example: 2025-12-04T10:48:37.123Z
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSONL with ISO 8601 timestamp.

        Args:
            record: The log record to format

        Returns:
            str: JSON-formatted log entry with timestamp, level and logger name
        """
        timestamp = (
            datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

        # Handle dict messages (structured logging)
        if isinstance(record.msg, dict):
            log_data = record.msg
        else:
            log_data = {"message": record.getMessage()}

        log_entry = {"time": timestamp, "level": record.levelname, "logger": record.name, **log_data}
        if record.exc_info and "traceback" not in log_entry:
            log_entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)
