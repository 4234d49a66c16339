"""Logging utilities for lfx-auth.

- ISO8601Formatter: JSONL formatter for structured (dict) log messages
- ConsoleFormatter: Human-readable stderr formatter
- configure_logging: Attach handlers to the package logger
- Redaction helpers: keep identifiers out of logs
"""

from lfx_auth.utils.logging.iso_formatter import ISO8601Formatter
from lfx_auth.utils.logging.logger_setup import ConsoleFormatter, configure_logging, get_logger
from lfx_auth.utils.logging.logging_helpers import (
    hash_sensitive_id,
    redact,
    redact_email,
    sanitize_for_logging,
)

__all__ = [
    "ConsoleFormatter",
    "ISO8601Formatter",
    "configure_logging",
    "get_logger",
    "hash_sensitive_id",
    "redact",
    "redact_email",
    "sanitize_for_logging",
]
