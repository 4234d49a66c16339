"""Redaction and sanitization helpers for log fields.

Usernames, emails, subjects and raw lookup input are personal data and are
always passed through one of these helpers before they reach a log record.
Bearer tokens are never logged.
"""

from __future__ import annotations

__all__ = [
    "hash_sensitive_id",
    "redact",
    "redact_email",
    "sanitize_for_logging",
]

import hashlib

# Characters kept in clear by redact()
_REDACT_VISIBLE_PREFIX = 3
_REDACT_MASK = "***"


def redact(value: str, visible: int = _REDACT_VISIBLE_PREFIX) -> str:
    """Mask a value, keeping a short prefix for correlation.

    Values no longer than the visible prefix are masked entirely.

    Example:
        >>> redact("alice.smith")
        'ali***'
        >>> redact("bob")
        '***'
    """
    if not value:
        return ""
    if len(value) <= visible:
        return _REDACT_MASK
    return f"{value[:visible]}{_REDACT_MASK}"


def redact_email(email: str) -> str:
    """Mask the local part of an email address, keeping the domain.

    Example:
        >>> redact_email("alice.smith@example.org")
        'a***@example.org'
    """
    if not email:
        return ""
    local, sep, domain = email.partition("@")
    if not sep:
        return redact(email)
    return f"{local[:1]}{_REDACT_MASK}@{domain}"


def hash_sensitive_id(value: str, prefix_length: int = 8) -> str:
    """Hash a sensitive ID for logging while preserving some identifiability.

    The hash is deterministic, so the same input always produces the same
    output and log lines can be correlated without exposing the identifier.

    Args:
        value: The sensitive ID to hash (e.g., subject).
        prefix_length: Number of hex characters to keep (default: 8).

    Returns:
        str: Hashed value in format "sha256:<prefix>".

    Example:
        >>> hash_sensitive_id("auth0|<user_id>")
        'sha256:a1b2c3d4'
    """
    if not value:
        return "sha256:empty"

    hash_bytes = hashlib.sha256(value.encode("utf-8")).hexdigest()
    return f"sha256:{hash_bytes[:prefix_length]}"


def sanitize_for_logging(value: object) -> str:
    """Sanitize values for safe JSONL logging.

    Prevents log injection by escaping newlines and control characters.

    Example:
        >>> sanitize_for_logging("bad\\ninput")
        'bad\\\\ninput'
    """
    if not isinstance(value, str):
        value = str(value)

    return value.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")
