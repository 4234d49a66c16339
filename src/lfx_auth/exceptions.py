"""Custom exceptions for lfx-auth.

This module contains all custom exceptions used throughout the package.
Exceptions are organized into three families:

Directory Errors (returned to the caller of a lookup/update):
    - ValidationError: Malformed or missing input, missing configuration value
    - NotFoundError: No user, or no qualifying identity
    - UnexpectedError: Transport or credential failures (wraps the cause)
    - UnauthorizedError, ForbiddenError, ConflictError, RateLimitedError,
      ServiceUnavailableError: Mapped from directory HTTP status codes

Authentication Errors (raised by the token verifier, propagated unchanged):
    - AuthenticationError: Token cannot be verified
    - TokenExpiredError: Token is past its expiry
    - InsufficientScopeError: Token lacks the required scope

Configuration Errors:
    - ConfigurationError: Settings are invalid or incomplete

Usage:
    from lfx_auth.exceptions import NotFoundError, ValidationError
"""

from __future__ import annotations

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "ConflictError",
    "DirectoryError",
    "ForbiddenError",
    "InsufficientScopeError",
    "NotFoundError",
    "RateLimitedError",
    "ServiceUnavailableError",
    "TokenExpiredError",
    "UnauthorizedError",
    "UnexpectedError",
    "ValidationError",
]


# =============================================================================
# Directory Errors
# =============================================================================


class DirectoryError(Exception):
    """Base exception for directory lookup and update failures.

    Attributes:
        message: Human-readable description of the failure.
        kind: Short category string for logging and API responses.
    """

    kind: str = "unknown"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(DirectoryError):
    """Required input or configuration is missing or malformed.

    Raised when:
    - The lookup input is empty
    - user_id or user_metadata is missing
    - The directory domain is not configured
    - The search criteria is unknown
    """

    kind = "validation"


class NotFoundError(DirectoryError):
    """No matching user exists in the directory.

    Also raised when candidates were returned but none carries a qualifying
    identity, and when the directory answers a GET with an empty body.
    """

    kind = "not_found"


class UnexpectedError(DirectoryError):
    """Transport, credential or other unexpected failure.

    Attributes:
        cause: The underlying exception, when there is one.
    """

    kind = "unexpected"

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class UnauthorizedError(DirectoryError):
    """Directory rejected the bearer credential (HTTP 401)."""

    kind = "unauthorized"


class ForbiddenError(DirectoryError):
    """Directory refused the operation for this credential (HTTP 403)."""

    kind = "forbidden"


class ConflictError(DirectoryError):
    """Directory reported a conflicting resource state (HTTP 409)."""

    kind = "conflict"


class RateLimitedError(DirectoryError):
    """Directory rate limit exceeded (HTTP 429)."""

    kind = "rate_limited"


class ServiceUnavailableError(DirectoryError):
    """Directory is temporarily unavailable (HTTP 502/503/504)."""

    kind = "service_unavailable"


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthenticationError(Exception):
    """Authentication failed - cannot verify the caller's token.

    Raised when:
    - Token signature verification fails
    - Issuer/audience validation fails
    - Signing keys cannot be fetched from the JWKS endpoint
    - The M2M token endpoint rejects the client credentials
    """

    failure_type: str = "authentication_failure"


class TokenExpiredError(AuthenticationError):
    """Token is past its expiry time."""

    failure_type = "token_expired"


class InsufficientScopeError(AuthenticationError):
    """Token is valid but does not grant the required scope.

    Attributes:
        required_scope: The scope the operation needed.
        granted_scopes: The scopes the token actually carries.
    """

    failure_type = "insufficient_scope"

    def __init__(self, required_scope: str, granted_scopes: frozenset[str]) -> None:
        self.required_scope = required_scope
        self.granted_scopes = granted_scopes
        super().__init__(f"Token is missing required scope: {required_scope}")


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(Exception):
    """Configuration is invalid or incomplete.

    Raised when:
    - Config file does not exist or contains invalid JSON
    - Config file fails Pydantic validation
    - M2M credentials or the directory domain are missing at construction
    """

    failure_type = "configuration_failure"
