"""Application-wide constants for lfx-auth.

Constants that define application behavior.
For user-configurable settings per deployment, see config.py.
"""

from enum import Enum
from types import MappingProxyType

__all__ = [
    # Application identity
    "APP_NAME",
    # Scopes
    "USER_READ_REQUIRED_SCOPE",
    "USER_UPDATE_REQUIRED_SCOPE",
    # Directory
    "USERNAME_CONNECTION",
    "CANONICAL_SUBJECT_SEPARATOR",
    "DIRECTORY_API_PREFIX",
    "CriteriaType",
    "CRITERIA_ENDPOINTS",
    # HTTP client
    "DEFAULT_HTTP_TIMEOUT_SECONDS",
    "MIN_HTTP_TIMEOUT_SECONDS",
    "MAX_HTTP_TIMEOUT_SECONDS",
    "DEFAULT_HTTP_MAX_RETRIES",
    "DEFAULT_HTTP_RETRY_DELAY_SECONDS",
    "DEFAULT_HTTP_BACKOFF_MULTIPLIER",
    "RETRYABLE_STATUS_CODES",
    # Authentication
    "JWKS_CACHE_TTL_SECONDS",
    "JWKS_FETCH_TIMEOUT_SECONDS",
    "M2M_TOKEN_REFRESH_BUFFER_SECONDS",
    "M2M_DEFAULT_EXPIRES_IN_SECONDS",
]

APP_NAME = "lfx-auth"

# =============================================================================
# Scopes
# =============================================================================

USER_READ_REQUIRED_SCOPE = "read:current_user"
USER_UPDATE_REQUIRED_SCOPE = "update:current_user_metadata"

# =============================================================================
# Directory (Auth0 Management API)
# =============================================================================

# Database connection whose identities carry the username as user_id
USERNAME_CONNECTION = "Username-Password-Authentication"

# Auth0 subjects are "<provider>|<id>", e.g. "auth0|65f1..."
CANONICAL_SUBJECT_SEPARATOR = "|"

DIRECTORY_API_PREFIX = "/api/v2"


class CriteriaType(str, Enum):
    """Lookup criteria accepted by the directory search."""

    EMAIL = "email"
    USERNAME = "username"


# Search endpoint templates keyed by criteria.
# identities.user_id:X AND identities.connection:Y behaves like IN, not AND,
# so results from the username endpoint are re-validated by the caller.
CRITERIA_ENDPOINTS: MappingProxyType[CriteriaType, str] = MappingProxyType(
    {
        CriteriaType.EMAIL: "users-by-email?email={}",
        CriteriaType.USERNAME: "users?q=identities.user_id:{}&search_engine=v3",
    }
)

# =============================================================================
# HTTP client
# =============================================================================

DEFAULT_HTTP_TIMEOUT_SECONDS = 10
MIN_HTTP_TIMEOUT_SECONDS = 1
MAX_HTTP_TIMEOUT_SECONDS = 300

DEFAULT_HTTP_MAX_RETRIES = 2
DEFAULT_HTTP_RETRY_DELAY_SECONDS = 0.5
DEFAULT_HTTP_BACKOFF_MULTIPLIER = 2.0

# Transient upstream statuses; other 4xx are never retried
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 502, 503, 504})

# =============================================================================
# Authentication
# =============================================================================

# JWKS cache TTL (10 minutes)
JWKS_CACHE_TTL_SECONDS = 600

# Timeout for a single JWKS fetch
JWKS_FETCH_TIMEOUT_SECONDS = 5

# Refresh the M2M token one minute before it expires
M2M_TOKEN_REFRESH_BUFFER_SECONDS = 60

# Used when the token endpoint omits expires_in (Auth0 default is 24h)
M2M_DEFAULT_EXPIRES_IN_SECONDS = 86400
