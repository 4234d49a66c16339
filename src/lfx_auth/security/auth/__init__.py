"""Authentication infrastructure.

This module provides:
- JWT verification with JWKS caching and scope enforcement
- Structural JWT detection for classifying lookup input
- Machine-to-machine token acquisition for directory reads
"""

from lfx_auth.security.auth.jwt_validator import (
    Claims,
    JWTVerifier,
    create_jwt_verifier,
    looks_like_jwt,
)
from lfx_auth.security.auth.m2m import (
    M2MTokenError,
    M2MTokenManager,
    create_m2m_token_manager,
)

__all__ = [
    # JWT verification
    "Claims",
    "JWTVerifier",
    "create_jwt_verifier",
    "looks_like_jwt",
    # M2M tokens
    "M2MTokenError",
    "M2MTokenManager",
    "create_m2m_token_manager",
]
