"""JWT verification with JWKS caching for Auth0 tokens.

Verifies bearer tokens presented by callers using the JWKS (JSON Web Key
Set) published by the Auth0 domain, then checks that the token grants the
scope the operation requires. Signing keys are cached to avoid fetching
them on every request while still supporting key rotation.
"""

from __future__ import annotations

__all__ = [
    "Claims",
    "JWTVerifier",
    "create_jwt_verifier",
    "looks_like_jwt",
]

import asyncio
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import jwt
from jwt import PyJWKClient, PyJWKClientError

from lfx_auth.constants import JWKS_FETCH_TIMEOUT_SECONDS
from lfx_auth.exceptions import (
    AuthenticationError,
    ConfigurationError,
    InsufficientScopeError,
    TokenExpiredError,
)
from lfx_auth.utils.logging import get_logger, hash_sensitive_id

if TYPE_CHECKING:
    from lfx_auth.config import JWTVerificationSettings

_logger = get_logger("auth.jwt")

# A JWS compact serialization segment: non-empty base64url, no padding
_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_BEARER_PREFIX = "bearer "


def looks_like_jwt(value: str) -> tuple[str, bool]:
    """Structurally check whether a value is a JWT.

    The value must have three base64url segments and a header that decodes
    to a JSON object naming an "alg". The signature is not checked. An
    optional "Bearer " prefix is stripped.

    Dotted usernames such as "john.q.public" have the right shape but no
    decodable header, so they are not treated as tokens.

    Args:
        value: Raw caller input.

    Returns:
        (clean_token, is_jwt) - clean_token has prefix and whitespace removed.
    """
    token = value.strip()
    if token[: len(_BEARER_PREFIX)].lower() == _BEARER_PREFIX:
        token = token[len(_BEARER_PREFIX) :].strip()

    parts = token.split(".")
    if len(parts) != 3 or not all(_SEGMENT_RE.match(part) for part in parts):
        return token, False

    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError:
        return token, False
    return token, isinstance(header, dict) and "alg" in header


@dataclass
class Claims:
    """Verified token claims.

    Attributes:
        subject: The 'sub' claim - canonical user id.
        scopes: Granted scopes (from 'scope' string or list claims).
        issuer: The 'iss' claim.
        audience: The 'aud' claim, normalized to a list.
        expires_at: When the token expires (from 'exp' claim).
        issued_at: When the token was issued (from 'iat' claim).
        claims: All token claims for extensibility.
    """

    subject: str
    scopes: frozenset[str]
    issuer: str = ""
    audience: list[str] = field(default_factory=list)
    expires_at: datetime | None = None
    issued_at: datetime | None = None
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def scope(self) -> str:
        """Scopes as a space-delimited string."""
        return " ".join(sorted(self.scopes))

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes


@dataclass
class _CachedJWKS:
    """Cached JWKS client with expiration tracking."""

    client: PyJWKClient
    fetched_at: float
    ttl: float

    @property
    def is_expired(self) -> bool:
        """Check if cache has expired."""
        return time.monotonic() - self.fetched_at > self.ttl


def _parse_scopes(claims: dict[str, Any]) -> frozenset[str]:
    """Collect scopes from the 'scope' claim and the RBAC 'permissions' claim.

    'scope' is normally space-delimited but some issuers emit a list.
    """
    scopes: set[str] = set()
    for key in ("scope", "permissions"):
        raw = claims.get(key)
        if isinstance(raw, str):
            scopes.update(raw.split())
        elif isinstance(raw, (list, tuple)):
            scopes.update(str(item) for item in raw)
    return frozenset(scopes)


class JWTVerifier:
    """Verifies caller JWTs against the Auth0 domain's JWKS.

    Features:
    - Fetches and caches JWKS from the domain's well-known endpoint
    - Validates signature using RSA/EC keys from JWKS
    - Verifies issuer, audience, and expiration claims
    - Enforces a required scope per call

    Usage:
        verifier = JWTVerifier(settings, "example.us.auth0.com")
        claims = await verifier.verify(token, "read:current_user")
        print(f"User: {claims.subject}")
    """

    def __init__(self, settings: "JWTVerificationSettings", domain: str) -> None:
        """Initialize JWT verifier.

        Args:
            settings: Verification settings (issuer, audience, algorithms).
            domain: Auth0 domain publishing the signing keys.
        """
        self._settings = settings
        self._jwks_cache: _CachedJWKS | None = None

        # Keep issuer as-is for token validation (Auth0 includes trailing slash)
        self._issuer = settings.issuer_for(domain)
        self._audience = settings.audience_for(domain)
        self._jwks_uri = f"https://{domain}/.well-known/jwks.json"

    @property
    def jwks_uri(self) -> str:
        return self._jwks_uri

    def _get_jwks_client(self) -> PyJWKClient:
        """Get or create JWKS client with caching.

        Returns:
            PyJWKClient configured for the domain's JWKS endpoint.

        Raises:
            AuthenticationError: If JWKS fetch fails and no valid cache exists.
        """
        if self._jwks_cache is not None and not self._jwks_cache.is_expired:
            return self._jwks_cache.client

        try:
            client = PyJWKClient(
                self._jwks_uri,
                cache_keys=True,
                lifespan=self._settings.jwks_cache_ttl_seconds or 1,
                timeout=JWKS_FETCH_TIMEOUT_SECONDS,
            )
            _ = client.get_jwk_set()
        except (PyJWKClientError, OSError) as e:
            error_detail = str(e) if str(e) else type(e).__name__
            raise AuthenticationError(
                f"Cannot reach identity provider at {self._jwks_uri}: {error_detail}"
            ) from e

        self._jwks_cache = _CachedJWKS(
            client=client,
            fetched_at=time.monotonic(),
            ttl=self._settings.jwks_cache_ttl_seconds,
        )
        return client

    def verify_sync(self, token: str, required_scope: str) -> Claims:
        """Verify a JWT and require a scope (blocking).

        Performs full validation:
        1. Fetch signing key from JWKS (cached)
        2. Verify signature
        3. Check issuer and audience match the configured values
        4. Verify token is not expired
        5. Check the required scope is granted

        Args:
            token: JWT access token string.
            required_scope: Scope the caller must hold.

        Returns:
            Claims extracted from the verified token.

        Raises:
            TokenExpiredError: If the token is expired.
            InsufficientScopeError: If the required scope is not granted.
            AuthenticationError: If validation fails for any other reason.
        """
        if not token:
            raise AuthenticationError("Token is required")

        try:
            jwks_client = self._get_jwks_client()
            signing_key = jwks_client.get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            raise AuthenticationError(f"Failed to get signing key: {e}") from e
        except jwt.DecodeError as e:
            raise AuthenticationError(f"Token decode error: {e}") from e

        try:
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=self._settings.algorithms,
                issuer=self._issuer,
                audience=self._audience,
                leeway=self._settings.leeway_seconds,
                options={
                    "require": ["exp", "iat", "sub", "iss", "aud"],
                    "verify_exp": True,
                    "verify_iat": True,
                    "verify_iss": True,
                    "verify_aud": True,
                },
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidIssuerError as e:
            raise AuthenticationError(f"Token issuer mismatch: expected {self._issuer}") from e
        except jwt.InvalidAudienceError as e:
            raise AuthenticationError(f"Token audience mismatch: expected {self._audience}") from e
        except jwt.InvalidSignatureError as e:
            raise AuthenticationError("Token signature is invalid") from e
        except jwt.DecodeError as e:
            raise AuthenticationError(f"Token decode error: {e}") from e
        except jwt.PyJWTError as e:
            raise AuthenticationError(f"Token validation error: {e}") from e

        result = self._to_claims(claims)
        if not result.has_scope(required_scope):
            _logger.debug(
                {
                    "event": "jwt_scope_missing",
                    "message": "Token verified but required scope is missing",
                    "required_scope": required_scope,
                    "sub": hash_sensitive_id(result.subject),
                }
            )
            raise InsufficientScopeError(required_scope, result.scopes)

        return result

    async def verify(self, token: str, required_scope: str) -> Claims:
        """Verify a JWT and require a scope.

        JWKS fetching is blocking (PyJWKClient uses urllib), so the work runs
        in a worker thread. Cancelling the caller abandons the result.
        """
        return await asyncio.to_thread(self.verify_sync, token, required_scope)

    @staticmethod
    def _to_claims(claims: dict[str, Any]) -> Claims:
        aud = claims["aud"]
        return Claims(
            subject=claims["sub"],
            scopes=_parse_scopes(claims),
            issuer=claims["iss"],
            audience=[aud] if isinstance(aud, str) else list(aud),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            claims=claims,
        )

    def clear_cache(self) -> None:
        """Clear the JWKS cache.

        Use this if you need to force a fresh fetch, e.g., after key rotation.
        """
        self._jwks_cache = None


def create_jwt_verifier(domain: str, settings: "JWTVerificationSettings") -> JWTVerifier:
    """Create a JWTVerifier for a domain.

    Raises:
        ConfigurationError: If the domain is blank.
    """
    if not domain.strip():
        raise ConfigurationError("Auth0 domain is required for JWT verification")
    return JWTVerifier(settings, domain.strip())
