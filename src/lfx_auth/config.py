"""Application configuration for lfx-auth.

Defines configuration models for the Auth0 tenant, JWT verification, the
directory HTTP client and logging. Configuration is loaded either from a
JSON file or from environment variables.

Example usage:
    # Load from config file
    config = AppConfig.load_from_file(config_path)

    # Load from environment (AUTH0_DOMAIN, AUTH0_CLIENT_ID, ...)
    config = AppConfig.from_env()
"""

from __future__ import annotations

__all__ = [
    "AppConfig",
    "Auth0Config",
    "HttpClientConfig",
    "JWTVerificationSettings",
]

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from lfx_auth.constants import (
    DEFAULT_HTTP_BACKOFF_MULTIPLIER,
    DEFAULT_HTTP_MAX_RETRIES,
    DEFAULT_HTTP_RETRY_DELAY_SECONDS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DIRECTORY_API_PREFIX,
    JWKS_CACHE_TTL_SECONDS,
    MAX_HTTP_TIMEOUT_SECONDS,
    MIN_HTTP_TIMEOUT_SECONDS,
)
from lfx_auth.utils.file_helpers import load_validated_json, require_file_exists


# =============================================================================
# Authentication Configuration
# =============================================================================


class JWTVerificationSettings(BaseModel):
    """JWT verification settings for caller tokens.

    Issuer and audience default to values derived from the Auth0 domain
    (see issuer_for / audience_for), which is what Auth0 mints for
    Management API scopes such as read:current_user.

    Attributes:
        issuer: Expected 'iss' claim. None derives "https://{domain}/".
        audience: Expected 'aud' claim. None derives the Management API audience.
        algorithms: Accepted signing algorithms.
        leeway_seconds: Clock skew tolerance for exp/iat checks.
        jwks_cache_ttl_seconds: How long fetched signing keys are reused.
    """

    issuer: str | None = None
    audience: str | None = None
    algorithms: list[str] = Field(default=["RS256"], min_length=1)
    leeway_seconds: int = Field(default=0, ge=0, le=300)
    jwks_cache_ttl_seconds: int = Field(default=JWKS_CACHE_TTL_SECONDS, ge=0)

    def issuer_for(self, domain: str) -> str:
        """Expected issuer for tokens minted by the given domain."""
        return self.issuer or f"https://{domain}/"

    def audience_for(self, domain: str) -> str:
        """Expected audience for tokens minted by the given domain."""
        return self.audience or management_api_audience(domain)


class Auth0Config(BaseModel):
    """Auth0 tenant and Management API configuration.

    domain may be empty here; every directory call rejects a blank domain
    with a ValidationError so a misconfigured deployment fails per request
    with a clear message.

    Attributes:
        tenant: Tenant identifier (informational, used in logs).
        domain: Auth0 domain, e.g. "example.us.auth0.com".
        client_id: M2M application client ID.
        client_secret: M2M application client secret.
        m2m_audience: Audience for the M2M token. None derives the
            Management API audience.
        jwt: Caller token verification settings.
    """

    tenant: str = ""
    domain: str = ""
    client_id: str = ""
    client_secret: str = Field(default="", repr=False)
    m2m_audience: str | None = None
    jwt: JWTVerificationSettings = Field(default_factory=JWTVerificationSettings)

    @property
    def resolved_m2m_audience(self) -> str:
        """Audience requested for M2M tokens."""
        return self.m2m_audience or management_api_audience(self.domain)


def management_api_audience(domain: str) -> str:
    """Management API audience for a domain."""
    return f"https://{domain}{DIRECTORY_API_PREFIX}/"


# =============================================================================
# HTTP Client Configuration
# =============================================================================


class HttpClientConfig(BaseModel):
    """Directory HTTP client behavior.

    Attributes:
        timeout_seconds: Per-request timeout.
        max_retries: Extra attempts for transport errors and transient statuses.
        retry_delay_seconds: Delay before the first retry.
        backoff_multiplier: Delay multiplier between retries.
    """

    timeout_seconds: int = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        ge=MIN_HTTP_TIMEOUT_SECONDS,
        le=MAX_HTTP_TIMEOUT_SECONDS,
    )
    max_retries: int = Field(default=DEFAULT_HTTP_MAX_RETRIES, ge=0, le=10)
    retry_delay_seconds: float = Field(default=DEFAULT_HTTP_RETRY_DELAY_SECONDS, ge=0)
    backoff_multiplier: float = Field(default=DEFAULT_HTTP_BACKOFF_MULTIPLIER, ge=1.0)


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Top-level lfx-auth configuration.

    Attributes:
        auth0: Auth0 tenant configuration.
        http: Directory HTTP client configuration.
        log_level: Console/file log level.
        log_file: Optional JSONL log file path.
    """

    auth0: Auth0Config = Field(default_factory=Auth0Config)
    http: HttpClientConfig = Field(default_factory=HttpClientConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: str | None = None

    @classmethod
    def load_from_file(cls, config_path: Path) -> AppConfig:
        """Load configuration from a JSON file.

        Args:
            config_path: Path to the JSON config file.

        Returns:
            Validated AppConfig.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not valid JSON or fails validation.
        """
        require_file_exists(config_path, file_type="configuration")
        return load_validated_json(config_path, cls, file_type="config", encoding="utf-8")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> AppConfig:
        """Build configuration from environment variables.

        Recognized variables: AUTH0_TENANT, AUTH0_DOMAIN, AUTH0_CLIENT_ID,
        AUTH0_CLIENT_SECRET, AUTH0_M2M_AUDIENCE, LFX_AUTH_LOG_LEVEL,
        LFX_AUTH_LOG_FILE.
        """
        env = os.environ if environ is None else environ
        data: dict = {
            "auth0": {
                "tenant": env.get("AUTH0_TENANT", ""),
                "domain": env.get("AUTH0_DOMAIN", ""),
                "client_id": env.get("AUTH0_CLIENT_ID", ""),
                "client_secret": env.get("AUTH0_CLIENT_SECRET", ""),
                "m2m_audience": env.get("AUTH0_M2M_AUDIENCE") or None,
            },
            "log_file": env.get("LFX_AUTH_LOG_FILE") or None,
        }
        if env.get("LFX_AUTH_LOG_LEVEL"):
            data["log_level"] = env["LFX_AUTH_LOG_LEVEL"].upper()
        return cls.model_validate(data)
