"""Machine-to-machine token acquisition (OAuth client-credentials grant).

Reads from the directory that are not made on behalf of a caller token use
a service credential obtained from the Auth0 token endpoint. The token is
cached until shortly before it expires; concurrent callers share a single
fetch.

Flow:
1. get_token() called with no valid cached token
2. POST {domain}/oauth/token with grant_type=client_credentials
3. Cache access_token until expires_in minus the refresh buffer
"""

from __future__ import annotations

__all__ = [
    "M2MTokenError",
    "M2MTokenManager",
    "create_m2m_token_manager",
]

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from lfx_auth.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    M2M_DEFAULT_EXPIRES_IN_SECONDS,
    M2M_TOKEN_REFRESH_BUFFER_SECONDS,
)
from lfx_auth.exceptions import AuthenticationError, ConfigurationError
from lfx_auth.utils.logging import get_logger

if TYPE_CHECKING:
    from lfx_auth.config import Auth0Config

_logger = get_logger("auth.m2m")


class M2MTokenError(AuthenticationError):
    """M2M token request failed."""

    pass


@dataclass(frozen=True)
class _CachedToken:
    access_token: str
    expires_at: float

    @property
    def is_fresh(self) -> bool:
        return time.monotonic() < self.expires_at - M2M_TOKEN_REFRESH_BUFFER_SECONDS


class M2MTokenManager:
    """Client-credentials token source for the Management API.

    Usage:
        manager = M2MTokenManager(auth0_config)
        token = await manager.get_token()

        # On shutdown:
        await manager.aclose()
    """

    def __init__(
        self,
        config: "Auth0Config",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the token manager.

        Args:
            config: Auth0 configuration with domain and client credentials.
            http_client: Optional httpx client (for testing).
        """
        self._config = config
        self._client = http_client or httpx.AsyncClient(timeout=DEFAULT_HTTP_TIMEOUT_SECONDS)
        self._owns_client = http_client is None
        self._token_url = f"https://{config.domain.strip()}/oauth/token"
        self._cached: _CachedToken | None = None
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        """Return a valid M2M access token, fetching one if needed.

        Raises:
            M2MTokenError: If the token endpoint fails or rejects the credentials.
        """
        cached = self._cached
        if cached is not None and cached.is_fresh:
            return cached.access_token

        async with self._lock:
            # Another caller may have refreshed while we waited
            cached = self._cached
            if cached is not None and cached.is_fresh:
                return cached.access_token

            self._cached = await self._fetch_token()
            return self._cached.access_token

    async def _fetch_token(self) -> _CachedToken:
        try:
            response = await self._client.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._config.client_id,
                    "client_secret": self._config.client_secret,
                    "audience": self._config.resolved_m2m_audience,
                },
            )
        except httpx.HTTPError as e:
            raise M2MTokenError(f"HTTP error during M2M token request: {e}") from e

        if response.status_code != 200:
            error_data = {}
            try:
                error_data = response.json()
            except ValueError:
                pass
            if not isinstance(error_data, dict):
                error_data = {}
            error_desc = error_data.get("error_description") or error_data.get("error") or str(response.status_code)
            _logger.error(
                {
                    "event": "m2m_token_request_failed",
                    "message": f"M2M token request failed: {error_desc}",
                    "status_code": response.status_code,
                    "tenant": self._config.tenant,
                }
            )
            raise M2MTokenError(f"M2M token request failed: {error_desc}")

        try:
            data = response.json()
            access_token = data["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise M2MTokenError("M2M token response is missing access_token") from e
        if not isinstance(access_token, str) or not access_token:
            raise M2MTokenError("M2M token response is missing access_token")

        expires_in = data.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)) or expires_in <= 0:
            expires_in = M2M_DEFAULT_EXPIRES_IN_SECONDS
        _logger.debug(
            {
                "event": "m2m_token_acquired",
                "message": "M2M token acquired",
                "expires_in": expires_in,
            }
        )
        return _CachedToken(access_token=access_token, expires_at=time.monotonic() + expires_in)

    def invalidate(self) -> None:
        """Drop the cached token so the next call fetches a new one."""
        self._cached = None

    async def aclose(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()


def create_m2m_token_manager(
    config: "Auth0Config",
    http_client: httpx.AsyncClient | None = None,
) -> M2MTokenManager:
    """Create an M2M token manager after checking the credentials are present.

    Raises:
        ConfigurationError: If domain, client_id or client_secret is missing.
    """
    missing = [
        name
        for name, value in (
            ("domain", config.domain),
            ("client_id", config.client_id),
            ("client_secret", config.client_secret),
        )
        if not value.strip()
    ]
    if missing:
        raise ConfigurationError(f"M2M token manager requires: {', '.join(missing)}")
    return M2MTokenManager(config, http_client=http_client)
