"""Tests for machine-to-machine token acquisition.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from lfx_auth.config import Auth0Config
from lfx_auth.exceptions import AuthenticationError, ConfigurationError
from lfx_auth.ports import CredentialProvider
from lfx_auth.security.auth.m2m import M2MTokenError, M2MTokenManager, create_m2m_token_manager


def _manager(auth0_config: Auth0Config, handler) -> M2MTokenManager:
    return M2MTokenManager(auth0_config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestM2MTokenManager:
    """Tests for the client-credentials token source."""

    @pytest.mark.asyncio
    async def test_requests_client_credentials_grant(self, auth0_config: Auth0Config) -> None:
        """Given valid credentials, posts the grant and returns the access token."""
        # Arrange
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "m2m-abc", "expires_in": 3600})

        manager = _manager(auth0_config, handler)

        # Act
        token = await manager.get_token()

        # Assert
        assert token == "m2m-abc"
        request = seen[0]
        assert str(request.url) == "https://test.auth0.com/oauth/token"
        form = parse_qs(request.content.decode())
        assert form["grant_type"] == ["client_credentials"]
        assert form["client_id"] == ["m2m-client-id"]
        assert form["client_secret"] == ["m2m-client-secret"]
        assert form["audience"] == ["https://test.auth0.com/api/v2/"]

    @pytest.mark.asyncio
    async def test_caches_token_until_expiry(self, auth0_config: Auth0Config) -> None:
        """Given a fresh cached token, no second request is made."""
        # Arrange
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"access_token": f"tok-{calls}", "expires_in": 3600})

        manager = _manager(auth0_config, handler)

        # Act
        first = await manager.get_token()
        second = await manager.get_token()

        # Assert
        assert first == second == "tok-1"
        assert calls == 1

    @pytest.mark.asyncio
    async def test_refetches_when_within_refresh_buffer(self, auth0_config: Auth0Config) -> None:
        """Given a token expiring inside the refresh buffer, a new one is fetched."""
        # Arrange
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"access_token": f"tok-{calls}", "expires_in": 30})

        manager = _manager(auth0_config, handler)

        # Act
        await manager.get_token()
        token = await manager.get_token()

        # Assert
        assert token == "tok-2"
        assert calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self, auth0_config: Auth0Config) -> None:
        """Given many concurrent callers and an empty cache, one request is made."""
        # Arrange
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"access_token": "shared", "expires_in": 3600})

        manager = _manager(auth0_config, handler)

        # Act
        tokens = await asyncio.gather(*(manager.get_token() for _ in range(5)))

        # Assert
        assert tokens == ["shared"] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, auth0_config: Auth0Config) -> None:
        """Given invalidate(), the next call fetches a new token."""
        # Arrange
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"access_token": f"tok-{calls}"})

        manager = _manager(auth0_config, handler)
        await manager.get_token()

        # Act
        manager.invalidate()
        token = await manager.get_token()

        # Assert
        assert token == "tok-2"

    @pytest.mark.asyncio
    async def test_rejected_credentials_raise(self, auth0_config: Auth0Config) -> None:
        """Given a 401 from the token endpoint, raises M2MTokenError with the description."""
        # Arrange
        manager = _manager(
            auth0_config,
            lambda request: httpx.Response(
                401, json={"error": "access_denied", "error_description": "Unauthorized"}
            ),
        )

        # Act & Assert
        with pytest.raises(M2MTokenError, match="Unauthorized"):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_non_json_error_uses_status_code(self, auth0_config: Auth0Config) -> None:
        """Given a 500 with a text body, the status code is reported."""
        # Arrange
        manager = _manager(auth0_config, lambda request: httpx.Response(500, text="oops"))

        # Act & Assert
        with pytest.raises(M2MTokenError, match="500"):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_non_object_error_body_raises_token_error(self, auth0_config: Auth0Config) -> None:
        """Given a 500 whose JSON body is a list, raises M2MTokenError with the status code."""
        # Arrange
        manager = _manager(auth0_config, lambda request: httpx.Response(500, json=["boom"]))

        # Act & Assert
        with pytest.raises(M2MTokenError, match="500"):
            await manager.get_token()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_in", ["3600", None, True, -5])
    async def test_invalid_expires_in_uses_default_lifetime(self, auth0_config: Auth0Config, expires_in) -> None:
        """Given a non-numeric or non-positive expires_in, the token is cached for the default lifetime."""
        # Arrange
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"access_token": "tok", "expires_in": expires_in})

        manager = _manager(auth0_config, handler)

        # Act
        first = await manager.get_token()
        second = await manager.get_token()

        # Assert
        assert first == second == "tok"
        assert calls == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [["tok"], {"access_token": 42}, {"access_token": ""}])
    async def test_malformed_success_body_raises(self, auth0_config: Auth0Config, body) -> None:
        """Given a 200 whose body has no usable access_token, raises M2MTokenError."""
        # Arrange
        manager = _manager(auth0_config, lambda request: httpx.Response(200, json=body))

        # Act & Assert
        with pytest.raises(M2MTokenError, match="missing access_token"):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_missing_access_token_raises(self, auth0_config: Auth0Config) -> None:
        """Given a 200 without access_token, raises M2MTokenError."""
        # Arrange
        manager = _manager(auth0_config, lambda request: httpx.Response(200, json={"token_type": "Bearer"}))

        # Act & Assert
        with pytest.raises(M2MTokenError, match="missing access_token"):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_network_failure_raises(self, auth0_config: Auth0Config) -> None:
        """Given a connection failure, raises M2MTokenError (an AuthenticationError)."""

        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        manager = _manager(auth0_config, handler)

        # Act & Assert
        with pytest.raises(AuthenticationError, match="HTTP error during M2M token request"):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_explicit_audience_is_used(self) -> None:
        """Given m2m_audience, it is sent instead of the Management API default."""
        # Arrange
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "x"})

        config = Auth0Config(domain="d.auth0.com", client_id="c", client_secret="s", m2m_audience="urn:custom")
        manager = _manager(config, handler)

        # Act
        await manager.get_token()

        # Assert
        assert parse_qs(seen[0].content.decode())["audience"] == ["urn:custom"]


class TestCreateM2MTokenManager:
    """Tests for the credential check at construction."""

    def test_returns_manager_with_complete_credentials(self, auth0_config: Auth0Config) -> None:
        """Given domain, client_id and client_secret, returns a credential provider."""
        # Act
        manager = create_m2m_token_manager(auth0_config, http_client=httpx.AsyncClient())

        # Assert
        assert isinstance(manager, M2MTokenManager)
        assert isinstance(manager, CredentialProvider)

    def test_lists_missing_credentials(self) -> None:
        """Given missing fields, raises ConfigurationError naming each one."""
        # Arrange
        config = Auth0Config(domain="d.auth0.com", client_id=" ")

        # Act & Assert
        with pytest.raises(ConfigurationError, match="client_id, client_secret"):
            create_m2m_token_manager(config)
