"""Shared fixtures for lfx-auth tests.

Directory calls go through a real DirectoryHttpClient wired to an
httpx.MockTransport, so tests exercise URL shaping, headers and body
decoding without a network.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from lfx_auth.config import Auth0Config, HttpClientConfig
from lfx_auth.directory.http_client import DirectoryHttpClient
from lfx_auth.directory.users import UserReaderWriter
from lfx_auth.security.auth.jwt_validator import Claims

TEST_DOMAIN = "test.auth0.com"


class RecordingTransport:
    """Serve queued responses and record every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response | Exception] = []

    def queue(self, response: httpx.Response | Exception) -> None:
        self.responses.append(response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected request: {request.method} {request.url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def auth0_config() -> Auth0Config:
    """Auth0 configuration with M2M credentials."""
    return Auth0Config(
        tenant="test-tenant",
        domain=TEST_DOMAIN,
        client_id="m2m-client-id",
        client_secret="m2m-client-secret",
    )


@pytest.fixture
def http_config() -> HttpClientConfig:
    """HTTP config with retries enabled but no delay."""
    return HttpClientConfig(max_retries=2, retry_delay_seconds=0)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def directory_client(http_config: HttpClientConfig, transport: RecordingTransport) -> DirectoryHttpClient:
    """DirectoryHttpClient backed by the recording transport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport.handler))
    return DirectoryHttpClient(http_config, client=client)


@pytest.fixture
def credential_provider() -> AsyncMock:
    """M2M token source returning a fixed service token."""
    provider = AsyncMock()
    provider.get_token = AsyncMock(return_value="m2m-token")
    return provider


@pytest.fixture
def make_claims() -> Callable[..., Claims]:
    def _make(subject: str = "auth0|xyz", scope: str = "read:current_user") -> Claims:
        return Claims(subject=subject, scopes=frozenset(scope.split()))

    return _make


@pytest.fixture
def token_verifier(make_claims: Callable[..., Claims]) -> AsyncMock:
    """Verifier accepting any token as auth0|xyz with both user scopes."""
    verifier = AsyncMock()
    verifier.verify = AsyncMock(
        return_value=make_claims("auth0|xyz", "read:current_user update:current_user_metadata")
    )
    return verifier


@pytest.fixture
def users(
    auth0_config: Auth0Config,
    directory_client: DirectoryHttpClient,
    credential_provider: AsyncMock,
    token_verifier: AsyncMock,
) -> UserReaderWriter:
    """UserReaderWriter wired to mocks."""
    return UserReaderWriter(auth0_config, directory_client, credential_provider, token_verifier)
