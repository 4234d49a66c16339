"""Authenticated HTTP access to the Auth0 Management API.

DirectoryHttpClient owns the transport (an httpx.AsyncClient) and the retry
policy: transport errors and transient statuses (429/502/503/504) are
retried with exponential backoff, everything else is returned to the caller
as an APICallError carrying the status code and raw body.

error_from_status_code() maps a failed call onto the domain error kinds.
"""

from __future__ import annotations

__all__ = [
    "APICallError",
    "APIRequest",
    "DirectoryHttpClient",
    "error_from_status_code",
]

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from lfx_auth.constants import RETRYABLE_STATUS_CODES
from lfx_auth.exceptions import (
    ConflictError,
    DirectoryError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
    UnauthorizedError,
    UnexpectedError,
    ValidationError,
)
from lfx_auth.utils.logging import get_logger, sanitize_for_logging

if TYPE_CHECKING:
    from lfx_auth.config import HttpClientConfig

_logger = get_logger("directory.http")

# Status code 0 marks a failure before any response was received
TRANSPORT_FAILURE_STATUS = 0


class APICallError(Exception):
    """A directory call failed.

    Attributes:
        status_code: HTTP status, or 0 for transport failures.
        body: Raw response body (or transport error text).
        description: What the call was for, e.g. "search user".
    """

    def __init__(self, status_code: int, body: str, description: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.description = description
        if status_code == TRANSPORT_FAILURE_STATUS:
            message = f"{description}: transport error: {body}"
        else:
            message = f"{description}: HTTP {status_code}: {body}"
        super().__init__(message)


_STATUS_ERRORS: dict[int, type[DirectoryError]] = {
    400: ValidationError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitedError,
    502: ServiceUnavailableError,
    503: ServiceUnavailableError,
    504: ServiceUnavailableError,
}


def error_from_status_code(status_code: int, message: str) -> DirectoryError:
    """Map an HTTP status code onto a domain error.

    Unknown statuses (including 0 for transport failures) become
    UnexpectedError.
    """
    error_class = _STATUS_ERRORS.get(status_code)
    if error_class is None:
        return UnexpectedError(message)
    return error_class(message)


class DirectoryHttpClient:
    """Async HTTP client for directory calls.

    Usage:
        async with DirectoryHttpClient(http_config) as client:
            status, data = await client.request("GET", url, token=token, description="get user")
    """

    def __init__(
        self,
        config: "HttpClientConfig",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Timeout and retry configuration.
            client: Optional httpx client (for testing).
        """
        self._config = config
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._owns_client = client is None

    async def __aenter__(self) -> "DirectoryHttpClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        token: str,
        body: Any = None,
        description: str = "",
    ) -> tuple[int, Any]:
        """Send a request, retrying transient failures.

        Args:
            method: HTTP method.
            url: Absolute URL.
            token: Bearer token for the Authorization header.
            body: Optional JSON body.
            description: Short description for logs and errors.

        Returns:
            (status_code, decoded JSON body or None for an empty body).

        Raises:
            APICallError: On non-2xx status, transport failure or undecodable body.
        """
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        delay = self._config.retry_delay_seconds
        attempts = self._config.max_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.request(method, url, headers=headers, json=body)
            except httpx.TransportError as e:
                if attempt < attempts:
                    self._log_retry(description, attempt, error=sanitize_for_logging(e))
                    await asyncio.sleep(delay)
                    delay *= self._config.backoff_multiplier
                    continue
                raise APICallError(TRANSPORT_FAILURE_STATUS, str(e) or type(e).__name__, description) from e

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < attempts:
                self._log_retry(description, attempt, status_code=response.status_code)
                await asyncio.sleep(delay)
                delay *= self._config.backoff_multiplier
                continue

            if not response.is_success:
                raise APICallError(response.status_code, response.text, description)

            if not response.content.strip():
                return response.status_code, None

            try:
                return response.status_code, response.json()
            except ValueError as e:
                raise APICallError(response.status_code, f"invalid JSON response: {e}", description) from e

        # Loop always returns or raises on the last attempt
        raise AssertionError("unreachable")

    def _log_retry(self, description: str, attempt: int, **fields: Any) -> None:
        _logger.warning(
            {
                "event": "directory_request_retry",
                "message": f"Retrying {description} after attempt {attempt}",
                "attempt": attempt,
                **fields,
            }
        )


@dataclass
class APIRequest:
    """One shaped directory request.

    Usage:
        request = APIRequest(
            client,
            method="GET",
            url=f"https://{domain}/api/v2/users/{user_id}",
            token=token,
            description="get user details",
        )
        status, data = await request.call()
    """

    client: DirectoryHttpClient
    method: str
    url: str
    token: str
    description: str = ""
    body: Any = None

    async def call(self) -> tuple[int, Any]:
        return await self.client.request(
            self.method,
            self.url,
            token=self.token,
            body=self.body,
            description=self.description,
        )
