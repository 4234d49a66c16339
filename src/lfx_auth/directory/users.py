"""Identity resolution and metadata updates against the Auth0 directory.

UserReaderWriter turns a caller-supplied identifier (bearer token,
canonical subject or username) into a canonical directory user, and gates
metadata updates behind a verified token.

Token policy:
- Reads (get_user, search_user) use the caller's token when present and
  fall back to a machine-to-machine token otherwise.
- Writes (update_user) always require a verified caller token. The target
  user is the token's subject, never a caller-supplied id.

Search disambiguation:
    The directory evaluates "identities.user_id:X AND identities.connection:Y"
    like an IN clause across all identities of a user, so a candidate may
    match on an identity from a different connection. Every candidate is
    re-checked here against the password database connection.
"""

from __future__ import annotations

__all__ = [
    "UserReaderWriter",
    "create_user_reader_writer",
]

from typing import TYPE_CHECKING, Any
from urllib.parse import quote, quote_plus

from pydantic import ValidationError as PydanticValidationError

from lfx_auth.constants import (
    CANONICAL_SUBJECT_SEPARATOR,
    CRITERIA_ENDPOINTS,
    DIRECTORY_API_PREFIX,
    USER_READ_REQUIRED_SCOPE,
    USER_UPDATE_REQUIRED_SCOPE,
    USERNAME_CONNECTION,
    CriteriaType,
)
from lfx_auth.directory.error_response import ErrorResponse
from lfx_auth.directory.http_client import (
    APICallError,
    APIRequest,
    DirectoryHttpClient,
    error_from_status_code,
)
from lfx_auth.exceptions import (
    ConfigurationError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from lfx_auth.models import DirectoryUser, User
from lfx_auth.security.auth.jwt_validator import create_jwt_verifier, looks_like_jwt
from lfx_auth.security.auth.m2m import create_m2m_token_manager
from lfx_auth.utils.logging import (
    get_logger,
    hash_sensitive_id,
    redact,
    redact_email,
    sanitize_for_logging,
)

if TYPE_CHECKING:
    from lfx_auth.config import Auth0Config, HttpClientConfig
    from lfx_auth.ports import CredentialProvider, TokenVerifier

_logger = get_logger("directory.users")


class UserReaderWriter:
    """Reads and updates directory users.

    Usage:
        users = create_user_reader_writer(app_config.auth0, app_config.http)

        user = await users.metadata_lookup(raw_input)
        if user.user_id:
            user = await users.get_user(user)
        else:
            user = await users.search_user(user, CriteriaType.USERNAME)

        await users.aclose()
    """

    def __init__(
        self,
        config: "Auth0Config",
        http_client: DirectoryHttpClient,
        credential_provider: "CredentialProvider",
        token_verifier: "TokenVerifier | None",
    ) -> None:
        """Initialize the reader/writer.

        Prefer create_user_reader_writer(), which builds the collaborators.

        Args:
            config: Auth0 configuration (domain, tenant).
            http_client: Directory HTTP client.
            credential_provider: Source of M2M tokens for reads.
            token_verifier: Verifier for caller tokens.
        """
        self._config = config
        self._http = http_client
        self._credentials = credential_provider
        self._verifier = token_verifier

    async def __aenter__(self) -> "UserReaderWriter":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the HTTP client and the credential provider's client."""
        await self._http.aclose()
        aclose = getattr(self._credentials, "aclose", None)
        if aclose is not None:
            await aclose()

    # -------------------------------------------------------------------------
    # Request shaping
    # -------------------------------------------------------------------------

    def _require_domain(self) -> str:
        domain = self._config.domain.strip()
        if not domain:
            raise ValidationError("Auth0 domain configuration is missing")
        return domain

    @staticmethod
    def _api_url(domain: str, path: str) -> str:
        return f"https://{domain}{DIRECTORY_API_PREFIX}/{path}"

    def _user_url(self, domain: str, user_id: str) -> str:
        # Subjects contain "|" and must be escaped as a path segment
        return self._api_url(domain, f"users/{quote(user_id, safe='')}")

    async def _ensure_token(self, user: User, **log_fields: Any) -> None:
        """Fill user.token with an M2M token when the caller supplied none."""
        if user.token:
            return

        _logger.debug({"event": "m2m_token_requested", "message": "getting M2M token", **log_fields})
        try:
            user.token = await self._credentials.get_token()
        except Exception as e:
            raise UnexpectedError("failed to get M2M token", e) from e

    def _require_verifier(self) -> "TokenVerifier":
        if self._verifier is None:
            raise ValidationError("JWT verification configuration is required")
        return self._verifier

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def search_user(self, user: User, criteria: CriteriaType | str) -> User:
        """Find a user by email or username.

        Candidates are re-validated against the password database connection
        because the directory's search filter does not scope the connection
        to the matching identity.

        Args:
            user: Working record carrying primary_email or username (and
                optionally the caller's token).
            criteria: CriteriaType.EMAIL or CriteriaType.USERNAME.

        Returns:
            Translated directory user with username set to the confirmed id.

        Raises:
            ValidationError: Unknown criteria or missing domain.
            UnexpectedError: M2M token or directory call failed.
            NotFoundError: No candidate carries a qualifying identity.
        """
        try:
            criteria_type = CriteriaType(criteria)
        except ValueError:
            raise ValidationError(f"invalid criteria type: {criteria}") from None

        domain = self._require_domain()

        if criteria_type is CriteriaType.EMAIL:
            _logger.debug(
                {
                    "event": "user_search",
                    "message": "searching user",
                    "criteria": criteria_type.value,
                    "email": redact_email(user.primary_email),
                }
            )
            param = quote_plus(user.primary_email.strip().lower())
        else:
            _logger.debug(
                {
                    "event": "user_search",
                    "message": "searching user",
                    "criteria": criteria_type.value,
                    "username": redact(user.username),
                }
            )
            param = quote_plus(user.username.strip())

        await self._ensure_token(user, criteria=criteria_type.value)

        request = APIRequest(
            self._http,
            method="GET",
            url=self._api_url(domain, CRITERIA_ENDPOINTS[criteria_type].format(param)),
            token=user.token,
            description="search user",
        )
        try:
            _, data = await request.call()
        except APICallError as e:
            _logger.error(
                {
                    "event": "user_search_failed",
                    "message": "failed to search user",
                    "error": sanitize_for_logging(e),
                    "status_code": e.status_code,
                }
            )
            raise UnexpectedError("failed to search user", e) from e

        candidates = self._decode_users(data)
        if not candidates:
            raise NotFoundError("user not found")

        _logger.debug(
            {
                "event": "user_search_candidates",
                "message": "users found, checking if the user is the one with the correct identity",
                "criteria": criteria_type.value,
                "candidates": len(candidates),
            }
        )

        requested_username = user.username.strip()
        for candidate in candidates:
            for identity in candidate.identities:
                if identity.connection != USERNAME_CONNECTION:
                    continue

                identity_user_id = identity.string_user_id()
                if identity_user_id is None:
                    _logger.debug(
                        {
                            "event": "user_search_identity_skipped",
                            "message": "user found, but the identity id is not a string",
                            "filter": USERNAME_CONNECTION,
                            "user_id": redact(str(identity.user_id)),
                        }
                    )
                    continue

                if criteria_type is CriteriaType.USERNAME and identity_user_id != requested_username:
                    # The directory matched this user through another identity.
                    # Stop here rather than trying later candidates.
                    _logger.debug(
                        {
                            "event": "user_search_wrong_identity",
                            "message": "user found, but it's not the correct identity",
                            "filter": USERNAME_CONNECTION,
                            "user_id": redact(identity_user_id),
                        }
                    )
                    raise NotFoundError("user not found")

                user.username = identity_user_id
                resolved = candidate.to_user()
                resolved.username = identity_user_id
                return resolved

        raise NotFoundError("user not found")

    async def get_user(self, user: User) -> User:
        """Fetch a user by directory id.

        Args:
            user: Working record with user_id (and optionally the caller's token).

        Returns:
            Translated directory user.

        Raises:
            ValidationError: Missing user_id or domain.
            UnexpectedError: M2M token acquisition failed.
            NotFoundError: Directory returned 404 or an empty body.
            DirectoryError: Other failures, mapped from the HTTP status.
        """
        if not user.user_id:
            raise ValidationError("user_id is required to get user")
        domain = self._require_domain()

        _logger.debug({"event": "user_get", "message": "getting user", "user_id": redact(user.user_id)})

        await self._ensure_token(user, user_id=redact(user.user_id))

        request = APIRequest(
            self._http,
            method="GET",
            url=self._user_url(domain, user.user_id),
            token=user.token,
            description="get user details",
        )
        try:
            status_code, data = await request.call()
        except APICallError as e:
            _logger.error(
                {
                    "event": "user_get_failed",
                    "message": "failed to get user from Auth0",
                    "error": sanitize_for_logging(e),
                    "status_code": e.status_code,
                    "user_id": redact(user.user_id),
                }
            )
            raise error_from_status_code(e.status_code, ErrorResponse.error_message(e.body)) from e

        # Some tenants answer 200 with no payload for unknown ids
        if data is None:
            _logger.error(
                {
                    "event": "user_get_empty",
                    "message": "failed to get user from Auth0: empty response",
                    "status_code": status_code,
                    "user_id": redact(user.user_id),
                }
            )
            raise NotFoundError("user not found")

        if not isinstance(data, dict):
            raise UnexpectedError("unexpected response shape from Auth0 get user")
        try:
            directory_user = DirectoryUser.model_validate(data)
        except PydanticValidationError as e:
            raise UnexpectedError("failed to decode user from Auth0", e) from e

        _logger.debug(
            {"event": "user_get_succeeded", "message": "user retrieved successfully", "user_id": redact(user.user_id)}
        )
        return directory_user.to_user()

    async def metadata_lookup(self, lookup_input: str) -> User:
        """Prepare a User for lookup based on the shape of the input.

        Strategies, in priority order (exactly one runs):
        1. JWT: verified with the read scope; user_id and sub come from the token.
        2. Canonical subject (contains "|"): used verbatim as user_id.
        3. Username: anything else.

        Raises:
            ValidationError: Empty input, or a JWT without a configured verifier.
            AuthenticationError: JWT verification failed (propagated unchanged).
        """
        lookup_input = lookup_input.strip()
        if not lookup_input:
            raise ValidationError("input is required")

        _logger.debug({"event": "metadata_lookup", "message": "metadata lookup", "input": redact(lookup_input)})

        user = User()

        clean_token, is_jwt = looks_like_jwt(lookup_input)
        if is_jwt:
            _logger.debug({"event": "metadata_lookup_strategy", "message": "jwt strategy", "strategy": "jwt"})
            verifier = self._require_verifier()

            try:
                claims = await verifier.verify(clean_token, USER_READ_REQUIRED_SCOPE)
            except Exception as e:
                _logger.error(
                    {
                        "event": "jwt_verify_failed",
                        "message": "JWT signature verification failed",
                        "error": sanitize_for_logging(e),
                        "error_type": type(e).__name__,
                    }
                )
                raise

            user.token = clean_token
            user.user_id = claims.subject
            user.sub = claims.subject

            _logger.debug(
                {
                    "event": "jwt_verify_succeeded",
                    "message": "JWT signature verification successful for metadata lookup",
                    "sub": hash_sensitive_id(user.sub),
                }
            )
            return user

        if CANONICAL_SUBJECT_SEPARATOR in lookup_input:
            user.user_id = lookup_input
            _logger.debug(
                {
                    "event": "metadata_lookup_strategy",
                    "message": "canonical lookup strategy",
                    "strategy": "canonical",
                    "sub": redact(lookup_input),
                }
            )
        else:
            user.username = lookup_input
            user.user_id = ""
            _logger.debug(
                {
                    "event": "metadata_lookup_strategy",
                    "message": "username search strategy",
                    "strategy": "username",
                    "username": redact(lookup_input),
                }
            )

        return user

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def update_user(self, user: User) -> User:
        """Replace user_metadata for the user the caller's token belongs to.

        The target id is the verified token subject; any user_id on the
        input is overwritten. There is no M2M fallback.

        Returns:
            A User with only user_metadata populated (an update echo, not a
            full profile).

        Raises:
            AuthenticationError: Token verification failed (propagated unchanged).
            ValidationError: Missing domain or user_metadata.
            UnexpectedError: Directory call failed.
        """
        verifier = self._require_verifier()

        try:
            claims = await verifier.verify(user.token, USER_UPDATE_REQUIRED_SCOPE)
        except Exception as e:
            _logger.error(
                {
                    "event": "jwt_verify_failed",
                    "message": "jwt verify failed",
                    "error": sanitize_for_logging(e),
                    "error_type": type(e).__name__,
                }
            )
            raise

        user.user_id = claims.subject
        user.sub = claims.subject

        domain = self._require_domain()
        if user.user_metadata is None:
            raise ValidationError("user_metadata is required for update")

        request = APIRequest(
            self._http,
            method="PATCH",
            url=self._user_url(domain, user.user_id),
            token=user.token,
            description="update user metadata",
            body={"user_metadata": user.user_metadata},
        )
        try:
            _, data = await request.call()
        except APICallError as e:
            _logger.error(
                {
                    "event": "user_update_failed",
                    "message": "failed to update user in Auth0",
                    "error": sanitize_for_logging(e),
                    "status_code": e.status_code,
                    "user_id": hash_sensitive_id(user.user_id),
                }
            )
            raise UnexpectedError("failed to update user in Auth0", e) from e

        metadata = data.get("user_metadata") if isinstance(data, dict) else None

        _logger.debug(
            {
                "event": "user_update_succeeded",
                "message": "user updated successfully",
                "user_id": hash_sensitive_id(user.user_id),
            }
        )
        return User(user_metadata=metadata)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _decode_users(data: Any) -> list[DirectoryUser]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise UnexpectedError("unexpected response shape from Auth0 search")
        try:
            return [DirectoryUser.model_validate(item) for item in data]
        except PydanticValidationError as e:
            raise UnexpectedError("failed to decode users from Auth0", e) from e


def create_user_reader_writer(
    auth0_config: "Auth0Config",
    http_config: "HttpClientConfig",
    *,
    http_client: DirectoryHttpClient | None = None,
    credential_provider: "CredentialProvider | None" = None,
    token_verifier: "TokenVerifier | None" = None,
) -> UserReaderWriter:
    """Build a UserReaderWriter with all collaborators.

    Construction fails as a whole: no instance is returned without an M2M
    token source and a JWT verifier.

    Args:
        auth0_config: Auth0 tenant configuration.
        http_config: Directory HTTP client configuration.
        http_client: Optional prebuilt directory client (for testing).
        credential_provider: Optional M2M token source (defaults to M2MTokenManager).
        token_verifier: Optional verifier (defaults to JWTVerifier for the domain).

    Raises:
        ConfigurationError: If the M2M token manager cannot be created.
        UnexpectedError: If the JWT verifier cannot be created.
    """
    if credential_provider is None:
        try:
            credential_provider = create_m2m_token_manager(auth0_config)
        except ConfigurationError as e:
            raise ConfigurationError(f"failed to create M2M token manager: {e}") from e

    if token_verifier is None:
        try:
            token_verifier = create_jwt_verifier(auth0_config.domain, auth0_config.jwt)
        except ConfigurationError as e:
            raise UnexpectedError("failed to create JWT verification config", e) from e

    _logger.info(
        {
            "event": "user_reader_writer_created",
            "message": "Auth0 user reader/writer ready",
            "tenant": auth0_config.tenant,
            "domain": auth0_config.domain,
        }
    )
    return UserReaderWriter(
        auth0_config,
        http_client or DirectoryHttpClient(http_config),
        credential_provider,
        token_verifier,
    )
