"""Protocols for the collaborators of the user reader/writer.

The reader/writer depends only on these protocols, so tests and alternative
deployments can plug in their own credential source or token verifier.

- CredentialProvider: service-level bearer tokens (M2MTokenManager)
- TokenVerifier: signature/expiry/scope verification (JWTVerifier)
- UserReaderWriter: the lookup/update surface exposed to callers
"""

from __future__ import annotations

__all__ = [
    "CredentialProvider",
    "TokenVerifier",
    "UserReader",
    "UserReaderWriter",
    "UserWriter",
]

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from lfx_auth.constants import CriteriaType
    from lfx_auth.models import User
    from lfx_auth.security.auth.jwt_validator import Claims


@runtime_checkable
class CredentialProvider(Protocol):
    """Supplies a machine-to-machine bearer token.

    Implementations must be safe for concurrent use.
    """

    async def get_token(self) -> str: ...


@runtime_checkable
class TokenVerifier(Protocol):
    """Verifies a raw token and requires a scope.

    Implementations raise AuthenticationError (or a subclass) for expired,
    badly signed or insufficiently scoped tokens.
    """

    async def verify(self, token: str, required_scope: str) -> "Claims": ...


@runtime_checkable
class UserReader(Protocol):
    """Read access to directory users."""

    async def get_user(self, user: "User") -> "User": ...

    async def search_user(self, user: "User", criteria: "CriteriaType | str") -> "User": ...

    async def metadata_lookup(self, lookup_input: str) -> "User": ...


@runtime_checkable
class UserWriter(Protocol):
    """Write access to directory users."""

    async def update_user(self, user: "User") -> "User": ...


@runtime_checkable
class UserReaderWriter(UserReader, UserWriter, Protocol):
    """Combined read/write surface."""
