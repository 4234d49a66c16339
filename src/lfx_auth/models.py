"""Domain models for directory users.

User is the mutable working record passed through a single lookup or update.
DirectoryUser and Identity mirror the Auth0 Management API payloads and are
never mutated; DirectoryUser.to_user() translates them for callers.
"""

from __future__ import annotations

__all__ = [
    "DirectoryUser",
    "Identity",
    "User",
    "UserMetadata",
]

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

UserMetadata = dict[str, Any]


@dataclass
class User:
    """Working record for one request.

    Attributes:
        user_id: Directory-assigned id (canonical subject), or empty.
        username: Username from the password database connection.
        primary_email: Primary email address.
        sub: Subject from a verified token, empty until verification.
        token: Bearer credential - the caller's own token or an M2M token.
        user_metadata: Opaque metadata mapping; None means absent.
    """

    user_id: str = ""
    username: str = ""
    primary_email: str = ""
    sub: str = ""
    token: str = ""
    user_metadata: UserMetadata | None = None

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize for output, leaving out the bearer token."""
        return {
            "user_id": self.user_id,
            "username": self.username,
            "primary_email": self.primary_email,
            "sub": self.sub,
            "user_metadata": self.user_metadata,
        }


class Identity(BaseModel):
    """One authentication method attached to a directory user.

    The directory does not guarantee a type for user_id: database
    connections use the username string, some social providers use numbers.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    connection: str = ""
    user_id: Any = None
    provider: str = ""
    is_social: bool = Field(default=False, alias="isSocial")

    def string_user_id(self) -> str | None:
        """Return user_id if it is a string, None otherwise."""
        if isinstance(self.user_id, str):
            return self.user_id
        return None


class DirectoryUser(BaseModel):
    """User object as returned by the Management API."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    user_id: str = ""
    email: str | None = None
    username: str | None = None
    name: str | None = None
    nickname: str | None = None
    picture: str | None = None
    identities: list[Identity] = Field(default_factory=list)
    user_metadata: UserMetadata | None = None

    def to_user(self) -> User:
        """Translate into a User for callers."""
        return User(
            user_id=self.user_id,
            username=self.username or "",
            primary_email=self.email or "",
            user_metadata=dict(self.user_metadata) if self.user_metadata is not None else None,
        )

    @classmethod
    def from_user(cls, user: User) -> DirectoryUser:
        """Build the directory representation of a User."""
        return cls(
            user_id=user.user_id,
            email=user.primary_email or None,
            username=user.username or None,
            user_metadata=dict(user.user_metadata) if user.user_metadata is not None else None,
        )
