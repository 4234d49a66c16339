"""User commands for lfx-auth CLI.

Commands:
    lookup INPUT         - Classify INPUT, then fetch or search the user
    search               - Search by --email or --username
    get USER_ID          - Fetch by directory id
    update-metadata      - Replace user_metadata for the token's subject
"""

from __future__ import annotations

__all__ = ["get", "lookup", "search", "update_metadata"]

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import click

from lfx_auth.config import AppConfig
from lfx_auth.constants import CriteriaType
from lfx_auth.directory.users import create_user_reader_writer
from lfx_auth.exceptions import AuthenticationError, ConfigurationError, DirectoryError
from lfx_auth.models import User
from lfx_auth.ports import UserReader, UserReaderWriter


def _run(config: AppConfig, operation: Callable[[UserReaderWriter], Awaitable[User]]) -> None:
    """Build a reader/writer, run one operation and print the result as JSON."""

    async def _execute() -> User:
        users = create_user_reader_writer(config.auth0, config.http)
        async with users:
            return await operation(users)

    try:
        result = asyncio.run(_execute())
    except (DirectoryError, AuthenticationError, ConfigurationError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(result.to_public_dict(), indent=2))


async def _lookup(users: UserReader, lookup_input: str) -> User:
    user = await users.metadata_lookup(lookup_input)
    if user.user_id:
        return await users.get_user(user)
    return await users.search_user(user, CriteriaType.USERNAME)


@click.command()
@click.argument("lookup_input", metavar="INPUT")
@click.pass_obj
def lookup(config: AppConfig, lookup_input: str) -> None:
    """Resolve a bearer token, canonical subject or username into a user."""
    _run(config, lambda users: _lookup(users, lookup_input))


@click.command()
@click.option("--email", default=None, help="Primary email address")
@click.option("--username", default=None, help="Username (password database connection)")
@click.pass_obj
def search(config: AppConfig, email: str | None, username: str | None) -> None:
    """Search a user by email or username."""
    if bool(email) == bool(username):
        raise click.UsageError("Pass exactly one of --email or --username")

    if email:
        user, criteria = User(primary_email=email), CriteriaType.EMAIL
    else:
        user, criteria = User(username=username or ""), CriteriaType.USERNAME
    _run(config, lambda users: users.search_user(user, criteria))


@click.command()
@click.argument("user_id")
@click.pass_obj
def get(config: AppConfig, user_id: str) -> None:
    """Fetch a user by directory id (e.g. auth0|123)."""
    _run(config, lambda users: users.get_user(User(user_id=user_id)))


@click.command("update-metadata")
@click.option("--token", required=True, envvar="LFX_AUTH_TOKEN", help="Caller bearer token")
@click.option("--metadata", "metadata_json", required=True, help="user_metadata as a JSON object")
@click.pass_obj
def update_metadata(config: AppConfig, token: str, metadata_json: str) -> None:
    """Replace user_metadata for the user the token belongs to."""
    try:
        metadata: Any = json.loads(metadata_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="--metadata") from e
    if not isinstance(metadata, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--metadata")

    _run(config, lambda users: users.update_user(User(token=token, user_metadata=metadata)))
