"""Main CLI entry point for lfx-auth.

Defines the CLI group and registers all subcommands.

Commands:
    lookup           - Resolve a token, subject or username into a user
    search           - Search users by email or username
    get              - Fetch a user by directory id
    update-metadata  - Replace the caller's user_metadata

Configuration comes from --config (JSON file) or AUTH0_* environment variables.
"""

from __future__ import annotations

__all__ = ["cli", "main"]

import sys
from pathlib import Path

import click

from lfx_auth import __version__
from lfx_auth.config import AppConfig
from lfx_auth.utils.logging import configure_logging

from .commands.users import get, lookup, search, update_metadata


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON config file (default: AUTH0_* environment variables)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx: click.Context, version: bool, config_path: Path | None, log_level: str | None) -> None:
    """lfx-auth: resolve identities against the Auth0 directory."""
    if version:
        click.echo(f"lfx-auth {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    try:
        config = AppConfig.load_from_file(config_path) if config_path else AppConfig.from_env()
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    level = (log_level or config.log_level).upper()
    configure_logging(level, Path(config.log_file).expanduser() if config.log_file else None)
    ctx.obj = config


# Register commands
cli.add_command(lookup)
cli.add_command(search)
cli.add_command(get)
cli.add_command(update_metadata)


def main() -> None:
    """CLI entry point."""
    cli()
