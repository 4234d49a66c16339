"""Unit tests for CLI commands.

Tests CLI behavior using Click's CliRunner for isolated, fast testing.
The user reader/writer is replaced with a mock so no network is used.
Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

import json
import logging
from collections.abc import Generator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from lfx_auth import __version__
from lfx_auth.cli import cli
from lfx_auth.constants import APP_NAME, CriteriaType
from lfx_auth.exceptions import InsufficientScopeError, NotFoundError
from lfx_auth.models import User

FACTORY = "lfx_auth.cli.commands.users.create_user_reader_writer"

ENV = {
    "AUTH0_TENANT": "test-tenant",
    "AUTH0_DOMAIN": "test.auth0.com",
    "AUTH0_CLIENT_ID": "id",
    "AUTH0_CLIENT_SECRET": "secret",
}


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_package_logger() -> Generator[None, None, None]:
    """Undo the handlers the CLI attaches to the package logger."""
    logger = logging.getLogger(APP_NAME)
    saved = (logger.level, logger.propagate, list(logger.handlers))
    yield
    logger.setLevel(saved[0])
    logger.propagate = saved[1]
    logger.handlers[:] = saved[2]


@pytest.fixture
def users() -> MagicMock:
    """Mock reader/writer usable as an async context manager."""
    mock = MagicMock()
    mock.metadata_lookup = AsyncMock()
    mock.get_user = AsyncMock()
    mock.search_user = AsyncMock()
    mock.update_user = AsyncMock()
    return mock


class TestVersion:
    """Tests for --version flag."""

    def test_version_flag_shows_version(self, runner: CliRunner) -> None:
        """Given --version flag, returns version string."""
        # Act
        result = runner.invoke(cli, ["--version"])

        # Assert
        assert result.exit_code == 0
        assert __version__ in result.output


class TestConfigLoading:
    """Tests for --config handling."""

    def test_missing_config_file_fails(self, runner: CliRunner) -> None:
        """Given a nonexistent config path, exits with an error."""
        # Act
        result = runner.invoke(cli, ["--config", "/nonexistent/config.json", "get", "auth0|1"])

        # Assert
        assert result.exit_code != 0
        assert "not found" in result.output

    def test_config_file_is_used(self, runner: CliRunner, users: MagicMock) -> None:
        """Given a valid config file, its Auth0 settings reach the factory."""
        # Arrange
        users.get_user.return_value = User(user_id="auth0|1")
        with runner.isolated_filesystem() as tmpdir:
            config_path = Path(tmpdir) / "config.json"
            config_path.write_text(json.dumps({"auth0": {"domain": "file.auth0.com"}}))

            with patch(FACTORY, return_value=users) as factory:
                # Act
                result = runner.invoke(cli, ["--config", str(config_path), "get", "auth0|1"])

        # Assert
        assert result.exit_code == 0, result.output
        assert factory.call_args.args[0].domain == "file.auth0.com"


class TestLookupCommand:
    """Tests for lookup command."""

    def test_subject_is_fetched_directly(self, runner: CliRunner, users: MagicMock) -> None:
        """Given input that resolves to a user_id, get_user is called."""
        # Arrange
        users.metadata_lookup.return_value = User(user_id="auth0|1")
        users.get_user.return_value = User(user_id="auth0|1", username="alice", token="m2m")

        # Act
        with patch(FACTORY, return_value=users):
            result = runner.invoke(cli, ["lookup", "auth0|1"], env=ENV)

        # Assert
        assert result.exit_code == 0, result.output
        users.metadata_lookup.assert_awaited_once_with("auth0|1")
        users.search_user.assert_not_awaited()
        output = json.loads(result.output)
        assert output["username"] == "alice"
        assert "token" not in output

    def test_username_is_searched(self, runner: CliRunner, users: MagicMock) -> None:
        """Given input without a user_id, search_user runs with username criteria."""
        # Arrange
        prepared = User(username="alice")
        users.metadata_lookup.return_value = prepared
        users.search_user.return_value = User(user_id="auth0|1", username="alice")

        # Act
        with patch(FACTORY, return_value=users):
            result = runner.invoke(cli, ["lookup", "alice"], env=ENV)

        # Assert
        assert result.exit_code == 0, result.output
        users.search_user.assert_awaited_once_with(prepared, CriteriaType.USERNAME)
        users.get_user.assert_not_awaited()

    def test_not_found_exits_with_error(self, runner: CliRunner, users: MagicMock) -> None:
        """Given a NotFoundError, exits non-zero with its message."""
        # Arrange
        users.metadata_lookup.return_value = User(username="ghost")
        users.search_user.side_effect = NotFoundError("user not found")

        # Act
        with patch(FACTORY, return_value=users):
            result = runner.invoke(cli, ["lookup", "ghost"], env=ENV)

        # Assert
        assert result.exit_code == 1
        assert "user not found" in result.output


class TestSearchCommand:
    """Tests for search command."""

    def test_email_search(self, runner: CliRunner, users: MagicMock) -> None:
        """Given --email, search_user runs with email criteria."""
        # Arrange
        users.search_user.return_value = User(user_id="auth0|1", primary_email="a@example.org")

        # Act
        with patch(FACTORY, return_value=users):
            result = runner.invoke(cli, ["search", "--email", "a@example.org"], env=ENV)

        # Assert
        assert result.exit_code == 0, result.output
        user, criteria = users.search_user.await_args.args
        assert user.primary_email == "a@example.org"
        assert criteria is CriteriaType.EMAIL

    @pytest.mark.parametrize("args", [[], ["--email", "a@example.org", "--username", "alice"]])
    def test_requires_exactly_one_criteria(self, runner: CliRunner, args: list[str]) -> None:
        """Given neither or both options, exits with a usage error."""
        # Act
        with patch(FACTORY) as factory:
            result = runner.invoke(cli, ["search", *args], env=ENV)

        # Assert
        assert result.exit_code == 2
        assert "exactly one" in result.output
        factory.assert_not_called()


class TestUpdateMetadataCommand:
    """Tests for update-metadata command."""

    def test_updates_with_token_and_metadata(self, runner: CliRunner, users: MagicMock) -> None:
        """Given a token and a JSON object, update_user receives both."""
        # Arrange
        users.update_user.return_value = User(user_metadata={"theme": "dark"})

        # Act
        with patch(FACTORY, return_value=users):
            result = runner.invoke(
                cli,
                ["update-metadata", "--token", "caller-token", "--metadata", '{"theme": "dark"}'],
                env=ENV,
            )

        # Assert
        assert result.exit_code == 0, result.output
        sent = users.update_user.await_args.args[0]
        assert sent.token == "caller-token"
        assert sent.user_metadata == {"theme": "dark"}
        assert json.loads(result.output)["user_metadata"] == {"theme": "dark"}

    def test_token_from_environment(self, runner: CliRunner, users: MagicMock) -> None:
        """Given LFX_AUTH_TOKEN, --token may be omitted."""
        # Arrange
        users.update_user.return_value = User(user_metadata={})

        # Act
        with patch(FACTORY, return_value=users):
            result = runner.invoke(
                cli, ["update-metadata", "--metadata", "{}"], env={**ENV, "LFX_AUTH_TOKEN": "env-token"}
            )

        # Assert
        assert result.exit_code == 0, result.output
        assert users.update_user.await_args.args[0].token == "env-token"

    @pytest.mark.parametrize("metadata", ["{not json", "[1, 2]"])
    def test_rejects_non_object_metadata(self, runner: CliRunner, metadata: str) -> None:
        """Given invalid JSON or a non-object, exits with a parameter error."""
        # Act
        with patch(FACTORY) as factory:
            result = runner.invoke(cli, ["update-metadata", "--token", "t", "--metadata", metadata], env=ENV)

        # Assert
        assert result.exit_code == 2
        factory.assert_not_called()

    def test_scope_failure_exits_with_error(self, runner: CliRunner, users: MagicMock) -> None:
        """Given a token without the update scope, exits non-zero with the reason."""
        # Arrange
        users.update_user.side_effect = InsufficientScopeError("update:current_user_metadata", frozenset())

        # Act
        with patch(FACTORY, return_value=users):
            result = runner.invoke(cli, ["update-metadata", "--token", "t", "--metadata", "{}"], env=ENV)

        # Assert
        assert result.exit_code == 1
        assert "update:current_user_metadata" in result.output
