"""Unit tests for the CLI commands."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from passgate import __version__
from passgate.cli.main import app
from passgate.storage.entities import User


@pytest.fixture
def runner():
    """CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_user_repo():
    repo = MagicMock()
    repo.list_with_credential_counts = AsyncMock(return_value=[])
    repo.count = AsyncMock(return_value=0)
    return repo


class TestVersion:
    def test_version(self, runner):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestServe:
    def test_serve_uses_settings(self, runner):
        mock_settings = MagicMock()
        mock_settings.api_host = "127.0.0.1"
        mock_settings.api_port = 8000
        mock_settings.api_workers = 2

        with (
            patch("passgate.settings.get_settings", return_value=mock_settings),
            patch("uvicorn.run") as mock_uvicorn_run,
        ):
            result = runner.invoke(app, ["serve", "--port", "9000"])

        assert result.exit_code == 0
        mock_uvicorn_run.assert_called_once_with(
            "passgate.api.main:get_app",
            factory=True,
            host="127.0.0.1",
            port=9000,
            reload=False,
            workers=2,
            log_level="info",
        )

    def test_reload_forces_single_worker(self, runner):
        mock_settings = MagicMock()
        mock_settings.api_host = "0.0.0.0"
        mock_settings.api_port = 8000
        mock_settings.api_workers = 4

        with (
            patch("passgate.settings.get_settings", return_value=mock_settings),
            patch("uvicorn.run") as mock_uvicorn_run,
        ):
            result = runner.invoke(app, ["serve", "--reload"])

        assert result.exit_code == 0
        assert mock_uvicorn_run.call_args.kwargs["workers"] == 1


class TestUsers:
    def test_no_users(self, runner, mock_user_repo):
        with (
            patch("passgate.storage.get_session") as mock_get_session,
            patch("passgate.storage.close_db", new_callable=AsyncMock),
            patch("passgate.dal.UserRepository", return_value=mock_user_repo),
        ):
            mock_get_session.return_value.__aenter__.return_value = AsyncMock()

            result = runner.invoke(app, ["users"])

        assert result.exit_code == 0
        assert "No users registered yet" in result.stdout

    def test_lists_users_with_passkey_counts(self, runner, mock_user_repo):
        created = datetime(2026, 1, 2, 3, 4, tzinfo=UTC)
        mock_user_repo.list_with_credential_counts = AsyncMock(
            return_value=[
                (User(id="u1", username="alice", display_name="Alice", created_at=created), 2),
                (User(id="u2", username="bob", display_name="bob", created_at=created), 1),
            ]
        )
        mock_user_repo.count = AsyncMock(return_value=2)

        with (
            patch("passgate.storage.get_session") as mock_get_session,
            patch("passgate.storage.close_db", new_callable=AsyncMock),
            patch("passgate.dal.UserRepository", return_value=mock_user_repo),
        ):
            mock_get_session.return_value.__aenter__.return_value = AsyncMock()

            result = runner.invoke(app, ["users", "--limit", "10"])

        assert result.exit_code == 0
        assert "Users (2/2)" in result.stdout
        assert "alice" in result.stdout
        assert "2026-01-02 03:04" in result.stdout
        mock_user_repo.list_with_credential_counts.assert_awaited_once_with(limit=10)
