"""Unit tests for the 'jh auth' commands.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import base64
import json
import time
import tomllib
from collections.abc import Callable
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from juliahub_cli.cli import cli
from juliahub_cli.cli.context import CLIContext
from juliahub_cli.security.auth.device_flow import (
    DeviceFlowDeniedError,
    DeviceFlowExpiredError,
)
from juliahub_cli.security.auth.token_parser import TokenResponse
from juliahub_cli.security.auth.token_storage import StoredToken


def _refresh_response(make_jwt: Callable[..., str]) -> MagicMock:
    now = int(time.time())
    response = MagicMock()
    response.status_code = 200
    response.is_success = True
    response.json.return_value = {
        "access_token": make_jwt(sub="user-123", iat=now, exp=now + 3600),
        "refresh_token": "rotated-refresh",
        "id_token": make_jwt(sub="user-123", exp=now + 3600, email="jane@example.com"),
        "token_type": "bearer",
        "expires_in": 3600,
    }
    return response


class TestLogin:
    """Tests for 'jh auth login'."""

    def test_login_stores_token_and_projects_credentials(
        self, runner: CliRunner, cli_obj: CLIContext, login_response: TokenResponse
    ) -> None:
        """Given a successful device flow, the token is stored for the normalized server."""
        # Act
        with patch(
            "juliahub_cli.cli.context.run_device_flow", return_value=login_response
        ) as mock_flow:
            result = runner.invoke(cli, ["auth", "login", "-s", "acme", "--no-browser"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0, result.output
        assert "Authentication successful!" in result.stdout
        assert mock_flow.call_args.args[0] == "acme.juliahub.com"
        stored = cli_obj.store.read()
        assert stored.server == "acme.juliahub.com"
        assert stored.email == "jane@example.com"
        assert cli_obj.projector.auth_file_path("acme.juliahub.com").exists()

    def test_login_defaults_to_juliahub(
        self, runner: CliRunner, cli_obj: CLIContext, login_response: TokenResponse
    ) -> None:
        """Given no --server, authenticates with juliahub.com."""
        # Act
        with patch("juliahub_cli.cli.context.run_device_flow", return_value=login_response):
            result = runner.invoke(cli, ["auth", "login", "--no-browser"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        assert cli_obj.store.read_server() == "juliahub.com"

    def test_login_displays_code_on_stdout(
        self, runner: CliRunner, cli_obj: CLIContext, login_response: TokenResponse
    ) -> None:
        """Given the device code is issued, instructions are printed to stdout."""

        # Arrange
        def fake_flow(server, display_callback, poll_callback=None, http_client=None):
            display_callback("https://auth.juliahub.com/dex/device?user_code=ABCD", "ABCD")
            poll_callback()
            return login_response

        # Act
        with patch("juliahub_cli.cli.context.run_device_flow", side_effect=fake_flow):
            result = runner.invoke(cli, ["auth", "login", "--no-browser"], obj=cli_obj)

        # Assert
        assert "https://auth.juliahub.com/dex/device?user_code=ABCD" in result.stdout
        assert "ABCD" in result.stdout
        assert result.stderr == ""

    def test_login_denied(self, runner: CliRunner, cli_obj: CLIContext) -> None:
        """Given the user denies access, exits 1 and stores nothing."""
        # Act
        with patch(
            "juliahub_cli.cli.context.run_device_flow",
            side_effect=DeviceFlowDeniedError("access_denied"),
        ):
            result = runner.invoke(cli, ["auth", "login", "--no-browser"], obj=cli_obj)

        # Assert
        assert result.exit_code == 1
        assert "Authentication was denied" in result.stderr
        assert not cli_obj.store.exists()

    def test_login_expired(self, runner: CliRunner, cli_obj: CLIContext) -> None:
        """Given the device code expires, exits 1 with a timeout message."""
        # Act
        with patch(
            "juliahub_cli.cli.context.run_device_flow",
            side_effect=DeviceFlowExpiredError("expired_token"),
        ):
            result = runner.invoke(cli, ["auth", "login", "--no-browser"], obj=cli_obj)

        # Assert
        assert result.exit_code == 1
        assert "timed out" in result.stderr

    def test_login_warns_when_julia_credentials_not_written(
        self, runner: CliRunner, cli_obj: CLIContext, login_response: TokenResponse
    ) -> None:
        """Given auth.toml cannot be written, login succeeds and prints a warning."""
        # Act
        with (
            patch("juliahub_cli.cli.context.run_device_flow", return_value=login_response),
            patch.object(cli_obj.projector, "sync", return_value=False),
        ):
            result = runner.invoke(cli, ["auth", "login", "--no-browser"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        assert cli_obj.store.exists()
        assert "Warning: Julia credentials were not written" in result.stdout
        assert "jh julia setup" in result.stdout


class TestStatus:
    """Tests for 'jh auth status'."""

    def test_not_authenticated(self, runner: CliRunner, cli_obj: CLIContext) -> None:
        """Given no stored token, reports not authenticated."""
        # Act
        result = runner.invoke(cli, ["auth", "status"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        assert "Not authenticated" in result.stdout

    def test_valid_token_formatted(
        self, runner: CliRunner, cli_obj: CLIContext, valid_token: StoredToken
    ) -> None:
        """Given a valid token, shows server, claims and user."""
        # Arrange
        cli_obj.store.write("juliahub.com", valid_token)

        # Act
        result = runner.invoke(cli, ["auth", "status"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        assert "juliahub.com" in result.stdout
        assert "Status: Valid" in result.stdout
        assert "Subject: user-123" in result.stdout
        assert "Issuer: https://auth.juliahub.com/dex" in result.stdout
        assert "Audience: device" in result.stdout
        assert "Has refresh token: Yes" in result.stdout
        assert "Email: jane@example.com" in result.stdout

    def test_expired_token_does_not_refresh(
        self,
        runner: CliRunner,
        cli_obj: CLIContext,
        expired_token: StoredToken,
        http_client: MagicMock,
    ) -> None:
        """Given an expired token, reports it without contacting the server."""
        # Arrange
        cli_obj.store.write("juliahub.com", expired_token)

        # Act
        result = runner.invoke(cli, ["auth", "status"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        assert "Status: Expired" in result.stdout
        http_client.post.assert_not_called()

    def test_json_output(
        self, runner: CliRunner, cli_obj: CLIContext, valid_token: StoredToken
    ) -> None:
        """Given --json, prints machine-readable status."""
        # Arrange
        cli_obj.store.write("juliahub.com", valid_token)

        # Act
        result = runner.invoke(cli, ["auth", "status", "--json"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["status"] == "valid"
        assert data["authenticated"] is True
        assert data["server"] == "juliahub.com"
        assert data["token"]["subject"] == "user-123"
        assert data["token"]["has_refresh_token"] is True
        assert data["user"] == {"name": "Jane Doe", "email": "jane@example.com"}

    def test_json_with_undecodable_access_token(
        self, runner: CliRunner, cli_obj: CLIContext, valid_token: StoredToken
    ) -> None:
        """Given an opaque access token, status is expired with a decode error."""
        # Arrange
        cli_obj.store.write("juliahub.com", valid_token.model_copy(update={"access_token": "opaque"}))

        # Act
        result = runner.invoke(cli, ["auth", "status", "--json"], obj=cli_obj)

        # Assert
        data = json.loads(result.stdout)
        assert data["status"] == "expired"
        assert "Error decoding token" in data["error"]


class TestRefresh:
    """Tests for 'jh auth refresh'."""

    def test_refresh_success(
        self,
        runner: CliRunner,
        cli_obj: CLIContext,
        valid_token: StoredToken,
        http_client: MagicMock,
        make_jwt: Callable[..., str],
    ) -> None:
        """Given a refresh token, refreshes and stores the rotated token."""
        # Arrange
        cli_obj.store.write("juliahub.com", valid_token)
        http_client.post.return_value = _refresh_response(make_jwt)

        # Act
        result = runner.invoke(cli, ["auth", "refresh"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0, result.output
        assert "Token refreshed for juliahub.com" in result.stdout
        assert cli_obj.store.read().refresh_token == "rotated-refresh"

    def test_refresh_not_authenticated(self, runner: CliRunner, cli_obj: CLIContext) -> None:
        """Given no stored token, exits 1."""
        # Act
        result = runner.invoke(cli, ["auth", "refresh"], obj=cli_obj)

        # Assert
        assert result.exit_code == 1
        assert "Not authenticated" in result.stderr


class TestEnv:
    """Tests for 'jh auth env'."""

    def test_prints_environment(
        self, runner: CliRunner, cli_obj: CLIContext, valid_token: StoredToken
    ) -> None:
        """Given a valid token, prints the JULIAHUB_* and INVOCATION_* variables."""
        # Arrange
        cli_obj.store.write("juliahub.com", valid_token)
        exp = int(time.time()) + 3600

        # Act
        result = runner.invoke(cli, ["auth", "env"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == "JULIAHUB_HOST=juliahub.com"
        assert lines[1] == "JULIAHUB_PORT=443"
        assert lines[2] == f"JULIAHUB_ID_TOKEN={valid_token.id_token}"
        assert abs(int(lines[3].split("=", 1)[1]) - exp) <= 5
        assert lines[4] == ""
        assert lines[5:] == [
            "INVOCATION_HOST=juliahub.com",
            "INVOCATION_PORT=443",
            "INVOCATION_USER_EMAIL=jane@example.com",
        ]

    def test_refreshes_expired_token_first(
        self,
        runner: CliRunner,
        cli_obj: CLIContext,
        expired_token: StoredToken,
        http_client: MagicMock,
        make_jwt: Callable[..., str],
    ) -> None:
        """Given an expired token, refreshes before printing."""
        # Arrange
        cli_obj.store.write("juliahub.com", expired_token)
        http_client.post.return_value = _refresh_response(make_jwt)

        # Act
        result = runner.invoke(cli, ["auth", "env"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        http_client.post.assert_called_once()
        assert f"JULIAHUB_ID_TOKEN={cli_obj.store.read().id_token}" in result.stdout

    def test_expired_without_refresh_token(
        self, runner: CliRunner, cli_obj: CLIContext, expired_token: StoredToken
    ) -> None:
        """Given an expired token and no refresh token, exits 1."""
        # Arrange
        cli_obj.store.write("juliahub.com", expired_token.model_copy(update={"refresh_token": ""}))

        # Act
        result = runner.invoke(cli, ["auth", "env"], obj=cli_obj)

        # Assert
        assert result.exit_code == 1
        assert "no refresh token" in result.stderr

    def test_wrong_typed_refresh_response_exits_cleanly(
        self,
        runner: CliRunner,
        cli_obj: CLIContext,
        expired_token: StoredToken,
        http_client: MagicMock,
    ) -> None:
        """Given a refresh body with wrong-typed fields, exits 1 with a message and no traceback."""
        # Arrange
        cli_obj.store.write("juliahub.com", expired_token)
        response = MagicMock()
        response.status_code = 200
        response.is_success = True
        response.json.return_value = {"access_token": "new-access", "expires_in": "soon"}
        http_client.post.return_value = response

        # Act
        result = runner.invoke(cli, ["auth", "env"], obj=cli_obj)

        # Assert
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Failed to refresh token" in result.stderr
        assert result.stdout == ""
        assert cli_obj.store.read().refresh_token == "old-refresh-token"


class TestBase64:
    """Tests for 'jh auth base64'."""

    def test_prints_encoded_auth_toml(
        self, runner: CliRunner, cli_obj: CLIContext, valid_token: StoredToken
    ) -> None:
        """Given a valid token, prints base64 of the auth.toml content."""
        # Arrange
        cli_obj.store.write("juliahub.com", valid_token)

        # Act
        result = runner.invoke(cli, ["auth", "base64"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        document = tomllib.loads(base64.b64decode(result.stdout.strip()).decode())
        assert document["access_token"] == valid_token.access_token
        assert document["refresh_url"] == "https://auth.juliahub.com/dex/token"


class TestLogout:
    """Tests for 'jh auth logout'."""

    def test_logout_removes_record(
        self, runner: CliRunner, cli_obj: CLIContext, valid_token: StoredToken
    ) -> None:
        """Given a stored token, logout deletes it."""
        # Arrange
        cli_obj.store.write("juliahub.com", valid_token)

        # Act
        result = runner.invoke(cli, ["auth", "logout"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        assert "Local credentials cleared" in result.stdout
        assert not cli_obj.store.exists()

    def test_logout_without_record(self, runner: CliRunner, cli_obj: CLIContext) -> None:
        """Given nothing stored, reports it and exits 0."""
        # Act
        result = runner.invoke(cli, ["auth", "logout"], obj=cli_obj)

        # Assert
        assert result.exit_code == 0
        assert "No stored credentials found" in result.stdout
