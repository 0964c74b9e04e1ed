"""Authentication commands for jh CLI.

Commands:
    auth login   - Authenticate via browser (Device Flow)
    auth refresh - Refresh the stored token
    auth status  - Show authentication status
    auth env     - Print environment variables for JuliaHub tooling
    auth base64  - Print the Julia auth.toml, base64-encoded
    auth logout  - Clear stored credentials
"""

from __future__ import annotations

__all__ = ["auth"]

import base64 as base64_module
import json as json_module
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import click

from juliahub_cli.config import normalize_server
from juliahub_cli.constants import DEFAULT_SERVER
from juliahub_cli.credentials.julia_projector import render_auth_toml
from juliahub_cli.exceptions import (
    AuthenticationError,
    MalformedTokenError,
    NotAuthenticatedError,
    RefreshUnavailableError,
)
from juliahub_cli.security.auth.device_flow import (
    DeviceFlowDeniedError,
    DeviceFlowError,
    DeviceFlowExpiredError,
)
from juliahub_cli.security.auth.jwt_codec import decode_jwt, is_token_expired
from juliahub_cli.security.auth.token_parser import token_response_to_stored

from ..errors import CommandError
from ..styling import style_dim, style_label, style_success, style_warning

if TYPE_CHECKING:
    from juliahub_cli.security.auth.token_storage import StoredToken

    from ..context import CLIContext

# JuliaHub services are only reachable over HTTPS
_HTTPS_PORT = 443


def valid_token_or_exit(obj: CLIContext) -> StoredToken:
    """Return a valid stored token or abort the command.

    Raises:
        CommandError: If not logged in or the token cannot be refreshed.
    """
    try:
        return obj.lifecycle.ensure_valid()
    except NotAuthenticatedError as e:
        raise CommandError(e, "Not authenticated. Run 'jh auth login' to authenticate.") from e
    except RefreshUnavailableError as e:
        raise CommandError(e) from e
    except AuthenticationError as e:
        raise CommandError(
            e, f"Failed to refresh token: {e}\nRun 'jh auth login' to re-authenticate."
        ) from e
    except OSError as e:
        raise click.ClickException(f"Failed to save refreshed token: {e}")


@click.group()
def auth() -> None:
    """Authentication commands."""
    pass


@auth.command()
@click.option(
    "--server",
    "-s",
    default=DEFAULT_SERVER,
    show_default=True,
    help="Server to authenticate with (e.g. 'acme' for acme.juliahub.com)",
)
@click.option(
    "--no-browser",
    is_flag=True,
    help="Don't automatically open browser",
)
@click.pass_obj
def login(obj: CLIContext, server: str, no_browser: bool) -> None:
    """Authenticate via browser using Device Flow.

    Tokens are stored in ~/.juliahub and, if possible, projected into
    Julia's auth.toml for the server.
    """
    server = normalize_server(server)

    click.echo(f"Authenticating to {server}...")
    click.echo()

    try:
        response = obj.device_login(open_browser=not no_browser)(server)
    except DeviceFlowExpiredError as e:
        raise CommandError(e, "Authentication timed out. Please run 'jh auth login' again.") from e
    except DeviceFlowDeniedError as e:
        raise CommandError(e, "Authentication was denied.") from e
    except DeviceFlowError as e:
        raise CommandError(e, f"Authentication failed: {e}") from e

    token = token_response_to_stored(server, response)
    try:
        obj.store.write(server, token)
    except OSError as e:
        raise click.ClickException(f"Failed to save credentials: {e}")

    julia_synced = obj.projector.sync(server, token, create=True)

    click.echo(click.style(style_success("Authentication successful!"), bold=True))
    click.echo()
    if token.name or token.email:
        click.echo(f"  Logged in as: {token.name or token.email}")
    click.echo(f"  Token stored in: {obj.store.path}")
    if not julia_synced:
        click.echo()
        click.echo(style_warning("Julia credentials were not written. Run 'jh julia setup' to retry."))


@auth.command()
@click.pass_obj
def refresh(obj: CLIContext) -> None:
    """Refresh the stored token now."""
    try:
        token = obj.lifecycle.refresh()
    except NotAuthenticatedError as e:
        raise CommandError(e, "Not authenticated. Run 'jh auth login' to authenticate.") from e
    except AuthenticationError as e:
        raise CommandError(e, f"Failed to refresh token: {e}") from e
    except OSError as e:
        raise click.ClickException(f"Failed to save refreshed token: {e}")

    click.echo(style_success(f"Token refreshed for {token.server}"))


def _format_timestamp(value: int) -> str:
    return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _status_result(token: StoredToken) -> dict[str, Any]:
    """Build the status dict shared by the JSON and formatted outputs."""
    expired = is_token_expired(token.access_token, token.expires_in)
    result: dict[str, Any] = {
        "server": token.server,
        "authenticated": not expired,
        "status": "expired" if expired else "valid",
        "token": {
            "type": token.token_type,
            "expires_in_seconds": token.expires_in,
            "has_refresh_token": bool(token.refresh_token),
        },
        "user": {"name": token.name, "email": token.email},
    }

    try:
        claims = decode_jwt(token.access_token)
    except MalformedTokenError as e:
        result["error"] = f"Error decoding token: {e}"
        return result

    result["token"].update(
        {
            "subject": claims.sub,
            "issuer": claims.iss,
            "audience": claims.aud,
            "issued_at": _format_timestamp(claims.iat) if claims.iat else None,
            "expires_at": _format_timestamp(claims.exp) if claims.exp else None,
        }
    )
    return result


@auth.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def status(obj: CLIContext, as_json: bool) -> None:
    """Show authentication status.

    Displays the configured server, token validity and user info.
    Does not refresh the token.
    """
    try:
        token = obj.store.read()
    except NotAuthenticatedError:
        result = {
            "server": obj.store.read_server(),
            "authenticated": False,
            "status": "not_authenticated",
        }
        if as_json:
            click.echo(json_module.dumps(result, indent=2))
        else:
            click.echo(click.style("Status: Not authenticated", fg="yellow"))
            click.echo()
            click.echo("Run 'jh auth login' to authenticate.")
        return

    result = _status_result(token)
    if as_json:
        click.echo(json_module.dumps(result, indent=2))
        return

    _print_status_formatted(result)


def _print_status_formatted(result: dict[str, Any]) -> None:
    """Print auth status in human-readable format."""
    click.echo(f"{style_label('Server')} {result['server']}")

    if result["status"] == "valid":
        click.echo(click.style("Status: Valid", fg="green", bold=True))
    else:
        click.echo(click.style("Status: Expired", fg="red"))

    if "error" in result:
        click.echo(f"  {result['error']}")

    token_info = result["token"]
    click.echo()
    click.echo(click.style("Token", fg="cyan", bold=True))
    if token_info.get("subject"):
        click.echo(f"  Subject: {token_info['subject']}")
    if token_info.get("issuer"):
        click.echo(f"  Issuer: {token_info['issuer']}")
    audience = token_info.get("audience")
    if audience:
        if isinstance(audience, list):
            audience = ", ".join(audience)
        click.echo(f"  Audience: {audience}")
    if token_info.get("issued_at"):
        click.echo(f"  Issued at: {token_info['issued_at']}")
    if token_info.get("expires_at"):
        click.echo(f"  Expires at: {token_info['expires_at']}")
    if token_info.get("type"):
        click.echo(f"  Type: {token_info['type']}")
    click.echo(f"  Has refresh token: {'Yes' if token_info['has_refresh_token'] else 'No'}")

    user_info = result["user"]
    if user_info["name"] or user_info["email"]:
        click.echo()
        click.echo(click.style("User", fg="cyan", bold=True))
        if user_info["name"]:
            click.echo(f"  Name: {user_info['name']}")
        if user_info["email"]:
            click.echo(f"  Email: {user_info['email']}")

    if result["status"] != "valid":
        click.echo()
        if token_info["has_refresh_token"]:
            click.echo("Token will be refreshed automatically on next use.")
            click.echo("Or run 'jh auth refresh' to refresh it now.")
        else:
            click.echo("Run 'jh auth login' to re-authenticate.")


@auth.command()
@click.pass_obj
def env(obj: CLIContext) -> None:
    """Print environment variables for JuliaHub tooling.

    Refreshes the token first if it has expired.
    """
    token = valid_token_or_exit(obj)
    try:
        claims = decode_jwt(token.id_token)
    except MalformedTokenError as e:
        raise CommandError(e, f"Failed to decode ID token: {e}") from e

    click.echo(f"JULIAHUB_HOST={token.server}")
    click.echo(f"JULIAHUB_PORT={_HTTPS_PORT}")
    click.echo(f"JULIAHUB_ID_TOKEN={token.id_token}")
    click.echo(f"JULIAHUB_ID_TOKEN_EXPIRES={claims.exp}")
    click.echo()
    click.echo(f"INVOCATION_HOST={token.server}")
    click.echo(f"INVOCATION_PORT={_HTTPS_PORT}")
    click.echo(f"INVOCATION_USER_EMAIL={token.email}")


@auth.command("base64")
@click.pass_obj
def base64_command(obj: CLIContext) -> None:
    """Print the Julia auth.toml for the stored token, base64-encoded."""
    token = valid_token_or_exit(obj)
    try:
        content = render_auth_toml(token)
    except MalformedTokenError as e:
        raise CommandError(e, f"Failed to decode ID token: {e}") from e

    click.echo(base64_module.b64encode(content.encode("utf-8")).decode("ascii"))


@auth.command()
@click.pass_obj
def logout(obj: CLIContext) -> None:
    """Clear stored credentials.

    Removes ~/.juliahub. Julia's auth.toml files are left in place.
    """
    try:
        removed = obj.store.delete()
    except OSError as e:
        raise click.ClickException(f"Failed to clear credentials: {e}")

    if not removed:
        click.echo(style_dim("No stored credentials found."))
        return

    click.echo(style_success("Local credentials cleared."))
    click.echo()
    click.echo("Run 'jh auth login' to authenticate again.")
