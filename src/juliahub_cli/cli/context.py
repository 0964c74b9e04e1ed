"""Shared objects for CLI commands.

Builds the token store, credential projector and token lifecycle once per
invocation from a JuliaHubConfig and hands them to commands through click's
context object (`@click.pass_obj`).
"""

from __future__ import annotations

__all__ = [
    "CLIContext",
    "device_login",
]

import webbrowser
from collections.abc import Callable
from dataclasses import dataclass, field

import click
import httpx

from juliahub_cli.config import JuliaHubConfig
from juliahub_cli.credentials.julia_projector import JuliaCredentialProjector
from juliahub_cli.security.auth.device_flow import run_device_flow
from juliahub_cli.security.auth.token_lifecycle import TokenLifecycle
from juliahub_cli.security.auth.token_parser import TokenResponse
from juliahub_cli.security.auth.token_storage import TokenStore


@dataclass
class CLIContext:
    """Components shared by all commands of one invocation.

    Attributes:
        config: Resolved configuration.
        store: Primary token store.
        projector: Julia credential projector.
        lifecycle: Token validity/refresh.
        http_client: Optional client injected into auth requests (tests).
    """

    config: JuliaHubConfig
    store: TokenStore
    projector: JuliaCredentialProjector
    lifecycle: TokenLifecycle
    http_client: httpx.Client | None = field(default=None)

    @classmethod
    def from_config(
        cls,
        config: JuliaHubConfig,
        http_client: httpx.Client | None = None,
    ) -> "CLIContext":
        """Wire components for config."""
        store = TokenStore(config)
        projector = JuliaCredentialProjector(config)
        lifecycle = TokenLifecycle(config, store, projector, http_client=http_client)
        return cls(
            config=config,
            store=store,
            projector=projector,
            lifecycle=lifecycle,
            http_client=http_client,
        )

    def device_login(
        self, *, err: bool = False, open_browser: bool = False
    ) -> Callable[[str], TokenResponse]:
        """Device-flow runner bound to this context.

        Args:
            err: Print instructions on stderr (required inside git's protocol).
            open_browser: Try to open the verification URL automatically.
        """
        return lambda server: device_login(
            server, err=err, open_browser=open_browser, http_client=self.http_client
        )


def device_login(
    server: str,
    *,
    err: bool = False,
    open_browser: bool = False,
    http_client: httpx.Client | None = None,
) -> TokenResponse:
    """Run the device flow for server, printing instructions for the user.

    Args:
        server: Normalized server name.
        err: Print to stderr instead of stdout.
        open_browser: Try to open the verification URL automatically.
        http_client: Optional httpx client (for testing).

    Returns:
        TokenResponse issued by the server.

    Raises:
        DeviceFlowError: If authentication fails.
    """

    def display_callback(verification_uri: str, user_code: str) -> None:
        click.echo(f"Go to {verification_uri} and authorize this device", err=err)
        click.echo(f"  Your code: {click.style(user_code, fg='green', bold=True)}", err=err)

        if open_browser:
            try:
                webbrowser.open(verification_uri)
            except (OSError, webbrowser.Error) as e:
                click.echo(f"  (Could not open browser automatically: {e})", err=err)

        click.echo("Waiting for authorization", nl=False, err=err)

    def poll_callback() -> None:
        click.echo(".", nl=False, err=err)

    try:
        return run_device_flow(
            server,
            display_callback=display_callback,
            poll_callback=poll_callback,
            http_client=http_client,
        )
    finally:
        click.echo(err=err)  # Newline after dots
