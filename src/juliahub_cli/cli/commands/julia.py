"""Julia integration commands for jh CLI.

Commands:
    julia setup - Write Julia's auth.toml for the configured server
    julia run   - Run julia against the JuliaHub package server
"""

from __future__ import annotations

__all__ = ["julia"]

import os
import shutil
import subprocess
import sys
from typing import TYPE_CHECKING

import click

from juliahub_cli.exceptions import ProjectionFailedError

from ..errors import CommandError
from ..styling import style_success
from .auth import valid_token_or_exit

if TYPE_CHECKING:
    from pathlib import Path

    from juliahub_cli.security.auth.token_storage import StoredToken

    from ..context import CLIContext


def _setup_credentials(obj: CLIContext) -> tuple[StoredToken, Path]:
    token = valid_token_or_exit(obj)
    try:
        path = obj.projector.setup(token.server, token)
    except ProjectionFailedError as e:
        raise CommandError(e) from e
    return token, path


@click.group()
def julia() -> None:
    """Julia integration commands."""
    pass


@julia.command()
@click.pass_obj
def setup(obj: CLIContext) -> None:
    """Write Julia credentials for the configured server.

    Creates <depot>/servers/<server>/auth.toml so Julia's package manager
    can authenticate against JuliaHub.
    """
    token, path = _setup_credentials(obj)
    click.echo(style_success(f"Julia credentials for {token.server} written to {path}"))


@julia.command(context_settings={"ignore_unknown_options": True})
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
def run(obj: CLIContext, args: tuple[str, ...]) -> None:
    """Run julia with JuliaHub as the package server.

    Credentials are set up first. Arguments after 'run' are passed to julia
    unchanged; julia's exit code is propagated.
    """
    julia_executable = shutil.which("julia")
    if julia_executable is None:
        raise click.ClickException(
            "julia is not installed or not in PATH. Install it from https://julialang.org/downloads/"
        )

    token, _ = _setup_credentials(obj)

    env = os.environ.copy()
    env["JULIA_PKG_SERVER"] = f"https://{token.server}"
    env["JULIA_PKG_USE_CLI_GIT"] = "true"

    try:
        completed = subprocess.run([julia_executable, *args], env=env)
    except OSError as e:
        raise click.ClickException(f"Failed to start julia: {e}")

    sys.exit(completed.returncode)
