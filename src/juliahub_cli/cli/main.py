"""Main CLI entry point for jh.

Defines the CLI group and registers all subcommands.

Commands:
    auth           - Authentication (login, refresh, status, env, base64, logout)
    git-credential - Git credential helper (get, store, erase, setup)
    julia          - Julia integration (setup, run)

Subcommand help:
    jh COMMAND -h         Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli"]

import logging
import sys

import click

from juliahub_cli import __version__
from juliahub_cli.config import JuliaHubConfig
from juliahub_cli.constants import APP_NAME
from juliahub_cli.telemetry.system.system_logger import set_system_log_level

from .commands.auth import auth
from .commands.git_credential import git_credential
from .commands.julia import julia
from .context import CLIContext


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  jh auth login                    Authenticate with juliahub.com
  jh auth login -s acme            Authenticate with acme.juliahub.com
  jh git-credential setup          Let git use your JuliaHub credentials
  jh julia run -- -e 'using Pkg'   Run Julia against the JuliaHub package server
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option("--debug", is_flag=True, help="Show debug logging on stderr")
@click.pass_context
def cli(ctx: click.Context, version: bool, debug: bool) -> None:
    """jh: command-line client for JuliaHub."""
    if version:
        click.echo(f"{APP_NAME} {__version__}")
        sys.exit(0)
    if debug:
        set_system_log_level(logging.DEBUG)
    if ctx.obj is None:
        ctx.obj = CLIContext.from_config(JuliaHubConfig.from_environment())
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(auth)
cli.add_command(git_credential)
cli.add_command(julia)


def main() -> None:
    """CLI entry point."""
    cli()
