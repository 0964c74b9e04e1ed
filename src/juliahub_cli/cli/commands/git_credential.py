"""Git credential helper commands for jh CLI.

Commands:
    git-credential get   - Answer git's credential request (called by git)
    git-credential store - No-op (called by git)
    git-credential erase - No-op (called by git)
    git-credential setup - Register jh as git's helper for JuliaHub hosts

stdout belongs to git's protocol in 'get'; everything else goes to stderr.
"""

from __future__ import annotations

__all__ = ["git_credential"]

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from juliahub_cli.credentials.git_helper import GitCredentialHelper, setup_git_credential_helper
from juliahub_cli.exceptions import GitCredentialError
from juliahub_cli.security.auth.device_flow import DeviceFlowError

from ..errors import CommandError
from ..styling import style_dim, style_success

if TYPE_CHECKING:
    from ..context import CLIContext


def _helper(obj: CLIContext) -> GitCredentialHelper:
    return GitCredentialHelper(
        obj.store,
        obj.lifecycle,
        obj.device_login(err=True),
        projector=obj.projector,
    )


@click.group("git-credential")
def git_credential() -> None:
    """Git credential helper for JuliaHub."""
    pass


@git_credential.command()
@click.pass_obj
def get(obj: CLIContext) -> None:
    """Print credentials for a JuliaHub host (git protocol)."""
    try:
        _helper(obj).get(
            click.get_text_stream("stdin"),
            click.get_text_stream("stdout"),
            click.get_text_stream("stderr"),
        )
    except DeviceFlowError as e:
        raise CommandError(e, f"Authentication failed: {e}") from e
    except OSError as e:
        raise click.ClickException(f"Failed to save credentials: {e}")


@git_credential.command()
@click.pass_obj
def store(obj: CLIContext) -> None:
    """Accept a credential from git (ignored)."""
    _helper(obj).store(click.get_text_stream("stdin"))


@git_credential.command()
@click.pass_obj
def erase(obj: CLIContext) -> None:
    """Accept an erase request from git (ignored)."""
    _helper(obj).erase(click.get_text_stream("stdin"))


@git_credential.command()
@click.pass_obj
def setup(obj: CLIContext) -> None:
    """Configure git to use jh for JuliaHub hosts.

    Sets credential.https://<domain>.helper in the global git config for
    juliahub.com, *.juliahub.com and the configured server.
    """
    executable = str(Path(sys.argv[0]).resolve())
    try:
        domains = setup_git_credential_helper(executable, obj.store.read_server())
    except GitCredentialError as e:
        raise CommandError(e) from e

    for domain in domains:
        click.echo(style_success(f"Configured credential helper for {domain}"))
    click.echo(style_dim(f"  helper: {executable} git-credential"))
