"""Command failure reporting.

Turns a JuliaHubError into a click exception so every command ends the same
way: the failure is logged with its failure_type, a styled message goes to
stderr and the process exits with the error's exit_code.

Usage:
    try:
        token = obj.lifecycle.ensure_valid()
    except RefreshFailedError as e:
        raise CommandError(e, f"Failed to refresh token: {e}") from e
"""

from __future__ import annotations

__all__ = ["CommandError"]

from typing import IO, Any

import click

from juliahub_cli.exceptions import JuliaHubError
from juliahub_cli.telemetry.system.system_logger import get_system_logger

from .styling import style_error

_system_logger = get_system_logger()


class CommandError(click.ClickException):
    """Click exception carrying the exit code and failure type of a JuliaHubError.

    Attributes:
        error: The underlying JuliaHubError.
        failure_type: Category copied from the error.
        exit_code: Process exit code copied from the error.
    """

    def __init__(self, error: JuliaHubError, message: str | None = None) -> None:
        super().__init__(message or str(error))
        self.error = error
        self.failure_type = error.failure_type
        self.exit_code = error.exit_code

    def show(self, file: IO[Any] | None = None) -> None:
        """Log the failure and print the message to stderr."""
        _system_logger.debug(
            {
                "event": "command_failed",
                "message": f"{self.failure_type}: {self.error}",
                "failure_type": self.failure_type,
                "error_type": type(self.error).__name__,
                "exit_code": self.exit_code,
            }
        )
        if file is None:
            file = click.get_text_stream("stderr")
        click.echo(style_error(self.format_message()), file=file)
