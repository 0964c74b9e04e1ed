"""System logger for operational events.

This module provides a singleton system logger for operational events that
are not command output (e.g. credential file sync failures, token refreshes,
missing refresh tokens).

Logging strategy:
- Console (stderr) only: stdout is reserved for command output, and for
  'jh git-credential get' it carries the git protocol itself.
- INFO and above by default; 'jh --debug' lowers the level to DEBUG.
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "get_system_logger",
    "set_system_log_level",
]

import logging
import sys

from juliahub_cli.constants import APP_NAME


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output.

    Extracts 'message' or 'event' field from dict messages for cleaner stderr output.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human-readable console output.

        Args:
            record: The log record to format.

        Returns:
            str: Formatted log message with level prefix.
        """
        if isinstance(record.msg, dict):
            msg = record.msg.get("message") or record.msg.get("event", "")
            return f"{record.levelname}: {msg}"
        return f"{record.levelname}: {record.getMessage()}"


# Module-level singleton logger - created on first use
_system_logger: logging.Logger | None = None


def get_system_logger() -> logging.Logger:
    """Get the singleton system logger instance.

    Creates the logger on first call with a stderr handler.

    Returns:
        logging.Logger: Configured system logger instance.

    Example:
        >>> logger = get_system_logger()
        >>> logger.warning({"event": "julia_sync_failed", "message": "..."})
        # Logged to stderr
    """
    global _system_logger

    if _system_logger is not None:
        return _system_logger

    _system_logger = logging.getLogger(f"{APP_NAME}.system")
    _system_logger.setLevel(logging.INFO)
    _system_logger.propagate = False

    for handler in _system_logger.handlers:
        handler.close()
    _system_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.DEBUG)
    stderr_handler.setFormatter(ConsoleFormatter())
    _system_logger.addHandler(stderr_handler)

    return _system_logger


def set_system_log_level(level: int) -> None:
    """Change the system logger level (e.g. logging.DEBUG for --debug)."""
    get_system_logger().setLevel(level)
