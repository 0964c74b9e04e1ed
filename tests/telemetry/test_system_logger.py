"""Unit tests for the system logger.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import io
import logging
import sys
from collections.abc import Iterator

import pytest

from juliahub_cli.telemetry.system.system_logger import (
    ConsoleFormatter,
    get_system_logger,
    set_system_log_level,
)


@pytest.fixture(autouse=True)
def restore_level():
    """Reset the singleton logger level after each test."""
    yield
    set_system_log_level(logging.INFO)


@pytest.fixture
def log_stream() -> Iterator[io.StringIO]:
    """Point the system logger's handler at a buffer for the test."""
    handler = get_system_logger().handlers[0]
    stream = io.StringIO()
    previous = handler.setStream(stream)
    yield stream
    handler.setStream(previous)


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_dict_message_uses_message_field(self) -> None:
        """Given a dict with message, only the message is shown."""
        # Arrange
        message = {"event": "julia_credentials_sync_failed", "message": "disk full"}
        record = logging.LogRecord("jh.system", logging.WARNING, __file__, 1, message, None, None)

        # Act & Assert
        assert ConsoleFormatter().format(record) == "WARNING: disk full"

    def test_dict_without_message_uses_event(self) -> None:
        """Given a dict without message, the event name is shown."""
        # Arrange
        record = logging.LogRecord(
            "jh.system", logging.INFO, __file__, 1, {"event": "token_refreshed"}, None, None
        )

        # Act & Assert
        assert ConsoleFormatter().format(record) == "INFO: token_refreshed"


class TestSystemLogger:
    """Tests for get_system_logger."""

    def test_singleton_has_one_stderr_handler(self) -> None:
        """Given repeated calls, the same logger with a single stderr handler is returned."""
        # Act
        logger = get_system_logger()

        # Assert
        assert get_system_logger() is logger
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        handler = logger.handlers[0]
        assert type(handler) is logging.StreamHandler
        assert handler.stream is not sys.stdout
        assert isinstance(handler.formatter, ConsoleFormatter)

    def test_warning_is_formatted_for_console(self, log_stream: io.StringIO) -> None:
        """Given a dict warning, the handler writes the level and message."""
        # Act
        get_system_logger().warning({"event": "test_event", "message": "something happened"})

        # Assert
        assert log_stream.getvalue() == "WARNING: something happened\n"

    def test_debug_hidden_until_enabled(self, log_stream: io.StringIO) -> None:
        """Given the default level, debug is hidden; set_system_log_level shows it."""
        # Arrange
        logger = get_system_logger()

        # Act
        logger.debug({"event": "hidden"})
        set_system_log_level(logging.DEBUG)
        logger.debug({"event": "shown"})

        # Assert
        output = log_stream.getvalue()
        assert "hidden" not in output
        assert "DEBUG: shown" in output
