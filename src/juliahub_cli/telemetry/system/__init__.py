"""System operational logging.

Provides the system logger for operational events that are not command
output (credential sync failures, refreshes, warnings).
"""

from juliahub_cli.telemetry.system.system_logger import (
    ConsoleFormatter,
    get_system_logger,
    set_system_log_level,
)

__all__ = [
    "ConsoleFormatter",
    "get_system_logger",
    "set_system_log_level",
]
