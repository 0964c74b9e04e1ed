"""Telemetry domain: operational logging.

Structure:
    system/         System operational logs (stderr)
"""

__all__: list[str] = []
