"""Command-line interface for jh.

Provides commands for authenticating against JuliaHub and wiring the stored
credential into git and Julia.
"""

from .main import cli, main

__all__ = ["cli", "main"]
