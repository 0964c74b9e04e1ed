"""Shared utilities for jh."""

__all__: list[str] = []
