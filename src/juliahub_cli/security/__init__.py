"""Security module for authentication and credential handling.

This module provides:
- Authentication: JWT parsing, token storage, device flow, refresh (security/auth/)

Note: Exceptions are defined in juliahub_cli.exceptions
"""

__all__: list[str] = []
