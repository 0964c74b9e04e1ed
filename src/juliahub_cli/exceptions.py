"""Custom exceptions for jh.

This module contains the base exceptions used throughout the package.
Flow-specific subclasses live next to the code that raises them
(device_flow.py, token_refresh.py).

Hierarchy:
    JuliaHubError
    ├── MalformedTokenError: JWT cannot be parsed (treated as expired)
    ├── AuthenticationError: base for anything that blocks authentication
    │   ├── NotAuthenticatedError: no usable credential on disk
    │   │   └── NoStoredTokenError: store file absent or missing access_token
    │   ├── RefreshUnavailableError: expired token without refresh token
    │   └── RefreshFailedError: refresh exchange failed
    ├── ProjectionFailedError: writing an external credential file failed
    └── GitCredentialError: git configuration for the helper failed

Usage:
    from juliahub_cli.exceptions import AuthenticationError, NoStoredTokenError
"""

from __future__ import annotations

__all__ = [
    "AuthenticationError",
    "GitCredentialError",
    "JuliaHubError",
    "MalformedTokenError",
    "NoStoredTokenError",
    "NotAuthenticatedError",
    "ProjectionFailedError",
    "RefreshFailedError",
    "RefreshUnavailableError",
]


class JuliaHubError(Exception):
    """Base exception for all jh failures.

    Attributes:
        exit_code: Process exit code when the error ends a command.
        failure_type: Category string for structured logging.
    """

    exit_code: int = 1
    failure_type: str = "unknown"


class MalformedTokenError(JuliaHubError, ValueError):
    """Token is not a decodable three-segment JWT.

    Never fatal on its own: expiry checks treat it as "expired".
    """

    failure_type = "malformed_token"


class AuthenticationError(JuliaHubError):
    """Authentication failed or cannot proceed.

    Raised when:
    - No token is stored (user not logged in)
    - The device flow is denied, expires or errors
    - The access token expired and cannot be refreshed
    """

    failure_type = "authentication_failure"


class NotAuthenticatedError(AuthenticationError):
    """No usable credential is available; the user must log in."""

    failure_type = "not_authenticated"


class NoStoredTokenError(NotAuthenticatedError):
    """The primary config store is absent or has no access token."""

    failure_type = "no_stored_token"


class RefreshUnavailableError(AuthenticationError):
    """Access token expired and no refresh token is stored."""

    failure_type = "refresh_unavailable"


class RefreshFailedError(AuthenticationError):
    """The refresh-token exchange failed (network, HTTP status or OAuth error)."""

    failure_type = "refresh_failed"


class ProjectionFailedError(JuliaHubError):
    """Writing an external credential file failed.

    Only surfaced when the user explicitly asked for the file to be written
    (e.g. 'jh julia setup'). Implicit syncs log and swallow it.
    """

    failure_type = "projection_failed"


class GitCredentialError(JuliaHubError):
    """Registering the git credential helper failed."""

    failure_type = "git_credential_failure"
