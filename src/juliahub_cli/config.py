"""Runtime configuration for jh.

The "current identity" (which server the user is logged into and where its
credentials live) is carried by an explicit JuliaHubConfig object that is
passed to every component constructor instead of being read from globals.

Example usage:
    config = JuliaHubConfig.from_environment()
    store = TokenStore(config)
"""

from __future__ import annotations

__all__ = [
    "JuliaHubConfig",
    "get_auth_host",
    "get_device_code_url",
    "get_token_url",
    "normalize_server",
    "resolve_julia_depot",
]

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from juliahub_cli.constants import (
    AUTH_HOST_OVERRIDES,
    CONFIG_FILENAME,
    DEFAULT_JULIA_DEPOT_DIRNAME,
    DEFAULT_SERVER,
    DEVICE_CODE_PATH,
    JULIA_DEPOT_PATH_ENV,
    LOCK_FILENAME,
    OAUTH_CLIENT_TIMEOUT_SECONDS,
    PRIMARY_DOMAIN,
    TOKEN_PATH,
)


class JuliaHubConfig(BaseModel):
    """Filesystem locations and defaults for one user.

    Attributes:
        home: User home directory.
        config_path: Primary config store (~/.juliahub).
        lock_path: Advisory lock guarding token refresh.
        depot_path: Julia depot that receives servers/<server>/auth.toml.
        default_server: Server used when none is configured.
        http_timeout_seconds: Timeout for requests to the auth server.
    """

    home: Path
    config_path: Path
    lock_path: Path
    depot_path: Path
    default_server: str = DEFAULT_SERVER
    http_timeout_seconds: float = Field(default=OAUTH_CLIENT_TIMEOUT_SECONDS, gt=0)

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
    ) -> "JuliaHubConfig":
        """Build configuration from the process environment.

        Args:
            environ: Environment mapping (defaults to os.environ).
            home: Home directory (defaults to Path.home()).

        Returns:
            JuliaHubConfig with paths resolved.
        """
        env = os.environ if environ is None else environ
        home_dir = home if home is not None else Path.home()
        return cls(
            home=home_dir,
            config_path=home_dir / CONFIG_FILENAME,
            lock_path=home_dir / LOCK_FILENAME,
            depot_path=resolve_julia_depot(env.get(JULIA_DEPOT_PATH_ENV), home_dir),
        )


def resolve_julia_depot(depot_path_env: str | None, home: Path) -> Path:
    """Resolve the Julia depot that receives credential files.

    JULIA_DEPOT_PATH may list several depots separated by os.pathsep; only the
    first non-empty entry is used. Falls back to ~/.julia.

    Args:
        depot_path_env: Raw JULIA_DEPOT_PATH value (may be None or empty).
        home: User home directory.

    Returns:
        Path to the depot directory.
    """
    if depot_path_env:
        for entry in depot_path_env.split(os.pathsep):
            if entry.strip():
                return Path(entry.strip()).expanduser()
    return home / DEFAULT_JULIA_DEPOT_DIRNAME


def normalize_server(server: str) -> str:
    """Expand a short server name into a full host.

    "acme" becomes "acme.juliahub.com"; names that already end in .com or
    .dev are returned unchanged.
    """
    server = server.strip()
    if server.endswith(".com") or server.endswith(".dev"):
        return server
    return f"{server}.{PRIMARY_DOMAIN}"


def get_auth_host(server: str) -> str:
    """Host serving the Dex endpoints for a server."""
    return AUTH_HOST_OVERRIDES.get(server, server)


def get_device_code_url(server: str) -> str:
    return f"https://{get_auth_host(server)}{DEVICE_CODE_PATH}"


def get_token_url(server: str) -> str:
    return f"https://{get_auth_host(server)}{TOKEN_PATH}"
