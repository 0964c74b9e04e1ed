"""Projection of the stored credential into Julia's per-server auth.toml.

Julia's package manager reads `<depot>/servers/<server>/auth.toml` to
authenticate against a JuliaHub package server and refreshes it itself
using `refresh_url`. The file is derived entirely from the StoredToken; jh
is its only writer.

Writes are atomic: content goes to a temp file in the same directory, which
is then renamed over auth.toml. A reader sees either the old file or the
new one, never a partial write.

Update-vs-create policy:
- After refresh: only existing files are updated (a missing file means the
  user never set Julia up for that server).
- After login: the file is created, errors are logged only.
- 'jh julia setup': the file is created and errors are raised.
"""

from __future__ import annotations

__all__ = [
    "JuliaCredentialProjector",
    "render_auth_toml",
]

from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w

from juliahub_cli.config import get_token_url
from juliahub_cli.constants import JULIA_AUTH_FILENAME
from juliahub_cli.exceptions import MalformedTokenError, ProjectionFailedError
from juliahub_cli.security.auth.jwt_codec import decode_jwt
from juliahub_cli.telemetry.system.system_logger import get_system_logger
from juliahub_cli.utils.file_helpers import atomic_write_text, ensure_secure_directory

if TYPE_CHECKING:
    from juliahub_cli.config import JuliaHubConfig
    from juliahub_cli.security.auth.token_storage import StoredToken

_system_logger = get_system_logger()


def render_auth_toml(token: "StoredToken") -> str:
    """Render the auth.toml content for token.

    Expiry and username come from the ID token's exp and
    preferred_username claims.

    Args:
        token: Credential to project.

    Returns:
        TOML text with the fixed key order Julia expects.

    Raises:
        MalformedTokenError: If the ID token cannot be decoded.
    """
    claims = decode_jwt(token.id_token)
    document: dict[str, Any] = {
        "expires_at": claims.exp,
        "id_token": token.id_token,
        "access_token": token.access_token,
        "refresh_token": token.refresh_token,
        "refresh_url": get_token_url(token.server),
        "expires_in": token.expires_in,
        "user_email": token.email,
        "expires": claims.exp,
        "user_name": claims.preferred_username,
        "name": token.name,
    }
    return tomli_w.dumps(document)


class JuliaCredentialProjector:
    """Writes Julia auth.toml files from the stored credential.

    Usage:
        projector = JuliaCredentialProjector(config)
        projector.setup(token.server, token)          # explicit, raises
        projector.sync(token.server, token)           # after refresh, best-effort
    """

    def __init__(self, config: "JuliaHubConfig") -> None:
        """Initialize projector.

        Args:
            config: Configuration providing the Julia depot path.
        """
        self._depot_path = config.depot_path

    def auth_file_path(self, server: str) -> Path:
        """Path of the auth.toml for server."""
        return self._depot_path / "servers" / server / JULIA_AUTH_FILENAME

    def sync(
        self,
        server: str,
        token: "StoredToken",
        *,
        create: bool = False,
        strict: bool = False,
    ) -> bool:
        """Write the auth.toml for server.

        Args:
            server: Server whose file is written.
            token: Credential to project.
            create: Create the file if it doesn't exist yet.
            strict: Raise ProjectionFailedError instead of logging failures.

        Returns:
            True if the file was written, False if skipped or failed.

        Raises:
            ProjectionFailedError: Only when strict is True.
        """
        target = self.auth_file_path(server)
        if not create and not target.exists():
            return False

        try:
            content = render_auth_toml(token.model_copy(update={"server": server}))
            ensure_secure_directory(target.parent)
            atomic_write_text(target, content, prefix=f".{JULIA_AUTH_FILENAME}.")
        except (MalformedTokenError, OSError) as e:
            if strict:
                raise ProjectionFailedError(
                    f"Failed to write Julia credentials to {target}: {e}"
                ) from e
            _system_logger.warning(
                {
                    "event": "julia_credentials_sync_failed",
                    "message": f"Failed to update Julia credentials at {target}: {e}",
                    "server": server,
                }
            )
            return False

        _system_logger.debug(
            {"event": "julia_credentials_synced", "message": f"Updated {target}", "server": server}
        )
        return True

    def setup(self, server: str, token: "StoredToken") -> Path:
        """Create or overwrite the auth.toml for server ('jh julia setup').

        Returns:
            Path of the written file.

        Raises:
            ProjectionFailedError: If the file cannot be written.
        """
        self.sync(server, token, create=True, strict=True)
        return self.auth_file_path(server)
