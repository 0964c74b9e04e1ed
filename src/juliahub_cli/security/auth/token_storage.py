"""Primary token store for jh (~/.juliahub).

The store holds exactly one credential record as line-oriented key=value
text. It is shared with other JuliaHub tooling, so the format is fixed:

    server=juliahub.com
    access_token=...
    token_type=bearer
    refresh_token=...
    expires_in=86400
    id_token=...
    name=Jane Doe
    email=jane@example.com

Credentials are stored in cleartext with owner-only permissions. Every write
fully replaces the file (no merging), so partial updates must go through
TokenLifecycle, which reads, modifies and writes the whole record.
"""

from __future__ import annotations

__all__ = [
    "StoredToken",
    "TokenStore",
]

from typing import TYPE_CHECKING

from pydantic import BaseModel

from juliahub_cli.exceptions import NoStoredTokenError
from juliahub_cli.utils.file_helpers import atomic_write_text, set_secure_permissions

if TYPE_CHECKING:
    from pathlib import Path

    from juliahub_cli.config import JuliaHubConfig

# Field order on disk
_FIELDS: tuple[str, ...] = (
    "access_token",
    "token_type",
    "refresh_token",
    "expires_in",
    "id_token",
    "name",
    "email",
)


class StoredToken(BaseModel):
    """The single persisted credential.

    Attributes:
        access_token: Bearer token for API calls.
        refresh_token: Token for obtaining new access tokens ("" if none).
        id_token: OIDC ID token (JWT with identity claims).
        token_type: Usually "bearer".
        expires_in: Lifetime in seconds as reported at issuance (not absolute).
        server: Server this credential is scoped to.
        name: Display name copied from the ID token.
        email: Email copied from the ID token.
    """

    access_token: str
    refresh_token: str = ""
    id_token: str = ""
    token_type: str = ""
    expires_in: int = 0
    server: str
    name: str = ""
    email: str = ""

    def to_config_text(self) -> str:
        """Serialize to the store's key=value format (empty fields omitted)."""
        lines = [f"server={self.server}"]
        for field in _FIELDS:
            value = getattr(self, field)
            if value:
                lines.append(f"{field}={value}")
        return "\n".join(lines) + "\n"


def _parse_config_lines(content: str) -> dict[str, str]:
    """Parse key=value lines, splitting on the first '='. Blank and '='-less lines are skipped."""
    values: dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line:
            continue
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value
    return values


def _parse_int(value: str | None) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


class TokenStore:
    """Line-oriented key=value store for the single active credential.

    Usage:
        store = TokenStore(config)
        store.write("juliahub.com", token)
        token = store.read()
    """

    def __init__(self, config: "JuliaHubConfig") -> None:
        """Initialize token store.

        Args:
            config: Configuration providing config_path and default_server.
        """
        self._path = config.config_path
        self._default_server = config.default_server

    @property
    def path(self) -> "Path":
        return self._path

    def exists(self) -> bool:
        """Check if the store file exists."""
        return self._path.exists()

    def _read_values(self) -> dict[str, str]:
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NoStoredTokenError(
                f"No credentials found at {self._path}. Run 'jh auth login' first."
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise NoStoredTokenError(f"Could not read credentials at {self._path}: {e}") from e
        return _parse_config_lines(content)

    def read(self) -> StoredToken:
        """Load the stored credential.

        Unknown lines are ignored. A missing server falls back to the default.

        Returns:
            StoredToken read from disk.

        Raises:
            NoStoredTokenError: If the file is absent, unreadable or has no
                access_token.
        """
        values = self._read_values()

        access_token = values.get("access_token", "")
        if not access_token:
            raise NoStoredTokenError(
                f"No access token found in {self._path}. Run 'jh auth login' first."
            )

        return StoredToken(
            access_token=access_token,
            refresh_token=values.get("refresh_token", ""),
            id_token=values.get("id_token", ""),
            token_type=values.get("token_type", ""),
            expires_in=_parse_int(values.get("expires_in")),
            server=values.get("server") or self._default_server,
            name=values.get("name", ""),
            email=values.get("email", ""),
        )

    def write(self, server: str, token: StoredToken) -> None:
        """Replace the stored record with token, scoped to server.

        Args:
            server: Server the credential belongs to (overrides token.server).
            token: Credential to persist.

        Raises:
            OSError: If the file cannot be written.
        """
        record = token.model_copy(update={"server": server})
        self._path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_text(self._path, record.to_config_text())
        set_secure_permissions(self._path)

    def read_server(self) -> str:
        """Return the configured server, or the default if none is stored."""
        try:
            values = self._read_values()
        except NoStoredTokenError:
            return self._default_server
        return values.get("server") or self._default_server

    def delete(self) -> bool:
        """Remove the whole record.

        Returns:
            True if a file was removed, False if none existed.
        """
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        return True
