"""Token validity and refresh for the stored credential.

TokenLifecycle is the single entry point for "give me a valid token". The
common path is a file read plus a local expiry check; the network is only
touched when the access token has expired.

Concurrent CLI invocations (e.g. git's credential helper racing a manual
'jh auth refresh') are serialized by an advisory lock around the
read-modify-write. After acquiring the lock the store is re-read, so the
second process reuses the first one's refreshed token instead of spending
the (rotated) refresh token again.
"""

from __future__ import annotations

__all__ = [
    "TokenLifecycle",
    "merge_refreshed_token",
]

from typing import TYPE_CHECKING

import httpx

from juliahub_cli.exceptions import RefreshUnavailableError
from juliahub_cli.security.auth.jwt_codec import is_token_expired
from juliahub_cli.security.auth.token_parser import TokenResponse, apply_identity_claims
from juliahub_cli.security.auth.token_refresh import refresh_tokens
from juliahub_cli.security.auth.token_storage import StoredToken, TokenStore
from juliahub_cli.telemetry.system.system_logger import get_system_logger
from juliahub_cli.utils.file_helpers import file_lock

if TYPE_CHECKING:
    from juliahub_cli.config import JuliaHubConfig
    from juliahub_cli.credentials.julia_projector import JuliaCredentialProjector

_system_logger = get_system_logger()


def merge_refreshed_token(stored: StoredToken, response: TokenResponse) -> StoredToken:
    """Build the record that replaces stored after a refresh.

    Tokens, token type and expires_in are replaced. The refresh token is kept
    when the server does not rotate it. server is never changed, and name and
    email are only overwritten by claims present in the new ID token.
    """
    merged = stored.model_copy(
        update={
            "access_token": response.access_token,
            "refresh_token": response.refresh_token or stored.refresh_token,
            "id_token": response.id_token,
            "token_type": response.token_type,
            "expires_in": response.expires_in,
        }
    )
    return apply_identity_claims(merged, response.id_token)


class TokenLifecycle:
    """Keeps the stored credential valid.

    Usage:
        lifecycle = TokenLifecycle(config, store, projector)
        token = lifecycle.ensure_valid()
        headers = {"Authorization": f"Bearer {token.id_token}"}
    """

    def __init__(
        self,
        config: "JuliaHubConfig",
        store: TokenStore,
        projector: "JuliaCredentialProjector | None" = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize token lifecycle.

        Args:
            config: Configuration (lock path, HTTP timeout).
            store: Primary token store.
            projector: Julia credential projector re-synced after refresh.
            http_client: Optional httpx client (for testing).
        """
        self._config = config
        self._store = store
        self._projector = projector
        self._http_client = http_client

    def ensure_valid(self) -> StoredToken:
        """Return a non-expired stored token, refreshing it if needed.

        Returns:
            The stored token, or its refreshed replacement.

        Raises:
            NotAuthenticatedError: If no token is stored (NoStoredTokenError).
            RefreshUnavailableError: If expired with no refresh token.
            RefreshFailedError: If the refresh exchange fails.
        """
        token = self._store.read()
        if not is_token_expired(token.access_token, token.expires_in):
            return token

        _require_refresh_token(token)

        with file_lock(self._config.lock_path):
            # Another process may have refreshed while we waited for the lock
            token = self._store.read()
            if not is_token_expired(token.access_token, token.expires_in):
                return token
            _require_refresh_token(token)
            return self._refresh_locked(token)

    def refresh(self) -> StoredToken:
        """Refresh the stored token unconditionally ('jh auth refresh').

        Raises:
            NotAuthenticatedError: If no token is stored.
            RefreshUnavailableError: If no refresh token is stored.
            RefreshFailedError: If the refresh exchange fails.
        """
        with file_lock(self._config.lock_path):
            token = self._store.read()
            _require_refresh_token(token)
            return self._refresh_locked(token)

    def _refresh_locked(self, token: StoredToken) -> StoredToken:
        _system_logger.debug(
            {"event": "token_refresh_started", "message": f"Refreshing token for {token.server}"}
        )
        response = refresh_tokens(
            token.server,
            token.refresh_token,
            http_client=self._http_client,
            timeout_seconds=self._config.http_timeout_seconds,
        )
        updated = merge_refreshed_token(token, response)
        self._store.write(token.server, updated)

        _system_logger.debug(
            {"event": "token_refreshed", "message": f"Token refreshed for {token.server}"}
        )

        if self._projector is not None:
            self._projector.sync(token.server, updated)

        return updated


def _require_refresh_token(token: StoredToken) -> None:
    if not token.refresh_token:
        raise RefreshUnavailableError(
            "Access token expired and no refresh token available. "
            "Run 'jh auth login' to re-authenticate."
        )
