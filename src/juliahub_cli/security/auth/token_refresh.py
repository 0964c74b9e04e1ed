"""Token refresh for OAuth refresh_token grant.

When the access token expires, use the refresh token to obtain new tokens
without requiring user interaction.

Flow:
1. Access token expires
2. Call refresh_tokens() with refresh_token
3. Get new access_token (and usually a rotated refresh_token)
4. TokenLifecycle merges and stores the result
"""

from __future__ import annotations

__all__ = ["refresh_tokens"]

import httpx
from pydantic import ValidationError

from juliahub_cli.config import get_token_url
from juliahub_cli.constants import (
    OAUTH_CLIENT_ID,
    OAUTH_CLIENT_TIMEOUT_SECONDS,
    REFRESH_TOKEN_GRANT_TYPE,
)
from juliahub_cli.exceptions import RefreshFailedError
from juliahub_cli.security.auth.token_parser import TokenResponse


def refresh_tokens(
    server: str,
    refresh_token: str,
    http_client: httpx.Client | None = None,
    timeout_seconds: float = OAUTH_CLIENT_TIMEOUT_SECONDS,
) -> TokenResponse:
    """Refresh access token using refresh_token grant.

    Args:
        server: JuliaHub server the refresh token was issued for.
        refresh_token: Stored refresh token.
        http_client: Optional httpx client (for testing).
        timeout_seconds: Request timeout for an owned client.

    Returns:
        TokenResponse with a new access_token.

    Raises:
        RefreshFailedError: On transport errors, non-2xx responses, an OAuth
            error in the body, or a body without access_token.
    """
    client = http_client or httpx.Client(timeout=timeout_seconds)
    owns_client = http_client is None

    try:
        response = client.post(
            get_token_url(server),
            data={
                "client_id": OAUTH_CLIENT_ID,
                "grant_type": REFRESH_TOKEN_GRANT_TYPE,
                "refresh_token": refresh_token,
            },
        )

        if not response.is_success:
            raise RefreshFailedError(
                f"Failed to refresh token (status {response.status_code}): {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RefreshFailedError(f"Failed to refresh token: invalid JSON response: {e}") from e

        if not isinstance(data, dict):
            raise RefreshFailedError("Failed to refresh token: unexpected response body")

        try:
            token_response = TokenResponse.from_response(data)
        except ValidationError as e:
            raise RefreshFailedError(
                f"Failed to refresh token: invalid token fields in response: {e}"
            ) from e

        if token_response.error:
            raise RefreshFailedError(f"Failed to refresh token: {token_response.error}")

        if not token_response.access_token:
            raise RefreshFailedError("No access token in refresh response")

        return token_response

    except httpx.HTTPError as e:
        raise RefreshFailedError(f"HTTP error during token refresh: {e}") from e

    finally:
        if owns_client:
            client.close()
