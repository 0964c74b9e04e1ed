"""Unit tests for the refresh-token exchange.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from juliahub_cli.exceptions import RefreshFailedError
from juliahub_cli.security.auth.token_refresh import refresh_tokens


def _response(data: object, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.text = str(data)
    response.json.return_value = data
    return response


class TestRefreshTokens:
    """Tests for refresh_tokens."""

    def test_posts_refresh_grant_to_token_endpoint(self) -> None:
        """Given a refresh token, posts the refresh grant with client_id=device."""
        # Arrange
        mock_client = MagicMock(spec=httpx.Client)
        mock_client.post.return_value = _response(
            {"access_token": "new-access", "refresh_token": "new-refresh", "expires_in": 3600}
        )

        # Act
        result = refresh_tokens("juliahub.com", "old-refresh", http_client=mock_client)

        # Assert
        assert result.access_token == "new-access"
        assert result.refresh_token == "new-refresh"
        mock_client.post.assert_called_once_with(
            "https://auth.juliahub.com/dex/token",
            data={
                "client_id": "device",
                "grant_type": "refresh_token",
                "refresh_token": "old-refresh",
            },
        )
        mock_client.close.assert_not_called()

    def test_raises_on_error_status(self) -> None:
        """Given a 400 response, raises RefreshFailedError with the status."""
        # Arrange
        mock_client = MagicMock(spec=httpx.Client)
        mock_client.post.return_value = _response({"error": "invalid_grant"}, status_code=400)

        # Act & Assert
        with pytest.raises(RefreshFailedError, match="status 400"):
            refresh_tokens("juliahub.com", "old-refresh", http_client=mock_client)

    def test_raises_on_error_in_body(self) -> None:
        """Given an OAuth error in a 200 body, raises RefreshFailedError."""
        # Arrange
        mock_client = MagicMock(spec=httpx.Client)
        mock_client.post.return_value = _response({"error": "invalid_grant"})

        # Act & Assert
        with pytest.raises(RefreshFailedError, match="invalid_grant"):
            refresh_tokens("juliahub.com", "old-refresh", http_client=mock_client)

    def test_raises_without_access_token(self) -> None:
        """Given a body without access_token, raises RefreshFailedError."""
        # Arrange
        mock_client = MagicMock(spec=httpx.Client)
        mock_client.post.return_value = _response({"token_type": "bearer"})

        # Act & Assert
        with pytest.raises(RefreshFailedError, match="No access token"):
            refresh_tokens("juliahub.com", "old-refresh", http_client=mock_client)

    def test_raises_on_invalid_json(self) -> None:
        """Given a non-JSON body, raises RefreshFailedError."""
        # Arrange
        response = _response({})
        response.json.side_effect = ValueError("Expecting value")
        mock_client = MagicMock(spec=httpx.Client)
        mock_client.post.return_value = response

        # Act & Assert
        with pytest.raises(RefreshFailedError, match="invalid JSON"):
            refresh_tokens("juliahub.com", "old-refresh", http_client=mock_client)

    def test_raises_on_transport_error(self) -> None:
        """Given a network failure, raises RefreshFailedError."""
        # Arrange
        mock_client = MagicMock(spec=httpx.Client)
        mock_client.post.side_effect = httpx.ConnectError("Connection refused")

        # Act & Assert
        with pytest.raises(RefreshFailedError, match="HTTP error"):
            refresh_tokens("juliahub.com", "old-refresh", http_client=mock_client)

    @pytest.mark.parametrize(
        "body",
        [
            {"access_token": 123},
            {"access_token": "new-access", "expires_in": "soon"},
        ],
    )
    def test_raises_on_wrong_typed_fields(self, body: dict) -> None:
        """Given token fields of the wrong JSON type, raises RefreshFailedError."""
        # Arrange
        mock_client = MagicMock(spec=httpx.Client)
        mock_client.post.return_value = _response(body)

        # Act & Assert
        with pytest.raises(RefreshFailedError, match="invalid token fields"):
            refresh_tokens("juliahub.com", "old-refresh", http_client=mock_client)
