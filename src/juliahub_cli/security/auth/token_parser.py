"""Shared OAuth token response parsing.

Used by both device_flow.py (initial login) and token_lifecycle.py (refresh)
to turn Dex token endpoint responses into StoredToken records.
"""

from __future__ import annotations

__all__ = [
    "TokenResponse",
    "apply_identity_claims",
    "token_response_to_stored",
]

from typing import Any

from pydantic import BaseModel, ConfigDict

from juliahub_cli.exceptions import MalformedTokenError
from juliahub_cli.security.auth.jwt_codec import decode_jwt
from juliahub_cli.security.auth.token_storage import StoredToken


class TokenResponse(BaseModel):
    """Body returned by the Dex token endpoint.

    Dex reports polling and refresh failures in the body (`error`), sometimes
    with a 4xx status, so every field is optional.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str = ""
    token_type: str = ""
    refresh_token: str = ""
    expires_in: int = 0
    id_token: str = ""
    error: str = ""
    error_description: str = ""

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "TokenResponse":
        """Parse from a decoded JSON body, mapping nulls to defaults."""
        return cls.model_validate({k: v for k, v in data.items() if v is not None})


def apply_identity_claims(token: StoredToken, id_token: str) -> StoredToken:
    """Copy name/email from an ID token onto token.

    Claims that are missing or empty never blank out existing values, and an
    undecodable ID token leaves token unchanged.

    Args:
        token: Record to update.
        id_token: JWT carrying identity claims.

    Returns:
        Updated copy of token.
    """
    if not id_token:
        return token
    try:
        claims = decode_jwt(id_token)
    except MalformedTokenError:
        return token

    update: dict[str, str] = {}
    if claims.name:
        update["name"] = claims.name
    if claims.email:
        update["email"] = claims.email
    return token.model_copy(update=update) if update else token


def token_response_to_stored(server: str, response: TokenResponse) -> StoredToken:
    """Convert a token endpoint response into a StoredToken for server.

    Args:
        server: Server the credential belongs to.
        response: Successful token response.

    Returns:
        StoredToken with name/email extracted from the ID token.
    """
    token = StoredToken(
        access_token=response.access_token,
        refresh_token=response.refresh_token,
        id_token=response.id_token,
        token_type=response.token_type,
        expires_in=response.expires_in,
        server=server,
    )
    return apply_identity_claims(token, response.id_token)
