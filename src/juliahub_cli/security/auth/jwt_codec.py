"""Unverified JWT claim parsing and expiry checks.

Decodes the payload (middle) segment of a bearer token. The signature is NOT
verified: the trust boundary is TLS to the issuer, so the claims are advisory
(display names, expiry hints) and never an authorization decision.
"""

from __future__ import annotations

__all__ = [
    "JWTClaims",
    "decode_jwt",
    "is_token_expired",
]

import binascii
import json
import time
from typing import Any

from jwt.utils import base64url_decode
from pydantic import BaseModel, ConfigDict, field_validator

from juliahub_cli.exceptions import MalformedTokenError


class JWTClaims(BaseModel):
    """Claims carried by JuliaHub ID and access tokens.

    Claim values are read leniently: JSON null and unusable values fall back
    to the field default, and fractional NumericDates are truncated to whole
    seconds.

    Attributes:
        iat: Issued-at (unix seconds, 0 if absent).
        exp: Expiry (unix seconds, 0 if absent).
        sub: Subject.
        iss: Issuer.
        aud: Audience (string or list).
        name: Display name.
        email: Email address.
        preferred_username: Username shown to Julia's package manager.
    """

    model_config = ConfigDict(extra="allow")

    iat: int = 0
    exp: int = 0
    sub: str = ""
    iss: str = ""
    aud: str | list[str] = ""
    name: str = ""
    email: str = ""
    preferred_username: str = ""

    @field_validator("iat", "exp", mode="before")
    @classmethod
    def _coerce_numeric_date(cls, value: Any) -> int:
        if value is None or isinstance(value, bool):
            return 0
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("sub", "iss", "name", "email", "preferred_username", mode="before")
    @classmethod
    def _coerce_string(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("aud", mode="before")
    @classmethod
    def _coerce_audience(cls, value: Any) -> str | list[str]:
        if value is None:
            return ""
        if isinstance(value, list):
            return [str(item) for item in value if item is not None]
        return value if isinstance(value, str) else str(value)


def _decode_payload(token: str) -> dict[str, Any]:
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedTokenError(f"Invalid JWT format: expected 3 segments, got {len(parts)}")

    try:
        raw = base64url_decode(parts[1])
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"Invalid JWT payload encoding: {e}") from e

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedTokenError(f"Invalid JWT payload JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedTokenError("Invalid JWT payload: not a JSON object")
    return payload


def decode_jwt(token: str) -> JWTClaims:
    """Decode a JWT's claims without verifying its signature.

    Accepts the payload with or without base64 padding.

    Args:
        token: Compact JWT ("header.payload.signature").

    Returns:
        JWTClaims parsed from the payload.

    Raises:
        MalformedTokenError: If the token is not three segments, the payload
            is not base64url, or it does not decode to a JSON object.
    """
    return JWTClaims.model_validate(_decode_payload(token))


def is_token_expired(access_token: str, expires_in: int, now: float | None = None) -> bool:
    """Check whether an access token has expired.

    Uses the token's exp claim when present. Otherwise falls back to
    iat + expires_in. If neither can be established, or the token cannot be
    decoded, the token is considered expired.

    Args:
        access_token: The access token (JWT).
        expires_in: Lifetime in seconds as reported at issuance.
        now: Current unix time (defaults to time.time()).

    Returns:
        True if expired or undeterminable, False otherwise.
    """
    try:
        claims = decode_jwt(access_token)
    except MalformedTokenError:
        return True

    current = time.time() if now is None else now

    if claims.exp > 0:
        return current >= claims.exp

    if claims.iat > 0 and expires_in > 0:
        return current >= claims.iat + expires_in

    return True
