"""Shared fixtures for jh tests.

Every test gets an isolated home directory (tmp_path) so nothing touches the
real ~/.juliahub or ~/.julia.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

import jwt
import pytest

from juliahub_cli.config import JuliaHubConfig
from juliahub_cli.security.auth.token_storage import StoredToken, TokenStore

# HS256 signing key for test tokens (signatures are never verified)
TEST_SIGNING_KEY = "jh-test-signing-key-0123456789abcdef"


@pytest.fixture
def make_jwt() -> Callable[..., str]:
    """Return a factory that mints a signed JWT carrying the given claims."""

    def _make(**claims: object) -> str:
        return jwt.encode(claims, TEST_SIGNING_KEY, algorithm="HS256")

    return _make


@pytest.fixture
def config(tmp_path: Path) -> JuliaHubConfig:
    """Configuration rooted in a temporary home directory."""
    return JuliaHubConfig.from_environment(environ={}, home=tmp_path)


@pytest.fixture
def store(config: JuliaHubConfig) -> TokenStore:
    """Token store backed by <tmp home>/.juliahub."""
    return TokenStore(config)


@pytest.fixture
def valid_token(make_jwt: Callable[..., str]) -> StoredToken:
    """Stored token whose access token expires in 1 hour."""
    now = int(time.time())
    return StoredToken(
        access_token=make_jwt(
            sub="user-123",
            iss="https://auth.juliahub.com/dex",
            aud="device",
            iat=now,
            exp=now + 3600,
        ),
        refresh_token="refresh-token-123",
        id_token=make_jwt(
            sub="user-123",
            iat=now,
            exp=now + 3600,
            name="Jane Doe",
            email="jane@example.com",
            preferred_username="jane",
        ),
        token_type="bearer",
        expires_in=3600,
        server="juliahub.com",
        name="Jane Doe",
        email="jane@example.com",
    )


@pytest.fixture
def expired_token(make_jwt: Callable[..., str]) -> StoredToken:
    """Stored token whose access token expired 1 hour ago."""
    now = int(time.time())
    return StoredToken(
        access_token=make_jwt(sub="user-123", iat=now - 7200, exp=now - 3600),
        refresh_token="old-refresh-token",
        id_token=make_jwt(
            sub="user-123",
            exp=now - 3600,
            name="Jane Doe",
            email="jane@example.com",
        ),
        token_type="bearer",
        expires_in=3600,
        server="juliahub.com",
        name="Jane Doe",
        email="jane@example.com",
    )
