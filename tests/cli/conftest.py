"""Fixtures for CLI tests."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import MagicMock

import httpx
import pytest
from click.testing import CliRunner

from juliahub_cli.cli.context import CLIContext
from juliahub_cli.config import JuliaHubConfig
from juliahub_cli.security.auth.token_parser import TokenResponse


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def http_client() -> MagicMock:
    """HTTP client injected into all auth requests."""
    return MagicMock(spec=httpx.Client)


@pytest.fixture
def cli_obj(config: JuliaHubConfig, http_client: MagicMock) -> CLIContext:
    """CLI context over the temporary home directory."""
    return CLIContext.from_config(config, http_client=http_client)


@pytest.fixture
def login_response(make_jwt: Callable[..., str]) -> TokenResponse:
    """Device flow result for a fresh login."""
    return TokenResponse(
        access_token=make_jwt(sub="user-123", exp=4102444800),
        refresh_token="fresh-refresh",
        id_token=make_jwt(
            sub="user-123",
            exp=4102444800,
            name="Jane Doe",
            email="jane@example.com",
            preferred_username="jane",
        ),
        token_type="bearer",
        expires_in=3600,
    )
