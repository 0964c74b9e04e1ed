"""OAuth Device Authorization Flow (RFC 8628) for CLI authentication.

Implements the device authorization grant against a JuliaHub server's Dex
issuer. The user runs `jh auth login` (or git asks `jh git-credential get`),
sees a URL with an embedded code, authorizes in a browser, and the CLI polls
until tokens are issued.

Flow:
1. Request device code (INIT -> REQUESTED)
2. Display verification_uri_complete and user_code
3. Wait 15s (Dex rejects immediate polls), then poll every 4s (POLLING)
4. AUTHORIZED on access_token, DENIED on access_denied, ERROR otherwise

The engine never writes the token store; callers persist the result.
"""

from __future__ import annotations

__all__ = [
    "AuthorizationFailedError",
    "DeviceCodeRequestError",
    "DeviceCodeResponse",
    "DeviceFlow",
    "DeviceFlowDeniedError",
    "DeviceFlowError",
    "DeviceFlowExpiredError",
    "DeviceFlowState",
    "run_device_flow",
]

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from pydantic import ValidationError

from juliahub_cli.config import get_device_code_url, get_token_url
from juliahub_cli.constants import (
    DEVICE_CODE_GRANT_TYPE,
    DEVICE_FLOW_POLL_INTERVAL_SECONDS,
    DEVICE_FLOW_WARMUP_SECONDS,
    OAUTH_CLIENT_ID,
    OAUTH_CLIENT_TIMEOUT_SECONDS,
    OAUTH_SCOPE,
)
from juliahub_cli.exceptions import AuthenticationError
from juliahub_cli.security.auth.token_parser import TokenResponse
from juliahub_cli.telemetry.system.system_logger import get_system_logger

_system_logger = get_system_logger()


class DeviceFlowState(str, Enum):
    """Device flow progress."""

    INIT = "init"
    REQUESTED = "requested"
    POLLING = "polling"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    ERROR = "error"


class DeviceFlowError(AuthenticationError):
    """Device flow specific errors."""

    failure_type = "device_flow_failure"


class DeviceCodeRequestError(DeviceFlowError):
    """The device code request failed (non-2xx or transport error)."""

    failure_type = "device_code_request_failed"


class AuthorizationFailedError(DeviceFlowError):
    """The token endpoint returned an error other than authorization_pending.

    Attributes:
        reason: OAuth error code returned by the server.
    """

    failure_type = "authorization_failed"

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or f"Authorization failed: {reason}")


class DeviceFlowDeniedError(AuthorizationFailedError):
    """User denied the authorization request."""

    pass


class DeviceFlowExpiredError(AuthorizationFailedError):
    """Device code expired before user authenticated."""

    pass


@dataclass
class DeviceCodeResponse:
    """Response from device authorization request.

    Attributes:
        device_code: Code used to poll for tokens (don't show to user).
        user_code: Code user confirms in browser.
        verification_uri: URL user opens to authenticate.
        verification_uri_complete: URL with code embedded.
        expires_in: Seconds until codes expire (0 if not reported).
        interval: Polling interval suggested by the server.
    """

    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: str
    expires_in: int
    interval: int

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "DeviceCodeResponse":
        """Parse from Dex response.

        Raises:
            ValueError: If the body is not a JSON object.
            KeyError: If device_code or user_code is missing.
        """
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        verification_uri = data.get("verification_uri", "")
        return cls(
            device_code=data["device_code"],
            user_code=data["user_code"],
            verification_uri=verification_uri,
            verification_uri_complete=data.get("verification_uri_complete") or verification_uri,
            expires_in=int(data.get("expires_in") or 0),
            interval=int(data.get("interval") or DEVICE_FLOW_POLL_INTERVAL_SECONDS),
        )


class DeviceFlow:
    """OAuth Device Authorization Flow against a JuliaHub server.

    Usage:
        flow = DeviceFlow("juliahub.com")

        # Start flow - display code to user
        device_code = flow.request_device_code()
        print(f"Go to {device_code.verification_uri_complete}")

        # Wait for user to authenticate
        response = flow.poll_for_token(device_code)
    """

    def __init__(
        self,
        server: str,
        http_client: httpx.Client | None = None,
        warmup_seconds: float = DEVICE_FLOW_WARMUP_SECONDS,
        poll_interval_seconds: float = DEVICE_FLOW_POLL_INTERVAL_SECONDS,
        timeout_seconds: float = OAUTH_CLIENT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize device flow.

        Args:
            server: JuliaHub server (e.g. "juliahub.com").
            http_client: Optional httpx client (for testing).
            warmup_seconds: Delay before the first poll.
            poll_interval_seconds: Delay before every poll.
            timeout_seconds: Per-request timeout for an owned client.
        """
        self._server = server
        self._client = http_client or httpx.Client(timeout=timeout_seconds)
        self._owns_client = http_client is None
        self._warmup_seconds = warmup_seconds
        self._poll_interval_seconds = poll_interval_seconds

        self._device_auth_url = get_device_code_url(server)
        self._token_url = get_token_url(server)
        self.state = DeviceFlowState.INIT

    def __enter__(self) -> "DeviceFlow":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client:
            self._client.close()

    def request_device_code(self) -> DeviceCodeResponse:
        """Request a device code from Dex.

        Returns:
            DeviceCodeResponse with user_code and verification URIs.

        Raises:
            DeviceCodeRequestError: If the request fails.
        """
        try:
            response = self._client.post(
                self._device_auth_url,
                data={
                    "client_id": OAUTH_CLIENT_ID,
                    "scope": OAUTH_SCOPE,
                    "grant_type": DEVICE_CODE_GRANT_TYPE,
                },
            )
            response.raise_for_status()
            device_code = DeviceCodeResponse.from_response(response.json())

        except httpx.HTTPStatusError as e:
            self.state = DeviceFlowState.ERROR
            raise DeviceCodeRequestError(
                f"Failed to request device code: {e.response.status_code} {e.response.text}"
            ) from e

        except httpx.HTTPError as e:
            self.state = DeviceFlowState.ERROR
            raise DeviceCodeRequestError(f"HTTP error requesting device code: {e}") from e

        except (ValueError, KeyError, TypeError) as e:
            self.state = DeviceFlowState.ERROR
            raise DeviceCodeRequestError(f"Invalid device code response: {e}") from e

        self.state = DeviceFlowState.REQUESTED
        return device_code

    def poll_for_token(
        self,
        device_code: DeviceCodeResponse,
        on_poll: Callable[[], None] | None = None,
    ) -> TokenResponse:
        """Poll token endpoint until user completes authentication.

        Waits the warm-up delay once, then sleeps the poll interval before
        every request. Polling stops once the device code's expires_in has
        elapsed; without expires_in it continues until the server ends it.

        Args:
            device_code: Response from request_device_code().
            on_poll: Optional callback called on each poll (for progress display).

        Returns:
            TokenResponse carrying the issued tokens.

        Raises:
            DeviceFlowExpiredError: If the device code expires.
            DeviceFlowDeniedError: If the user denies authorization.
            AuthorizationFailedError: For any other OAuth error.
            DeviceFlowError: For transport or response parsing errors.
        """
        started = time.monotonic()
        deadline = started + device_code.expires_in if device_code.expires_in > 0 else None

        self.state = DeviceFlowState.POLLING
        time.sleep(self._warmup_seconds)

        while deadline is None or time.monotonic() < deadline:
            time.sleep(self._poll_interval_seconds)
            if on_poll:
                on_poll()

            token_response = self._poll(device_code)

            if token_response.error:
                if token_response.error == "authorization_pending":
                    continue
                self._fail(token_response)

            if token_response.access_token:
                self.state = DeviceFlowState.AUTHORIZED
                if not token_response.refresh_token:
                    _system_logger.warning(
                        {
                            "event": "device_flow_no_refresh_token",
                            "message": (
                                "No refresh token received; automatic refresh will not "
                                "be possible and you will need to log in again when the "
                                "access token expires."
                            ),
                            "server": self._server,
                        }
                    )
                return token_response

        self.state = DeviceFlowState.ERROR
        raise DeviceFlowExpiredError(
            "expired_token",
            f"Device code expired after {device_code.expires_in} seconds. "
            "Please run 'jh auth login' again.",
        )

    def _poll(self, device_code: DeviceCodeResponse) -> TokenResponse:
        try:
            response = self._client.post(
                self._token_url,
                data={
                    "client_id": OAUTH_CLIENT_ID,
                    "device_code": device_code.device_code,
                    "grant_type": DEVICE_CODE_GRANT_TYPE,
                },
            )
            data = response.json()
        except httpx.HTTPError as e:
            self.state = DeviceFlowState.ERROR
            raise DeviceFlowError(f"HTTP error polling for token: {e}") from e
        except ValueError as e:
            self.state = DeviceFlowState.ERROR
            raise DeviceFlowError(
                f"Token request failed with status {response.status_code}: invalid JSON"
            ) from e

        if not isinstance(data, dict):
            self.state = DeviceFlowState.ERROR
            raise DeviceFlowError("Token request returned an unexpected response body")

        try:
            return TokenResponse.from_response(data)
        except ValidationError as e:
            self.state = DeviceFlowState.ERROR
            raise DeviceFlowError(f"Token request returned invalid token fields: {e}") from e

    def _fail(self, token_response: TokenResponse) -> None:
        error = token_response.error
        if error == "access_denied":
            self.state = DeviceFlowState.DENIED
            raise DeviceFlowDeniedError(error, "Authorization was denied by user.")

        self.state = DeviceFlowState.ERROR
        if error == "expired_token":
            raise DeviceFlowExpiredError(
                error, "Device code expired. Please run 'jh auth login' again."
            )
        raise AuthorizationFailedError(error)


def run_device_flow(
    server: str,
    display_callback: Callable[[str, str], None],
    poll_callback: Callable[[], None] | None = None,
    http_client: httpx.Client | None = None,
) -> TokenResponse:
    """Run complete device flow with callbacks for display.

    Convenience function that handles the full flow.

    Args:
        server: JuliaHub server to authenticate against.
        display_callback: Called with (verification_uri_complete, user_code)
            to display authentication instructions to user.
        poll_callback: Optional callback called on each poll iteration.
        http_client: Optional httpx client (for testing).

    Returns:
        TokenResponse from the token endpoint.

    Raises:
        DeviceFlowError: If authentication fails.

    Example:
        def show_code(uri, user_code):
            print(f"Go to {uri} and authorize this device (code {user_code})")

        response = run_device_flow("juliahub.com", display_callback=show_code)
        store.write("juliahub.com", token_response_to_stored("juliahub.com", response))
    """
    with DeviceFlow(server, http_client=http_client) as flow:
        device_code = flow.request_device_code()

        display_callback(device_code.verification_uri_complete, device_code.user_code)

        return flow.poll_for_token(device_code, on_poll=poll_callback)
