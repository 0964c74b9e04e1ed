"""Authentication infrastructure for jh.

This module provides:
- JWT claim parsing and expiry checks (no signature verification)
- Token storage in the primary config store (~/.juliahub)
- OAuth Device Flow for CLI authentication
- Token refresh and the TokenLifecycle that ties them together
"""

from juliahub_cli.security.auth.device_flow import (
    AuthorizationFailedError,
    DeviceCodeRequestError,
    DeviceCodeResponse,
    DeviceFlow,
    DeviceFlowDeniedError,
    DeviceFlowError,
    DeviceFlowExpiredError,
    DeviceFlowState,
    run_device_flow,
)
from juliahub_cli.security.auth.jwt_codec import (
    JWTClaims,
    decode_jwt,
    is_token_expired,
)
from juliahub_cli.security.auth.token_lifecycle import TokenLifecycle
from juliahub_cli.security.auth.token_parser import (
    TokenResponse,
    token_response_to_stored,
)
from juliahub_cli.security.auth.token_refresh import refresh_tokens
from juliahub_cli.security.auth.token_storage import (
    StoredToken,
    TokenStore,
)

__all__ = [
    # JWT parsing
    "JWTClaims",
    "decode_jwt",
    "is_token_expired",
    # Token storage
    "StoredToken",
    "TokenStore",
    # Device flow
    "AuthorizationFailedError",
    "DeviceCodeRequestError",
    "DeviceCodeResponse",
    "DeviceFlow",
    "DeviceFlowDeniedError",
    "DeviceFlowError",
    "DeviceFlowExpiredError",
    "DeviceFlowState",
    "TokenResponse",
    "run_device_flow",
    "token_response_to_stored",
    # Token refresh
    "TokenLifecycle",
    "refresh_tokens",
]
