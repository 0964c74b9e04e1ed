"""Application-wide constants for jh.

Constants that define application behavior.
For per-user settings resolved at runtime, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    # Servers
    "DEFAULT_SERVER",
    "PRIMARY_DOMAIN",
    "BRAND_TOKEN",
    "AUTH_HOST_OVERRIDES",
    # Primary config store
    "CONFIG_FILENAME",
    "LOCK_FILENAME",
    # OAuth device flow
    "OAUTH_CLIENT_ID",
    "OAUTH_SCOPE",
    "DEVICE_CODE_GRANT_TYPE",
    "REFRESH_TOKEN_GRANT_TYPE",
    "DEVICE_CODE_PATH",
    "TOKEN_PATH",
    "OAUTH_CLIENT_TIMEOUT_SECONDS",
    "DEVICE_FLOW_WARMUP_SECONDS",
    "DEVICE_FLOW_POLL_INTERVAL_SECONDS",
    # Julia credential projection
    "JULIA_DEPOT_PATH_ENV",
    "DEFAULT_JULIA_DEPOT_DIRNAME",
    "JULIA_AUTH_FILENAME",
    # Git credential helper
    "GIT_CREDENTIAL_USERNAME",
    "GIT_CREDENTIAL_COMMAND",
    # Permissions
    "SECURE_FILE_MODE",
    "SECURE_DIR_MODE",
]

# ============================================================================
# Application Identity
# ============================================================================

# Used for logger names and user-facing command hints
APP_NAME: str = "jh"

# ============================================================================
# Servers
# ============================================================================

DEFAULT_SERVER: str = "juliahub.com"

# Hosts ending in this domain belong to JuliaHub
PRIMARY_DOMAIN: str = "juliahub.com"

# Any host containing this token is treated as a JuliaHub deployment
BRAND_TOKEN: str = "juliahub"

# Servers whose Dex issuer lives on a separate host
AUTH_HOST_OVERRIDES: dict[str, str] = {
    "juliahub.com": "auth.juliahub.com",
}

# ============================================================================
# Primary config store (~/.juliahub)
# ============================================================================

CONFIG_FILENAME: str = ".juliahub"
LOCK_FILENAME: str = ".juliahub.lock"

# ============================================================================
# OAuth Device Flow (Dex)
# ============================================================================

OAUTH_CLIENT_ID: str = "device"
OAUTH_SCOPE: str = "openid email profile offline_access"
DEVICE_CODE_GRANT_TYPE: str = "urn:ietf:params:oauth:grant-type:device_code"
REFRESH_TOKEN_GRANT_TYPE: str = "refresh_token"

DEVICE_CODE_PATH: str = "/dex/device/code"
TOKEN_PATH: str = "/dex/token"

# Timeout for every request to the auth server
OAUTH_CLIENT_TIMEOUT_SECONDS: float = 30.0

# Dex rejects polls that arrive right after the code is issued
DEVICE_FLOW_WARMUP_SECONDS: float = 15.0
DEVICE_FLOW_POLL_INTERVAL_SECONDS: float = 4.0

# ============================================================================
# Julia credential projection
# ============================================================================

JULIA_DEPOT_PATH_ENV: str = "JULIA_DEPOT_PATH"
DEFAULT_JULIA_DEPOT_DIRNAME: str = ".julia"
JULIA_AUTH_FILENAME: str = "auth.toml"

# ============================================================================
# Git credential helper
# ============================================================================

GIT_CREDENTIAL_USERNAME: str = "oauth2"

# Subcommand git invokes as "<exe> git-credential get"
GIT_CREDENTIAL_COMMAND: str = "git-credential"

# ============================================================================
# Permissions
# ============================================================================

SECURE_FILE_MODE: int = 0o600
SECURE_DIR_MODE: int = 0o700
