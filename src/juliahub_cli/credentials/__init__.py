"""External credential consumers.

Keeps consumers outside jh in sync with the stored credential:
- julia_projector: Julia package manager's per-server auth.toml
- git_helper: git credential-helper protocol
"""

from juliahub_cli.credentials.git_helper import (
    GitCredentialHelper,
    is_juliahub_host,
    setup_git_credential_helper,
)
from juliahub_cli.credentials.julia_projector import (
    JuliaCredentialProjector,
    render_auth_toml,
)

__all__ = [
    "GitCredentialHelper",
    "JuliaCredentialProjector",
    "is_juliahub_host",
    "render_auth_toml",
    "setup_git_credential_helper",
]
