"""Git credential helper backed by the jh credential.

Git runs `jh git-credential <verb>` and talks to it over stdin/stdout with
key=value lines terminated by a blank line (see gitcredentials(7)).

- get:   answer with username=oauth2 / password=<id_token> for JuliaHub hosts,
         logging in through the device flow when needed; print nothing for
         other hosts so git falls through to the next helper.
- store: no-op (jh is the source of truth for its own credentials).
- erase: no-op.

Only stdout carries protocol output. Prompts and messages go to stderr.
"""

from __future__ import annotations

__all__ = [
    "GitCredentialHelper",
    "is_juliahub_host",
    "read_credential_request",
    "setup_git_credential_helper",
]

import shlex
import shutil
import subprocess
from collections.abc import Callable
from typing import TYPE_CHECKING, TextIO

from juliahub_cli.config import normalize_server
from juliahub_cli.constants import (
    BRAND_TOKEN,
    DEFAULT_SERVER,
    GIT_CREDENTIAL_COMMAND,
    GIT_CREDENTIAL_USERNAME,
    PRIMARY_DOMAIN,
)
from juliahub_cli.exceptions import GitCredentialError
from juliahub_cli.security.auth.token_parser import TokenResponse, token_response_to_stored
from juliahub_cli.telemetry.system.system_logger import get_system_logger

if TYPE_CHECKING:
    from juliahub_cli.credentials.julia_projector import JuliaCredentialProjector
    from juliahub_cli.security.auth.token_lifecycle import TokenLifecycle
    from juliahub_cli.security.auth.token_storage import StoredToken, TokenStore

_system_logger = get_system_logger()

# Signature of the device-flow runner: (server) -> TokenResponse
DeviceLogin = Callable[[str], TokenResponse]


def is_juliahub_host(host: str, configured_server: str | None = None) -> bool:
    """Decide whether git is asking about a JuliaHub host.

    Args:
        host: Host from the credential request (may include a port).
        configured_server: Server currently configured in the token store.

    Returns:
        True for *juliahub.com, any host containing "juliahub", or an exact
        match with the configured server.
    """
    if not host:
        return False
    if host.endswith(PRIMARY_DOMAIN):
        return True
    if BRAND_TOKEN in host:
        return True
    return bool(configured_server) and host == configured_server


def read_credential_request(stream: TextIO) -> dict[str, str]:
    """Read key=value lines until a blank line or EOF.

    Lines without '=' are ignored; values may themselves contain '='.
    """
    request: dict[str, str] = {}
    for line in stream:
        line = line.strip()
        if not line:
            break
        key, sep, value = line.partition("=")
        if sep:
            request[key] = value
    return request


class GitCredentialHelper:
    """Implements the get/store/erase verbs of the git credential protocol.

    Usage:
        helper = GitCredentialHelper(store, lifecycle, device_login, projector)
        helper.get(sys.stdin, sys.stdout, sys.stderr)
    """

    def __init__(
        self,
        store: "TokenStore",
        lifecycle: "TokenLifecycle",
        device_login: DeviceLogin,
        projector: "JuliaCredentialProjector | None" = None,
    ) -> None:
        """Initialize helper.

        Args:
            store: Primary token store.
            lifecycle: Provides valid (refreshed) tokens.
            device_login: Runs the device flow for a server, displaying
                instructions on stderr.
            projector: Julia credential projector updated after a new login.
        """
        self._store = store
        self._lifecycle = lifecycle
        self._device_login = device_login
        self._projector = projector

    def get(self, stdin: TextIO, stdout: TextIO, stderr: TextIO) -> None:
        """Answer a 'get' request.

        Raises:
            DeviceFlowError: If re-authentication is needed and fails.
        """
        request = read_credential_request(stdin)
        host = request.get("host", "")

        if not is_juliahub_host(host, self._store.read_server()):
            _system_logger.debug(
                {"event": "git_credential_skipped", "message": f"Not a JuliaHub host: {host!r}"}
            )
            return

        token = self._stored_token_for(host)
        if token is None:
            token = self._login(host, stderr)

        stdout.write(f"username={GIT_CREDENTIAL_USERNAME}\n")
        stdout.write(f"password={token.id_token}\n")
        stdout.flush()

    def store(self, stdin: TextIO) -> None:
        """Accept and discard a 'store' request."""
        read_credential_request(stdin)

    def erase(self, stdin: TextIO) -> None:
        """Accept and discard an 'erase' request."""
        read_credential_request(stdin)

    def _stored_token_for(self, host: str) -> "StoredToken | None":
        """Valid stored token for host, or None if a new login is required."""
        try:
            stored = self._store.read()
            if stored.server != host:
                return None
            return self._lifecycle.ensure_valid()
        except Exception as e:
            _system_logger.debug(
                {
                    "event": "git_credential_stored_token_unusable",
                    "message": f"Stored credential unusable for {host}: {e}",
                }
            )
            return None

    def _login(self, host: str, stderr: TextIO) -> "StoredToken":
        stderr.write(f"JuliaHub CLI: Authenticating to {host}...\n")
        stderr.flush()

        server = normalize_server(host)
        response = self._device_login(server)
        token = token_response_to_stored(server, response)
        self._store.write(server, token)

        if self._projector is not None:
            self._projector.sync(server, token)

        stderr.write(f"Successfully authenticated to {host}!\n")
        stderr.flush()
        return token


def setup_git_credential_helper(
    executable: str,
    configured_server: str | None = None,
) -> list[str]:
    """Register `<executable> git-credential` as git's helper for JuliaHub.

    Configures credential.https://<domain>.helper globally for juliahub.com,
    *.juliahub.com and a custom configured server.

    Args:
        executable: Command git should run (absolute path to jh).
        configured_server: Server from the token store, if not the default.

    Returns:
        Domains that were configured.

    Raises:
        GitCredentialError: If git is missing or git config fails.
    """
    git = shutil.which("git")
    if git is None:
        raise GitCredentialError("git is not installed or not in PATH")

    domains = [PRIMARY_DOMAIN, f"*.{PRIMARY_DOMAIN}"]
    if configured_server and configured_server != DEFAULT_SERVER and configured_server not in domains:
        domains.append(configured_server)

    helper_value = f"{shlex.quote(executable)} {GIT_CREDENTIAL_COMMAND}"

    for domain in domains:
        key = f"credential.https://{domain}.helper"
        try:
            subprocess.run(
                [git, "config", "--global", key, helper_value],
                check=True,
                capture_output=True,
                text=True,
            )
        except (subprocess.CalledProcessError, OSError) as e:
            raise GitCredentialError(
                f"Failed to configure git credential helper for {domain}: {e}"
            ) from e

    return domains
