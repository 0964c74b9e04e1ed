"""jh: command-line client for JuliaHub.

Authenticates against a JuliaHub server with the OAuth2 device flow and keeps
the resulting credential in sync with Julia's package manager and git.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
