"""Authentication helpers for Databricks connections.

Creates the WorkspaceClient used by the Unity Catalog loader and the SQL
warehouse executor. The host URL is normalized before the client is built.
"""

import re

from databricks.sdk import WorkspaceClient
from databricks.sdk.core import Config


class AuthError(RuntimeError):
    """Raised when a Databricks connection cannot be authenticated."""


def _format_auth_error(message: str, profile: str | None) -> str:
    """Turn an SDK config error into a message with a re-login hint."""
    if re.search(r"databricks auth login", message):
        cmd = "databricks auth login"
        if profile:
            cmd = f"{cmd} --profile {profile}"
        return f"Databricks authentication failed. Re-authenticate with:\n  $ {cmd}"
    return f"Databricks authentication failed: {message}"


def _sanitize_host(host: str | None) -> str | None:
    """Drop the query string (e.g. '?o=123') and trailing slashes from a host URL."""
    if not host:
        return host
    return host.split("?", 1)[0].rstrip("/")


def get_client(profile: str | None = None) -> WorkspaceClient:
    """
    Build a WorkspaceClient for a profile from ~/.databrickscfg (or the
    environment when no profile is given).

    Raises:
        AuthError: If the profile cannot be resolved.
    """
    try:
        cfg = Config(profile=profile) if profile else Config()
    except ValueError as exc:
        raise AuthError(_format_auth_error(str(exc), profile)) from exc
    cfg.host = _sanitize_host(cfg.host)
    return WorkspaceClient(config=cfg)
