"""Process-wide configuration for the worklog bridge.

Built once at startup with :meth:`BridgeConfig.from_env` and handed to the
components that need it; nothing below reads the environment on its own.

Environment variables
---------------------
JIRA_OAUTH_CLIENT_ID / JIRA_OAUTH_CLIENT_SECRET
    OAuth 2.0 (3LO) app credentials.
JIRA_OAUTH_REDIRECT_URI
    Callback URL registered with the app; must match exactly.
JIRA_OAUTH_SCOPE
    Space separated scope override.
JIRA_OAUTH_AUTHORIZE_URL / JIRA_OAUTH_TOKEN_URL / JIRA_API_BASE_URL
    Provider endpoints, Atlassian Cloud defaults.
BRIDGE_STORAGE_DIR
    Base directory of the file-backed store (``~/.worklog-bridge``).
BRIDGE_STRICT_OAUTH_STATE
    Reject callbacks whose state does not match the pending record.
BRIDGE_HTTP_TIMEOUT_SECONDS
    Outbound HTTP timeout (default 20).
BRIDGE_ADMIN_TOKEN
    Bearer token guarding the ``/admin`` routes; routes are disabled if unset.
BRIDGE_LOG_LEVEL
    Logging level (default ``INFO``).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from worklog_bridge.utils.environment import env_flag, env_float, env_str

DEFAULT_SCOPES: Final[tuple[str, ...]] = (
    "read:me",
    "read:account",
    "read:jira-user",
    "write:jira-work",
    "offline_access",
)
DEFAULT_AUTHORIZE_URL: Final[str] = "https://auth.atlassian.com/authorize"
DEFAULT_TOKEN_URL: Final[str] = "https://auth.atlassian.com/oauth/token"
DEFAULT_API_BASE_URL: Final[str] = "https://api.atlassian.com"
DEFAULT_AUDIENCE: Final[str] = "api.atlassian.com"


@dataclass(frozen=True)
class BridgeConfig:
    """OAuth client identity, provider endpoints and runtime switches."""

    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str | None = None
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    authorize_url: str = DEFAULT_AUTHORIZE_URL
    token_url: str = DEFAULT_TOKEN_URL
    api_base_url: str = DEFAULT_API_BASE_URL
    audience: str = DEFAULT_AUDIENCE
    storage_dir: Path = Path("~/.worklog-bridge")
    strict_state: bool = False
    http_timeout: float = 20.0
    admin_token: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        scope_raw = env_str("JIRA_OAUTH_SCOPE")
        return cls(
            client_id=env_str("JIRA_OAUTH_CLIENT_ID"),
            client_secret=env_str("JIRA_OAUTH_CLIENT_SECRET"),
            redirect_uri=env_str("JIRA_OAUTH_REDIRECT_URI"),
            scopes=tuple(scope_raw.split()) if scope_raw else DEFAULT_SCOPES,
            authorize_url=(env_str("JIRA_OAUTH_AUTHORIZE_URL") or DEFAULT_AUTHORIZE_URL).rstrip("/"),
            token_url=env_str("JIRA_OAUTH_TOKEN_URL") or DEFAULT_TOKEN_URL,
            api_base_url=(env_str("JIRA_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
            storage_dir=Path(env_str("BRIDGE_STORAGE_DIR") or "~/.worklog-bridge").expanduser(),
            strict_state=env_flag("BRIDGE_STRICT_OAUTH_STATE"),
            http_timeout=env_float("BRIDGE_HTTP_TIMEOUT_SECONDS", 20.0),
            admin_token=env_str("BRIDGE_ADMIN_TOKEN"),
            log_level=env_str("BRIDGE_LOG_LEVEL") or "INFO",
        )

    def is_oauth_configured(self) -> bool:
        """Return *True* when both client id and client secret are present."""
        return bool(self.client_id and self.client_secret)

    @property
    def scope(self) -> str:
        return " ".join(self.scopes)
