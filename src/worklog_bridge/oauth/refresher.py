"""Token Refresher – exchanges a refresh token for a new access token.

Atlassian rotates refresh tokens: whenever the provider returns a new one it
replaces the stored value, otherwise the stored value is kept.  The merge is
a read-modify-write over the raw stored mapping so unrelated fields
(``cloud_id``, ``profile`` …) survive untouched.

No retries happen here; retry policy belongs to
:class:`worklog_bridge.jira.retrying.RetryingWorklogClient`.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from worklog_bridge.config import BridgeConfig
from worklog_bridge.oauth.clock import Clock, default_clock, now_ms
from worklog_bridge.oauth.errors import (
    ConfigError,
    InvalidArgumentError,
    NetworkError,
    ProtocolError,
    ReauthRequiredError,
    UpstreamError,
)
from worklog_bridge.oauth.models import CredentialRecord, token_lifetime
from worklog_bridge.oauth.store import CredentialStore

_LOG = logging.getLogger("worklog-bridge.oauth.refresher")


def _error_code(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        code = body.get("error")
        return str(code) if code else None
    return None


class TokenRefresher:
    """Refresh and persist a user's OAuth token pair."""

    def __init__(
        self,
        config: BridgeConfig,
        store: CredentialStore,
        http: httpx.AsyncClient,
        *,
        clock: Clock = default_clock,
    ) -> None:
        self.config = config
        self.store = store
        self.http = http
        self.clock = clock

    async def refresh(self, account_id: str, refresh_token: str) -> str:
        """Return a new access token for *account_id*; persists the rotation."""
        record = await self.refresh_credentials(account_id, refresh_token)
        return record.access_token or ""

    async def refresh_credentials(
        self, account_id: str, refresh_token: str
    ) -> CredentialRecord:
        """Refresh and return the full updated :class:`CredentialRecord`.

        Raises
        ------
        InvalidArgumentError
            *account_id* is empty.
        ConfigError
            Client id or secret is not configured.
        ReauthRequiredError
            Refresh token missing, or the provider answered ``invalid_grant``.
        UpstreamError
            Any other non-success status from the token endpoint.
        ProtocolError
            Success response without an ``access_token``.
        NetworkError
            Transport-level failure.
        """
        if not account_id:
            raise InvalidArgumentError("account_id is required to refresh a token.")
        if not self.config.is_oauth_configured():
            _LOG.error("Client id or client secret not configured; cannot refresh.")
            raise ConfigError()
        if not refresh_token:
            _LOG.error("No refresh token stored for user %s", account_id)
            raise ReauthRequiredError(
                account_id, "Refresh token is missing, user needs to re-authorize."
            )

        _LOG.info("Refreshing access token for user %s", account_id)
        body = {
            "grant_type": "refresh_token",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "refresh_token": refresh_token,
        }
        try:
            response = await self.http.post(
                self.config.token_url,
                json=body,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Token refresh request failed: {exc}") from exc

        if not response.is_success:
            code = _error_code(response)
            _LOG.error(
                "Token refresh failed for user %s with status %s (error=%s)",
                account_id,
                response.status_code,
                code or "-",
            )
            if code == "invalid_grant":
                raise ReauthRequiredError(account_id)
            raise UpstreamError(
                response.status_code,
                f"Token refresh failed with status: {response.status_code}",
            )

        try:
            token_data: dict[str, Any] = response.json()
        except ValueError as exc:
            raise ProtocolError("Token refresh response is not JSON.") from exc

        new_access_token = token_data.get("access_token")
        if not new_access_token:
            _LOG.error("Token refresh response for user %s had no access_token", account_id)
            raise ProtocolError("Failed to obtain new access token after refresh.")

        new_refresh_token = token_data.get("refresh_token")
        expires_in = token_lifetime(token_data)
        now = now_ms(self.clock)

        existing = await self.store.load_raw_credentials(account_id) or {}
        updated = {
            **existing,
            "access_token": new_access_token,
            "expires_at": now + expires_in * 1000,
            "last_refreshed": now,
        }
        if new_refresh_token:
            updated["refresh_token"] = new_refresh_token
        elif "refresh_token" not in updated:
            updated["refresh_token"] = refresh_token
        updated.setdefault("account_id", account_id)

        await self.store.save_raw_credentials(account_id, updated)
        _LOG.info(
            "Stored refreshed tokens for user %s (rotated=%s, expires in %ss)",
            account_id,
            bool(new_refresh_token),
            expires_in,
        )
        return CredentialRecord.from_mapping(account_id, updated)
