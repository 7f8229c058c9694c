"""Connection status and proactive token validity for a user."""

from __future__ import annotations

import logging
from typing import Any, Final

from worklog_bridge.oauth.clock import Clock, default_clock
from worklog_bridge.oauth.errors import (
    AuthDataIncompleteError,
    BridgeError,
    ReauthRequiredError,
)
from worklog_bridge.oauth.refresher import TokenRefresher
from worklog_bridge.oauth.store import CredentialStore

_LOG = logging.getLogger("worklog-bridge.oauth.status")

STATUS_REFRESH_WINDOW_MS: Final[int] = 60 * 1000
ACCESS_TOKEN_GRACE_MS: Final[int] = 5 * 60 * 1000


class AuthStatusService:
    """Report whether a user is connected and hand out fresh access tokens."""

    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        *,
        clock: Clock = default_clock,
    ) -> None:
        self.store = store
        self.refresher = refresher
        self.clock = clock

    async def get_status(self, account_id: str | None) -> dict[str, Any]:
        """Return ``{authenticated, expires_at, timestamp, error}``.

        A token expiring within a minute is refreshed on the spot; a record
        that cannot be refreshed is deleted.
        """
        if not account_id:
            return {"authenticated": False, "error": "User context not found"}

        try:
            record = await self.store.load_credentials(account_id)
        except Exception as exc:  # noqa: BLE001
            _LOG.error("Error reading credentials for %s: %s", account_id, exc)
            return {"authenticated": False, "error": "Storage access error"}

        if record is None or not record.access_token or record.expires_at is None:
            return {"authenticated": False}

        if not record.expires_within(STATUS_REFRESH_WINDOW_MS, clock=self.clock):
            return {
                "authenticated": True,
                "expires_at": record.expires_at,
                "timestamp": record.timestamp,
            }

        if not record.refresh_token:
            _LOG.warning("Token expired for %s and no refresh token stored", account_id)
            await self.store.delete_credentials(account_id)
            return {"authenticated": False, "error": "Session expired"}

        try:
            refreshed = await self.refresher.refresh_credentials(
                account_id, record.refresh_token
            )
        except BridgeError as exc:
            _LOG.error("Token refresh failed for %s: %s", account_id, exc)
            await self.store.delete_credentials(account_id)
            return {"authenticated": False, "error": "Session expired, refresh failed"}

        return {
            "authenticated": True,
            "expires_at": refreshed.expires_at,
            "timestamp": refreshed.last_refreshed or refreshed.timestamp,
        }

    async def get_valid_access_token(self, account_id: str) -> str:
        """Return a usable access token, refreshing it when close to expiry.

        Raises
        ------
        AuthDataIncompleteError
            No stored access token.
        ReauthRequiredError
            Token expired and no refresh token, or the refresh token is dead.
        """
        record = await self.store.load_credentials(account_id)
        if record is None or not record.access_token:
            raise AuthDataIncompleteError(account_id, ["access_token"])

        if not record.expires_within(ACCESS_TOKEN_GRACE_MS, clock=self.clock):
            return record.access_token

        if not record.refresh_token:
            raise ReauthRequiredError(
                account_id, "Token expired and no refresh token available."
            )
        return await self.refresher.refresh(account_id, record.refresh_token)

    async def disconnect(self, account_id: str) -> None:
        """Delete stored tokens for *account_id*."""
        await self.store.delete_credentials(account_id)
        _LOG.info("Deleted credentials for user %s", account_id)
