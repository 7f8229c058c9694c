"""Authorization Flow Handler – the interactive OAuth 2.0 (3LO) exchange.

States per user: ``NoToken → AwaitingCallback → Authorized``; starting a new
flow from ``Authorized`` simply issues a fresh state, existing tokens are not
invalidated.

The callback path is deliberately forgiving in two places:

* resource discovery failing (or returning nothing) still persists the
  credential, just without ``cloud_id``; the first worklog call then fails
  with :class:`~worklog_bridge.oauth.errors.AuthDataIncompleteError`.
* a state that does not match the pending record is logged as a warning and
  the flow continues, unless ``BridgeConfig.strict_state`` is set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from worklog_bridge.config import BridgeConfig
from worklog_bridge.oauth.clock import Clock, default_clock, now_ms
from worklog_bridge.oauth.errors import (
    BadRequestError,
    BridgeError,
    ConfigError,
    NetworkError,
    ProtocolError,
    UpstreamError,
)
from worklog_bridge.oauth.models import (
    CredentialRecord,
    PendingAuthorization,
    token_lifetime,
)
from worklog_bridge.oauth.state import generate_state, is_flow_state
from worklog_bridge.oauth.store import CredentialStore
from worklog_bridge.utils.logging import mask_sensitive

_LOG = logging.getLogger("worklog-bridge.oauth.flow")


@dataclass(frozen=True, slots=True)
class AuthorizationResult:
    """Outcome handed back to whoever opened the authorization popup."""

    success: bool
    message: str
    account_id: str | None = None


class AuthorizationFlowHandler:
    """Issue authorization URLs and complete the redirect callback."""

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

    # ------------------------------------------------------------------ #
    # Initiation                                                         #
    # ------------------------------------------------------------------ #
    async def build_authorize_url(self, account_id: str | None = None) -> str:
        """Return the provider authorize URL with a fresh state.

        When *account_id* is known the state is persisted as the user's
        pending authorization; a stale pending record is cleaned up first.
        """
        if not self.config.client_id:
            raise ConfigError("OAuth client id configuration missing.")
        if not self.config.redirect_uri:
            raise ConfigError("OAuth redirect URI configuration missing.")

        state = generate_state(clock=self.clock)
        if account_id:
            await self._cleanup_stale_pending(account_id)
            await self.store.save_pending(
                account_id, PendingAuthorization(state=state, created_at=now_ms(self.clock))
            )

        query = {
            "audience": self.config.audience,
            "client_id": self.config.client_id,
            "scope": self.config.scope,
            "redirect_uri": self.config.redirect_uri,
            "state": state,
            "response_type": "code",
            "prompt": "consent",
        }
        _LOG.debug(
            "Built authorize URL for account=%s state=%s",
            account_id or "-",
            mask_sensitive(state, 6),
        )
        return f"{self.config.authorize_url}?{urlencode(query)}"

    async def _cleanup_stale_pending(self, account_id: str) -> None:
        try:
            pending = await self.store.load_pending(account_id)
            if pending and pending.is_expired(clock=self.clock):
                await self.store.delete_pending(account_id)
                _LOG.info("Cleaned up expired pending state for user %s", account_id)
        except Exception as exc:  # noqa: BLE001
            _LOG.warning("Could not clean up pending state for %s: %s", account_id, exc)

    # ------------------------------------------------------------------ #
    # Callback                                                           #
    # ------------------------------------------------------------------ #
    async def handle_callback(self, params: Mapping[str, str]) -> AuthorizationResult:
        """Complete the flow from callback query parameters.

        Never raises; every failure becomes an unsuccessful
        :class:`AuthorizationResult`.
        """
        error = params.get("error")
        if error:
            description = params.get("error_description") or ""
            _LOG.error("OAuth provider returned error %s: %s", error, description)
            return AuthorizationResult(False, f"Authentication error: {error}")

        try:
            account_id = await self.complete(
                code=params.get("code"), state=params.get("state")
            )
        except BridgeError as exc:
            _LOG.warning("OAuth callback failed: %s", exc)
            return AuthorizationResult(False, str(exc))
        except Exception as exc:  # broad: mapped to user-visible failure
            _LOG.error("Unexpected error in OAuth callback: %s", exc, exc_info=True)
            return AuthorizationResult(False, "Unexpected server error.")
        return AuthorizationResult(True, "Authentication successful!", account_id)

    async def complete(self, *, code: str | None, state: str | None) -> str:
        """Exchange *code*, discover identity and site, persist; return account id."""
        if not code or not is_flow_state(state):
            raise BadRequestError("Missing authorization code or invalid state.")
        if not self.config.is_oauth_configured() or not self.config.redirect_uri:
            raise ConfigError("Server configuration error (missing client credentials).")

        token_data = await self._exchange_code(code)
        access_token = token_data["access_token"]

        profile = await self._fetch_profile(access_token)
        account_id = profile.get("account_id")
        if not account_id:
            raise ProtocolError("Account ID missing in user info.")

        cloud_id = await self._discover_cloud_id(access_token)
        await self._check_pending_state(account_id, state)

        now = now_ms(self.clock)
        expires_in = token_lifetime(token_data)
        record = CredentialRecord(
            account_id=account_id,
            access_token=access_token,
            refresh_token=token_data.get("refresh_token"),
            expires_at=now + expires_in * 1000,
            cloud_id=cloud_id,
            scopes=tuple((token_data.get("scope") or "").split()),
            profile={
                k: profile[k] for k in ("name", "email", "picture") if profile.get(k)
            },
            timestamp=now,
        )
        await self.store.save_credentials(record)
        await self.store.delete_pending(account_id)
        _LOG.info(
            "Stored credentials for user %s (cloud_id=%s, expires in %ss)",
            account_id,
            cloud_id or "-",
            expires_in,
        )
        return account_id

    async def _exchange_code(self, code: str) -> dict[str, Any]:
        body = {
            "grant_type": "authorization_code",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "redirect_uri": self.config.redirect_uri,
            "audience": self.config.audience,
        }
        try:
            response = await self.http.post(
                self.config.token_url, json=body, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Error exchanging token: {exc}") from exc
        if not response.is_success:
            _LOG.error("Token exchange failed with status %s", response.status_code)
            raise UpstreamError(response.status_code, "Failed to get access token.")
        try:
            data = response.json()
        except ValueError as exc:
            raise ProtocolError("Invalid access token response.") from exc
        if not isinstance(data, dict) or not data.get("access_token"):
            raise ProtocolError("Invalid access token response.")
        return data

    async def _fetch_profile(self, access_token: str) -> dict[str, Any]:
        try:
            response = await self.http.get(
                f"{self.config.api_base_url}/me",
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Error retrieving user profile: {exc}") from exc
        if not response.is_success:
            raise UpstreamError(response.status_code, "Failed to fetch user information.")
        try:
            data = response.json()
        except ValueError as exc:
            raise ProtocolError("User information is not JSON.") from exc
        return data if isinstance(data, dict) else {}

    async def _discover_cloud_id(self, access_token: str) -> str | None:
        """Return the first accessible site's id, or *None* (logged, not fatal)."""
        try:
            response = await self.http.get(
                f"{self.config.api_base_url}/oauth/token/accessible-resources",
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            )
            if not response.is_success:
                _LOG.error("Accessible resources fetch failed: %s", response.status_code)
                return None
            resources = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            _LOG.error("Error fetching accessible resources: %s", exc)
            return None
        if not isinstance(resources, list) or not resources:
            _LOG.warning("Accessible resources list is empty; cloud_id unknown.")
            return None
        cloud_id = resources[0].get("id") if isinstance(resources[0], dict) else None
        if cloud_id:
            _LOG.info("Found cloud_id %s", cloud_id)
        return cloud_id or None

    async def _check_pending_state(self, account_id: str, state: str | None) -> None:
        pending = await self.store.load_pending(account_id)
        if pending is None:
            _LOG.info("No pending authorization stored for user %s", account_id)
            return
        if pending.state == state:
            return
        if self.config.strict_state:
            await self.store.delete_pending(account_id)
            raise BadRequestError("State mismatch for pending authorization.")
        _LOG.warning("State mismatch for user %s; continuing", account_id)
