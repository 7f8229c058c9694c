"""The bridge's single entry object.

:class:`WorklogBridge` wires every component once and exposes one method
per operation.  The HTTP layer receives an instance and calls these
methods; nothing registers itself globally.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from worklog_bridge.config import BridgeConfig
from worklog_bridge.jira.retrying import RetryingWorklogClient
from worklog_bridge.jira.worklogs import WorklogApiCaller
from worklog_bridge.oauth.clock import Clock, default_clock
from worklog_bridge.oauth.flow import AuthorizationFlowHandler, AuthorizationResult
from worklog_bridge.oauth.refresher import TokenRefresher
from worklog_bridge.oauth.status import AuthStatusService
from worklog_bridge.oauth.store import CredentialStore, DiskKeyValueStore, KeyValueStore
from worklog_bridge.webhooks.action_log import ActionLogger
from worklog_bridge.webhooks.dispatcher import (
    CREATE,
    DELETE,
    UPDATE,
    ActionDispatcher,
    EventDispatcher,
)
from worklog_bridge.webhooks.secret import SecretValidator

logger = logging.getLogger("worklog-bridge.bridge")


class WorklogBridge:
    """All bridge operations behind one explicitly constructed object."""

    def __init__(
        self,
        config: BridgeConfig,
        backend: KeyValueStore,
        http: httpx.AsyncClient,
        *,
        clock: Clock = default_clock,
    ) -> None:
        self.config = config
        self.http = http
        self.store = CredentialStore(backend)

        self.refresher = TokenRefresher(config, self.store, http, clock=clock)
        self.flow = AuthorizationFlowHandler(config, self.store, http, clock=clock)
        self.status = AuthStatusService(self.store, self.refresher, clock=clock)
        self.client = RetryingWorklogClient(
            self.store,
            WorklogApiCaller(http, api_base_url=config.api_base_url),
            self.refresher,
        )
        self.validator = SecretValidator(self.store)
        self.action_log = ActionLogger(self.store)

        self.dispatchers = {
            spec.action: ActionDispatcher(spec, self.validator, self.client, self.action_log)
            for spec in (CREATE, UPDATE, DELETE)
        }
        self.events = EventDispatcher(self.dispatchers, self.validator)

    @classmethod
    def from_config(cls, config: BridgeConfig, http: httpx.AsyncClient) -> "WorklogBridge":
        """Build a bridge backed by the file store under ``config.storage_dir``."""
        return cls(config, DiskKeyValueStore(config.storage_dir), http)

    # ------------------------------------------------------------------ #
    # Webhooks                                                           #
    # ------------------------------------------------------------------ #
    async def create_worklog(
        self, headers: Mapping[str, Any], body: Any, *, correlation_id: str | None = None
    ) -> str:
        return await self.dispatchers["create"].handle(headers, body, correlation_id=correlation_id)

    async def update_worklog(
        self, headers: Mapping[str, Any], body: Any, *, correlation_id: str | None = None
    ) -> str:
        return await self.dispatchers["update"].handle(headers, body, correlation_id=correlation_id)

    async def delete_worklog(
        self, headers: Mapping[str, Any], body: Any, *, correlation_id: str | None = None
    ) -> str:
        return await self.dispatchers["delete"].handle(headers, body, correlation_id=correlation_id)

    async def handle_worklog_event(
        self, headers: Mapping[str, Any], body: Any, *, correlation_id: str | None = None
    ) -> str:
        return await self.events.handle(headers, body, correlation_id=correlation_id)

    # ------------------------------------------------------------------ #
    # Authorization                                                      #
    # ------------------------------------------------------------------ #
    async def authorization_url(self, account_id: str | None = None) -> str:
        return await self.flow.build_authorize_url(account_id)

    async def complete_authorization(self, params: Mapping[str, str]) -> AuthorizationResult:
        return await self.flow.handle_callback(params)

    async def auth_status(self, account_id: str | None) -> dict[str, Any]:
        return await self.status.get_status(account_id)

    async def valid_access_token(self, account_id: str) -> str:
        return await self.status.get_valid_access_token(account_id)

    async def disconnect(self, account_id: str) -> None:
        await self.status.disconnect(account_id)

    # ------------------------------------------------------------------ #
    # Administration                                                     #
    # ------------------------------------------------------------------ #
    async def action_log_entries(self) -> list[dict[str, Any]]:
        return await self.action_log.entries()

    async def regenerate_secret(self) -> str:
        return await self.validator.regenerate()

    def credentials_configured(self) -> bool:
        return self.config.is_oauth_configured()
