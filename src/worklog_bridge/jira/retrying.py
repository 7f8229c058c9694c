"""Retrying API Orchestrator – call Jira with transparent refresh-and-retry.

Algorithm for :meth:`RetryingWorklogClient.execute`:

1. Load the user's credential record; a missing record, or one without an
   access token, refresh token or ``cloud_id``, is terminal
   (:class:`AuthDataIncompleteError`) and no call is made.
2. Call Jira with the stored access token.
3. On **401 or 403** refresh once.  ``ReauthRequiredError`` deletes the
   record and propagates.  Otherwise retry exactly once with the new token;
   that response is final whatever it is.
4. Any other status is final as-is.

Suspension points are the credential load, the first call, the refresh and
the retry.  Two invocations for the same user that both hit 401 each refresh
on their own; the later write wins.
"""

from __future__ import annotations

from typing import Any, Final, Mapping

from worklog_bridge.jira.worklogs import ApiResult, Method, WorklogApiCaller
from worklog_bridge.oauth.errors import AuthDataIncompleteError, ReauthRequiredError
from worklog_bridge.oauth.log_utils import get_bridge_logger
from worklog_bridge.oauth.refresher import TokenRefresher
from worklog_bridge.oauth.store import CredentialStore

REFRESH_STATUSES: Final[frozenset[int]] = frozenset({401, 403})


class RetryingWorklogClient:
    """Compose store, API caller and refresher into one call."""

    def __init__(
        self,
        store: CredentialStore,
        caller: WorklogApiCaller,
        refresher: TokenRefresher,
    ) -> None:
        self.store = store
        self.caller = caller
        self.refresher = refresher

    async def execute(
        self,
        account_id: str,
        method: Method,
        issue_key: str,
        payload: Mapping[str, Any] | None = None,
        worklog_id: str | None = None,
        *,
        correlation_id: str | None = None,
    ) -> ApiResult:
        log = get_bridge_logger(
            base_logger_name="worklog-bridge.jira.retrying",
            account_id=account_id,
            issue_key=issue_key,
            correlation_id=correlation_id,
        )

        record = await self.store.load_credentials(account_id)
        if record is None:
            log.error("No credential record for user %s", account_id)
            raise AuthDataIncompleteError(account_id, ["credential record"])
        missing = record.missing_fields()
        if missing:
            log.error("Credential record for %s incomplete: %s", account_id, missing)
            raise AuthDataIncompleteError(account_id, missing)

        log.info(
            "Calling Jira %s for issue %s (worklog_id=%s)",
            method,
            issue_key,
            worklog_id or "N/A",
        )
        result = await self.caller.call(
            method, record.cloud_id, record.access_token, issue_key, payload, worklog_id
        )
        if result.status_code not in REFRESH_STATUSES:
            return result

        log.warning(
            "Received %s from Jira for user %s; refreshing token", result.status_code, account_id
        )
        try:
            new_token = await self.refresher.refresh(account_id, record.refresh_token)
        except ReauthRequiredError:
            log.error("Refresh token for %s is no longer valid; deleting credentials", account_id)
            await self.store.delete_credentials(account_id)
            raise

        result = await self.caller.call(
            method, record.cloud_id, new_token, issue_key, payload, worklog_id
        )
        log.info("Retried Jira %s completed with status %s", method, result.status_code)
        return result
