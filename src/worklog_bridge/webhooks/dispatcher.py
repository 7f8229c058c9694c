"""Action dispatchers, one per worklog event type.

``handle(headers, body)`` runs the whole webhook pipeline and always returns
an output key from :mod:`worklog_bridge.webhooks.outputs`:

1. shared-secret check (before the body is even decoded);
2. JSON decode and typed payload validation;
3. :meth:`RetryingWorklogClient.execute` with the action's HTTP method;
4. mapping of the final status, or of the raised error's kind;
5. one action-log entry, whatever happened.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final, Mapping

from worklog_bridge.jira.retrying import RetryingWorklogClient
from worklog_bridge.jira.worklogs import ApiResult, Method, describe_jira_error
from worklog_bridge.oauth.errors import BadRequestError, BridgeError
from worklog_bridge.oauth.log_utils import get_bridge_logger
from worklog_bridge.webhooks import outputs
from worklog_bridge.webhooks.action_log import ActionLogEntry, ActionLogger
from worklog_bridge.webhooks.payloads import (
    EVENT_ACTIONS,
    CreateWorklogRequest,
    DeleteWorklogRequest,
    UpdateWorklogRequest,
    WorklogRequest,
    parse_body,
)
from worklog_bridge.webhooks.secret import SecretValidator

_LOG = logging.getLogger("worklog-bridge.webhooks.dispatcher")


@dataclass(frozen=True, slots=True)
class ActionSpec:
    """What distinguishes create, update and delete."""

    action: str
    verb: str
    method: Method
    request_type: type
    success_key: str
    allow_not_found: bool


CREATE: Final[ActionSpec] = ActionSpec(
    "create", "created", "POST", CreateWorklogRequest, outputs.SUCCESS_CREATED, False
)
UPDATE: Final[ActionSpec] = ActionSpec(
    "update", "updated", "PUT", UpdateWorklogRequest, outputs.SUCCESS_UPDATED, True
)
DELETE: Final[ActionSpec] = ActionSpec(
    "delete", "deleted", "DELETE", DeleteWorklogRequest, outputs.SUCCESS_DELETED, True
)
ACTION_SPECS: Final[Mapping[str, ActionSpec]] = {
    spec.action: spec for spec in (CREATE, UPDATE, DELETE)
}


def _field(payload: Mapping[str, Any] | None, name: str) -> str | None:
    if not payload:
        return None
    value = payload.get(name)
    return None if value in (None, "") else str(value)


class ActionDispatcher:
    """Validate, execute and record a single worklog webhook."""

    def __init__(
        self,
        spec: ActionSpec,
        validator: SecretValidator,
        client: RetryingWorklogClient,
        action_log: ActionLogger,
    ) -> None:
        self.spec = spec
        self.validator = validator
        self.client = client
        self.action_log = action_log

    async def handle(
        self,
        headers: Mapping[str, Any] | None,
        body: Any,
        *,
        correlation_id: str | None = None,
    ) -> str:
        return await self._run(headers, body, None, correlation_id)

    async def handle_payload(
        self,
        payload: Mapping[str, Any],
        *,
        correlation_id: str | None = None,
    ) -> str:
        """Run steps 3-5 for a payload whose secret was already validated."""
        return await self._run(None, None, payload, correlation_id, validated=True)

    async def _run(
        self,
        headers: Mapping[str, Any] | None,
        body: Any,
        payload: Mapping[str, Any] | None,
        correlation_id: str | None,
        *,
        validated: bool = False,
    ) -> str:
        log = get_bridge_logger(
            base_logger_name="worklog-bridge.webhooks.dispatcher",
            action=self.spec.action,
            correlation_id=correlation_id,
        )
        output_key = outputs.ERROR_INTERNAL
        success = False
        message: str | None = None
        worklog_id: str | None = None

        try:
            if not validated:
                await self.validator.validate(headers)
                payload = parse_body(body)
            worklog_id = _field(payload, "worklogId")

            request: WorklogRequest = self.spec.request_type.from_payload(payload)
            log.info(
                "Processing %s request for user %s, issue %s",
                self.spec.action,
                request.user_id,
                request.issue_key,
            )
            result = await self.client.execute(
                request.user_id,
                self.spec.method,
                request.issue_key,
                request.api_payload(),
                request.worklog_id,
                correlation_id=correlation_id,
            )
            output_key, success, message, worklog_id = self._map_result(request, result)
        except BridgeError as exc:
            output_key = outputs.output_for_error(exc.kind)
            message = str(exc)
            level = logging.WARNING if isinstance(exc, BadRequestError) else logging.ERROR
            log.log(level, "%s webhook failed (%s): %s", self.spec.action, exc.kind.value, exc)
        except Exception as exc:  # noqa: BLE001
            output_key = outputs.ERROR_INTERNAL
            message = f"Unexpected error: {exc}"
            log.error("Unexpected error in %s webhook", self.spec.action, exc_info=True)

        await self.action_log.record(
            ActionLogEntry(
                action_type=self.spec.action,
                success=success,
                issue_key=_field(payload, "issueKey"),
                worklog_id=worklog_id,
                account_id=_field(payload, "userId"),
                message=message,
            )
        )
        return output_key

    def _map_result(
        self, request: WorklogRequest, result: ApiResult
    ) -> tuple[str, bool, str, str | None]:
        worklog_id = request.worklog_id
        if result.ok:
            if worklog_id is None:
                body = result.json()
                if isinstance(body, dict) and body.get("id") is not None:
                    worklog_id = str(body["id"])
            _LOG.info(
                "Worklog %s %s on issue %s for user %s",
                worklog_id or "-",
                self.spec.verb,
                request.issue_key,
                request.user_id,
            )
            return (
                self.spec.success_key,
                True,
                f"Worklog {worklog_id} {self.spec.verb} successfully.",
                worklog_id,
            )

        detail = describe_jira_error(result)
        _LOG.error(
            "Jira API call failed. Status: %s, Issue: %s, Detail: %s",
            result.status_code,
            request.issue_key,
            detail,
        )
        key = outputs.output_for_status(
            result.status_code, allow_not_found=self.spec.allow_not_found
        )
        return key, False, f"Jira API Error: {result.status_code} - {detail}", worklog_id


class EventDispatcher:
    """Route a combined ``hours:*`` webhook to the matching action.

    Requests rejected before an action is known (bad secret, bad body,
    unknown event) are logged but not written to the action log.
    """

    def __init__(
        self,
        dispatchers: Mapping[str, ActionDispatcher],
        validator: SecretValidator,
    ) -> None:
        self.dispatchers = dispatchers
        self.validator = validator

    async def handle(
        self,
        headers: Mapping[str, Any] | None,
        body: Any,
        *,
        correlation_id: str | None = None,
    ) -> str:
        try:
            await self.validator.validate(headers)
            payload = parse_body(body)
            event = payload.get("event")
            action = EVENT_ACTIONS.get(event) if isinstance(event, str) else None
            if action is None:
                raise BadRequestError(
                    f"Unsupported event type: {event}. Expected "
                    f"{', '.join(EVENT_ACTIONS)}."
                )
        except BridgeError as exc:
            _LOG.warning("Combined worklog webhook rejected: %s", exc)
            return outputs.output_for_error(exc.kind)

        return await self.dispatchers[action].handle_payload(
            payload, correlation_id=correlation_id
        )
