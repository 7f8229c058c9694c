"""Fixed output vocabulary of the worklog webhooks.

Each dispatcher returns one of these keys; the HTTP layer turns a key into
its static status code and JSON body.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Mapping

from worklog_bridge.oauth.errors import ErrorKind

SUCCESS_CREATED: Final[str] = "success-created"
SUCCESS_UPDATED: Final[str] = "success-updated"
SUCCESS_DELETED: Final[str] = "success-deleted"
ERROR_BAD_REQUEST: Final[str] = "error-bad-request"
ERROR_UNAUTHORIZED: Final[str] = "error-unauthorized"
ERROR_FORBIDDEN: Final[str] = "error-forbidden"
ERROR_NOT_FOUND: Final[str] = "error-not-found"
ERROR_INTERNAL: Final[str] = "error-internal"
ERROR_JIRA_API: Final[str] = "error-jira-api"


@dataclass(frozen=True, slots=True)
class WebhookOutput:
    status_code: int
    body: Mapping[str, Any]


OUTPUTS: Final[Mapping[str, WebhookOutput]] = {
    SUCCESS_CREATED: WebhookOutput(200, {"success": True, "action": "created"}),
    SUCCESS_UPDATED: WebhookOutput(200, {"success": True, "action": "updated"}),
    SUCCESS_DELETED: WebhookOutput(200, {"success": True, "action": "deleted"}),
    ERROR_BAD_REQUEST: WebhookOutput(400, {"success": False, "error": "Bad Request"}),
    ERROR_UNAUTHORIZED: WebhookOutput(
        401, {"success": False, "error": "Unauthorized or Re-authentication required"}
    ),
    ERROR_FORBIDDEN: WebhookOutput(403, {"success": False, "error": "Forbidden"}),
    ERROR_NOT_FOUND: WebhookOutput(404, {"success": False, "error": "Worklog Not Found"}),
    ERROR_INTERNAL: WebhookOutput(500, {"success": False, "error": "Internal Server Error"}),
    ERROR_JIRA_API: WebhookOutput(502, {"success": False, "error": "Jira API Error"}),
}

# Errors raised inside the pipeline, by kind.  Kinds not listed are internal.
ERROR_OUTPUTS: Final[Mapping[ErrorKind, str]] = {
    ErrorKind.BAD_REQUEST: ERROR_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: ERROR_UNAUTHORIZED,
    ErrorKind.AUTH_DATA_INCOMPLETE: ERROR_UNAUTHORIZED,
    ErrorKind.REAUTH_REQUIRED: ERROR_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: ERROR_FORBIDDEN,
}


def output_for_error(kind: ErrorKind) -> str:
    return ERROR_OUTPUTS.get(kind, ERROR_INTERNAL)


def output_for_status(status_code: int, *, allow_not_found: bool) -> str:
    """Map a failed Jira status onto an error key."""
    if status_code == 400:
        return ERROR_BAD_REQUEST
    if status_code == 401:
        return ERROR_UNAUTHORIZED
    if status_code == 403:
        return ERROR_FORBIDDEN
    if status_code == 404 and allow_not_found:
        return ERROR_NOT_FOUND
    return ERROR_JIRA_API


def render(output_key: str) -> WebhookOutput:
    """Return the static response for *output_key* (internal error if unknown)."""
    return OUTPUTS.get(output_key, OUTPUTS[ERROR_INTERNAL])
