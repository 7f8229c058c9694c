"""Upstream API Caller for the Jira Cloud REST v3 worklog collection.

The caller only performs the request.  It never raises on a non-2xx status;
deciding what a status means is left to the orchestrator and the webhook
dispatcher.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Final, Literal, Mapping
from urllib.parse import quote

import httpx

from worklog_bridge.oauth.errors import InvalidArgumentError, NetworkError

logger = logging.getLogger("worklog-bridge.jira.worklogs")

Method = Literal["POST", "PUT", "DELETE"]

_METHODS: Final[tuple[str, ...]] = ("POST", "PUT", "DELETE")
_NEEDS_ID: Final[tuple[str, ...]] = ("PUT", "DELETE")
_NEEDS_BODY: Final[tuple[str, ...]] = ("POST", "PUT")


@dataclass(frozen=True, slots=True)
class ApiResult:
    """Status code plus the raw upstream response."""

    status_code: int
    response: httpx.Response

    @property
    def ok(self) -> bool:
        return self.response.is_success

    def json(self) -> Any:
        """Parsed body, or *None* for empty / non-JSON bodies."""
        if not self.response.content:
            return None
        try:
            return self.response.json()
        except ValueError:
            return None


def describe_jira_error(result: ApiResult) -> str:
    """Summarise Jira's ``errorMessages`` / ``errors`` shapes for logs."""
    fallback = f"Jira API error (Status: {result.status_code})."
    body = result.json()
    if not isinstance(body, dict):
        return fallback
    messages = body.get("errorMessages")
    if isinstance(messages, list) and messages:
        return ", ".join(str(m) for m in messages)
    errors = body.get("errors")
    if errors:
        return json.dumps(errors, sort_keys=True)
    return fallback


class WorklogApiCaller:
    """Issue bearer-authenticated worklog calls against a Jira site."""

    def __init__(self, http: httpx.AsyncClient, *, api_base_url: str) -> None:
        self.http = http
        self.api_base_url = api_base_url.rstrip("/")

    def worklog_url(self, cloud_id: str, issue_key: str, worklog_id: str | None = None) -> str:
        url = (
            f"{self.api_base_url}/ex/jira/{quote(cloud_id, safe='')}"
            f"/rest/api/3/issue/{quote(issue_key, safe='')}/worklog"
        )
        if worklog_id is not None:
            url += f"/{quote(str(worklog_id), safe='')}"
        return url

    async def call(
        self,
        method: Method,
        cloud_id: str,
        access_token: str,
        issue_key: str,
        payload: Mapping[str, Any] | None = None,
        worklog_id: str | None = None,
    ) -> ApiResult:
        """Perform one worklog request and return its status and response.

        Raises
        ------
        InvalidArgumentError
            Unsupported method, missing *worklog_id* for PUT/DELETE, or a
            POST/PUT body without ``started`` / ``timeSpentSeconds``.
        NetworkError
            Transport-level failure.
        """
        if method not in _METHODS:
            raise InvalidArgumentError(f"Unsupported method {method!r} for worklog call.")
        if method in _NEEDS_ID and not worklog_id:
            raise InvalidArgumentError(
                f"Worklog ID is required for {method} operation on issue {issue_key}."
            )

        url = self.worklog_url(cloud_id, issue_key, worklog_id if method in _NEEDS_ID else None)
        headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}

        body: dict[str, Any] | None = None
        if method in _NEEDS_BODY:
            if (
                not payload
                or payload.get("timeSpentSeconds") is None
                or not payload.get("started")
            ):
                raise InvalidArgumentError(
                    "Missing required fields (started, timeSpentSeconds) in worklog "
                    f"data for {method} on issue {issue_key}."
                )
            body = {
                "started": payload["started"],
                "timeSpentSeconds": payload["timeSpentSeconds"],
            }

        logger.debug("Calling Jira API: %s %s", method, url)
        try:
            if body is None:
                response = await self.http.request(method, url, headers=headers)
            else:
                response = await self.http.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.error("Error calling Jira API %s %s: %s", method, url, exc)
            raise NetworkError(
                "Network or unexpected error occurred while calling Jira API."
            ) from exc
        return ApiResult(status_code=response.status_code, response=response)
