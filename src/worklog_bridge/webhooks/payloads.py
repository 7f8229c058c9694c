"""Typed inbound webhook payloads, validated at the boundary."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping

from worklog_bridge.oauth.errors import BadRequestError

EVENT_CREATED = "hours:created"
EVENT_UPDATED = "hours:updated"
EVENT_DELETED = "hours:deleted"


class MissingFieldsError(BadRequestError):
    """Payload lacks one or more required fields."""

    def __init__(self, action: str, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"Missing required fields in payload for {action}: {', '.join(missing)}."
        )


def parse_body(raw: str | bytes | Mapping[str, Any] | None) -> dict[str, Any]:
    """Decode a webhook body into a JSON object.

    Raises
    ------
    BadRequestError
        Empty body, invalid JSON, or JSON that is not a non-empty object.
    """
    if raw is None:
        raise BadRequestError("Request body is missing.")
    if isinstance(raw, Mapping):
        payload: Any = dict(raw)
    else:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise BadRequestError("Request body is not valid UTF-8.") from exc
        if not raw.strip():
            raise BadRequestError("Request body is missing.")
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise BadRequestError("Invalid JSON payload in request body.") from exc
    if not isinstance(payload, dict) or not payload:
        raise BadRequestError("Request body is empty or not a JSON object.")
    return payload


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _seconds(value: Any) -> int:
    if isinstance(value, bool):
        raise BadRequestError("timeSpentSeconds must be a non-negative integer.")
    if isinstance(value, int):
        seconds = value
    elif isinstance(value, float) and value.is_integer():
        seconds = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        seconds = int(value.strip())
    else:
        raise BadRequestError("timeSpentSeconds must be a non-negative integer.")
    if seconds < 0:
        raise BadRequestError("timeSpentSeconds must be a non-negative integer.")
    return seconds


def _missing(payload: Mapping[str, Any], fields: tuple[str, ...]) -> list[str]:
    missing = []
    for name in fields:
        if name == "timeSpentSeconds":
            if payload.get(name) is None:
                missing.append(name)
        elif _text(payload.get(name)) is None:
            missing.append(name)
    return missing


@dataclass(frozen=True, slots=True)
class CreateWorklogRequest:
    user_id: str
    issue_key: str
    started: str
    time_spent_seconds: int
    event: str | None = None

    action: ClassVar[str] = "create"
    required: ClassVar[tuple[str, ...]] = ("userId", "issueKey", "started", "timeSpentSeconds")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CreateWorklogRequest":
        missing = _missing(payload, cls.required)
        if missing:
            raise MissingFieldsError(cls.action, missing)
        return cls(
            user_id=_text(payload["userId"]),
            issue_key=_text(payload["issueKey"]),
            started=_text(payload["started"]),
            time_spent_seconds=_seconds(payload["timeSpentSeconds"]),
            event=_text(payload.get("event")),
        )

    @property
    def worklog_id(self) -> str | None:
        return None

    def api_payload(self) -> dict[str, Any]:
        return {"started": self.started, "timeSpentSeconds": self.time_spent_seconds}


@dataclass(frozen=True, slots=True)
class UpdateWorklogRequest:
    user_id: str
    issue_key: str
    worklog_id: str
    started: str
    time_spent_seconds: int
    event: str | None = None

    action: ClassVar[str] = "update"
    required: ClassVar[tuple[str, ...]] = (
        "userId",
        "issueKey",
        "worklogId",
        "started",
        "timeSpentSeconds",
    )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "UpdateWorklogRequest":
        missing = _missing(payload, cls.required)
        if missing:
            raise MissingFieldsError(cls.action, missing)
        return cls(
            user_id=_text(payload["userId"]),
            issue_key=_text(payload["issueKey"]),
            worklog_id=_text(payload["worklogId"]),
            started=_text(payload["started"]),
            time_spent_seconds=_seconds(payload["timeSpentSeconds"]),
            event=_text(payload.get("event")),
        )

    def api_payload(self) -> dict[str, Any]:
        return {"started": self.started, "timeSpentSeconds": self.time_spent_seconds}


@dataclass(frozen=True, slots=True)
class DeleteWorklogRequest:
    user_id: str
    issue_key: str
    worklog_id: str
    event: str | None = None

    action: ClassVar[str] = "delete"
    required: ClassVar[tuple[str, ...]] = ("userId", "issueKey", "worklogId")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DeleteWorklogRequest":
        missing = _missing(payload, cls.required)
        if missing:
            raise MissingFieldsError(cls.action, missing)
        return cls(
            user_id=_text(payload["userId"]),
            issue_key=_text(payload["issueKey"]),
            worklog_id=_text(payload["worklogId"]),
            event=_text(payload.get("event")),
        )

    def api_payload(self) -> None:
        return None


WorklogRequest = CreateWorklogRequest | UpdateWorklogRequest | DeleteWorklogRequest

EVENT_ACTIONS: dict[str, str] = {
    EVENT_CREATED: "create",
    EVENT_UPDATED: "update",
    EVENT_DELETED: "delete",
}
