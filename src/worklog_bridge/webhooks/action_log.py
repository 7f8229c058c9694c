"""Bounded, newest-first log of past worklog actions.

Entries are persisted under one store key as a list capped at
:data:`MAX_LOG_ENTRIES`.  Recording never raises: an action's outcome must
not depend on whether its log line could be written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Final

from worklog_bridge.oauth.store import CredentialStore

_LOG = logging.getLogger("worklog-bridge.webhooks.action_log")

MAX_LOG_ENTRIES: Final[int] = 50


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class ActionLogEntry:
    action_type: str
    success: bool
    issue_key: str | None = None
    worklog_id: str | None = None
    account_id: str | None = None
    message: str | None = None
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "actionType": self.action_type,
            "success": self.success,
            "issueKey": self.issue_key or "Unknown",
            "worklogId": self.worklog_id or "N/A",
            "accountId": self.account_id or "Unknown",
            "message": self.message or ("Success" if self.success else "Failure"),
        }


class ActionLogger:
    """Append entries to the ring and read them back."""

    def __init__(self, store: CredentialStore, *, max_entries: int = MAX_LOG_ENTRIES) -> None:
        self.store = store
        self.max_entries = max_entries

    async def record(self, entry: ActionLogEntry) -> None:
        item = entry.to_mapping()
        try:
            _LOG.info(
                "Logging action %s for %s, success=%s",
                item["actionType"],
                item["issueKey"],
                item["success"],
            )
            current = await self.store.load_action_log()
            if current is None:
                current = []
            current.insert(0, item)
            del current[self.max_entries :]
            await self.store.save_action_log(current)
        except Exception as exc:  # noqa: BLE001
            _LOG.error("Failed to write action log: %s", exc, exc_info=True)

    async def entries(self) -> list[dict[str, Any]]:
        try:
            return await self.store.load_action_log() or []
        except Exception as exc:  # noqa: BLE001
            _LOG.error("Error fetching action log: %s", exc)
            return []
