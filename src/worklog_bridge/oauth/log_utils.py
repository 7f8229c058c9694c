"""Structured logging helpers for the credential lifecycle.

This module restricts **which** contextual attributes are attached to log
records so that tokens and secrets never leak.  The adapter ONLY injects the
following *non-sensitive* fields:

- ``account_id``     – The Atlassian account id (first 8 chars kept)
- ``action``         – ``create`` / ``update`` / ``delete`` / ``refresh`` …
- ``issue_key``      – Jira issue key being worked on
- ``correlation_id`` – Per-request id set by the HTTP layer

Usage
-----
>>> from worklog_bridge.oauth.log_utils import get_bridge_logger
>>> log = get_bridge_logger(
...     base_logger_name="worklog-bridge.jira.retrying",
...     account_id="557058:1f2e3d4c-aaaa-bbbb",
...     action="create",
... )
>>> log.info("Calling Jira")
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping


class _BridgeLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted bridge context into log records."""

    extra_keys = ("account_id", "action", "issue_key", "correlation_id")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if not extra or extra.get(k) is None:
                continue
            if k == "account_id":
                extra_clean[k] = str(extra[k])[:8]
            else:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        # call-site extras win
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs


def get_bridge_logger(
    *,
    base_logger_name: str = "worklog-bridge",
    account_id: str | None = None,
    action: str | None = None,
    issue_key: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with bridge context."""
    logger = logging.getLogger(base_logger_name)
    return _BridgeLoggerAdapter(
        logger,
        {
            "account_id": account_id,
            "action": action,
            "issue_key": issue_key,
            "correlation_id": correlation_id,
        },
    )
