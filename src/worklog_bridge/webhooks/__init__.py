"""Inbound webhook handling: payloads, secret check, dispatch and action log."""

from __future__ import annotations

from .action_log import ActionLogEntry, ActionLogger, MAX_LOG_ENTRIES  # noqa: F401
from .dispatcher import (  # noqa: F401
    ACTION_SPECS,
    CREATE,
    DELETE,
    UPDATE,
    ActionDispatcher,
    ActionSpec,
    EventDispatcher,
)
from .outputs import OUTPUTS, WebhookOutput, render  # noqa: F401
from .secret import SECRET_HEADER, SecretValidator, generate_shared_secret  # noqa: F401

__all__ = [
    "ACTION_SPECS",
    "ActionDispatcher",
    "ActionLogEntry",
    "ActionLogger",
    "ActionSpec",
    "CREATE",
    "DELETE",
    "EventDispatcher",
    "MAX_LOG_ENTRIES",
    "OUTPUTS",
    "SECRET_HEADER",
    "SecretValidator",
    "UPDATE",
    "WebhookOutput",
    "generate_shared_secret",
    "render",
]
