"""Delegated-credential core.

This namespace hosts the **HTTP-agnostic** building blocks of the per-user
OAuth 2.0 (3LO) lifecycle: acquiring, persisting, refreshing and reporting
on a user's Atlassian token pair.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
state
    CSRF-resistant ``state`` parameter generation / recognition.
models
    Credential and pending-authorization records.
errors
    Exception taxonomy mapped by the webhook layer.
store
    Key-value persistence and the typed credential façade.
refresher
    Refresh-token exchange with rotation.
flow
    Authorization redirect / callback handling.
status
    Connection status and proactive refresh.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).
"""

from __future__ import annotations

from .clock import Clock, default_clock, now_ms  # noqa: F401
from .errors import (  # noqa: F401
    AuthDataIncompleteError,
    BadRequestError,
    BridgeError,
    ConfigError,
    ErrorKind,
    ForbiddenError,
    InvalidArgumentError,
    NetworkError,
    ProtocolError,
    ReauthRequiredError,
    SecretNotConfiguredError,
    UnauthorizedError,
    UpstreamError,
)
from .flow import AuthorizationFlowHandler, AuthorizationResult  # noqa: F401
from .log_utils import get_bridge_logger  # noqa: F401
from .models import CredentialRecord, PendingAuthorization  # noqa: F401
from .refresher import TokenRefresher  # noqa: F401
from .state import generate_state, is_flow_state  # noqa: F401
from .status import AuthStatusService  # noqa: F401
from .store import (  # noqa: F401
    CredentialStore,
    DiskKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
)

__all__ = [
    # clock
    "Clock",
    "default_clock",
    "now_ms",
    # errors
    "AuthDataIncompleteError",
    "BadRequestError",
    "BridgeError",
    "ConfigError",
    "ErrorKind",
    "ForbiddenError",
    "InvalidArgumentError",
    "NetworkError",
    "ProtocolError",
    "ReauthRequiredError",
    "SecretNotConfiguredError",
    "UnauthorizedError",
    "UpstreamError",
    # flow
    "AuthorizationFlowHandler",
    "AuthorizationResult",
    # logging helpers
    "get_bridge_logger",
    # models
    "CredentialRecord",
    "PendingAuthorization",
    # refresh / status
    "TokenRefresher",
    "AuthStatusService",
    # state
    "generate_state",
    "is_flow_state",
    # store
    "CredentialStore",
    "DiskKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
]
