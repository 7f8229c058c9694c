"""Exception types raised by the bridge core.

Only lightweight, **data-carrying** exceptions live here so that the webhook
dispatcher and the HTTP layer can map them onto their fixed response
vocabulary by :class:`ErrorKind`, never by inspecting message text.
"""

from __future__ import annotations

import enum
from typing import Any, Sequence


class ErrorKind(str, enum.Enum):
    """Distinguished error categories used for output mapping."""

    BAD_REQUEST = "bad_request"
    INVALID_ARGUMENT = "invalid_argument"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    AUTH_DATA_INCOMPLETE = "auth_data_incomplete"
    REAUTH_REQUIRED = "reauth_required"
    UPSTREAM = "upstream"
    PROTOCOL = "protocol"
    NETWORK = "network"
    CONFIG = "config"


class BridgeError(RuntimeError):
    """Base class for every error the bridge raises on purpose."""

    kind: ErrorKind = ErrorKind.UPSTREAM
    default_message: str = "Bridge error."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.kind.value, "message": str(self)}


class BadRequestError(BridgeError):
    """Malformed or incomplete caller input. Never retried."""

    kind = ErrorKind.BAD_REQUEST
    default_message = "Bad request."


class InvalidArgumentError(BridgeError):
    """A component was called with arguments it cannot act on."""

    kind = ErrorKind.INVALID_ARGUMENT
    default_message = "Invalid argument."


class UnauthorizedError(BridgeError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized."


class SecretNotConfiguredError(UnauthorizedError):
    """The shared secret is unset or unreadable.

    This is a configuration problem, but callers see it exactly like a wrong
    secret.
    """

    default_message = "Shared secret not configured."


class ForbiddenError(BridgeError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Forbidden."


class AuthDataIncompleteError(BridgeError):
    """No usable credential record for the user; authorization is required."""

    kind = ErrorKind.AUTH_DATA_INCOMPLETE

    def __init__(self, account_id: str, missing: Sequence[str]) -> None:
        self.account_id = account_id
        self.missing: tuple[str, ...] = tuple(missing)
        super().__init__(
            f"Authentication data incomplete for user {account_id}. "
            f"Missing: {', '.join(self.missing)}. Please connect the Jira account."
        )

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["missing"] = list(self.missing)
        return payload


class ReauthRequiredError(BridgeError):
    """The stored refresh token is dead; the user must authorize again."""

    kind = ErrorKind.REAUTH_REQUIRED

    def __init__(self, account_id: str, message: str | None = None) -> None:
        self.account_id = account_id
        super().__init__(
            message or "Refresh token invalid. Please re-authorize the app."
        )


class UpstreamError(BridgeError):
    """Non-success response from the identity provider or Jira."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Upstream request failed with status {status_code}.")

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["status_code"] = self.status_code
        return payload


class ProtocolError(BridgeError):
    """The provider answered 2xx but the body is missing mandatory data."""

    kind = ErrorKind.PROTOCOL
    default_message = "Unexpected response from upstream."


class NetworkError(BridgeError):
    kind = ErrorKind.NETWORK
    default_message = "Network error while calling upstream."


class ConfigError(BridgeError):
    kind = ErrorKind.CONFIG
    default_message = "OAuth client configuration missing."
