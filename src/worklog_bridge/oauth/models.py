"""Typed records used by the OAuth core and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final, Mapping

from worklog_bridge.oauth.clock import Clock, default_clock, now_ms
from worklog_bridge.oauth.errors import ProtocolError

PENDING_STATE_TTL_MS: Final[int] = 15 * 60 * 1000

# Token lifetime assumed when the provider omits ``expires_in`` (seconds).
DEFAULT_EXPIRES_IN: Final[int] = 3600

# Fields the orchestrator needs before any upstream call is attempted.
REQUIRED_CREDENTIAL_FIELDS: Final[tuple[str, ...]] = (
    "access_token",
    "refresh_token",
    "cloud_id",
)


@dataclass(frozen=True, slots=True)
class CredentialRecord:
    """Per-user delegated credential as persisted under ``oauth_token:<id>``."""

    account_id: str
    access_token: str | None = None
    refresh_token: str | None = None
    # epoch milliseconds
    expires_at: int | None = None
    cloud_id: str | None = None
    scopes: tuple[str, ...] = ()
    profile: Mapping[str, Any] = field(default_factory=dict)
    timestamp: int | None = None
    last_refreshed: int | None = None

    @classmethod
    def from_mapping(cls, account_id: str, data: Mapping[str, Any]) -> "CredentialRecord":
        return cls(
            account_id=str(data.get("account_id") or account_id),
            access_token=data.get("access_token") or None,
            refresh_token=data.get("refresh_token") or None,
            expires_at=_int_or_none(data.get("expires_at")),
            cloud_id=data.get("cloud_id") or None,
            scopes=tuple(data.get("scopes") or ()),
            profile=dict(data.get("profile") or {}),
            timestamp=_int_or_none(data.get("timestamp")),
            last_refreshed=_int_or_none(data.get("last_refreshed")),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "cloud_id": self.cloud_id,
            "scopes": list(self.scopes),
            "profile": dict(self.profile),
            "timestamp": self.timestamp,
            "last_refreshed": self.last_refreshed,
        }

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty on this record."""
        return [name for name in REQUIRED_CREDENTIAL_FIELDS if not getattr(self, name)]

    def expires_within(self, window_ms: int, *, clock: Clock = default_clock) -> bool:
        """Return *True* if the access token expires inside *window_ms*.

        A record without a known expiry is treated as expiring.
        """
        if self.expires_at is None:
            return True
        return self.expires_at < now_ms(clock) + window_ms


@dataclass(frozen=True, slots=True)
class PendingAuthorization:
    """CSRF guard captured when an authorization URL is issued."""

    state: str
    created_at: int
    ttl_ms: int = PENDING_STATE_TTL_MS

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PendingAuthorization":
        return cls(state=str(data.get("state", "")), created_at=int(data.get("created_at", 0)))

    def to_mapping(self) -> dict[str, Any]:
        return {"state": self.state, "created_at": self.created_at}

    def is_expired(self, *, clock: Clock = default_clock) -> bool:
        """Return *True* if the pending record exceeded its TTL."""
        return (now_ms(clock) - self.created_at) > self.ttl_ms


def _int_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def token_lifetime(token_data: Mapping[str, Any]) -> int:
    """Return ``expires_in`` from a token response, in seconds.

    Missing values fall back to :data:`DEFAULT_EXPIRES_IN`; anything that is
    not a whole number raises :class:`ProtocolError`.
    """
    raw = token_data.get("expires_in")
    if raw is None or raw == "" or raw == 0:
        return DEFAULT_EXPIRES_IN
    if isinstance(raw, bool):
        raise ProtocolError("Token response has a non-numeric expires_in.")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ProtocolError("Token response has a non-numeric expires_in.") from exc
