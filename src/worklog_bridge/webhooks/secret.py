"""Shared-secret check authenticating the automation platform.

The secret identifies the calling platform, not an end user.  Values are
compared after trimming surrounding whitespace; the comparison itself is
constant-time.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import string
from typing import Any, Final, Mapping

from worklog_bridge.oauth.errors import SecretNotConfiguredError, UnauthorizedError
from worklog_bridge.oauth.store import CredentialStore

_LOG = logging.getLogger("worklog-bridge.webhooks.secret")

SECRET_HEADER: Final[str] = "x-zapier-secret"
_SECRET_ALPHABET: Final[str] = string.ascii_letters + string.digits


def generate_shared_secret(length: int = 32) -> str:
    """Return a random alphanumeric secret of *length* characters."""
    return "".join(secrets.choice(_SECRET_ALPHABET) for _ in range(length))


def _header_value(headers: Mapping[str, Any] | None, name: str) -> str | None:
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() != name:
            continue
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        return None if value is None else str(value)
    return None


class SecretValidator:
    """Compare an inbound secret header with the stored shared secret."""

    def __init__(self, store: CredentialStore, *, header_name: str = SECRET_HEADER) -> None:
        self.store = store
        self.header_name = header_name.lower()

    async def validate(self, headers: Mapping[str, Any] | None) -> None:
        """Return silently on a match, raise :class:`UnauthorizedError` otherwise."""
        try:
            expected_raw = await self.store.get_shared_secret()
        except Exception as exc:  # noqa: BLE001
            _LOG.error("Could not retrieve shared secret: %s", exc)
            raise SecretNotConfiguredError(
                "Server configuration error: could not retrieve shared secret."
            ) from exc

        if expected_raw is None or not expected_raw.strip():
            _LOG.error("Shared secret is not configured.")
            raise SecretNotConfiguredError()

        received_raw = _header_value(headers, self.header_name)
        if received_raw is None or received_raw == "":
            _LOG.error("Missing or empty %s header.", self.header_name)
            raise UnauthorizedError("Missing required secret header.")

        received = received_raw.strip().encode("utf-8")
        expected = expected_raw.strip().encode("utf-8")
        if not hmac.compare_digest(received, expected):
            _LOG.error("Invalid %s provided (mismatch after trimming).", self.header_name)
            raise UnauthorizedError("Invalid secret.")

        _LOG.debug("Shared secret validated.")

    async def regenerate(self) -> str:
        """Store and return a brand-new shared secret."""
        secret = generate_shared_secret()
        await self.store.set_shared_secret(secret)
        _LOG.info("Shared secret regenerated.")
        return secret
