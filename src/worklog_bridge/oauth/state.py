"""State parameter helpers for the OAuth 2.0 web-flow.

The *state* value protects the redirect flow against CSRF.  It is built
from three parts joined by ``-`` behind a fixed prefix::

    secure-<base36 epoch ms>-<random>

The random part comes from :mod:`secrets`.  The prefix is what lets the
callback recognise a state that belongs to this flow before any stored
record is consulted.

Logging
-------
Only a masked prefix of the state is ever logged.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Final

from worklog_bridge.oauth.clock import Clock, default_clock, now_ms

_LOG = logging.getLogger("worklog-bridge.oauth.state")

STATE_PREFIX: Final[str] = "secure-"
_RANDOM_LEN: Final[int] = 16
_BASE36: Final[str] = string.digits + string.ascii_lowercase


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_state(*, clock: Clock = default_clock) -> str:
    """Return a fresh, unguessable state value for an authorization request."""
    timestamp = _base36(now_ms(clock))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(_RANDOM_LEN))
    state = f"{STATE_PREFIX}{timestamp}-{random_part}"
    _LOG.debug("Generated state %s****", state[: len(STATE_PREFIX) + 4])
    return state


def is_flow_state(state: str | None) -> bool:
    """Return *True* if *state* carries this flow's prefix convention."""
    return bool(state) and state.startswith(STATE_PREFIX) and len(state) > len(STATE_PREFIX)
