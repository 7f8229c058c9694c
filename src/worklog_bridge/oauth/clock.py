"""Clock abstraction for testable time handling in the OAuth core.

All expiry and bookkeeping decisions inside :mod:`worklog_bridge.oauth` and
the orchestrator depend on an injected ``Clock`` rather than calling
``time.time()`` directly.  Persisted timestamps are epoch *milliseconds*;
:func:`now_ms` performs the conversion.

Example
-------
>>> from worklog_bridge.oauth.clock import default_clock, now_ms
>>> isinstance(default_clock(), float)
True
>>> now_ms(lambda: 1.5)
1500
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning *seconds* since the UNIX epoch."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    """Default implementation that delegates to ``time.time()``."""
    return time.time()


def now_ms(clock: Clock = default_clock) -> int:
    """Return the clock reading as integer epoch milliseconds."""
    return int(clock() * 1000)
