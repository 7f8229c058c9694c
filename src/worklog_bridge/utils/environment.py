"""Utility functions for reading typed values from the environment."""

from __future__ import annotations

import logging
import os
from typing import Final

logger = logging.getLogger("worklog-bridge.utils.environment")

_TRUTHY: Final[tuple[str, ...]] = ("true", "1", "yes", "y", "on")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def env_flag(name: str, default: bool = False) -> bool:
    """Return the boolean value of *name*; unset falls back to *default*."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return _truthy(raw)


def env_str(name: str, default: str | None = None) -> str | None:
    """Return the stripped value of *name*, or *default* when unset/blank."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default
