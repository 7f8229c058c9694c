"""Logging helpers: masking of secrets and one-shot root configuration."""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Return *value* with everything but the last *keep_chars* replaced.

    >>> mask_sensitive("abcdefgh", 2)
    '******gh'
    """
    if not value:
        return ""
    if len(value) <= keep_chars * 2:
        return "*" * len(value)
    return "*" * (len(value) - keep_chars) + value[-keep_chars:]


def setup_logging(level: int | str = logging.INFO, stream=None) -> logging.Logger:  # noqa: ANN001
    """Configure the ``worklog-bridge`` logger tree and return its root."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("worklog-bridge")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    logger.propagate = False
    return logger
