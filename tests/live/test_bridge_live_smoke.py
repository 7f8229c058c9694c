"""Live smoke tests against a running worklog bridge.

These tests are *opt-in* and will only run when:
1. pytest is invoked with ``-m live``, **and**
2. the environment variable ``BRIDGE_LIVE=1`` is set.

Only read-only or rejected requests are sent; no worklog is written.
"""

from __future__ import annotations

import os

import httpx
import pytest

pytestmark = pytest.mark.live


def _bridge_url(path: str) -> str:
    return os.getenv("BRIDGE_URL", "http://localhost:8080").rstrip("/") + path


@pytest.fixture(autouse=True)
def _require_live() -> None:
    if os.getenv("BRIDGE_LIVE") != "1":
        pytest.skip("BRIDGE_LIVE=1 not set")


def _timeout() -> float:
    return float(os.getenv("BRIDGE_TIMEOUT_SECONDS", "10"))


def test_healthz() -> None:
    response = httpx.get(_bridge_url("/healthz"), timeout=_timeout())
    response.raise_for_status()
    assert response.json() == {"status": "ok"}


def test_webhook_without_secret_is_rejected() -> None:
    """A request with no shared secret must never reach Jira."""
    response = httpx.post(
        _bridge_url("/webhooks/worklog/create"), json={"userId": "smoke"}, timeout=_timeout()
    )
    assert response.status_code == 401
    assert response.headers.get("X-Correlation-ID")
