"""Shared fixtures: fixed clock, in-memory store and a scripted upstream."""

from __future__ import annotations

import json
from collections import defaultdict
from typing import Any, Callable

import httpx
import pytest

from worklog_bridge.config import BridgeConfig
from worklog_bridge.oauth.models import CredentialRecord
from worklog_bridge.oauth.store import CredentialStore, MemoryKeyValueStore

NOW = 1_700_000_000.0
NOW_MS = int(NOW * 1000)
CLOUD_ID = "cloud-1"
ACCOUNT_ID = "557058:user-1"
SECRET = "s3cret-value"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def fake_clock_factory(now: float) -> Callable[[], float]:
    """Return a deterministic clock returning *now*."""
    return lambda now=now: now


# --------------------------------------------------------------------------- #
# Scripted upstream                                                           #
# --------------------------------------------------------------------------- #
class FakeUpstream:
    """Queue canned responses per ``(METHOD, path)`` and record every request.

    The last queued response for a route is repeated once the queue runs dry.
    Unknown routes answer 599 so a missing stub never looks like success.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list[httpx.Response | Exception]] = defaultdict(list)
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses: httpx.Response | Exception) -> "FakeUpstream":
        self._routes[(method.upper(), path)].extend(responses)
        return self

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def json_body(self, request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(599, json={"error": "no stub"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def http(upstream: FakeUpstream) -> httpx.AsyncClient:
    return upstream.client()


# --------------------------------------------------------------------------- #
# Configuration & storage                                                     #
# --------------------------------------------------------------------------- #
@pytest.fixture
def config(tmp_path) -> BridgeConfig:
    return BridgeConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="https://bridge.example.com/auth/callback",
        storage_dir=tmp_path,
        admin_token="admin-token",
    )


@pytest.fixture
def clock() -> Callable[[], float]:
    return fake_clock_factory(NOW)


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv: MemoryKeyValueStore) -> CredentialStore:
    return CredentialStore(kv)


def make_record(**overrides: Any) -> CredentialRecord:
    fields: dict[str, Any] = {
        "account_id": ACCOUNT_ID,
        "access_token": "access-old",
        "refresh_token": "refresh-old",
        "expires_at": NOW_MS + 3_600_000,
        "cloud_id": CLOUD_ID,
        "scopes": ("write:jira-work", "offline_access"),
        "profile": {"name": "Ada", "email": "ada@example.com"},
        "timestamp": NOW_MS - 1_000,
    }
    fields.update(overrides)
    return CredentialRecord(**fields)


@pytest.fixture
def seeded_record():
    return make_record


# --------------------------------------------------------------------------- #
# Integration opt-in                                                          #
# --------------------------------------------------------------------------- #
def pytest_addoption(parser):
    """Add integration option to pytest."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly requested.

    Tests marked with 'ci_safe' are always run because they stub all
    external calls.
    """
    if not config.getoption("--integration", default=False):
        skip_integration = pytest.mark.skip(reason="Need --integration option to run")
        for item in items:
            if "integration" in item.keywords and "ci_safe" not in item.keywords:
                item.add_marker(skip_integration)


# --------------------------------------------------------------------------- #
# Wired bridge                                                                #
# --------------------------------------------------------------------------- #
@pytest.fixture
def bridge(config, kv, http, clock):
    """WorklogBridge over the in-memory store with the shared secret set."""
    from worklog_bridge.bridge import WorklogBridge
    from worklog_bridge.oauth.store import SHARED_SECRET_KEY

    kv._secrets[SHARED_SECRET_KEY] = SECRET
    return WorklogBridge(config, kv, http, clock=clock)
