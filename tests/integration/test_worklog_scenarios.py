"""Integration tests: webhook -> app -> orchestrator -> stubbed Jira, end to end.

Every upstream (identity provider and Jira) is a ``httpx.MockTransport``, so
these are safe for CI.
"""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import ACCOUNT_ID, CLOUD_ID, NOW_MS, SECRET, make_record
from worklog_bridge.oauth.store import token_key
from worklog_bridge.servers import create_app

pytestmark = [pytest.mark.integration, pytest.mark.ci_safe]

COLLECTION = f"/ex/jira/{CLOUD_ID}/rest/api/3/issue/COM-1/worklog"
TOKEN_PATH = "/oauth/token"
HEADERS = {"x-zapier-secret": SECRET, "Content-Type": "application/json"}
CREATE = {
    "event": "hours:created",
    "userId": ACCOUNT_ID,
    "issueKey": "COM-1",
    "started": "2024-01-01T00:00:00.000+0000",
    "timeSpentSeconds": 3600,
}


@pytest.fixture()
async def client(bridge, kv):
    kv._values[token_key(ACCOUNT_ID)] = json.dumps(make_record().to_mapping())
    transport = httpx.ASGITransport(app=create_app(bridge=bridge))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.anyio
async def test_create_with_valid_credentials(client, upstream, bridge):
    upstream.add("POST", COLLECTION, httpx.Response(200, json={"id": "999"}))

    resp = await client.post("/webhooks/worklog/create", json=CREATE, headers=HEADERS)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "action": "created"}
    assert upstream.calls("POST", TOKEN_PATH) == []
    (entry,) = await bridge.action_log_entries()
    assert entry["actionType"] == "create"
    assert entry["success"] is True
    assert entry["worklogId"] == "999"


@pytest.mark.anyio
async def test_create_after_transparent_refresh(client, upstream, bridge):
    upstream.add(
        "POST",
        COLLECTION,
        httpx.Response(401, json={"errorMessages": ["expired"]}),
        httpx.Response(200, json={"id": "999"}),
    )
    upstream.add(
        "POST",
        TOKEN_PATH,
        httpx.Response(200, json={"access_token": "access-new", "expires_in": 3600}),
    )

    resp = await client.post("/webhooks/worklog/create", json=CREATE, headers=HEADERS)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "action": "created"}
    stored = await bridge.store.load_credentials(ACCOUNT_ID)
    assert stored.access_token == "access-new"
    assert stored.refresh_token == "refresh-old"
    assert stored.cloud_id == CLOUD_ID
    assert stored.last_refreshed == NOW_MS
    assert [r.headers["Authorization"] for r in upstream.calls("POST", COLLECTION)] == [
        "Bearer access-old",
        "Bearer access-new",
    ]


@pytest.mark.anyio
async def test_delete_missing_worklog_id(client, upstream, bridge):
    payload = {"event": "hours:deleted", "userId": ACCOUNT_ID, "issueKey": "COM-1"}

    resp = await client.post("/webhooks/worklog/delete", json=payload, headers=HEADERS)

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Bad Request"}
    assert upstream.requests == []
    (entry,) = await bridge.action_log_entries()
    assert entry["success"] is False
    assert entry["actionType"] == "delete"


@pytest.mark.anyio
async def test_update_with_dead_refresh_token(client, upstream, bridge):
    upstream.add("PUT", f"{COLLECTION}/42", httpx.Response(401))
    upstream.add("POST", TOKEN_PATH, httpx.Response(400, json={"error": "invalid_grant"}))
    payload = {**CREATE, "event": "hours:updated", "worklogId": "42"}

    first = await client.post("/webhooks/worklog/update", json=payload, headers=HEADERS)

    assert first.status_code == 401
    assert first.json() == {"success": False, "error": "Unauthorized or Re-authentication required"}
    assert len(upstream.calls("PUT", f"{COLLECTION}/42")) == 1
    assert await bridge.store.load_credentials(ACCOUNT_ID) is None

    # Not retryable: the next attempt fails fast without touching upstream.
    upstream.requests.clear()
    second = await client.post("/webhooks/worklog/update", json=payload, headers=HEADERS)
    assert second.status_code == 401
    assert upstream.requests == []


@pytest.mark.anyio
async def test_authorize_then_log_work(bridge, upstream):
    """Full lifecycle: start -> callback -> create worklog with the new token."""
    transport = httpx.ASGITransport(app=create_app(bridge=bridge))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        start = await client.get(f"/auth/start?account_id={ACCOUNT_ID}&format=json")
        authorize_url = httpx.URL(start.json()["authorize_url"])
        state = authorize_url.params["state"]

        upstream.add(
            "POST",
            TOKEN_PATH,
            httpx.Response(200, json={"access_token": "fresh", "refresh_token": "rt", "expires_in": 3600}),
        )
        upstream.add("GET", "/me", httpx.Response(200, json={"account_id": ACCOUNT_ID, "name": "Ada"}))
        upstream.add("GET", "/oauth/token/accessible-resources", httpx.Response(200, json=[{"id": CLOUD_ID}]))
        callback = await client.get("/auth/callback", params={"code": "code-1", "state": state})
        assert callback.status_code == 200

        upstream.add("POST", COLLECTION, httpx.Response(201, json={"id": "1000"}))
        resp = await client.post("/webhooks/worklog/create", json=CREATE, headers=HEADERS)

    assert resp.json() == {"success": True, "action": "created"}
    assert upstream.calls("POST", COLLECTION)[0].headers["Authorization"] == "Bearer fresh"
