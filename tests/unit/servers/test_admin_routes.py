"""Unit tests for the bearer-guarded /admin endpoints."""

from __future__ import annotations

from dataclasses import replace

import httpx
import pytest

from worklog_bridge.bridge import WorklogBridge
from worklog_bridge.servers import create_app

AUTH = {"Authorization": "Bearer admin-token"}


def _client(bridge: WorklogBridge) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=create_app(bridge=bridge))
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("method", "path"),
    [("GET", "/admin/action-log"), ("POST", "/admin/secret"), ("GET", "/admin/credentials-check")],
)
async def test_admin_routes_require_token(bridge, method, path):
    async with _client(bridge) as client:
        assert (await client.request(method, path)).status_code == 401
        wrong = {"Authorization": "Bearer nope"}
        assert (await client.request(method, path, headers=wrong)).status_code == 401
        assert (await client.request(method, path, headers=AUTH)).status_code == 200


@pytest.mark.anyio
async def test_admin_routes_hidden_without_configured_token(config, kv, http):
    bridge = WorklogBridge(replace(config, admin_token=None), kv, http)
    async with _client(bridge) as client:
        resp = await client.get("/admin/action-log", headers=AUTH)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_regenerate_secret_and_read_log(bridge):
    async with _client(bridge) as client:
        resp = await client.post("/admin/secret", headers=AUTH)
        secret = resp.json()["secret"]
        assert len(secret) == 32
        assert await bridge.store.get_shared_secret() == secret

        await client.post("/webhooks/worklog/create", json={"userId": "U1"}, headers={"x-zapier-secret": secret})
        entries = (await client.get("/admin/action-log", headers=AUTH)).json()["entries"]

    assert len(entries) == 1
    assert entries[0]["accountId"] == "U1"
    assert entries[0]["success"] is False


@pytest.mark.anyio
async def test_credentials_check(bridge, config, kv, http):
    async with _client(bridge) as client:
        resp = await client.get("/admin/credentials-check", headers=AUTH)
    assert resp.json() == {"configured": True}

    unconfigured = WorklogBridge(replace(config, client_secret=None), kv, http)
    async with _client(unconfigured) as client:
        resp = await client.get("/admin/credentials-check", headers=AUTH)
    assert resp.json() == {"configured": False}
