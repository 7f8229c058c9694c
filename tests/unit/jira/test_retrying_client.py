"""Unit tests for RetryingWorklogClient: refresh-once-and-retry semantics."""

from __future__ import annotations

import httpx
import pytest

from conftest import ACCOUNT_ID, CLOUD_ID, make_record
from worklog_bridge.jira.retrying import RetryingWorklogClient
from worklog_bridge.jira.worklogs import WorklogApiCaller
from worklog_bridge.oauth.errors import AuthDataIncompleteError, ReauthRequiredError
from worklog_bridge.oauth.refresher import TokenRefresher

TOKEN_PATH = "/oauth/token"
COLLECTION = f"/ex/jira/{CLOUD_ID}/rest/api/3/issue/COM-1/worklog"
BODY = {"started": "2024-01-01T00:00:00.000+0000", "timeSpentSeconds": 3600}


@pytest.fixture
def client(config, store, http, clock) -> RetryingWorklogClient:
    return RetryingWorklogClient(
        store,
        WorklogApiCaller(http, api_base_url=config.api_base_url),
        TokenRefresher(config, store, http, clock=clock),
    )


def _bearers(upstream, method: str, path: str) -> list[str]:
    return [r.headers["Authorization"] for r in upstream.calls(method, path)]


# --------------------------------------------------------------------------- #
# Credential preconditions                                                    #
# --------------------------------------------------------------------------- #
@pytest.mark.anyio
async def test_missing_record_is_auth_data_incomplete(client, upstream) -> None:
    with pytest.raises(AuthDataIncompleteError):
        await client.execute(ACCOUNT_ID, "POST", "COM-1", BODY)
    assert upstream.requests == []


@pytest.mark.anyio
@pytest.mark.parametrize("field", ["access_token", "refresh_token", "cloud_id"])
async def test_incomplete_record_makes_no_call(client, store, upstream, field) -> None:
    await store.save_credentials(make_record(**{field: None}))
    with pytest.raises(AuthDataIncompleteError) as excinfo:
        await client.execute(ACCOUNT_ID, "POST", "COM-1", BODY)
    assert excinfo.value.missing == (field,)
    assert upstream.requests == []


# --------------------------------------------------------------------------- #
# Refresh-and-retry                                                           #
# --------------------------------------------------------------------------- #
@pytest.mark.anyio
async def test_success_never_refreshes(client, store, upstream) -> None:
    await store.save_credentials(make_record())
    upstream.add("POST", COLLECTION, httpx.Response(201, json={"id": "999"}))

    result = await client.execute(ACCOUNT_ID, "POST", "COM-1", BODY)

    assert result.status_code == 201
    assert upstream.calls("POST", TOKEN_PATH) == []
    assert _bearers(upstream, "POST", COLLECTION) == ["Bearer access-old"]


@pytest.mark.anyio
@pytest.mark.parametrize("first_status", [401, 403])
@pytest.mark.parametrize("retry_status", [200, 401, 500])
async def test_auth_failure_refreshes_once_and_retries_once(
    client, store, upstream, first_status, retry_status
) -> None:
    await store.save_credentials(make_record())
    upstream.add(
        "POST",
        COLLECTION,
        httpx.Response(first_status),
        httpx.Response(retry_status, json={"id": "999"}),
    )
    upstream.add("POST", TOKEN_PATH, httpx.Response(200, json={"access_token": "access-new"}))

    result = await client.execute(ACCOUNT_ID, "POST", "COM-1", BODY)

    assert result.status_code == retry_status
    assert len(upstream.calls("POST", TOKEN_PATH)) == 1
    assert _bearers(upstream, "POST", COLLECTION) == ["Bearer access-old", "Bearer access-new"]


@pytest.mark.anyio
async def test_reauth_required_propagates_without_retry(client, store, upstream) -> None:
    await store.save_credentials(make_record())
    upstream.add("PUT", f"{COLLECTION}/42", httpx.Response(401))
    upstream.add("POST", TOKEN_PATH, httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(ReauthRequiredError):
        await client.execute(ACCOUNT_ID, "PUT", "COM-1", BODY, "42")

    assert len(upstream.calls("PUT", f"{COLLECTION}/42")) == 1
    # dead refresh token: the record is removed to force re-authorization
    assert await store.load_credentials(ACCOUNT_ID) is None


@pytest.mark.anyio
@pytest.mark.parametrize("status", [400, 404, 429, 500, 503])
async def test_other_statuses_are_final(client, store, upstream, status) -> None:
    await store.save_credentials(make_record())
    upstream.add("DELETE", f"{COLLECTION}/42", httpx.Response(status))

    result = await client.execute(ACCOUNT_ID, "DELETE", "COM-1", None, "42")

    assert result.status_code == status
    assert len(upstream.requests) == 1
