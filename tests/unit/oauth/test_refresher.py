"""Unit tests for TokenRefresher: rotation, merge and failure kinds."""

from __future__ import annotations

import dataclasses

import httpx
import pytest

from conftest import ACCOUNT_ID, NOW_MS, make_record
from worklog_bridge.oauth.errors import (
    ConfigError,
    InvalidArgumentError,
    NetworkError,
    ProtocolError,
    ReauthRequiredError,
    UpstreamError,
)
from worklog_bridge.oauth.refresher import TokenRefresher

TOKEN_PATH = "/oauth/token"


@pytest.fixture
def refresher(config, store, http, clock) -> TokenRefresher:
    return TokenRefresher(config, store, http, clock=clock)


# --------------------------------------------------------------------------- #
# Success                                                                     #
# --------------------------------------------------------------------------- #
@pytest.mark.anyio
async def test_refresh_keeps_refresh_token_when_not_rotated(refresher, store, upstream) -> None:
    await store.save_credentials(make_record())
    before = await store.load_raw_credentials(ACCOUNT_ID)
    upstream.add("POST", TOKEN_PATH, httpx.Response(200, json={"access_token": "access-new", "expires_in": 1800}))

    token = await refresher.refresh(ACCOUNT_ID, "refresh-old")

    assert token == "access-new"
    after = await store.load_raw_credentials(ACCOUNT_ID)
    assert after["access_token"] == "access-new"
    assert after["refresh_token"] == "refresh-old"
    assert after["expires_at"] == NOW_MS + 1_800_000
    assert after["last_refreshed"] == NOW_MS
    untouched = set(before) - {"access_token", "expires_at", "last_refreshed"}
    assert {k: after[k] for k in untouched} == {k: before[k] for k in untouched}


@pytest.mark.anyio
async def test_refresh_overwrites_rotated_refresh_token(refresher, store, upstream) -> None:
    await store.save_credentials(make_record())
    upstream.add(
        "POST",
        TOKEN_PATH,
        httpx.Response(200, json={"access_token": "access-new", "refresh_token": "refresh-new"}),
    )

    record = await refresher.refresh_credentials(ACCOUNT_ID, "refresh-old")

    assert record.refresh_token == "refresh-new"
    assert record.cloud_id == "cloud-1"
    assert record.profile == {"name": "Ada", "email": "ada@example.com"}
    # default lifetime when expires_in is absent
    assert record.expires_at == NOW_MS + 3_600_000


@pytest.mark.anyio
async def test_refresh_posts_refresh_grant(refresher, store, upstream, config) -> None:
    await store.save_credentials(make_record())
    upstream.add("POST", TOKEN_PATH, httpx.Response(200, json={"access_token": "a"}))

    await refresher.refresh(ACCOUNT_ID, "refresh-old")

    (request,) = upstream.calls("POST", TOKEN_PATH)
    assert upstream.json_body(request) == {
        "grant_type": "refresh_token",
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "refresh_token": "refresh-old",
    }


@pytest.mark.anyio
async def test_refresh_preserves_unknown_persisted_keys(refresher, store, upstream) -> None:
    raw = make_record().to_mapping() | {"legacy_field": "keep-me"}
    await store.save_raw_credentials(ACCOUNT_ID, raw)
    upstream.add("POST", TOKEN_PATH, httpx.Response(200, json={"access_token": "a"}))

    await refresher.refresh(ACCOUNT_ID, "refresh-old")

    assert (await store.load_raw_credentials(ACCOUNT_ID))["legacy_field"] == "keep-me"


# --------------------------------------------------------------------------- #
# Failures                                                                    #
# --------------------------------------------------------------------------- #
@pytest.mark.anyio
async def test_invalid_grant_means_reauth(refresher, store, upstream) -> None:
    await store.save_credentials(make_record())
    upstream.add("POST", TOKEN_PATH, httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(ReauthRequiredError):
        await refresher.refresh(ACCOUNT_ID, "refresh-old")
    # record untouched here; deletion is the orchestrator's call
    assert (await store.load_credentials(ACCOUNT_ID)).access_token == "access-old"


@pytest.mark.anyio
async def test_other_failure_is_upstream_error(refresher, upstream) -> None:
    upstream.add("POST", TOKEN_PATH, httpx.Response(500, text="boom"))

    with pytest.raises(UpstreamError) as excinfo:
        await refresher.refresh(ACCOUNT_ID, "refresh-old")
    assert excinfo.value.status_code == 500


@pytest.mark.anyio
async def test_success_without_access_token_is_protocol_error(refresher, upstream) -> None:
    upstream.add("POST", TOKEN_PATH, httpx.Response(200, json={"refresh_token": "r"}))

    with pytest.raises(ProtocolError):
        await refresher.refresh(ACCOUNT_ID, "refresh-old")


@pytest.mark.anyio
async def test_non_numeric_expires_in_is_protocol_error(refresher, store, upstream) -> None:
    await store.save_credentials(make_record())
    upstream.add("POST", TOKEN_PATH, httpx.Response(200, json={"access_token": "a", "expires_in": "soon"}))

    with pytest.raises(ProtocolError):
        await refresher.refresh(ACCOUNT_ID, "refresh-old")
    assert (await store.load_credentials(ACCOUNT_ID)).access_token == "access-old"


@pytest.mark.anyio
async def test_transport_failure_is_network_error(refresher, upstream) -> None:
    upstream.add("POST", TOKEN_PATH, httpx.ConnectError("down"))

    with pytest.raises(NetworkError):
        await refresher.refresh(ACCOUNT_ID, "refresh-old")


@pytest.mark.anyio
async def test_argument_and_config_checks(config, store, http, clock, upstream) -> None:
    refresher = TokenRefresher(config, store, http, clock=clock)
    with pytest.raises(InvalidArgumentError):
        await refresher.refresh("", "refresh-old")
    with pytest.raises(ReauthRequiredError):
        await refresher.refresh(ACCOUNT_ID, "")

    unconfigured = TokenRefresher(
        dataclasses.replace(config, client_secret=None), store, http, clock=clock
    )
    with pytest.raises(ConfigError):
        await unconfigured.refresh(ACCOUNT_ID, "refresh-old")
    assert upstream.requests == []
