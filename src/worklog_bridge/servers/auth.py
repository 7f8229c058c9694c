"""Browser-facing OAuth endpoints.

Handlers stay thin:

1. Parse HTTP-layer parameters.
2. Delegate to :class:`~worklog_bridge.bridge.WorklogBridge`.
3. Return an appropriate Starlette ``Response``.

SECURITY NOTE
-------------
The per-account routes (status, token, disconnect) trust the ``account_id``
the caller names, so they sit behind the operator bearer token.

No raw secrets (state, authorization codes, access or refresh tokens, client
secrets) are ever logged.  The callback page reports only a success flag and
a short message to its opener window.
"""

from __future__ import annotations

import html
import json
import logging

from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from worklog_bridge.bridge import WorklogBridge
from worklog_bridge.oauth.errors import BridgeError, ConfigError, ErrorKind
from worklog_bridge.servers.correlation import correlation_id_of
from worklog_bridge.servers.guards import require_admin_token

_LOG = logging.getLogger("worklog-bridge.auth.routes")

_TOKEN_ERROR_STATUS = {
    ErrorKind.AUTH_DATA_INCOMPLETE: 401,
    ErrorKind.REAUTH_REQUIRED: 401,
    ErrorKind.CONFIG: 500,
}


def _callback_page(success: bool, message: str) -> HTMLResponse:
    """Popup page that notifies its opener and closes itself."""
    title = "Authorization successful" if success else "Authorization failed"
    event = {"type": "oauth_success" if success else "oauth_failure", "message": message}
    # "</" must not appear inside the inline script.
    script_payload = json.dumps(event).replace("</", "<\\/")
    content = (
        "<!doctype html><html lang='en'>"
        f"<head><meta charset='utf-8'><title>{title}</title></head>"
        f"<body><h1>{title}</h1><p>{html.escape(message)}</p>"
        "<p>You may close this window.</p>"
        "<script>"
        f"if (window.opener) {{ window.opener.postMessage({script_payload}, '*'); }}"
        "setTimeout(function () { window.close(); }, 1500);"
        "</script></body></html>"
    )
    return HTMLResponse(content, status_code=200 if success else 400)


def _account_id(request: Request) -> str | None:
    return (request.query_params.get("account_id") or "").strip() or None


# --------------------------------------------------------------------------- #
# Handlers                                                                    #
# --------------------------------------------------------------------------- #
async def start_oauth(request: Request) -> Response:
    bridge: WorklogBridge = request.app.state.bridge
    account_id = _account_id(request)
    try:
        authorize_url = await bridge.authorization_url(account_id)
    except ConfigError as exc:
        _LOG.error("OAuth start failed: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=500)

    _LOG.info(
        "OAuth start account=%s correlation_id=%s",
        account_id or "-",
        correlation_id_of(request),
    )

    # Content negotiation with an explicit override for browser vs API clients
    fmt_param = request.query_params.get("format")
    accept_header = (request.headers.get("accept") or "").lower()
    if fmt_param == "json":
        return JSONResponse({"authorize_url": authorize_url})
    if fmt_param == "redirect" or "text/html" in accept_header:
        return RedirectResponse(authorize_url, status_code=303)
    return JSONResponse({"authorize_url": authorize_url})


async def oauth_callback(request: Request) -> Response:
    bridge: WorklogBridge = request.app.state.bridge
    result = await bridge.complete_authorization(dict(request.query_params))
    _LOG.info(
        "OAuth callback success=%s correlation_id=%s",
        result.success,
        correlation_id_of(request),
    )
    return _callback_page(result.success, result.message)


async def auth_status(request: Request) -> Response:
    bridge: WorklogBridge = request.app.state.bridge
    return JSONResponse(await bridge.auth_status(_account_id(request)))


async def access_token(request: Request) -> Response:
    bridge: WorklogBridge = request.app.state.bridge
    account_id = _account_id(request)
    if account_id is None:
        return JSONResponse({"error": "missing account_id"}, status_code=400)
    try:
        token = await bridge.valid_access_token(account_id)
    except BridgeError as exc:
        _LOG.warning(
            "Access token unavailable for account=%s (%s) correlation_id=%s",
            account_id,
            exc.kind.value,
            correlation_id_of(request),
        )
        return JSONResponse(
            exc.to_payload(), status_code=_TOKEN_ERROR_STATUS.get(exc.kind, 502)
        )
    return JSONResponse({"access_token": token})


async def disconnect(request: Request) -> Response:
    bridge: WorklogBridge = request.app.state.bridge
    account_id = _account_id(request)
    if account_id is None:
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            account_id = (str(payload.get("account_id") or "")).strip() or None
    if account_id is None:
        return JSONResponse({"error": "missing account_id"}, status_code=400)

    await bridge.disconnect(account_id)
    _LOG.info(
        "Disconnected account=%s correlation_id=%s",
        account_id,
        correlation_id_of(request),
    )
    return Response(status_code=204)


def auth_routes(base_path: str = "/auth") -> list[Route]:
    return [
        Route(f"{base_path}/start", start_oauth, methods=["GET"]),
        Route(f"{base_path}/callback", oauth_callback, methods=["GET"]),
        Route(f"{base_path}/status", require_admin_token(auth_status), methods=["GET"]),
        Route(f"{base_path}/token", require_admin_token(access_token), methods=["GET"]),
        Route(
            f"{base_path}/disconnect", require_admin_token(disconnect), methods=["POST"]
        ),
    ]
