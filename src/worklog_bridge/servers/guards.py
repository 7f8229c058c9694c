"""Static bearer-token guard for operator endpoints.

When no admin token is configured guarded routes answer 404 as if they did
not exist.
"""

from __future__ import annotations

import hmac
import logging
from typing import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from worklog_bridge.bridge import WorklogBridge
from worklog_bridge.servers.correlation import correlation_id_of

_LOG = logging.getLogger("worklog-bridge.guards")

Endpoint = Callable[[Request], Awaitable[Response]]


def _authorized(request: Request, admin_token: str) -> bool:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return False
    return hmac.compare_digest(token.strip().encode(), admin_token.encode())


def require_admin_token(endpoint: Endpoint) -> Endpoint:
    async def wrapper(request: Request) -> Response:
        bridge: WorklogBridge = request.app.state.bridge
        admin_token = bridge.config.admin_token
        if not admin_token:
            return JSONResponse({"error": "Not Found"}, status_code=404)
        if not _authorized(request, admin_token):
            _LOG.warning(
                "Rejected unauthenticated request to %s correlation_id=%s",
                request.url.path,
                correlation_id_of(request),
            )
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        return await endpoint(request)

    return wrapper
