"""Operator endpoints guarded by a static bearer token."""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from worklog_bridge.bridge import WorklogBridge
from worklog_bridge.servers.correlation import correlation_id_of
from worklog_bridge.servers.guards import require_admin_token

_LOG = logging.getLogger("worklog-bridge.admin.routes")


async def action_log(request: Request) -> Response:
    bridge: WorklogBridge = request.app.state.bridge
    return JSONResponse({"entries": await bridge.action_log_entries()})


async def regenerate_secret(request: Request) -> Response:
    bridge: WorklogBridge = request.app.state.bridge
    secret = await bridge.regenerate_secret()
    _LOG.info("Shared secret regenerated correlation_id=%s", correlation_id_of(request))
    return JSONResponse({"secret": secret})


async def credentials_check(request: Request) -> Response:
    bridge: WorklogBridge = request.app.state.bridge
    return JSONResponse({"configured": bridge.credentials_configured()})


def admin_routes(base_path: str = "/admin") -> list[Route]:
    return [
        Route(
            f"{base_path}/action-log", require_admin_token(action_log), methods=["GET"]
        ),
        Route(
            f"{base_path}/secret", require_admin_token(regenerate_secret), methods=["POST"]
        ),
        Route(
            f"{base_path}/credentials-check",
            require_admin_token(credentials_check),
            methods=["GET"],
        ),
    ]
