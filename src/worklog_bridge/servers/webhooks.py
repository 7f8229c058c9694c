"""Worklog webhook endpoints.

Each route hands the raw headers and body to the bridge and renders the
returned output key.  Status codes and bodies come from the fixed output
table; handlers never build responses of their own.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from worklog_bridge.bridge import WorklogBridge
from worklog_bridge.servers.correlation import correlation_id_of
from worklog_bridge.webhooks.outputs import render

_LOG = logging.getLogger("worklog-bridge.webhooks.routes")

_Handler = Callable[..., Awaitable[str]]


def _webhook_endpoint(pick: Callable[[WorklogBridge], _Handler]) -> Callable[[Request], Awaitable[Response]]:
    async def endpoint(request: Request) -> Response:
        bridge: WorklogBridge = request.app.state.bridge
        correlation_id = correlation_id_of(request)
        body = await request.body()
        output_key = await pick(bridge)(
            dict(request.headers), body, correlation_id=correlation_id
        )
        output = render(output_key)
        _LOG.info(
            "%s -> %s (%s) correlation_id=%s",
            request.url.path,
            output_key,
            output.status_code,
            correlation_id,
        )
        return JSONResponse(dict(output.body), status_code=output.status_code)

    return endpoint


def webhook_routes(base_path: str = "/webhooks/worklog") -> list[Route]:
    """Routes for the three action webhooks plus the combined event webhook."""
    return [
        Route(
            f"{base_path}/create",
            _webhook_endpoint(lambda bridge: bridge.create_worklog),
            methods=["POST"],
        ),
        Route(
            f"{base_path}/update",
            _webhook_endpoint(lambda bridge: bridge.update_worklog),
            methods=["POST"],
        ),
        Route(
            f"{base_path}/delete",
            _webhook_endpoint(lambda bridge: bridge.delete_worklog),
            methods=["POST"],
        ),
        Route(
            base_path,
            _webhook_endpoint(lambda bridge: bridge.handle_worklog_event),
            methods=["POST"],
        ),
    ]
