"""Starlette application setup for the worklog bridge."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from worklog_bridge.bridge import WorklogBridge
from worklog_bridge.config import BridgeConfig

from .admin import admin_routes
from .auth import auth_routes
from .correlation import CorrelationIdMiddleware
from .webhooks import webhook_routes

logger = logging.getLogger("worklog-bridge.server.main")


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def create_app(
    config: BridgeConfig | None = None,
    *,
    bridge: WorklogBridge | None = None,
) -> Starlette:
    """Build the ASGI app.

    Parameters
    ----------
    config:
        Runtime configuration; read from the environment when omitted.
        Ignored when *bridge* is given.
    bridge:
        Pre-built bridge, installed on ``app.state`` immediately.  When
        omitted the lifespan builds a file-backed bridge with its own HTTP
        client and closes that client on shutdown.
    """
    if bridge is not None:
        config = bridge.config
    config = config or BridgeConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info("Worklog bridge lifespan starting...")
        if not config.is_oauth_configured():
            logger.warning(
                "OAuth client credentials are not configured; authorization and "
                "token refresh will fail until they are set."
            )
        if bridge is not None:
            yield
            logger.info("Worklog bridge lifespan shutdown complete.")
            return

        async with httpx.AsyncClient(timeout=config.http_timeout) as client:
            app.state.bridge = WorklogBridge.from_config(config, client)
            logger.info("File store at %s", config.storage_dir)
            yield
        logger.info("Worklog bridge lifespan shutdown complete.")

    routes = [
        Route("/healthz", health_check, methods=["GET"]),
        *webhook_routes(),
        *auth_routes(),
        *admin_routes(),
    ]
    app = Starlette(
        routes=routes,
        middleware=[Middleware(CorrelationIdMiddleware)],
        lifespan=lifespan,
    )
    if bridge is not None:
        app.state.bridge = bridge
    return app
