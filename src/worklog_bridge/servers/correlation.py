"""Correlation ID middleware for request tracing.

Reuses the caller's ``X-Correlation-ID`` header or generates a random UUID4
hex string, exposes it as ``request.state.correlation_id`` for handlers and
echoes it on the response.
"""

from __future__ import annotations

import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

CORRELATION_HEADER = "X-Correlation-ID"
_logger = logging.getLogger("worklog-bridge.correlation")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that attaches a per-request correlation ID."""

    def __init__(self, app: ASGIApp, header_name: str = CORRELATION_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        _logger.debug(
            "%s %s correlation_id=%s", request.method, request.url.path, correlation_id
        )
        response = await call_next(request)
        response.headers[self.header_name] = correlation_id
        return response


def correlation_id_of(request: Request) -> str:
    return getattr(request.state, "correlation_id", "-")
