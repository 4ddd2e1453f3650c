"""ASGI middleware for request-ID propagation and access logging.

Injects ``X-Request-ID`` (per-request unique) and forwards
``X-Correlation-ID`` into structlog context vars, then writes one
``http_request`` line per request once the response is produced.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_CORRELATION_HEADER = "X-Correlation-ID"
_REQUEST_HEADER = "X-Request-ID"

logger = structlog.get_logger()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request/correlation IDs and logs every request with its latency."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(_REQUEST_HEADER, str(uuid.uuid4()))
        correlation_id = request.headers.get(_CORRELATION_HEADER, request_id)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            correlation_id=correlation_id,
        )

        started = time.perf_counter()
        response: Response = await call_next(request)
        latency_ms = (time.perf_counter() - started) * 1000

        logger.info(
            "http_request",
            status=response.status_code,
            method=request.method,
            path=request.url.path,
            query=request.url.query,
            ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            latency_ms=round(latency_ms, 2),
        )

        response.headers[_REQUEST_HEADER] = request_id
        response.headers[_CORRELATION_HEADER] = correlation_id
        return response
