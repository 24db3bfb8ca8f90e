"""Request ID + access log middleware.

Learn: Every request gets an ID, either the caller's X-Request-ID (for
tracing across services) or a fresh UUID. It is bound into structlog's
contextvars, so every log line emitted while handling the request carries
it, and echoed back in the response header. One "http.request" line is
logged per request with status and duration.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

# Incoming IDs longer than this are replaced, not trusted.
_MAX_ID_LENGTH = 128


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Generate/propagate a request ID and log each request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", "")
        if not request_id or len(request_id) > _MAX_ID_LENGTH:
            request_id = str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        response: Response = await call_next(request)
        logger.info(
            "http.request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        response.headers["X-Request-ID"] = request_id
        return response
