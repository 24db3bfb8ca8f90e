"""Request body size limit.

Learn: JSON and form bodies are capped (16 KiB by default) so a client
can't make the server buffer arbitrarily large payloads. Requests that
declare a larger Content-Length are rejected up front. Bodies sent
without a length (chunked) are pulled chunk by chunk and rejected as soon
as the running total crosses the limit, so at most one chunk past the
limit is ever held in memory. An accepted body is cached on the request
and Starlette replays it to the route handler.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response


def _too_large(limit: int) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={"detail": f"Request body exceeds {limit} bytes"},
    )


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies larger than max_bytes with 413."""

    def __init__(self, app, max_bytes: int = 16 * 1024):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return await call_next(request)

        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                if int(declared) > self.max_bytes:
                    return _too_large(self.max_bytes)
            except ValueError:
                return JSONResponse(
                    status_code=400, content={"detail": "Invalid Content-Length"}
                )
            return await call_next(request)

        chunks: list[bytes] = []
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > self.max_bytes:
                return _too_large(self.max_bytes)
            chunks.append(chunk)

        # Same cache Request.body() fills; call_next replays it downstream
        request._body = b"".join(chunks)
        return await call_next(request)
