"""Rate limiting middleware — Redis-backed fixed window per minute.

Learn: Each client IP gets a counter key like
"videotube:rl:{ip}:{bucket}:{minute}". Login and registration share a
stricter "auth" bucket to slow down password guessing; everything else
counts against the "api" bucket.

If Redis isn't initialized or errors, the request goes through unlimited.
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from videotube.redis_pool import get_redis

logger = structlog.get_logger()

AUTH_PATHS = ("/api/v1/users/login", "/api/v1/users/register")


def bucket_key(client_ip: str, bucket: str, now: float) -> str:
    return f"videotube:rl:{client_ip}:{bucket}:{int(now // 60)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path.startswith(AUTH_PATHS)
        rpm = self.auth_rpm if is_auth else self.default_rpm
        key = bucket_key(client_ip, "auth" if is_auth else "api", time.time())

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)  # outlive the window
        except Exception as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket_rpm=rpm)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
