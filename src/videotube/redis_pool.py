"""Redis connection pool.

Learn: Redis backs the per-IP rate limiter. It is optional: the app starts
and serves requests without it, it just doesn't rate limit. The pool is
created in the app lifespan and closed on shutdown.
"""

from typing import Optional

import redis.asyncio as aioredis

from videotube.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Verify connection before publishing the client
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


async def ping_redis() -> None:
    """Ping Redis, using a short-lived client when the pool isn't up."""
    if _redis is not None:
        await _redis.ping()
        return
    client = aioredis.from_url(settings.redis_url, socket_connect_timeout=1)
    try:
        await client.ping()
    finally:
        await client.aclose()
