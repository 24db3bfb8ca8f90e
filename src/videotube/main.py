"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis pool, database engine).
Middleware, CORS, static files and routers are all registered here.
"""

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from videotube import __version__
from videotube.api import api_router
from videotube.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    logger.info(
        "videotube.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from videotube.redis_pool import close_redis, init_redis
    try:
        await init_redis()
        logger.info("videotube.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional; without it requests are not rate limited
        logger.warning("videotube.redis_unavailable", error=str(e))

    yield

    logger.info("videotube.shutdown")
    await close_redis()

    from videotube.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="VideoTube",
        description="Backend for a video-sharing application",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → BodySizeLimit → RateLimit → CORS → handler

    from videotube.middleware.body_limit import BodySizeLimitMiddleware
    from videotube.middleware.rate_limit import RateLimitMiddleware
    from videotube.middleware.request_id import RequestIdMiddleware
    from videotube.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    # Public assets, only if the directory exists
    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    return app


# Default app instance (used by uvicorn: videotube.main:app)
app = create_app()
