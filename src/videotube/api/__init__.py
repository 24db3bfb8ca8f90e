"""API route aggregation.

All routers registered here get mounted in main.py under /api/v1.

Learn: Authentication is per-route here (Depends(get_current_user) on the
handlers that need it) because both routers mix open and protected
endpoints — browsing videos and logging in must work anonymously.
"""

from fastapi import APIRouter

from videotube.api.health import router as health_router
from videotube.api.users import router as users_router
from videotube.api.videos import router as videos_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users", "auth"])
api_router.include_router(videos_router, tags=["videos"])
