"""Video service — publishing video metadata, views and watch history.

Learn: Media files are uploaded elsewhere (a CDN / object store); this
service only stores their URLs plus metadata. Watching a video bumps its
view counter and appends to the viewer's watch history in one commit.
"""

import uuid

import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.db.models import Video, watch_history
from videotube.schemas.video import VideoCreate

logger = structlog.get_logger()


class VideoNotFoundError(Exception):
    pass


class VideoService:
    """Business logic for videos."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, owner_id: uuid.UUID, data: VideoCreate) -> Video:
        video = Video(owner_id=owner_id, **data.model_dump())
        self.db.add(video)
        await self.db.commit()
        await self.db.refresh(video)
        logger.info("video.created", video_id=str(video.id), owner_id=str(owner_id))
        return video

    async def get(
        self, video_id: uuid.UUID, viewer_id: uuid.UUID | None = None
    ) -> Video:
        """Fetch a video. Unpublished videos are visible to their owner only."""
        video = await self.db.get(Video, video_id)
        if not video:
            raise VideoNotFoundError(f"Video {video_id} not found")
        if not video.is_published and video.owner_id != viewer_id:
            raise VideoNotFoundError(f"Video {video_id} not found")
        return video

    async def list_published(self, limit: int = 20, offset: int = 0) -> list[Video]:
        result = await self.db.execute(
            select(Video)
            .where(Video.is_published.is_(True))
            .order_by(Video.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def record_view(self, video_id: uuid.UUID, viewer_id: uuid.UUID) -> Video:
        """Count a view and add it to the viewer's watch history."""
        video = await self.get(video_id, viewer_id=viewer_id)
        await self.db.execute(
            update(Video).where(Video.id == video.id).values(views=Video.views + 1)
        )
        await self.db.execute(
            insert(watch_history).values(user_id=viewer_id, video_id=video.id)
        )
        await self.db.commit()
        await self.db.refresh(video)
        return video

    async def watch_history(self, user_id: uuid.UUID, limit: int = 50) -> list[Video]:
        """Videos the user watched, most recent first (one entry per video)."""
        last_watched = func.max(watch_history.c.watched_at).label("last_watched")
        result = await self.db.execute(
            select(Video, last_watched)
            .join(watch_history, watch_history.c.video_id == Video.id)
            .where(watch_history.c.user_id == user_id)
            .group_by(Video.id)
            .order_by(last_watched.desc(), func.max(watch_history.c.id).desc())
            .limit(limit)
        )
        return [video for video, _last in result.all()]
