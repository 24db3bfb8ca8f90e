"""Videos API — publish metadata, browse, count views.

Learn: Browsing is open; publishing and viewing need a user so the view
can land in that user's watch history. Unpublished videos 404 for
everyone except their owner.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.dependencies import get_current_user, get_current_user_optional
from videotube.db.engine import get_db
from videotube.db.models import User
from videotube.schemas.video import VideoCreate, VideoRead
from videotube.services.video_service import VideoNotFoundError, VideoService

router = APIRouter(prefix="/videos")


@router.post("", response_model=VideoRead, status_code=201)
async def create_video(
    body: VideoCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Publish a video owned by the current user."""
    return await VideoService(db).create(user.id, body)


@router.get("", response_model=list[VideoRead])
async def list_videos(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Published videos, newest first."""
    return await VideoService(db).list_published(limit=limit, offset=offset)


@router.get("/{video_id}", response_model=VideoRead)
async def get_video(
    video_id: uuid.UUID,
    user: Optional[User] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await VideoService(db).get(video_id, viewer_id=user.id if user else None)
    except VideoNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{video_id}/views", response_model=VideoRead)
async def record_view(
    video_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Count a view and append it to the caller's watch history."""
    try:
        return await VideoService(db).record_view(video_id, user.id)
    except VideoNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
