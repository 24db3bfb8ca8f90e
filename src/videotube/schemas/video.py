"""Pydantic schemas for videos."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VideoCreate(BaseModel):
    video_file: str = Field(..., min_length=1, max_length=1024)
    thumbnail: str = Field(..., min_length=1, max_length=1024)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    duration: float = Field(..., gt=0, description="Length in seconds")
    is_published: bool = True


class VideoRead(BaseModel):
    id: uuid.UUID
    video_file: str
    thumbnail: str
    title: str
    description: str
    views: int
    is_published: bool
    duration: float
    owner_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}
