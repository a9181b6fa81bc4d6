# asocial/schemas/post_schema.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
import uuid
from datetime import datetime

from asocial.schemas.job_schema import JobRead


class DraftCreate(BaseModel):
    user_id: uuid.UUID
    content: str = Field(min_length=1)
    media_paths: List[str] = Field(default_factory=list)


class ScheduleCreate(DraftCreate):
    platforms: List[str] = Field(min_length=1)
    scheduled_for: Optional[datetime] = None  # None means as soon as possible


class DraftSchedule(BaseModel):
    platforms: List[str] = Field(min_length=1)
    scheduled_for: Optional[datetime] = None


class PostRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    content: str
    status: str
    media_paths: List[str]
    scheduled_at: Optional[datetime]
    created_at: datetime


class ScheduledPostRead(BaseModel):
    post: PostRead
    jobs: List[JobRead]
