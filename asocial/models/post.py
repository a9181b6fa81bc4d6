# asocial/models/post.py
from enum import Enum
from sqlmodel import SQLModel, Field, Column
from typing import Optional, List
import uuid
from datetime import datetime
from sqlalchemy import JSON, DateTime, Text

from asocial.utils import utc_now


class PostStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.FAILED)


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    content: str = Field(sa_column=Column(Text, nullable=False))
    status: str = Field(default=PostStatus.DRAFT.value, max_length=20, index=True)
    media_paths: List[str] = Field(sa_column=Column(JSON, nullable=False), default_factory=list)
    scheduled_at: Optional[datetime] = Field(sa_type=DateTime(timezone=False), default=None)
    created_at: datetime = Field(sa_type=DateTime(timezone=False), default_factory=utc_now)


class Job(SQLModel, table=True):
    """One delivery of one post to one platform target."""

    __tablename__ = "jobs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", index=True)
    platform_id: uuid.UUID = Field(foreign_key="platforms.id", index=True)
    status: str = Field(default=JobStatus.PENDING.value, max_length=20, index=True)
    # timestamps are naive UTC, see asocial.utils.utc_now
    scheduled_for: datetime = Field(sa_type=DateTime(timezone=False), index=True)
    attempt_count: int = Field(default=0)
    last_error: Optional[str] = Field(default=None, sa_column=Column(Text))
    external_post_id: Optional[str] = Field(default=None)
    created_at: datetime = Field(sa_type=DateTime(timezone=False), default_factory=utc_now)
    # stamped at claim time, not at completion
    processed_at: Optional[datetime] = Field(sa_type=DateTime(timezone=False), default=None)
    completed_at: Optional[datetime] = Field(sa_type=DateTime(timezone=False), default=None)
