# asocial/schemas/job_schema.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
import uuid
from datetime import datetime


class JobPayload(BaseModel):
    """Everything a delivery needs, joined from jobs, posts and platforms."""

    model_config = ConfigDict(frozen=True)

    job_id: uuid.UUID
    content: str
    platform_name: str
    credentials: dict = Field(default_factory=dict)
    api_url: Optional[str] = None
    media_paths: List[str] = Field(default_factory=list)


class JobRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    post_id: uuid.UUID
    platform_id: uuid.UUID
    status: str
    scheduled_for: datetime
    attempt_count: int
    last_error: Optional[str]
    external_post_id: Optional[str]
    processed_at: Optional[datetime]
    completed_at: Optional[datetime]
