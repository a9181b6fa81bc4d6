# asocial/models/platform.py
from sqlmodel import SQLModel, Field, Column
from typing import Optional
from datetime import datetime
import uuid
from sqlalchemy import JSON, DateTime, UniqueConstraint

from asocial.utils import utc_now


class Platform(SQLModel, table=True):
    """A delivery target owned by a user: platform name, credentials blob and optional API URL."""

    __tablename__ = "platforms"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_platforms_user_name"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    name: str = Field(index=True)
    # secret fields inside are Fernet-encrypted, see asocial.infrastructure.secrets
    credentials: dict = Field(sa_column=Column(JSON, nullable=False), default_factory=dict)
    api_url: Optional[str] = Field(default=None)
    created_at: datetime = Field(sa_type=DateTime(timezone=False), default_factory=utc_now)
    updated_at: datetime = Field(sa_type=DateTime(timezone=False), default_factory=utc_now)
