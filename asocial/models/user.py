# asocial/models/user.py
from sqlmodel import SQLModel, Field, Column
from datetime import datetime
import uuid
from sqlalchemy import DateTime, String

from asocial.utils import utc_now


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    username: str = Field(sa_column=Column(String, unique=True, index=True, nullable=False))
    created_at: datetime = Field(sa_type=DateTime(timezone=False), default_factory=utc_now)
