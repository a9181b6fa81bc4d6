# asocial/schemas/user_schema.py
from pydantic import BaseModel, ConfigDict, Field
import uuid
from datetime import datetime


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=64)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    created_at: datetime
