# asocial/infrastructure/users_repo.py
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
from typing import Optional
import uuid

from asocial.models.user import User


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_username(self, username: str) -> Optional[User]:
        q = select(User).where(User.username == username)
        res = await self.session.exec(q)
        return res.one_or_none()

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        q = select(User).where(User.id == user_id)
        res = await self.session.exec(q)
        return res.one_or_none()

    async def create(self, user: User) -> User:
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user
