# asocial/infrastructure/platforms_repo.py
from typing import Optional, List, Sequence
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
import uuid

from asocial.models.platform import Platform
from asocial.utils import utc_now


class PlatformsRepository:
    """
    Repository for Platform targets.
    All methods are async and expect an AsyncSession to be injected from the outside.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: uuid.UUID) -> Optional[Platform]:
        q = select(Platform).where(Platform.id == id)
        res = await self.session.exec(q)
        return res.one_or_none()

    async def get_by_user_and_name(self, user_id: uuid.UUID, name: str) -> Optional[Platform]:
        q = select(Platform).where(Platform.user_id == user_id, Platform.name == name)
        res = await self.session.exec(q)
        return res.one_or_none()

    async def list_by_user(self, user_id: uuid.UUID, names: Optional[Sequence[str]] = None) -> List[Platform]:
        q = select(Platform).where(Platform.user_id == user_id)
        if names is not None:
            q = q.where(Platform.name.in_(list(names)))
        res = await self.session.exec(q.order_by(Platform.name))
        return list(res.all())

    async def upsert(
        self,
        user_id: uuid.UUID,
        name: str,
        credentials: dict,
        api_url: Optional[str] = None,
    ) -> Platform:
        """
        Create the user's target for ``name`` or replace its credentials and API URL.
        Commits and returns refreshed instance.
        """
        platform = await self.get_by_user_and_name(user_id, name)
        if platform is None:
            platform = Platform(user_id=user_id, name=name, credentials=credentials, api_url=api_url)
        else:
            # full replace: stale keys from an older settings form must not linger
            platform.credentials = credentials
            platform.api_url = api_url
            platform.updated_at = utc_now()
        self.session.add(platform)
        await self.session.commit()
        await self.session.refresh(platform)
        return platform
