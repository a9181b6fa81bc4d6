# asocial/services/platform_service.py
from typing import List
import uuid

import structlog
from sqlmodel.ext.asyncio.session import AsyncSession

from asocial.infrastructure.platforms_repo import PlatformsRepository
from asocial.infrastructure.users_repo import UserRepository
from asocial.models.platform import Platform
from asocial.schemas.platform_schema import (
    BlueskyCredentials,
    BlueskySettings,
    MastodonCredentials,
    MastodonSettings,
    PlatformCredentials,
    PlatformRead,
)
from asocial.services.post_service import UserNotFound

logger = structlog.get_logger(__name__)


class PlatformService:
    """Settings side: stores per-platform credentials with secrets encrypted."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = PlatformsRepository(session)

    async def _save(self, user_id: uuid.UUID, credentials: PlatformCredentials, api_url=None) -> Platform:
        if await UserRepository(self.session).get_by_id(user_id) is None:
            raise UserNotFound(f"user {user_id} not found")
        platform = await self.repo.upsert(user_id, credentials.platform, credentials.to_blob(), api_url)
        logger.info("platform_credentials_saved", user_id=str(user_id), platform=platform.name)
        return platform

    async def save_mastodon(self, user_id: uuid.UUID, settings: MastodonSettings) -> Platform:
        creds = MastodonCredentials(token=settings.token, url=settings.url)
        return await self._save(user_id, creds, api_url=settings.url)

    async def save_bluesky(self, user_id: uuid.UUID, settings: BlueskySettings) -> Platform:
        creds = BlueskyCredentials(identifier=settings.identifier, password=settings.password)
        return await self._save(user_id, creds, api_url=settings.api_url)

    async def list_targets(self, user_id: uuid.UUID) -> List[PlatformRead]:
        return [to_read(p) for p in await self.repo.list_by_user(user_id)]


def to_read(platform: Platform) -> PlatformRead:
    return PlatformRead(
        id=platform.id,
        user_id=platform.user_id,
        name=platform.name,
        api_url=platform.api_url,
        configured_fields=sorted((platform.credentials or {}).keys()),
        updated_at=platform.updated_at,
    )
