# asocial/routers/platforms_router.py
import uuid
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel.ext.asyncio.session import AsyncSession

from asocial.dependencies.db import get_session_dep
from asocial.schemas.platform_schema import BlueskySettings, MastodonSettings, PlatformRead
from asocial.services.platform_service import PlatformService, to_read
from asocial.services.post_service import UserNotFound

router = APIRouter(prefix="/platforms", tags=["platforms"])


@router.put("/{user_id}/mastodon", response_model=PlatformRead)
async def save_mastodon(user_id: uuid.UUID, payload: MastodonSettings, session: AsyncSession = Depends(get_session_dep)):
    try:
        platform = await PlatformService(session).save_mastodon(user_id, payload)
    except UserNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return to_read(platform)


@router.put("/{user_id}/bluesky", response_model=PlatformRead)
async def save_bluesky(user_id: uuid.UUID, payload: BlueskySettings, session: AsyncSession = Depends(get_session_dep)):
    try:
        platform = await PlatformService(session).save_bluesky(user_id, payload)
    except UserNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return to_read(platform)


@router.get("/{user_id}", response_model=List[PlatformRead])
async def list_platforms(user_id: uuid.UUID, session: AsyncSession = Depends(get_session_dep)):
    return await PlatformService(session).list_targets(user_id)
