# asocial/routers/post_router.py
import uuid
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from asocial.dependencies.db import get_session_dep
from asocial.schemas.job_schema import JobRead
from asocial.schemas.post_schema import DraftCreate, DraftSchedule, PostRead, ScheduleCreate, ScheduledPostRead
from asocial.services.post_service import (
    InvalidTransition,
    PlatformNotConfigured,
    PostNotFound,
    PostService,
    UserNotFound,
)

router = APIRouter(prefix="/posts", tags=["posts"])


def _scheduled(post, jobs) -> ScheduledPostRead:
    return ScheduledPostRead(
        post=PostRead.model_validate(post),
        jobs=[JobRead.model_validate(job) for job in jobs],
    )


@router.post("/drafts", response_model=PostRead, status_code=status.HTTP_201_CREATED)
async def save_draft(payload: DraftCreate, session: AsyncSession = Depends(get_session_dep)):
    try:
        return await PostService(session).save_draft(payload)
    except UserNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.post("/schedule", response_model=ScheduledPostRead, status_code=status.HTTP_201_CREATED)
async def schedule_post(payload: ScheduleCreate, session: AsyncSession = Depends(get_session_dep)):
    try:
        post, jobs = await PostService(session).schedule_post(payload)
    except UserNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except PlatformNotConfigured as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _scheduled(post, jobs)


@router.post("/{post_id}/schedule", response_model=ScheduledPostRead)
async def schedule_draft(post_id: uuid.UUID, payload: DraftSchedule, session: AsyncSession = Depends(get_session_dep)):
    try:
        post, jobs = await PostService(session).schedule_draft(post_id, payload)
    except PostNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except PlatformNotConfigured as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _scheduled(post, jobs)


@router.get("/{post_id}/jobs", response_model=List[JobRead])
async def list_jobs(post_id: uuid.UUID, session: AsyncSession = Depends(get_session_dep)):
    try:
        return await PostService(session).list_jobs(post_id)
    except PostNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
