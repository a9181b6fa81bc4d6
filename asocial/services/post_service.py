# asocial/services/post_service.py
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple
import uuid

import structlog
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from asocial.infrastructure.platforms_repo import PlatformsRepository
from asocial.infrastructure.users_repo import UserRepository
from asocial.models.platform import Platform
from asocial.models.post import Job, JobStatus, Post, PostStatus
from asocial.schemas.post_schema import DraftCreate, DraftSchedule, ScheduleCreate
from asocial.utils import to_utc_naive, utc_now

logger = structlog.get_logger(__name__)


class UserNotFound(ValueError):
    pass


class PostNotFound(ValueError):
    pass


class InvalidTransition(ValueError):
    pass


class PlatformNotConfigured(ValueError):
    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"platforms not configured for this user: {', '.join(self.missing)}")


class PostService:
    """
    Composer side of the queue: drafts, scheduling, and the jobs a scheduled
    post spawns (one per enabled platform). Posts move draft -> scheduled only.
    """

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utc_now):
        self.session = session
        self.clock = clock

    async def _require_user(self, user_id: uuid.UUID) -> None:
        if await UserRepository(self.session).get_by_id(user_id) is None:
            raise UserNotFound(f"user {user_id} not found")

    async def _resolve_targets(self, user_id: uuid.UUID, names: Sequence[str]) -> List[Platform]:
        wanted = list(dict.fromkeys(names))
        found = await PlatformsRepository(self.session).list_by_user(user_id, wanted)
        by_name = {p.name: p for p in found}
        missing = [name for name in wanted if name not in by_name]
        if missing:
            raise PlatformNotConfigured(missing)
        return [by_name[name] for name in wanted]

    def _spawn_jobs(self, post: Post, targets: Sequence[Platform], when: datetime) -> List[Job]:
        if post.status != PostStatus.SCHEDULED.value:
            raise InvalidTransition(f"post {post.id} is {post.status}; only scheduled posts spawn jobs")
        jobs = [
            Job(post_id=post.id, platform_id=target.id, status=JobStatus.PENDING.value, scheduled_for=when)
            for target in targets
        ]
        self.session.add_all(jobs)
        return jobs

    async def save_draft(self, payload: DraftCreate) -> Post:
        await self._require_user(payload.user_id)
        post = Post(
            user_id=payload.user_id,
            content=payload.content,
            media_paths=list(payload.media_paths),
            status=PostStatus.DRAFT.value,
        )
        self.session.add(post)
        await self.session.commit()
        logger.info("draft_saved", post_id=str(post.id), user_id=str(post.user_id))
        return post

    async def schedule_post(self, payload: ScheduleCreate) -> Tuple[Post, List[Job]]:
        await self._require_user(payload.user_id)
        targets = await self._resolve_targets(payload.user_id, payload.platforms)
        when = to_utc_naive(payload.scheduled_for) or self.clock()

        post = Post(
            user_id=payload.user_id,
            content=payload.content,
            media_paths=list(payload.media_paths),
            status=PostStatus.SCHEDULED.value,
            scheduled_at=when,
        )
        self.session.add(post)
        # no relationship() between the models, so make sure the post row exists first
        await self.session.flush()
        jobs = self._spawn_jobs(post, targets, when)
        await self.session.commit()
        logger.info("post_scheduled", post_id=str(post.id), platforms=[t.name for t in targets], scheduled_for=when.isoformat())
        return post, jobs

    async def schedule_draft(self, post_id: uuid.UUID, payload: DraftSchedule) -> Tuple[Post, List[Job]]:
        post = await self.get_post(post_id)
        if post.status != PostStatus.DRAFT.value:
            raise InvalidTransition(f"post {post_id} is already {post.status}")
        targets = await self._resolve_targets(post.user_id, payload.platforms)
        when = to_utc_naive(payload.scheduled_for) or self.clock()

        post.status = PostStatus.SCHEDULED.value
        post.scheduled_at = when
        self.session.add(post)
        jobs = self._spawn_jobs(post, targets, when)
        await self.session.commit()
        logger.info("draft_scheduled", post_id=str(post.id), platforms=[t.name for t in targets], scheduled_for=when.isoformat())
        return post, jobs

    async def get_post(self, post_id: uuid.UUID) -> Post:
        res = await self.session.exec(select(Post).where(Post.id == post_id))
        post: Optional[Post] = res.one_or_none()
        if post is None:
            raise PostNotFound(f"post {post_id} not found")
        return post

    async def list_jobs(self, post_id: uuid.UUID) -> List[Job]:
        await self.get_post(post_id)
        q = select(Job).where(Job.post_id == post_id).order_by(Job.scheduled_for, Job.created_at)
        res = await self.session.exec(q)
        return list(res.all())
