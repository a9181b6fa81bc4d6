# asocial/infrastructure/job_store.py
import os
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import aliased
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from asocial.models.platform import Platform
from asocial.models.post import Job, JobStatus, Post
from asocial.schemas.job_schema import JobPayload
from asocial.schemas.outcomes import Delivered, Outcome
from asocial.utils import utc_now

logger = structlog.get_logger(__name__)

JOB_MAX_ATTEMPTS = int(os.getenv("JOB_MAX_ATTEMPTS", "3"))


class StoreError(Exception):
    """The backing database could not be reached or the query failed."""


class JobNotFound(Exception):
    def __init__(self, job_id: uuid.UUID):
        super().__init__(f"job {job_id} not found (job, post or platform row missing)")
        self.job_id = job_id


class JobStore:
    """
    Durable work queue over the ``jobs`` table.

    The engine is injected and shared; each operation runs in its own session
    and transaction. Concurrent claimants, in this process or others, are kept
    apart by the database (``FOR UPDATE SKIP LOCKED`` on PostgreSQL, writer
    serialisation on SQLite), never by an in-process lock.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        clock: Callable[[], datetime] = utc_now,
        max_attempts: int = JOB_MAX_ATTEMPTS,
    ):
        self.engine = engine
        self.clock = clock
        self.max_attempts = max_attempts

    def _session(self) -> AsyncSession:
        return AsyncSession(self.engine, expire_on_commit=False)

    async def claim(self) -> Optional[Job]:
        """
        Atomically move the oldest eligible pending job to ``processing``.
        Returns None when no job is due.
        """
        now = self.clock()
        candidate = aliased(Job)
        next_id = (
            select(candidate.id)
            .where(candidate.status == JobStatus.PENDING.value, candidate.scheduled_for <= now)
            .order_by(candidate.scheduled_for.asc(), candidate.created_at.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(Job)
            # the status guard makes a claimant that lost the race update nothing
            .where(Job.id == next_id, Job.status == JobStatus.PENDING.value)
            .values(
                status=JobStatus.PROCESSING.value,
                attempt_count=Job.attempt_count + 1,
                processed_at=now,
            )
            .returning(Job)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session() as session:
                res = await session.exec(stmt)
                job = res.scalars().one_or_none()
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"claim failed: {exc}") from exc

        if job is not None:
            logger.info(
                "job_claimed",
                job_id=str(job.id),
                attempt=job.attempt_count,
                scheduled_for=job.scheduled_for.isoformat(),
            )
        return job

    async def claim_batch(self, limit: int) -> List[Job]:
        jobs: List[Job] = []
        while len(jobs) < limit:
            job = await self.claim()
            if job is None:
                break
            jobs.append(job)
        return jobs

    async def fetch_details(self, job_id: uuid.UUID) -> JobPayload:
        q = (
            select(
                Job.id.label("job_id"),
                Post.content,
                Platform.name.label("platform_name"),
                Platform.credentials,
                Platform.api_url,
                Post.media_paths,
            )
            .join(Post, Post.id == Job.post_id)
            .join(Platform, Platform.id == Job.platform_id)
            .where(Job.id == job_id)
        )
        try:
            async with self._session() as session:
                res = await session.exec(q)
                row = res.one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"fetch_details failed for job {job_id}: {exc}") from exc

        if row is None:
            raise JobNotFound(job_id)
        return JobPayload(
            job_id=row.job_id,
            content=row.content,
            platform_name=row.platform_name,
            credentials=row.credentials or {},
            api_url=row.api_url,
            media_paths=row.media_paths or [],
        )

    async def record_outcome(self, job_id: uuid.UUID, outcome: Outcome) -> JobStatus:
        """
        Write the result of a delivery attempt back to a ``processing`` job.

        Delivered -> done. A retryable failure goes back to pending while
        attempts remain (``scheduled_for`` is left alone, so the next poll picks
        it up). Everything else -> failed with ``last_error`` set.
        """
        now = self.clock()
        try:
            async with self._session() as session:
                res = await session.exec(select(Job).where(Job.id == job_id).with_for_update())
                job = res.one_or_none()
                if job is None:
                    raise JobNotFound(job_id)
                if job.status != JobStatus.PROCESSING.value:
                    logger.warning("outcome_for_unclaimed_job", job_id=str(job_id), status=job.status)
                    return JobStatus(job.status)

                if isinstance(outcome, Delivered):
                    job.status = JobStatus.DONE.value
                    job.external_post_id = outcome.receipt
                    job.last_error = None
                    job.completed_at = now
                elif getattr(outcome, "retryable", False) and job.attempt_count < self.max_attempts:
                    job.status = JobStatus.PENDING.value
                    job.last_error = outcome.error
                else:
                    job.status = JobStatus.FAILED.value
                    job.last_error = outcome.error
                    job.completed_at = now

                session.add(job)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"record_outcome failed for job {job_id}: {exc}") from exc

        logger.info("job_outcome_recorded", job_id=str(job_id), status=job.status, attempt=job.attempt_count)
        return JobStatus(job.status)

    async def requeue_stale(self, older_than: timedelta) -> int:
        """
        Recover jobs left in ``processing`` by a worker that died mid-delivery.
        Returns how many went back to pending; exhausted ones are failed.
        """
        now = self.clock()
        cutoff = now - older_than
        stale = (
            Job.status == JobStatus.PROCESSING.value,
            Job.processed_at.is_not(None),
            Job.processed_at < cutoff,
        )
        message = f"no outcome reported within {int(older_than.total_seconds())}s of claim"
        retry = (
            update(Job)
            .where(*stale, Job.attempt_count < self.max_attempts)
            .values(status=JobStatus.PENDING.value, last_error=message)
            .execution_options(synchronize_session=False)
        )
        give_up = (
            update(Job)
            .where(*stale, Job.attempt_count >= self.max_attempts)
            .values(status=JobStatus.FAILED.value, last_error=message, completed_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session() as session:
                requeued = (await session.exec(retry)).rowcount
                failed = (await session.exec(give_up)).rowcount
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"requeue_stale failed: {exc}") from exc

        if requeued or failed:
            logger.warning("stale_jobs_requeued", requeued=requeued, failed=failed, cutoff=cutoff.isoformat())
        return requeued

    async def get(self, job_id: uuid.UUID) -> Optional[Job]:
        try:
            async with self._session() as session:
                return await session.get(Job, job_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"get failed for job {job_id}: {exc}") from exc
