# asocial/services/poller.py
import asyncio
import os
from datetime import timedelta
from typing import List, Optional

import structlog

from asocial.infrastructure.job_store import JobStore, StoreError
from asocial.models.post import Job
from asocial.schemas.outcomes import Outcome
from asocial.services.dispatcher import Dispatcher

logger = structlog.get_logger(__name__)

POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "5"))
POLL_BATCH_SIZE = int(os.getenv("POLL_BATCH_SIZE", "1"))
STALE_JOB_SECONDS = int(os.getenv("STALE_JOB_SECONDS", "600"))
STALE_RECOVERY_EVERY = int(os.getenv("STALE_RECOVERY_EVERY", "12"))


class Poller:
    """
    Fixed-rate claim/dispatch loop.

    Each tick claims up to ``batch_size`` due jobs and dispatches them
    concurrently. Ticks are scheduled on the event-loop clock, so the cadence
    does not depend on how long a dispatch takes; a tick that overruns simply
    makes the next one start immediately.
    """

    def __init__(
        self,
        store: JobStore,
        dispatcher: Dispatcher,
        interval: float = POLL_INTERVAL_SECONDS,
        batch_size: int = POLL_BATCH_SIZE,
        stale_after: timedelta = timedelta(seconds=STALE_JOB_SECONDS),
        recovery_every: int = STALE_RECOVERY_EVERY,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.interval = interval
        self.batch_size = max(1, batch_size)
        self.stale_after = stale_after
        self.recovery_every = recovery_every
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def tick(self) -> List[Outcome]:
        try:
            jobs = await self.store.claim_batch(self.batch_size)
        except StoreError as exc:
            # next tick retries
            logger.warning("poll_claim_failed", error=str(exc))
            return []

        if not jobs:
            return []
        results = await asyncio.gather(*(self._dispatch(job) for job in jobs))
        return [outcome for outcome in results if outcome is not None]

    async def _dispatch(self, job: Job) -> Optional[Outcome]:
        try:
            return await self.dispatcher.dispatch(job)
        except StoreError as exc:
            logger.error("dispatch_store_failed", job_id=str(job.id), error=str(exc))
        except Exception:
            logger.exception("dispatch_crashed", job_id=str(job.id))
        return None

    async def recover(self) -> int:
        try:
            return await self.store.requeue_stale(self.stale_after)
        except StoreError as exc:
            logger.warning("stale_recovery_failed", error=str(exc))
            return 0

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        self._running = True
        logger.info("poller_started", interval=self.interval, batch_size=self.batch_size)
        deadline = loop.time()
        try:
            while self._running:
                try:
                    if self.recovery_every and self.ticks % self.recovery_every == 0:
                        await self.recover()
                    await self.tick()
                except Exception:
                    logger.exception("poll_tick_crashed")
                self.ticks += 1

                deadline += self.interval
                delay = deadline - loop.time()
                if delay < 0:
                    # overran; don't try to catch up on missed ticks
                    deadline = loop.time()
                    delay = 0
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.info("poller_cancelled")
            raise
        finally:
            self._running = False
            logger.info("poller_stopped", ticks=self.ticks)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="asocial-poller")
        return self._task

    async def stop(self) -> None:
        self._running = False
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
