# asocial/services/dispatcher.py
import asyncio
import os
from typing import Mapping, Optional

import httpx
import structlog
from structlog.contextvars import bound_contextvars

from asocial.infrastructure.job_store import JobNotFound, JobStore
from asocial.infrastructure.platform_errors import PlatformError
from asocial.models.post import Job
from asocial.schemas.job_schema import JobPayload
from asocial.schemas.outcomes import Delivered, DeliveryFailed, Outcome, UnknownPlatform
from asocial.services.activity import ActivityFeed
from asocial.services.platforms import PLATFORMS, Deliverer

logger = structlog.get_logger(__name__)

ADAPTER_TIMEOUT_SECONDS = float(os.getenv("ADAPTER_TIMEOUT_SECONDS", "30"))


class Dispatcher:
    """
    Turns a claimed job into one delivery attempt and a persisted outcome.

    Adapters are looked up by exact platform name in ``platforms`` and built
    fresh for every dispatch, so no client state is shared between jobs.
    """

    def __init__(
        self,
        store: JobStore,
        platforms: Mapping[str, Deliverer] = PLATFORMS,
        activity: Optional[ActivityFeed] = None,
        adapter_timeout: float = ADAPTER_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.platforms = platforms
        self.activity = activity
        self.adapter_timeout = adapter_timeout
        self.transport = transport

    async def dispatch(self, job: Job) -> Outcome:
        with bound_contextvars(job_id=str(job.id), attempt=job.attempt_count):
            try:
                payload = await self.store.fetch_details(job.id)
            except JobNotFound as exc:
                outcome: Outcome = DeliveryFailed(job_id=job.id, platform=None, kind="not_found", error=str(exc))
            else:
                with bound_contextvars(platform=payload.platform_name):
                    outcome = await self.deliver(payload)

            status = await self.store.record_outcome(job.id, outcome)
            self._log(outcome, status.value)
            if self.activity is not None:
                self.activity.record(outcome.summary())
            return outcome

    async def deliver(self, payload: JobPayload) -> Outcome:
        deliverer = self.platforms.get(payload.platform_name)
        if deliverer is None:
            return UnknownPlatform(job_id=payload.job_id, platform=payload.platform_name)

        try:
            receipt = await asyncio.wait_for(
                deliverer(payload, timeout=self.adapter_timeout, transport=self.transport),
                timeout=self.adapter_timeout,
            )
        except PlatformError as exc:
            return DeliveryFailed(
                job_id=payload.job_id,
                platform=payload.platform_name,
                kind=exc.kind,
                error=str(exc),
                status_code=exc.status_code,
                retryable=exc.retryable,
            )
        except asyncio.TimeoutError:
            return DeliveryFailed(
                job_id=payload.job_id,
                platform=payload.platform_name,
                kind="timeout",
                error=f"{payload.platform_name} did not answer within {self.adapter_timeout:g}s",
                retryable=True,
            )
        except httpx.HTTPError as exc:
            return DeliveryFailed(
                job_id=payload.job_id,
                platform=payload.platform_name,
                kind="transport_error",
                error=f"{type(exc).__name__}: {exc}",
                retryable=True,
            )
        except OSError as exc:
            # unreadable media attachment; retrying will not bring the file back
            return DeliveryFailed(
                job_id=payload.job_id,
                platform=payload.platform_name,
                kind="media_error",
                error=str(exc),
            )
        except Exception as exc:
            # adapter bug or an answer it could not parse; the job still gets a recorded outcome
            logger.exception("adapter_crashed", platform=payload.platform_name)
            return DeliveryFailed(
                job_id=payload.job_id,
                platform=payload.platform_name,
                kind="adapter_error",
                error=f"{type(exc).__name__}: {exc}",
            )
        return Delivered(job_id=payload.job_id, platform=payload.platform_name, receipt=receipt)

    def _log(self, outcome: Outcome, status: str) -> None:
        if isinstance(outcome, Delivered):
            logger.info("job_delivered", receipt=outcome.receipt, status=status)
        elif isinstance(outcome, UnknownPlatform):
            logger.error("job_unknown_platform", platform=outcome.platform, status=status)
        else:
            logger.warning(
                "job_delivery_failed",
                kind=outcome.kind,
                status_code=outcome.status_code,
                error=outcome.error,
                retryable=outcome.retryable,
                status=status,
            )
