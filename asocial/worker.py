# asocial/worker.py
"""Standalone poller process: claims and delivers due jobs without the HTTP API.

Several of these may run against the same database; the claim query keeps
them from delivering the same job twice.
"""
import asyncio

import structlog

from asocial.infrastructure.database import engine, init_db
from asocial.infrastructure.job_store import JobStore
from asocial.infrastructure.logging_setup import configure_structlog
from asocial.services.dispatcher import Dispatcher
from asocial.services.poller import Poller

logger = structlog.get_logger(__name__)


async def main() -> None:
    await init_db()
    store = JobStore(engine)
    poller = Poller(store, Dispatcher(store))
    try:
        await poller.run()
    finally:
        await engine.dispose()


def run() -> None:
    configure_structlog()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("worker_interrupted")


if __name__ == "__main__":
    run()
