# asocial/infrastructure/database.py
import os
from typing import Optional
from contextlib import asynccontextmanager
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
import structlog

# table registration for create_all
from asocial.models import user, platform, post  # noqa: F401

logger = structlog.get_logger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./asocial.db")


def make_engine(url: str = DATABASE_URL, **kwargs) -> AsyncEngine:
    return create_async_engine(url, echo=False, **kwargs)


# process-wide handle, injected into stores and sessions by main.py / worker.py
engine: AsyncEngine = make_engine()


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    target = bind or engine
    try:
        async with target.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)
    except Exception as e:
        logger.exception("db_init_failed", error=str(e))
        raise


@asynccontextmanager
async def get_session(bind: Optional[AsyncEngine] = None):
    async with AsyncSession(bind or engine, expire_on_commit=False) as session:
        yield session
