"""Shared fixtures for the asocial test suite."""
import os
import tempfile

# keep the module-level engine and app startup away from the working directory
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.mkdtemp()}/asocial-test.db")
os.environ.setdefault("POLLER_ENABLED", "false")

from datetime import datetime, timedelta
from typing import Optional, Sequence

import pytest
from sqlmodel.ext.asyncio.session import AsyncSession

from asocial.infrastructure.database import init_db, make_engine
from asocial.infrastructure.job_store import JobStore
from asocial.models.platform import Platform
from asocial.models.post import Job, JobStatus, Post, PostStatus
from asocial.models.user import User
from asocial.schemas.platform_schema import BlueskyCredentials, MastodonCredentials


class FakeClock:
    """Callable clock the store and services read instead of the wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class Seeder:
    """Inserts rows the way the composer and settings collaborators would."""

    def __init__(self, engine, clock: FakeClock):
        self.engine = engine
        self.clock = clock

    async def _save(self, obj):
        async with AsyncSession(self.engine, expire_on_commit=False) as session:
            session.add(obj)
            await session.commit()
        return obj

    async def user(self, username: str = "u1") -> User:
        return await self._save(User(username=username))

    async def mastodon(self, user: User, token: str = "secret-token", api_url: str = "https://mastodon.example") -> Platform:
        creds = MastodonCredentials(token=token, url=api_url).to_blob()
        return await self.platform(user, "mastodon", creds, api_url)

    async def bluesky(self, user: User, identifier: str = "u1.bsky.social", password: str = "app-pass") -> Platform:
        creds = BlueskyCredentials(identifier=identifier, password=password).to_blob()
        return await self.platform(user, "bluesky", creds, "https://pds.example")

    async def platform(self, user: User, name: str, credentials: Optional[dict] = None, api_url: Optional[str] = None) -> Platform:
        return await self._save(Platform(user_id=user.id, name=name, credentials=credentials or {}, api_url=api_url))

    async def post(self, user: User, content: str = "Hello world", media_paths: Sequence[str] = ()) -> Post:
        return await self._save(
            Post(user_id=user.id, content=content, media_paths=list(media_paths), status=PostStatus.SCHEDULED.value)
        )

    async def job(self, post: Post, platform: Platform, scheduled_for: Optional[datetime] = None, **fields) -> Job:
        when = scheduled_for or self.clock.now - timedelta(seconds=1)
        fields.setdefault("status", JobStatus.PENDING.value)
        return await self._save(
            Job(post_id=post.id, platform_id=platform.id, scheduled_for=when, **fields)
        )

    async def due_job(self, platform_name: str = "mastodon", content: str = "Hello world") -> Job:
        user = await self.user()
        if platform_name == "mastodon":
            platform = await self.mastodon(user)
        elif platform_name == "bluesky":
            platform = await self.bluesky(user)
        else:
            platform = await self.platform(user, platform_name)
        post = await self.post(user, content)
        return await self.job(post, platform)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
async def engine(tmp_path):
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}", connect_args={"timeout": 30})
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def store(engine, clock):
    return JobStore(engine, clock=clock, max_attempts=3)


@pytest.fixture
def seed(engine, clock):
    return Seeder(engine, clock)


@pytest.fixture
async def session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as s:
        yield s
