"""Shared fixtures: an in-memory database per test and helpers to seed it."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from circleshare.db.models import Base, Friendship, FriendshipStatus, User
from circleshare.services.notifier import Notifier


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_users(db):
    """Create users and return their ids, in the order of the given names."""

    async def _make(*names: str) -> list[int]:
        users = [User(username=name, display_name=name.capitalize()) for name in names]
        db.add_all(users)
        await db.commit()
        return [u.id for u in users]

    return _make


@pytest.fixture
def make_friends(db):
    """Insert accepted friendships between ``user_id`` and each of ``others``."""

    async def _make(user_id: int, *others: int) -> None:
        for other in others:
            db.add(Friendship.create(user_id, other, FriendshipStatus.ACCEPTED))
        await db.commit()

    return _make


class RecordingHandler:
    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


@pytest.fixture
def recorder():
    return RecordingHandler()


@pytest_asyncio.fixture
async def notifier(recorder):
    notifier = Notifier(maxsize=100, handlers=[recorder])
    notifier.start()
    yield notifier
    await notifier.stop()
