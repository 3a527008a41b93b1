"""
Shared fixtures for the gamification tests.

Each test gets a fresh SQLite database file and a clock pinned to
Wednesday 2025-06-04 10:00.
"""

import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from backend.common.clock import FixedClock
from backend.common.config import GamificationConfig
from backend.common.db.base import Base
from backend.common.db.session import create_session_factory
from backend.gamification.events import EventDispatcher
from backend.gamification.locks import LocalRankLock
from backend.gamification.repository import GamificationRepository
from backend.gamification.service import GamificationService
from backend.users.models import User

TEST_NOW = datetime.datetime(2025, 6, 4, 10, 0)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Create a SQLite database with all tables."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gamification.db'}")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def clock():
    return FixedClock(TEST_NOW)


@pytest.fixture
def settings():
    return GamificationConfig(rank_lock_backend="local", award_repeat_entities=True)


@pytest.fixture
def repository(session_factory):
    return GamificationRepository(session_factory)


@pytest.fixture
def dispatcher():
    return EventDispatcher()


@pytest.fixture
def service(session_factory, settings, clock):
    """Service over an empty achievement catalog."""
    return GamificationService(
        session_factory=session_factory,
        settings=settings,
        clock=clock,
        rank_lock=LocalRankLock(),
    )


@pytest_asyncio.fixture
async def seeded_service(service):
    """Service with the default achievement catalog."""
    await service.seed_default_achievements()
    return service


@pytest_asyncio.fixture
async def users(session_factory):
    """Display profiles for alice, bob and carol."""
    profiles = [
        User(id="alice", first_name="Alice", last_name="Archer", profile_photo="alice.png"),
        User(id="bob", first_name="Bob", last_name="Baker"),
        User(id="carol", first_name="Carol", last_name="Cole"),
    ]
    async with session_factory() as session:
        session.add_all(profiles)
        await session.commit()
    return profiles
