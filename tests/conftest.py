"""Shared fixtures for orderguard tests."""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from orderguard.application.lock_service import reset_lock_manager
from orderguard.application.order_service import reset_order_service
from orderguard.infrastructure.database import build_engine, build_session_factory, init_models


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant until advanced."""
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_singletons() -> None:
    """Give each test fresh service singletons."""
    reset_lock_manager()
    reset_order_service()


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """SQLite database file with every table created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'orderguard.db'}", echo=False)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)
