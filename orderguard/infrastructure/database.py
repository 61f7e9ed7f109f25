"""Database configuration and session management.

Provides async SQLAlchemy engine and session factory.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from orderguard.infrastructure.config import settings

# Base class for models
Base = declarative_base()


def build_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine.

    Args:
        database_url: SQLAlchemy URL; defaults to the configured one.
        echo: Log SQL statements; defaults to the debug setting.

    Returns:
        AsyncEngine bound to the URL.
    """
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.debug if echo is None else echo,
        pool_pre_ping=True,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime read back from the database."""
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Create async engine
engine = build_engine()

# Session factory
async_session_factory = build_session_factory(engine)


async def init_models(bind: AsyncEngine | None = None) -> None:
    """Create every table known to the model metadata.

    Args:
        bind: Engine to create tables on; defaults to the module engine.
    """
    # Register the mapped classes on Base.metadata
    from orderguard.infrastructure import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

