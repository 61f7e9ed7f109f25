"""Lock manager backed by the ``locks`` table.

Lets several processes share edit locks through one database. The
composite primary key on (type, id) turns acquisition into an atomic
compare-and-set: whoever inserts first holds the lock, every other
insert fails with an integrity error.

A lock that expires without being released keeps one row in
``expired_locks`` once its subject is taken over or purged, so its id
still reports expiry until the holder releases it.

Usage:
    >>> lock_manager = SqlAlchemyLockManager(session_factory)
    >>> lock_id = await lock_manager.try_lock("Order", "10")
    >>> await lock_manager.check_lock(lock_id)
    >>> await lock_manager.release_lock(lock_id)
"""

from datetime import timedelta

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderguard.application.lock_service import (
    Clock,
    LockData,
    LockId,
    LockManager,
    as_timedelta,
    utc_now,
)
from orderguard.domain.exceptions import (
    LockExpiredError,
    LockInvalidError,
    LockUnavailableError,
)
from orderguard.infrastructure.config import settings
from orderguard.infrastructure.database import as_utc, async_session_factory
from orderguard.infrastructure.models import ExpiredLockModel, LockModel

logger = structlog.get_logger()


def _to_lock_data(model: LockModel) -> LockData:
    return LockData(
        type=model.type,
        id=model.id,
        lock_id=LockId(model.lock_id),
        expiration_time=as_utc(model.expiration_time),
    )


class SqlAlchemyLockManager(LockManager):
    """Shared lock manager storing one row per held subject.

    An expired row is replaced by the next successful ``try_lock`` on the
    same subject. Its lock id moves to ``expired_locks`` and keeps
    reporting expiry until released.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        ttl: timedelta | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize lock manager.

        Args:
            session_factory: Async session factory; defaults to the configured database.
            ttl: Lifetime of a freshly acquired lock; defaults to settings.
            clock: Source of the current time; defaults to UTC wall clock.
        """
        self._session_factory = session_factory or async_session_factory
        self.ttl = ttl if ttl is not None else settings.lock_ttl
        self._clock = clock or utc_now

    async def try_lock(self, type: str, id: str) -> LockId:
        """Acquire the lock on a subject."""
        now = self._clock()
        lock_id = LockId.generate()
        expiration_time = now + self.ttl
        async with self._session_factory() as session:
            current = await session.get(LockModel, (type, id))
            if current is not None:
                if not _to_lock_data(current).is_expired(now):
                    logger.info("Lock unavailable", type=type, id=id)
                    raise LockUnavailableError(type, id)
                # Only remove the row we saw; a fresh holder must survive
                await session.execute(
                    delete(LockModel).where(
                        LockModel.type == type,
                        LockModel.id == id,
                        LockModel.lock_id == current.lock_id,
                    )
                    .execution_options(synchronize_session=False)
                )
                session.expunge(current)
                session.add(
                    ExpiredLockModel(
                        lock_id=current.lock_id,
                        expiration_time=current.expiration_time,
                    )
                )
            session.add(
                LockModel(
                    type=type,
                    id=id,
                    lock_id=lock_id.value,
                    expiration_time=expiration_time,
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.info("Lock unavailable", type=type, id=id)
                raise LockUnavailableError(type, id) from None

        logger.info(
            "Lock acquired",
            type=type,
            id=id,
            lock_id=str(lock_id),
            expires_at=expiration_time.isoformat(),
        )
        return lock_id

    async def check_lock(self, lock_id: LockId) -> None:
        """Verify a lock is still held and unexpired."""
        async with self._session_factory() as session:
            await self._get_valid(session, lock_id)

    async def release_lock(self, lock_id: LockId) -> None:
        """Release a lock, expired or not."""
        async with self._session_factory() as session:
            result = await session.execute(delete(LockModel).where(LockModel.lock_id == lock_id.value))
            if result.rowcount == 0:
                result = await session.execute(
                    delete(ExpiredLockModel).where(ExpiredLockModel.lock_id == lock_id.value)
                )
            if result.rowcount != 1:
                await session.rollback()
                raise LockInvalidError(str(lock_id))
            await session.commit()
        logger.info("Lock released", lock_id=str(lock_id))

    async def extend_lock_expiration(self, lock_id: LockId, inc: timedelta | float) -> None:
        """Push a held lock's expiration further out."""
        delta = as_timedelta(inc)
        async with self._session_factory() as session:
            data = await self._get_valid(session, lock_id)
            new_expiration = data.expiration_time + delta
            result = await session.execute(
                update(LockModel)
                .where(LockModel.lock_id == lock_id.value)
                .values(expiration_time=new_expiration)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Released by someone else since we read it
                await session.rollback()
                raise LockInvalidError(str(lock_id))
            await session.commit()
        logger.info(
            "Lock extended",
            lock_id=str(lock_id),
            expires_at=new_expiration.isoformat(),
        )

    async def get_lock_data(self, lock_id: LockId) -> LockData | None:
        async with self._session_factory() as session:
            model = await session.scalar(select(LockModel).where(LockModel.lock_id == lock_id.value))
            return _to_lock_data(model) if model is not None else None

    async def purge_expired(self) -> int:
        """Free the subjects of every expired lock.

        The swept rows move to ``expired_locks`` and keep reporting
        expiry until released.

        Returns:
            Number of locks swept.
        """
        async with self._session_factory() as session:
            expired = (
                await session.scalars(select(LockModel).where(LockModel.expiration_time < self._clock()))
            ).all()
            for model in expired:
                session.add(
                    ExpiredLockModel(lock_id=model.lock_id, expiration_time=model.expiration_time)
                )
                await session.delete(model)
            await session.commit()
        if expired:
            logger.info("Expired locks purged", count=len(expired))
        return len(expired)

    async def _get_valid(self, session: AsyncSession, lock_id: LockId) -> LockData:
        model = await session.scalar(select(LockModel).where(LockModel.lock_id == lock_id.value))
        if model is None:
            expired = await session.get(ExpiredLockModel, lock_id.value)
            if expired is None:
                raise LockInvalidError(str(lock_id))
            raise LockExpiredError(str(lock_id), as_utc(expired.expiration_time).isoformat())
        data = _to_lock_data(model)
        if data.is_expired(self._clock()):
            raise LockExpiredError(str(lock_id), data.expiration_time.isoformat())
        return data
