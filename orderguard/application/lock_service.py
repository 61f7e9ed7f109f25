"""Pessimistic lock manager for multi-request edit sessions.

Provides:
- Time-bound exclusive locks keyed by (type, id)
- Lock validation before sensitive operations
- Explicit release and expiration extension

Acquisition is fail-fast: a second ``try_lock`` on a held subject raises
immediately instead of waiting. Expiration is detected lazily by the
operations that look a lock up; ``purge_expired`` is an optional sweep.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import structlog

from orderguard.domain.exceptions import (
    LockExpiredError,
    LockInvalidError,
    LockUnavailableError,
)
from orderguard.infrastructure.config import settings

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LockId:
    """Opaque handle returned by a successful acquisition."""

    value: str

    @classmethod
    def generate(cls) -> "LockId":
        return cls(value=uuid4().hex)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class LockData:
    """A lock record.

    Attributes:
        type: Kind of locked resource (e.g., "Order").
        id: Identifier of the locked resource.
        lock_id: Handle issued to the holder.
        expiration_time: Instant after which the lock is no longer valid.
    """

    type: str
    id: str
    lock_id: LockId
    expiration_time: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expiration_time


def as_timedelta(inc: timedelta | float) -> timedelta:
    delta = inc if isinstance(inc, timedelta) else timedelta(seconds=inc)
    if delta <= timedelta(0):
        raise ValueError(f"Lock extension must be positive, got {delta}")
    return delta


# ============================================================================
# Lock Manager Interface
# ============================================================================


class LockManager(ABC):
    """Issues, validates, releases and extends exclusive edit locks.

    At most one valid lock exists per (type, id) at any instant. Every
    operation is atomic with respect to the others.
    """

    @abstractmethod
    async def try_lock(self, type: str, id: str) -> LockId:
        """Acquire the lock on a subject.

        Args:
            type: Kind of resource to lock (e.g., "Order").
            id: Identifier of the resource (e.g., "10").

        Returns:
            Handle for later check/release/extend calls.

        Raises:
            LockUnavailableError: If a valid lock already exists for the subject.
        """

    @abstractmethod
    async def check_lock(self, lock_id: LockId) -> None:
        """Verify a lock is still held and unexpired.

        Raises:
            LockInvalidError: If the lock is unknown or released.
            LockExpiredError: If the lock is past its expiration.
        """

    @abstractmethod
    async def release_lock(self, lock_id: LockId) -> None:
        """Release a lock. A second release of the same id fails.

        Raises:
            LockInvalidError: If the lock is unknown or already released.
        """

    @abstractmethod
    async def extend_lock_expiration(self, lock_id: LockId, inc: timedelta | float) -> None:
        """Push a held lock's expiration further out.

        Args:
            lock_id: Held lock.
            inc: Extension as a timedelta or a number of seconds.

        Raises:
            LockInvalidError: If the lock is unknown or released.
            LockExpiredError: If the lock already expired.
        """

    @abstractmethod
    async def get_lock_data(self, lock_id: LockId) -> LockData | None:
        """Look up a lock record without validating it."""

    @asynccontextmanager
    async def lock(self, type: str, id: str) -> AsyncIterator[LockId]:
        """Hold a lock for the duration of a block.

        Example:
            >>> async with lock_manager.lock("Order", "10") as lock_id:
            ...     await service.change_shipping_info(..., lock_id=lock_id)
        """
        lock_id = await self.try_lock(type, id)
        try:
            yield lock_id
        finally:
            try:
                await self.release_lock(lock_id)
            except LockInvalidError:
                logger.debug("Lock already released", lock_id=str(lock_id))


# ============================================================================
# In-Memory Lock Manager
# ============================================================================


class InMemoryLockManager(LockManager):
    """Process-local lock manager.

    A single mutex guards every index and nothing inside it awaits, so
    each operation is atomic for threads and asyncio tasks alike.

    A lock that expires without being released keeps reporting
    LockExpiredError, even after another holder takes its subject over or
    ``purge_expired`` sweeps it. Such locks are kept as one
    ``lock_id -> expiration_time`` entry each until their holder releases
    them, so memory grows with the number of abandoned sessions.
    """

    def __init__(self, ttl: timedelta | None = None, clock: Clock | None = None) -> None:
        """Initialize lock manager.

        Args:
            ttl: Lifetime of a freshly acquired lock; defaults to settings.
            clock: Source of the current time; defaults to UTC wall clock.
        """
        self.ttl = ttl if ttl is not None else settings.lock_ttl
        self._clock = clock or utc_now
        self._by_subject: dict[tuple[str, str], LockData] = {}
        self._by_lock_id: dict[LockId, LockData] = {}
        self._expired: dict[LockId, datetime] = {}
        self._mutex = threading.Lock()

    async def try_lock(self, type: str, id: str) -> LockId:
        """Acquire the lock on a subject."""
        subject = (type, id)
        with self._mutex:
            now = self._clock()
            current = self._by_subject.get(subject)
            if current is not None:
                if not current.is_expired(now):
                    logger.info("Lock unavailable", type=type, id=id)
                    raise LockUnavailableError(type, id)
                self._retire(current)
            data = LockData(
                type=type,
                id=id,
                lock_id=LockId.generate(),
                expiration_time=now + self.ttl,
            )
            self._by_subject[subject] = data
            self._by_lock_id[data.lock_id] = data

        logger.info(
            "Lock acquired",
            type=type,
            id=id,
            lock_id=str(data.lock_id),
            expires_at=data.expiration_time.isoformat(),
        )
        return data.lock_id

    async def check_lock(self, lock_id: LockId) -> None:
        """Verify a lock is still held and unexpired."""
        with self._mutex:
            self._get_valid(lock_id, self._clock())

    async def release_lock(self, lock_id: LockId) -> None:
        """Release a lock, expired or not."""
        with self._mutex:
            data = self._by_lock_id.pop(lock_id, None)
            if data is not None:
                del self._by_subject[(data.type, data.id)]
            elif self._expired.pop(lock_id, None) is None:
                raise LockInvalidError(str(lock_id))
        logger.info("Lock released", lock_id=str(lock_id))

    async def extend_lock_expiration(self, lock_id: LockId, inc: timedelta | float) -> None:
        """Push a held lock's expiration further out."""
        delta = as_timedelta(inc)
        with self._mutex:
            data = self._get_valid(lock_id, self._clock())
            extended = LockData(
                type=data.type,
                id=data.id,
                lock_id=data.lock_id,
                expiration_time=data.expiration_time + delta,
            )
            self._by_subject[(data.type, data.id)] = extended
            self._by_lock_id[lock_id] = extended
        logger.info(
            "Lock extended",
            lock_id=str(lock_id),
            expires_at=extended.expiration_time.isoformat(),
        )

    async def get_lock_data(self, lock_id: LockId) -> LockData | None:
        """Look up the record of a lock that still occupies its subject."""
        with self._mutex:
            return self._by_lock_id.get(lock_id)

    def purge_expired(self) -> int:
        """Free the subjects of every expired lock.

        The swept locks keep reporting LockExpiredError until released.

        Returns:
            Number of locks swept.
        """
        with self._mutex:
            now = self._clock()
            expired = [data for data in self._by_lock_id.values() if data.is_expired(now)]
            for data in expired:
                self._retire(data)
        if expired:
            logger.info("Expired locks purged", count=len(expired))
        return len(expired)

    def held_count(self) -> int:
        """Number of locks currently occupying a subject."""
        return len(self._by_lock_id)

    def expired_count(self) -> int:
        """Number of retired, unreleased locks still remembered as expired."""
        return len(self._expired)

    def _get_valid(self, lock_id: LockId, now: datetime) -> LockData:
        data = self._by_lock_id.get(lock_id)
        if data is None:
            expired_at = self._expired.get(lock_id)
            if expired_at is None:
                raise LockInvalidError(str(lock_id))
            raise LockExpiredError(str(lock_id), expired_at.isoformat())
        if data.is_expired(now):
            raise LockExpiredError(str(lock_id), data.expiration_time.isoformat())
        return data

    def _retire(self, data: LockData) -> None:
        del self._by_lock_id[data.lock_id]
        del self._by_subject[(data.type, data.id)]
        self._expired[data.lock_id] = data.expiration_time


# Global lock manager instance
_lock_manager: LockManager | None = None


def get_lock_manager() -> LockManager:
    """Get lock manager singleton."""
    global _lock_manager
    if _lock_manager is None:
        _lock_manager = InMemoryLockManager()
    return _lock_manager


def reset_lock_manager() -> None:
    """Reset lock manager (for testing)."""
    global _lock_manager
    _lock_manager = InMemoryLockManager()
