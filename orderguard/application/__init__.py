"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from orderguard.application.lock_service import (
    InMemoryLockManager,
    LockData,
    LockId,
    LockManager,
    get_lock_manager,
    reset_lock_manager,
)
from orderguard.application.order_service import (
    EditSessionResult,
    OrderResult,
    OrderService,
    get_order_service,
    reset_order_service,
)

__all__ = [
    "InMemoryLockManager",
    "LockData",
    "LockId",
    "LockManager",
    "get_lock_manager",
    "reset_lock_manager",
    "EditSessionResult",
    "OrderResult",
    "OrderService",
    "get_order_service",
    "reset_order_service",
]
