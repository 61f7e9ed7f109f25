"""Domain exceptions.

All domain-level errors that represent business rule violations.
These exceptions are raised by entities, state machines, the lock
manager and repositories when invariants are violated or invalid
operations are attempted. Callers branch on the exception type,
never on the message text.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidValueError(DomainError, ValueError):
    """Raised when a value object is built from invalid input."""

    pass


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted.

    This error indicates that the requested operation cannot be performed
    in the current state of the entity.
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Order").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Order Errors
# ============================================================================


class OrderError(DomainError):
    """Base class for order-related errors."""

    pass


class InvalidOrderError(OrderError, ValueError):
    """Raised when an order is built or changed with missing required data."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid order: {reason}", details={"reason": reason})


class OrderNotFoundError(OrderError):
    """Raised when no order exists for the given number."""

    def __init__(self, order_number: str) -> None:
        super().__init__(
            f"Order not found: {order_number}",
            details={"order_number": order_number},
        )


class DuplicateOrderError(OrderError):
    """Raised when an order number is already taken."""

    def __init__(self, order_number: str) -> None:
        super().__init__(
            f"Order already exists: {order_number}",
            details={"order_number": order_number},
        )


class AlreadyShippedError(OrderError):
    """Raised when an operation requires an order that has not shipped yet."""

    def __init__(self, order_number: str, current_state: str) -> None:
        """Initialize already shipped error.

        Args:
            order_number: Number of the order.
            current_state: Current state of the order.
        """
        super().__init__(
            f"Order {order_number} has already been shipped",
            details={"order_number": order_number, "current_state": current_state},
        )


class OrderAlreadyCanceledError(OrderError):
    """Raised when an operation is attempted on a canceled order."""

    def __init__(self, order_number: str) -> None:
        super().__init__(
            f"Order {order_number} has already been canceled",
            details={"order_number": order_number},
        )


# ============================================================================
# Money Errors
# ============================================================================


class MoneyError(DomainError):
    """Base class for money-related errors."""

    pass


class InvalidMoneyError(MoneyError, ValueError):
    """Raised when money is created from a non-integral amount."""

    def __init__(self, amount: object) -> None:
        super().__init__(
            f"Money amount must be an integer, got {type(amount).__name__}",
            details={"amount": repr(amount)},
        )


class MoneyOverflowError(MoneyError, OverflowError):
    """Raised when an amount does not fit in a signed 64-bit integer."""

    def __init__(self, amount: int) -> None:
        """Initialize money overflow error.

        Args:
            amount: The out-of-range amount.
        """
        super().__init__(
            f"Money amount out of 64-bit range: {amount}",
            details={"amount": amount},
        )


# ============================================================================
# Lock Errors
# ============================================================================


class LockError(DomainError):
    """Base class for pessimistic lock errors."""

    pass


class LockUnavailableError(LockError):
    """Raised when a subject is already held by another valid lock."""

    def __init__(self, lock_type: str, lock_target: str) -> None:
        """Initialize lock unavailable error.

        Args:
            lock_type: Kind of locked resource (e.g., "Order").
            lock_target: Identifier of the locked resource.
        """
        super().__init__(
            f"Lock on {lock_type}({lock_target}) is held by another session",
            details={"type": lock_type, "id": lock_target},
        )


class LockInvalidError(LockError):
    """Raised when a lock id is unknown or has already been released."""

    def __init__(self, lock_id: str) -> None:
        super().__init__(
            f"Lock {lock_id} is not held",
            details={"lock_id": lock_id},
        )


class LockExpiredError(LockError):
    """Raised when a lock id is still recorded but past its expiration."""

    def __init__(self, lock_id: str, expired_at: str) -> None:
        """Initialize lock expired error.

        Args:
            lock_id: The expired lock id.
            expired_at: ISO timestamp of the expiration.
        """
        super().__init__(
            f"Lock {lock_id} expired at {expired_at}",
            details={"lock_id": lock_id, "expired_at": expired_at},
        )


# ============================================================================
# Concurrency Errors
# ============================================================================


class ConcurrencyError(DomainError):
    """Base class for optimistic concurrency errors."""

    def __init__(self, message: str, order_number: str, expected_version: int, actual_version: int | None) -> None:
        super().__init__(
            message,
            details={
                "order_number": order_number,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.order_number = order_number
        self.expected_version = expected_version
        self.actual_version = actual_version


class VersionConflictError(ConcurrencyError):
    """Raised before mutating when the caller's version is stale."""

    def __init__(self, order_number: str, expected_version: int, actual_version: int) -> None:
        super().__init__(
            f"Order {order_number} changed since version {expected_version} "
            f"(current version is {actual_version})",
            order_number,
            expected_version,
            actual_version,
        )


class ConcurrentModificationError(ConcurrencyError):
    """Raised by a repository when the stored version moved under a write.

    Standard caller response is to reload and retry, or surface the
    conflict to the end user.
    """

    def __init__(self, order_number: str, expected_version: int, actual_version: int | None) -> None:
        super().__init__(
            f"Concurrent modification of order {order_number}: "
            f"expected version {expected_version}, but stored version is {actual_version}",
            order_number,
            expected_version,
            actual_version,
        )
