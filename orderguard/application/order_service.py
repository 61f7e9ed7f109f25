"""Order application service.

Orchestrates order use cases on top of the Order aggregate:
- Placing orders and reading them back
- Shipping-info changes, cancellation, payment and shipment
- Multi-request edit sessions guarded by a pessimistic lock
- Optimistic version checks against the version a caller last saw

Every mutating use case follows the same flow: check the caller's lock
(if any), load, compare versions (if asked), mutate, save with a version
compare-and-swap, then publish the recorded events. Domain errors never
escape; they come back as a failed result with an error code.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta

import structlog

from orderguard.application.lock_service import LockId, LockManager, get_lock_manager
from orderguard.domain.base import DomainEvent
from orderguard.domain.entities import Order
from orderguard.domain.exceptions import (
    AlreadyShippedError,
    ConcurrentModificationError,
    DomainError,
    DuplicateOrderError,
    InvalidOrderError,
    InvalidStateTransitionError,
    InvalidValueError,
    LockExpiredError,
    LockInvalidError,
    LockUnavailableError,
    MoneyError,
    OrderAlreadyCanceledError,
    OrderNotFoundError,
    VersionConflictError,
)
from orderguard.domain.repositories import EventDispatcher, OrderRepository
from orderguard.domain.value_objects import OrderLine, OrderNo, Orderer, ShippingInfo
from orderguard.infrastructure.event_dispatcher import InMemoryEventDispatcher
from orderguard.infrastructure.order_repository import InMemoryOrderRepository

logger = structlog.get_logger()

ORDER_LOCK_TYPE = "Order"

# Most specific first; the first isinstance match wins
_ERROR_CODES: tuple[tuple[type[DomainError], str], ...] = (
    (OrderNotFoundError, "ORDER_NOT_FOUND"),
    (DuplicateOrderError, "DUPLICATE_ORDER"),
    (AlreadyShippedError, "ALREADY_SHIPPED"),
    (OrderAlreadyCanceledError, "ALREADY_CANCELED"),
    (InvalidStateTransitionError, "INVALID_STATE"),
    (InvalidOrderError, "INVALID_ORDER"),
    (MoneyError, "INVALID_MONEY"),
    (InvalidValueError, "INVALID_ORDER"),
    (LockUnavailableError, "LOCK_UNAVAILABLE"),
    (LockInvalidError, "LOCK_INVALID"),
    (LockExpiredError, "LOCK_EXPIRED"),
    (VersionConflictError, "VERSION_CONFLICT"),
    (ConcurrentModificationError, "CONCURRENT_MODIFICATION"),
)


def error_code_for(error: DomainError) -> str:
    """Map a domain error to its stable error code."""
    for error_type, code in _ERROR_CODES:
        if isinstance(error, error_type):
            return code
    return "DOMAIN_ERROR"


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class OrderResult:
    """Result of an order use case."""

    order: Order | None = None
    events: list[DomainEvent] = field(default_factory=list)
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    error_details: dict = field(default_factory=dict)

    @classmethod
    def failure(cls, error: DomainError) -> "OrderResult":
        return cls(
            success=False,
            error=error.message,
            error_code=error_code_for(error),
            error_details=error.details,
        )


@dataclass
class EditSessionResult:
    """Result of opening or closing an edit session.

    Attributes:
        lock_id: Lock held for the session; pass it to each mutating call.
        order: Order as it was when the session opened.
        version: Order version to send back as ``expected_version``.
    """

    lock_id: LockId | None = None
    order: Order | None = None
    version: int | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def failure(cls, error: DomainError) -> "EditSessionResult":
        return cls(success=False, error=error.message, error_code=error_code_for(error))


# ============================================================================
# Order Service
# ============================================================================


class OrderService:
    """Application service for order use cases.

    No call is retried automatically. A VERSION_CONFLICT or
    CONCURRENT_MODIFICATION result means the caller should reload the
    order and decide again.
    """

    def __init__(
        self,
        repository: OrderRepository | None = None,
        lock_manager: LockManager | None = None,
        dispatcher: EventDispatcher | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repository: Order storage.
            lock_manager: Issuer of edit-session locks.
            dispatcher: Receiver of recorded domain events.
        """
        self.repository = repository or InMemoryOrderRepository()
        self.lock_manager = lock_manager or get_lock_manager()
        self.dispatcher = dispatcher or InMemoryEventDispatcher()

    # -------------------------------------------------------------------------
    # Placement and queries
    # -------------------------------------------------------------------------

    async def place_order(
        self,
        orderer: Orderer,
        order_lines: Iterable[OrderLine],
        shipping_info: ShippingInfo,
        number: OrderNo | None = None,
    ) -> OrderResult:
        """Place and store a new order.

        Args:
            orderer: Customer placing the order.
            order_lines: At least one order line.
            shipping_info: Shipping destination.
            number: Order number; generated when omitted.

        Returns:
            OrderResult with the placed order and its OrderPlaced event.
        """
        try:
            order = Order.place(
                number=number or OrderNo.generate(),
                orderer=orderer,
                order_lines=order_lines,
                shipping_info=shipping_info,
            )
            await self.repository.add(order)
        except DomainError as e:
            logger.warning(
                "Failed to place order",
                order_number=str(number) if number else None,
                error=e.message,
            )
            return OrderResult.failure(e)

        events = order.collect_events()
        await self.dispatcher.publish_all(events)

        logger.info(
            "Order placed",
            order_number=str(order.number),
            total_amounts=order.total_amounts.amount,
            line_count=len(order.order_lines),
        )
        return OrderResult(order=order, events=events)

    async def get_order(self, number: OrderNo) -> OrderResult:
        try:
            order = await self.repository.load(number)
        except OrderNotFoundError as e:
            return OrderResult.failure(e)
        return OrderResult(order=order)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def change_shipping_info(
        self,
        number: OrderNo,
        new_shipping_info: ShippingInfo,
        lock_id: LockId | None = None,
        expected_version: int | None = None,
    ) -> OrderResult:
        """Replace an order's shipping info before shipment.

        Args:
            number: Order number.
            new_shipping_info: New shipping destination.
            lock_id: Edit-session lock to validate first, if any.
            expected_version: Version the caller last saw, if any.

        Returns:
            OrderResult with the updated order and its ShippingInfoChanged event.
        """
        return await self._mutate(
            number,
            "change_shipping_info",
            lambda order: order.change_shipping_info(new_shipping_info),
            lock_id=lock_id,
            expected_version=expected_version,
        )

    async def cancel_order(
        self,
        number: OrderNo,
        lock_id: LockId | None = None,
        expected_version: int | None = None,
    ) -> OrderResult:
        """Cancel an order that has not shipped."""
        return await self._mutate(
            number,
            "cancel",
            lambda order: order.cancel(),
            lock_id=lock_id,
            expected_version=expected_version,
        )

    async def start_shipping(
        self,
        number: OrderNo,
        lock_id: LockId | None = None,
        expected_version: int | None = None,
    ) -> OrderResult:
        """Mark an order as shipped.

        The back-office flow usually opens an edit session first, shows the
        order, and ships it with the session's lock and version so that a
        customer's concurrent change is not shipped blind.
        """
        return await self._mutate(
            number,
            "start_shipping",
            lambda order: order.start_shipping(),
            lock_id=lock_id,
            expected_version=expected_version,
        )

    async def complete_payment(
        self,
        number: OrderNo,
        lock_id: LockId | None = None,
        expected_version: int | None = None,
    ) -> OrderResult:
        return await self._mutate(
            number,
            "complete_payment",
            lambda order: order.complete_payment(),
            lock_id=lock_id,
            expected_version=expected_version,
        )

    # -------------------------------------------------------------------------
    # Edit sessions
    # -------------------------------------------------------------------------

    async def start_edit(self, number: OrderNo) -> EditSessionResult:
        """Open an edit session on an order.

        Acquires the order's lock and loads the order. The lock is released
        again if loading the order fails for any reason.

        Returns:
            EditSessionResult with the lock id, the order and its version.
        """
        try:
            lock_id = await self.lock_manager.try_lock(ORDER_LOCK_TYPE, str(number))
        except LockUnavailableError as e:
            logger.info("Edit session refused", order_number=str(number))
            return EditSessionResult.failure(e)

        try:
            order = await self.repository.load(number)
        except OrderNotFoundError as e:
            await self.lock_manager.release_lock(lock_id)
            return EditSessionResult.failure(e)
        except Exception:
            await self.lock_manager.release_lock(lock_id)
            raise

        logger.info(
            "Edit session started",
            order_number=str(number),
            lock_id=str(lock_id),
            version=order.version,
        )
        return EditSessionResult(lock_id=lock_id, order=order, version=order.version)

    async def extend_edit(self, lock_id: LockId, inc: timedelta | float) -> EditSessionResult:
        """Keep an edit session alive for longer."""
        try:
            await self.lock_manager.extend_lock_expiration(lock_id, inc)
        except (LockInvalidError, LockExpiredError) as e:
            return EditSessionResult.failure(e)
        return EditSessionResult(lock_id=lock_id)

    async def end_edit(self, lock_id: LockId) -> EditSessionResult:
        """Close an edit session by releasing its lock."""
        try:
            await self.lock_manager.release_lock(lock_id)
        except LockInvalidError as e:
            return EditSessionResult.failure(e)
        logger.info("Edit session ended", lock_id=str(lock_id))
        return EditSessionResult(lock_id=lock_id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _mutate(
        self,
        number: OrderNo,
        action: str,
        mutate: Callable[[Order], DomainEvent],
        lock_id: LockId | None,
        expected_version: int | None,
    ) -> OrderResult:
        try:
            if lock_id is not None:
                await self._check_order_lock(lock_id, number)
            order = await self.repository.load(number)
            if expected_version is not None and not order.match_version(expected_version):
                raise VersionConflictError(str(number), expected_version, order.version)
            from_state = order.state
            mutate(order)
            await self.repository.save(order)
        except DomainError as e:
            logger.warning(
                "Order action rejected",
                order_number=str(number),
                action=action,
                error_code=error_code_for(e),
                error=e.message,
            )
            return OrderResult.failure(e)

        events = order.collect_events()
        await self.dispatcher.publish_all(events)

        logger.info(
            "Order action applied",
            order_number=str(number),
            action=action,
            from_state=from_state.value,
            to_state=order.state.value,
            version=order.version,
        )
        return OrderResult(order=order, events=events)

    async def _check_order_lock(self, lock_id: LockId, number: OrderNo) -> None:
        await self.lock_manager.check_lock(lock_id)
        data = await self.lock_manager.get_lock_data(lock_id)
        # A valid lock on some other subject does not authorize this order
        if data is None or (data.type, data.id) != (ORDER_LOCK_TYPE, str(number)):
            raise LockInvalidError(str(lock_id))


# ============================================================================
# Service Factory
# ============================================================================

_order_service: OrderService | None = None


def get_order_service() -> OrderService:
    """Get order service singleton."""
    global _order_service
    if _order_service is None:
        _order_service = OrderService()
    return _order_service


def reset_order_service() -> None:
    """Reset order service (for testing)."""
    global _order_service
    _order_service = None
