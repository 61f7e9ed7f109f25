"""Domain layer - Order aggregate, value objects, state machine, domain events.

This module exports the core domain building blocks following DDD patterns:

- **Aggregate**: Order, guarded by its lifecycle state machine
- **Value Objects**: Immutable objects compared by value (Money, ShippingInfo, typed IDs)
- **State Machine**: OrderState and its transition table
- **Domain Events**: One immutable record per successful mutation
- **Exceptions**: Domain-specific errors, lock errors and concurrency errors

Example usage:
    from orderguard.domain import Money, Order, OrderLine, OrderNo, ProductId

    order = Order.place(
        number=OrderNo("ORD-1"),
        orderer=orderer,
        order_lines=[OrderLine(ProductId("P-1"), Money(1000), 2)],
        shipping_info=shipping_info,
    )
    event = order.start_shipping()
    print(order.state, event.event_type)  # OrderState.SHIPPED order.shipping_started
"""

# Base classes
from orderguard.domain.base import INITIAL_VERSION, AggregateRoot, DomainEvent, Entity, ValueObject

# Entities
from orderguard.domain.entities import Order

# Domain Events
from orderguard.domain.events import (
    EVENT_REGISTRY,
    OrderCanceled,
    OrderPlaced,
    PaymentCompleted,
    ShippingInfoChanged,
    ShippingStarted,
    get_event_class,
)

# Exceptions
from orderguard.domain.exceptions import (
    AlreadyShippedError,
    ConcurrencyError,
    ConcurrentModificationError,
    DomainError,
    DuplicateOrderError,
    InvalidMoneyError,
    InvalidOrderError,
    InvalidStateTransitionError,
    InvalidValueError,
    LockError,
    LockExpiredError,
    LockInvalidError,
    LockUnavailableError,
    MoneyError,
    MoneyOverflowError,
    OrderAlreadyCanceledError,
    OrderError,
    OrderNotFoundError,
    VersionConflictError,
)

# Ports
from orderguard.domain.repositories import EventDispatcher, OrderRepository

# State Machines
from orderguard.domain.state_machines import OrderState, validate_order_transition

# Value Objects
from orderguard.domain.value_objects import (
    Address,
    MemberId,
    Money,
    OrderLine,
    OrderNo,
    Orderer,
    ProductId,
    Receiver,
    ShippingInfo,
)

__all__ = [
    # Base
    "INITIAL_VERSION",
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    # Entities
    "Order",
    # Value Objects
    "Address",
    "MemberId",
    "Money",
    "OrderLine",
    "OrderNo",
    "Orderer",
    "ProductId",
    "Receiver",
    "ShippingInfo",
    # State Machines
    "OrderState",
    "validate_order_transition",
    # Domain Events
    "OrderPlaced",
    "PaymentCompleted",
    "ShippingInfoChanged",
    "OrderCanceled",
    "ShippingStarted",
    "EVENT_REGISTRY",
    "get_event_class",
    # Ports
    "EventDispatcher",
    "OrderRepository",
    # Exceptions
    "DomainError",
    "InvalidValueError",
    "InvalidStateTransitionError",
    "OrderError",
    "InvalidOrderError",
    "OrderNotFoundError",
    "DuplicateOrderError",
    "AlreadyShippedError",
    "OrderAlreadyCanceledError",
    "MoneyError",
    "InvalidMoneyError",
    "MoneyOverflowError",
    "LockError",
    "LockUnavailableError",
    "LockInvalidError",
    "LockExpiredError",
    "ConcurrencyError",
    "VersionConflictError",
    "ConcurrentModificationError",
]
