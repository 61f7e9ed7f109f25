"""Domain events for orders.

Each successful Order mutation produces exactly one of these events.
They are plain immutable records: the aggregate returns them to the
caller and keeps a copy until collected, and an external dispatcher
delivers them to subscribers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar

from orderguard.domain.base import DomainEvent
from orderguard.domain.value_objects import ShippingInfo


# ============================================================================
# Order Events
# ============================================================================


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Event raised when a new order is placed."""

    event_type: ClassVar[str] = "order.placed"

    order_number: str = ""
    orderer_member_id: str = ""
    orderer_name: str = ""
    order_lines: tuple[tuple[str, int, int], ...] = ()
    total_amounts: int = 0
    ordered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "order_number": self.order_number,
            "orderer_member_id": self.orderer_member_id,
            "orderer_name": self.orderer_name,
            "order_lines": [
                {"product_id": product_id, "price": price, "quantity": quantity}
                for product_id, price, quantity in self.order_lines
            ],
            "total_amounts": self.total_amounts,
            "ordered_at": self.ordered_at.isoformat(),
        }


@dataclass(frozen=True)
class PaymentCompleted(DomainEvent):
    """Event raised when payment is received and preparation starts."""

    event_type: ClassVar[str] = "order.payment_completed"

    order_number: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"order_number": self.order_number}


@dataclass(frozen=True)
class ShippingInfoChanged(DomainEvent):
    """Event raised when the shipping info of an order is replaced."""

    event_type: ClassVar[str] = "order.shipping_info_changed"

    order_number: str = ""
    shipping_info: ShippingInfo | None = None

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        info = self.shipping_info
        if info is None:
            return {"order_number": self.order_number, "shipping_info": None}
        return {
            "order_number": self.order_number,
            "shipping_info": {
                "receiver_name": info.receiver.name,
                "receiver_phone": info.receiver.phone,
                "zip_code": info.address.zip_code,
                "address1": info.address.address1,
                "address2": info.address.address2,
                "message": info.message,
            },
        }


@dataclass(frozen=True)
class OrderCanceled(DomainEvent):
    """Event raised when an order is canceled."""

    event_type: ClassVar[str] = "order.canceled"

    order_number: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"order_number": self.order_number}


@dataclass(frozen=True)
class ShippingStarted(DomainEvent):
    """Event raised when an order leaves the warehouse."""

    event_type: ClassVar[str] = "order.shipping_started"

    order_number: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"order_number": self.order_number}


# ============================================================================
# Event Registry
# ============================================================================


# Registry of all event types for deserialization
EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    OrderPlaced.event_type: OrderPlaced,
    PaymentCompleted.event_type: PaymentCompleted,
    ShippingInfoChanged.event_type: ShippingInfoChanged,
    OrderCanceled.event_type: OrderCanceled,
    ShippingStarted.event_type: ShippingStarted,
}


def get_event_class(event_type: str) -> type[DomainEvent] | None:
    """Get event class by event type string.

    Args:
        event_type: Event type identifier (e.g., 'order.canceled').

    Returns:
        Event class if found, None otherwise.
    """
    return EVENT_REGISTRY.get(event_type)
