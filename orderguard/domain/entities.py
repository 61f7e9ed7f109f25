"""Domain entities and aggregate roots.

The Order aggregate owns its lines, shipping info and lifecycle state.
Every mutator runs its guards to completion before writing any field,
records one domain event and returns it.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from orderguard.domain.base import INITIAL_VERSION, AggregateRoot
from orderguard.domain.events import (
    OrderCanceled,
    OrderPlaced,
    PaymentCompleted,
    ShippingInfoChanged,
    ShippingStarted,
)
from orderguard.domain.exceptions import (
    AlreadyShippedError,
    InvalidOrderError,
    OrderAlreadyCanceledError,
)
from orderguard.domain.state_machines import OrderState, validate_order_transition
from orderguard.domain.value_objects import (
    Money,
    OrderLine,
    OrderNo,
    Orderer,
    ShippingInfo,
)


@dataclass(kw_only=True, eq=False)
class Order(AggregateRoot[OrderNo]):
    """Order aggregate root.

    An order is never observable half-built: construction validates every
    required part and computes the total before returning.

    Attributes:
        id: Order number.
        orderer: Customer who placed the order.
        order_lines: Ordered lines, in placement order, never empty.
        shipping_info: Current shipping destination.
        state: Current lifecycle state.
        total_amounts: Sum of every line amount, always derived.
    """

    id: OrderNo
    orderer: Orderer
    order_lines: tuple[OrderLine, ...]
    shipping_info: ShippingInfo
    state: OrderState = OrderState.PAYMENT_WAITING
    total_amounts: Money = field(init=False)

    def __post_init__(self) -> None:
        """Validate required parts and derive the total."""
        if self.id is None:
            raise InvalidOrderError("no order number")
        if self.orderer is None:
            raise InvalidOrderError("no orderer")
        self.order_lines = self._verify_at_least_one_order_line(self.order_lines)
        if self.shipping_info is None:
            raise InvalidOrderError("no shipping info")
        self.state = OrderState(self.state)
        self.total_amounts = self._calculate_total_amounts()

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def place(
        cls,
        number: OrderNo,
        orderer: Orderer,
        order_lines: Iterable[OrderLine],
        shipping_info: ShippingInfo,
        state: OrderState = OrderState.PAYMENT_WAITING,
        ordered_at: datetime | None = None,
    ) -> "Order":
        """Place a new order.

        Args:
            number: Order number.
            orderer: Customer placing the order.
            order_lines: At least one order line.
            shipping_info: Shipping destination.
            state: Initial state, PAYMENT_WAITING unless the caller knows better.
            ordered_at: Placement time; defaults to now.

        Returns:
            New Order with a recorded OrderPlaced event.

        Raises:
            InvalidOrderError: If a required part is missing or no line is given.
        """
        order = cls(
            id=number,
            orderer=orderer,
            order_lines=tuple(order_lines) if order_lines is not None else (),
            shipping_info=shipping_info,
            state=state,
            created_at=ordered_at or datetime.now(timezone.utc),
        )
        order._record_event(
            OrderPlaced(
                aggregate_id=str(order.id),
                aggregate_type="Order",
                order_number=str(order.id),
                orderer_member_id=str(orderer.member_id),
                orderer_name=orderer.name,
                order_lines=tuple(
                    (str(line.product_id), line.price.amount, line.quantity)
                    for line in order.order_lines
                ),
                total_amounts=order.total_amounts.amount,
                ordered_at=order.created_at,
            )
        )
        return order

    @classmethod
    def restore(
        cls,
        number: OrderNo,
        orderer: Orderer,
        order_lines: Iterable[OrderLine],
        shipping_info: ShippingInfo,
        state: OrderState,
        version: int = INITIAL_VERSION,
        ordered_at: datetime | None = None,
    ) -> "Order":
        """Rebuild a stored order without recording any event."""
        return cls(
            id=number,
            orderer=orderer,
            order_lines=tuple(order_lines),
            shipping_info=shipping_info,
            state=state,
            version=version,
            created_at=ordered_at or datetime.now(timezone.utc),
        )

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def number(self) -> OrderNo:
        return self.id

    @property
    def order_date(self) -> datetime:
        return self.created_at

    def is_not_yet_shipped(self) -> bool:
        """Check whether the order is still waiting for payment or being prepared."""
        return self.state.is_not_yet_shipped()

    # -------------------------------------------------------------------------
    # State Transitions
    # -------------------------------------------------------------------------

    def complete_payment(self) -> PaymentCompleted:
        """Move a paid order into preparation.

        Returns:
            The recorded PaymentCompleted event.

        Raises:
            OrderAlreadyCanceledError: If the order was canceled.
            AlreadyShippedError: If the order has shipped.
            InvalidStateTransitionError: If preparation already started.
        """
        self._verify_not_canceled()
        self._verify_not_yet_shipped()
        validate_order_transition(str(self.id), self.state, OrderState.PREPARING)
        self.state = OrderState.PREPARING
        event = PaymentCompleted(
            aggregate_id=str(self.id),
            aggregate_type="Order",
            order_number=str(self.id),
        )
        self._record_event(event)
        return event

    def change_shipping_info(self, new_shipping_info: ShippingInfo) -> ShippingInfoChanged:
        """Replace the shipping info before shipment.

        Args:
            new_shipping_info: New shipping destination.

        Returns:
            The recorded ShippingInfoChanged event.

        Raises:
            OrderAlreadyCanceledError: If the order was canceled.
            AlreadyShippedError: If the order has shipped.
            InvalidOrderError: If no shipping info is given.
        """
        self._verify_not_canceled()
        self._verify_not_yet_shipped()
        if new_shipping_info is None:
            raise InvalidOrderError("no shipping info")
        self.shipping_info = new_shipping_info
        event = ShippingInfoChanged(
            aggregate_id=str(self.id),
            aggregate_type="Order",
            order_number=str(self.id),
            shipping_info=new_shipping_info,
        )
        self._record_event(event)
        return event

    def cancel(self) -> OrderCanceled:
        """Cancel the order before shipment.

        Returns:
            The recorded OrderCanceled event.

        Raises:
            OrderAlreadyCanceledError: If the order was canceled.
            AlreadyShippedError: If the order has shipped.
        """
        self._verify_not_canceled()
        self._verify_not_yet_shipped()
        validate_order_transition(str(self.id), self.state, OrderState.CANCELED)
        self.state = OrderState.CANCELED
        event = OrderCanceled(
            aggregate_id=str(self.id),
            aggregate_type="Order",
            order_number=str(self.id),
        )
        self._record_event(event)
        return event

    def start_shipping(self) -> ShippingStarted:
        """Mark the order as shipped.

        Returns:
            The recorded ShippingStarted event.

        Raises:
            OrderAlreadyCanceledError: If the order was canceled.
            AlreadyShippedError: If the order has shipped.
        """
        self._verify_shippable_state()
        validate_order_transition(str(self.id), self.state, OrderState.SHIPPED)
        self.state = OrderState.SHIPPED
        event = ShippingStarted(
            aggregate_id=str(self.id),
            aggregate_type="Order",
            order_number=str(self.id),
        )
        self._record_event(event)
        return event

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    @staticmethod
    def _verify_at_least_one_order_line(order_lines: Iterable[OrderLine] | None) -> tuple[OrderLine, ...]:
        lines = tuple(order_lines or ())
        if not lines:
            raise InvalidOrderError("no order line")
        for line in lines:
            if not isinstance(line, OrderLine):
                raise InvalidOrderError(f"not an order line: {line!r}")
        return lines

    def _calculate_total_amounts(self) -> Money:
        total = Money.zero()
        for line in self.order_lines:
            total = total + line.amounts
        return total

    def _verify_shippable_state(self) -> None:
        self._verify_not_canceled()
        self._verify_not_yet_shipped()

    def _verify_not_yet_shipped(self) -> None:
        if self.state == OrderState.SHIPPED:
            raise AlreadyShippedError(str(self.id), self.state.value)

    def _verify_not_canceled(self) -> None:
        if self.state == OrderState.CANCELED:
            raise OrderAlreadyCanceledError(str(self.id))
