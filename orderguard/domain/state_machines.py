"""State machine for the order lifecycle.

Defines the valid order state transitions and the helpers the Order
aggregate uses to guard its mutators.
"""

from enum import Enum

from orderguard.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Order State Machine
# ============================================================================


class OrderState(str, Enum):
    """Order lifecycle states.

    State diagram:
        PAYMENT_WAITING ──────────────────────────────► CANCELED
          │         │                                     ▲
          │         │ complete_payment                    │
          │         ▼                                     │
          │       PREPARING ──────────────────────────────┘
          │         │
          │         │ start_shipping
          │         ▼
          └──────► SHIPPED
    """

    PAYMENT_WAITING = "payment_waiting"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    CANCELED = "canceled"

    def can_transition_to(self, target: "OrderState") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderState"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return sorted(_ORDER_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_not_yet_shipped(self) -> bool:
        """Check if the order is still before shipment.

        Shipping info can be changed and the order can be canceled
        only in these states.

        Returns:
            True if the order is waiting for payment or being prepared.
        """
        return self in {OrderState.PAYMENT_WAITING, OrderState.PREPARING}

    def is_canceled(self) -> bool:
        return self == OrderState.CANCELED

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state.

        Returns:
            True if no further transitions are possible.
        """
        return len(_ORDER_TRANSITIONS.get(self, set())) == 0


# Order state transitions (defined outside enum to avoid Enum restrictions)
_ORDER_TRANSITIONS: dict[OrderState, set[OrderState]] = {
    OrderState.PAYMENT_WAITING: {OrderState.PREPARING, OrderState.SHIPPED, OrderState.CANCELED},
    OrderState.PREPARING: {OrderState.SHIPPED, OrderState.CANCELED},
    OrderState.SHIPPED: set(),  # Terminal state
    OrderState.CANCELED: set(),  # Terminal state
}


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_order_transition(
    order_number: str,
    current_state: OrderState,
    target_state: OrderState,
) -> None:
    """Validate and raise if order state transition is invalid.

    Args:
        order_number: Order number for error message.
        current_state: Current order state.
        target_state: Target order state.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_state.can_transition_to(target_state):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_number,
            current_state=current_state.value,
            target_state=target_state.value,
            allowed_transitions=[s.value for s in current_state.allowed_transitions()],
        )
