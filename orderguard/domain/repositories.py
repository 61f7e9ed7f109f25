"""Ports the domain expects from the outside world.

Storage and event delivery are black boxes to the core. Concrete
implementations live in the infrastructure layer.
"""

from abc import ABC, abstractmethod

from orderguard.domain.base import DomainEvent
from orderguard.domain.entities import Order
from orderguard.domain.exceptions import OrderNotFoundError
from orderguard.domain.value_objects import OrderNo


class OrderRepository(ABC):
    """Loads and stores Order aggregates.

    ``save`` is a compare-and-swap on the aggregate version: the stored
    version must still equal ``order.version``. On success the stored
    version and ``order.version`` both advance by one. The aggregate
    never bumps its own version.
    """

    @abstractmethod
    async def load(self, number: OrderNo) -> Order:
        """Load an order.

        Raises:
            OrderNotFoundError: If no order has this number.
        """

    @abstractmethod
    async def add(self, order: Order) -> None:
        """Store a newly placed order at its current version.

        Raises:
            DuplicateOrderError: If the number is already stored.
        """

    @abstractmethod
    async def save(self, order: Order) -> None:
        """Write back a loaded order.

        Raises:
            OrderNotFoundError: If the order was never added.
            ConcurrentModificationError: If the stored version moved.
        """

    async def exists(self, number: OrderNo) -> bool:
        try:
            await self.load(number)
        except OrderNotFoundError:
            return False
        return True


class EventDispatcher(ABC):
    """Hands domain events to subscribers. Fire-and-forget for the core."""

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Publish a single event."""

    async def publish_all(self, events: list[DomainEvent]) -> None:
        """Publish events in the order they were recorded."""
        for event in events:
            await self.publish(event)
