"""Tests for the in-memory event dispatcher."""

import pytest

from orderguard.domain import OrderCanceled, ShippingStarted
from orderguard.infrastructure.event_dispatcher import InMemoryEventDispatcher


class TestInMemoryEventDispatcher:
    """Tests for InMemoryEventDispatcher."""

    @pytest.mark.asyncio
    async def test_routes_by_event_class(self) -> None:
        """Handlers only receive the class they subscribed to."""
        dispatcher = InMemoryEventDispatcher()
        shipped: list = []
        canceled: list = []
        dispatcher.subscribe(ShippingStarted, shipped.append)
        dispatcher.subscribe(OrderCanceled, canceled.append)

        event = ShippingStarted(order_number="ORD-10")
        await dispatcher.publish(event)

        assert shipped == [event]
        assert canceled == []

    @pytest.mark.asyncio
    async def test_async_handler(self) -> None:
        dispatcher = InMemoryEventDispatcher()
        received: list = []

        async def handler(event) -> None:
            received.append(event)

        dispatcher.subscribe(OrderCanceled, handler)
        await dispatcher.publish(OrderCanceled(order_number="ORD-10"))

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_wildcard_handler(self) -> None:
        dispatcher = InMemoryEventDispatcher()
        received: list = []
        dispatcher.subscribe_to_all_events(received.append)

        await dispatcher.publish_all([ShippingStarted(), OrderCanceled()])

        assert [e.event_type for e in received] == ["order.shipping_started", "order.canceled"]

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self) -> None:
        """A raising handler does not stop the others or the publisher."""
        dispatcher = InMemoryEventDispatcher()
        received: list = []

        def broken(event) -> None:
            raise RuntimeError("handler down")

        dispatcher.subscribe(ShippingStarted, broken)
        dispatcher.subscribe(ShippingStarted, received.append)

        await dispatcher.publish(ShippingStarted())

        assert len(received) == 1
        assert dispatcher.handler_errors == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self) -> None:
        dispatcher = InMemoryEventDispatcher()
        received: list = []
        dispatcher.subscribe(ShippingStarted, received.append)

        assert dispatcher.unsubscribe(ShippingStarted, received.append)
        assert not dispatcher.unsubscribe(ShippingStarted, received.append)
        await dispatcher.publish(ShippingStarted())

        assert received == []
        assert len(dispatcher.published) == 1

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        dispatcher = InMemoryEventDispatcher()
        await dispatcher.publish(ShippingStarted())
        dispatcher.clear()
        assert dispatcher.published == []
