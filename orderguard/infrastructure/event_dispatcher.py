"""In-process event dispatcher.

Delivers domain events to handlers registered per event class or for
every event. Handlers may be plain callables or coroutine functions.
A failing handler is logged and skipped; the remaining handlers still
run and the publisher never sees the error.

Usage:
    >>> dispatcher = InMemoryEventDispatcher()
    >>> dispatcher.subscribe(ShippingStarted, notify_warehouse)
    >>> await dispatcher.publish_all(order.collect_events())
"""

import inspect
import threading
from collections import defaultdict
from collections.abc import Awaitable, Callable

import structlog

from orderguard.domain.base import DomainEvent
from orderguard.domain.repositories import EventDispatcher

logger = structlog.get_logger()

EventHandler = Callable[[DomainEvent], Awaitable[None] | None]


class InMemoryEventDispatcher(EventDispatcher):
    """Dispatcher keeping subscribers and published history in memory.

    Attributes:
        published: Every event handed to ``publish``, in order.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)
        self._all_event_handlers: list[EventHandler] = []
        self._lock = threading.RLock()
        self.published: list[DomainEvent] = []
        self.handler_errors = 0

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        """Register a handler for one event class."""
        with self._lock:
            self._subscribers[event_type].append(handler)
        logger.debug(
            "Handler subscribed",
            handler=_handler_name(handler),
            event_type=event_type.event_type,
        )

    def subscribe_to_all_events(self, handler: EventHandler) -> None:
        """Register a handler receiving every event."""
        with self._lock:
            self._all_event_handlers.append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> bool:
        """Remove a handler.

        Returns:
            True if the handler was registered for the event class.
        """
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    async def publish(self, event: DomainEvent) -> None:
        """Deliver one event to its subscribers."""
        with self._lock:
            handlers = list(self._subscribers.get(type(event), [])) + list(self._all_event_handlers)
            self.published.append(event)

        logger.info(
            "Event published",
            event_type=event.event_type,
            event_id=str(event.event_id),
            aggregate_id=event.aggregate_id,
            handler_count=len(handlers),
        )
        for handler in handlers:
            await self._safe_handle(handler, event)

    def clear(self) -> None:
        """Forget published history and every subscriber."""
        with self._lock:
            self._subscribers.clear()
            self._all_event_handlers.clear()
            self.published.clear()
            self.handler_errors = 0

    async def _safe_handle(self, handler: EventHandler, event: DomainEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.handler_errors += 1
            logger.error(
                "Event handler failed",
                handler=_handler_name(handler),
                event_type=event.event_type,
                event_id=str(event.event_id),
                error=str(e),
                exc_info=True,
            )


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__
