"""
Synchronous in-process event bus.

Booking services publish lifecycle events after their transaction has
committed. Handlers run inline on the publishing thread; a failing handler
is logged and never propagates back into the booking operation.
"""
import logging
import threading
from typing import Any, Callable, Dict, List

from .base_event import BaseEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[BaseEvent], None]

WILDCARD = "*"


class EventHandlerRegistry:
    """Registry for event handlers."""

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._lock = threading.Lock()

    def register(self, event_type: str, handler: EventHandler) -> None:
        """Register an event handler."""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def unregister(self, event_type: str, handler: EventHandler) -> None:
        """Unregister an event handler."""
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def get_handlers(self, event_type: str) -> List[EventHandler]:
        """Get handlers for an event type, wildcard subscribers last."""
        with self._lock:
            return list(self._handlers.get(event_type, [])) + list(self._handlers.get(WILDCARD, []))

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {event_type: len(handlers) for event_type, handlers in self._handlers.items()}

    def clear(self) -> None:
        """Clear all handlers."""
        with self._lock:
            self._handlers.clear()


class EventBus:
    """
    Event bus for handling application events.
    """

    def __init__(self):
        self._registry = EventHandlerRegistry()
        self._published = 0
        self._failed = 0

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Subscribe a handler to an event type.

        Args:
            event_type: The type of event to subscribe to, or "*" for all events
            handler: Callable receiving the event
        """
        self._registry.register(event_type, handler)
        logger.info(f"Registered handler for event type: {event_type}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Unsubscribe a handler from an event type.

        Args:
            event_type: The type of event to unsubscribe from
            handler: The handler to remove
        """
        self._registry.unregister(event_type, handler)
        logger.info(f"Unregistered handler for event type: {event_type}")

    def publish(self, event: BaseEvent) -> None:
        """
        Publish an event to every subscribed handler.

        Args:
            event: The event to publish
        """
        handlers = self._registry.get_handlers(event.event_type)
        self._published += 1

        if not handlers:
            logger.debug(f"No handlers found for event type: {event.event_type}")
            return

        logger.debug(f"Processing event {event} with {len(handlers)} handlers")
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                self._failed += 1
                logger.exception(f"Error handling event {event.event_type}")
        event.processed = True

    def clear(self) -> None:
        self._registry.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the event bus."""
        return {
            "published": self._published,
            "failed_handlers": self._failed,
            "registered_handlers": self._registry.counts(),
        }
