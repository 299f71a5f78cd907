"""
Event system for the spa booking engine.
"""

from .event_bus import EventBus, EventHandler, EventHandlerRegistry
from .base_event import BaseEvent, BookingEvent

__all__ = [
    "EventBus",
    "EventHandler",
    "EventHandlerRegistry",
    "BaseEvent",
    "BookingEvent",
]
