"""
Base event classes for the in-process event bus.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4


class BaseEvent:
    """Base class for all events in the system."""

    def __init__(self, event_type: str, data: Optional[Dict[str, Any]] = None):
        self.event_id = str(uuid4())
        self.event_type = event_type
        self.data = data or {}
        self.timestamp = datetime.now(timezone.utc)
        self.processed = False

    def __str__(self) -> str:
        return f"{self.event_type}({self.event_id})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
            "processed": self.processed
        }


class BookingEvent(BaseEvent):
    """Events related to booking operations."""

    CREATED = "booking.created"
    STATUS_CHANGED = "booking.status_changed"
    RESCHEDULED = "booking.rescheduled"

    def __init__(
        self,
        event_type: str,
        booking_id: str,
        booking_date: date,
        old_status: Optional[str] = None,
        new_status: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        data = dict(data or {})
        data.update({
            "booking_id": booking_id,
            "booking_date": booking_date.isoformat(),
            "old_status": old_status,
            "new_status": new_status,
        })
        super().__init__(event_type, data)
        self.booking_id = booking_id
        self.booking_date = booking_date
        self.old_status = old_status
        self.new_status = new_status
