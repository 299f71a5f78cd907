"""Tests for the in-process event bus."""

from datetime import date

from app.core.events import BookingEvent, EventBus


def _event(event_type=BookingEvent.CREATED):
    return BookingEvent(event_type, booking_id="b-1", booking_date=date(2024, 1, 15), new_status="confirmed")


def test_handlers_receive_matching_events():
    bus = EventBus()
    created, everything = [], []
    bus.subscribe(BookingEvent.CREATED, created.append)
    bus.subscribe("*", everything.append)

    bus.publish(_event())
    bus.publish(_event(BookingEvent.RESCHEDULED))

    assert [e.event_type for e in created] == ["booking.created"]
    assert [e.event_type for e in everything] == ["booking.created", "booking.rescheduled"]


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("handler failed")

    bus.subscribe(BookingEvent.CREATED, broken)
    bus.subscribe(BookingEvent.CREATED, received.append)

    event = _event()
    bus.publish(event)

    assert received == [event]
    assert event.processed is True
    assert bus.get_stats()["failed_handlers"] == 1


def test_unsubscribe():
    bus = EventBus()
    received = []
    bus.subscribe(BookingEvent.CREATED, received.append)
    bus.unsubscribe(BookingEvent.CREATED, received.append)

    bus.publish(_event())

    assert received == []


def test_event_payload():
    data = _event().to_dict()

    assert data["event_type"] == "booking.created"
    assert data["data"]["booking_id"] == "b-1"
    assert data["data"]["booking_date"] == "2024-01-15"
    assert data["processed"] is False
