# app/repositories/booking/booking_repository.py
"""
Booking repository (the booking store).

Provides read queries for availability and allocation, and the two
conditional writes that keep room and staff intervals disjoint: the
atomic insert for new bookings and the atomic reschedule for moves.
Each write checks for conflicts and writes in one SQL statement inside
a write transaction that serializes competing writers for the same
room or staff member.
"""

import zlib
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, insert, literal, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from app.core.exceptions import BookingConflictError, StorageError
from app.core.logging import get_logger
from app.models.base.enums import BookingStatus
from app.models.booking.booking import Booking
from app.repositories.base.base_repository import BaseRepository
from app.services.availability.conflict_detector import BLOCKING_STATUSES, overlap_clause

logger = get_logger(__name__)

# Columns written by the conditional insert; timestamps come from server defaults
_INSERT_COLUMNS = (
    "id",
    "customer_id",
    "service_id",
    "staff_id",
    "room_id",
    "booking_date",
    "start_time",
    "end_time",
    "party_size",
    "status",
    "total_price",
    "special_requests",
)


class BookingRepository(BaseRepository[Booking]):
    """Booking persistence with conflict-safe writes."""

    def __init__(self, db: Session):
        super().__init__(Booking, db)

    # ==================== Read Operations ====================

    def query(
        self,
        booking_date: date,
        *,
        room_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        blocking_only: bool = True,
    ) -> List[Booking]:
        """
        Bookings on a date, ordered by start time.

        Args:
            booking_date: Date to load
            room_id: Only bookings in this room
            staff_id: Only bookings of this staff member
            blocking_only: Skip cancelled and no-show bookings
        """
        stmt = select(Booking).where(Booking.booking_date == booking_date)
        if room_id is not None:
            stmt = stmt.where(Booking.room_id == room_id)
        if staff_id is not None:
            stmt = stmt.where(Booking.staff_id == staff_id)
        if blocking_only:
            stmt = stmt.where(Booking.status.in_(BLOCKING_STATUSES))
        return self._all(stmt.order_by(Booking.start_time, Booking.id))

    def count_blocking_by_date(self, start_date: date, end_date: date) -> Dict[date, int]:
        """Number of blocking bookings per date between two dates inclusive."""
        stmt = (
            select(Booking.booking_date, func.count(Booking.id))
            .where(
                Booking.booking_date >= start_date,
                Booking.booking_date <= end_date,
                Booking.status.in_(BLOCKING_STATUSES),
            )
            .group_by(Booking.booking_date)
        )
        try:
            return {row[0]: row[1] for row in self.db.execute(stmt)}
        except SQLAlchemyError as e:
            raise StorageError("Counting bookings failed", operation="select", table="bookings") from e

    def search(
        self,
        *,
        customer_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        booking_date: Optional[date] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
        limit: int = 100,
    ) -> List[Booking]:
        stmt = select(Booking)
        if customer_id is not None:
            stmt = stmt.where(Booking.customer_id == customer_id)
        if staff_id is not None:
            stmt = stmt.where(Booking.staff_id == staff_id)
        if booking_date is not None:
            stmt = stmt.where(Booking.booking_date == booking_date)
        if statuses is not None:
            stmt = stmt.where(Booking.status.in_(list(statuses)))
        stmt = stmt.order_by(Booking.booking_date, Booking.start_time, Booking.id).limit(limit)
        return self._all(stmt)

    def for_staff_between(self, staff_id: str, start_date: date, end_date: date) -> List[Booking]:
        stmt = (
            select(Booking)
            .where(
                Booking.staff_id == staff_id,
                Booking.booking_date >= start_date,
                Booking.booking_date <= end_date,
                Booking.status.in_(BLOCKING_STATUSES),
            )
            .order_by(Booking.booking_date, Booking.start_time)
        )
        return self._all(stmt)

    def reload(self, booking_id: str) -> Optional[Booking]:
        """Load a booking bypassing any stale state held by the session."""
        try:
            return self.db.get(Booking, booking_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise StorageError("Loading booking failed", operation="select", table="bookings") from e

    # ==================== Conditional Writes ====================

    def atomic_insert(self, booking: Booking) -> Booking:
        """
        Insert ``booking`` only if no blocking booking holds its room or its
        staff member for an overlapping interval on the same date.

        The caller commits. On a conflict or a storage failure the session
        is rolled back before raising.

        Raises:
            BookingConflictError: A conflicting booking exists
            StorageError: Any other persistence failure
        """
        values = {column: getattr(booking, column) for column in _INSERT_COLUMNS}
        table = Booking.__table__

        try:
            self._begin_write(booking.booking_date, booking.room_id, booking.staff_id)
            candidate = select(
                *[literal(values[column], type_=table.c[column].type).label(column) for column in _INSERT_COLUMNS]
            ).where(
                ~self._conflict_exists(
                    booking.booking_date,
                    booking.start_time,
                    booking.end_time,
                    booking.room_id,
                    booking.staff_id,
                )
            )
            result = self.db.execute(insert(table).from_select(list(_INSERT_COLUMNS), candidate))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Atomic booking insert failed", exc_info=True, extra={"booking_id": booking.id})
            raise StorageError("Booking insert failed", operation="insert", table="bookings") from e

        if result.rowcount != 1:
            self.db.rollback()
            raise BookingConflictError(
                "Room or staff member was booked by a concurrent request",
                details=self._conflict_details(booking.room_id, booking.staff_id, booking.booking_date,
                                               booking.start_time, booking.end_time),
            )

        return self.db.get(Booking, booking.id)

    def atomic_reschedule(
        self,
        booking_id: str,
        *,
        booking_date: date,
        start_time: time,
        end_time: time,
        room_id: str,
        staff_id: str,
        expected_statuses: Iterable[BookingStatus],
    ) -> Booking:
        """
        Move a booking to a new interval and resources if, at write time,
        it is still in one of ``expected_statuses`` and nothing else blocks
        the new room or staff member. The booking's own row never conflicts
        with itself.

        Raises:
            BookingConflictError: The move lost against another booking or a concurrent status change
            StorageError: Any other persistence failure
        """
        table = Booking.__table__
        try:
            self._begin_write(booking_date, room_id, staff_id)
            stmt = (
                update(table)
                .where(
                    table.c.id == booking_id,
                    table.c.status.in_(list(expected_statuses)),
                    ~self._conflict_exists(
                        booking_date, start_time, end_time, room_id, staff_id, exclude_booking_id=booking_id
                    ),
                )
                .values(
                    booking_date=booking_date,
                    start_time=start_time,
                    end_time=end_time,
                    room_id=room_id,
                    staff_id=staff_id,
                )
            )
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Atomic booking reschedule failed", exc_info=True, extra={"booking_id": booking_id})
            raise StorageError("Booking reschedule failed", operation="update", table="bookings") from e

        if result.rowcount != 1:
            self.db.rollback()
            raise BookingConflictError(
                "Booking could not be moved to the requested interval",
                details=self._conflict_details(room_id, staff_id, booking_date, start_time, end_time),
            )

        return self.reload(booking_id)

    def transition_status(
        self,
        booking_id: str,
        from_status: BookingStatus,
        to_status: BookingStatus,
        **fields: Any,
    ) -> bool:
        """
        Compare-and-set the status of a booking.

        Returns False when the booking is no longer in ``from_status``.
        The caller commits.
        """
        table = Booking.__table__
        stmt = (
            update(table)
            .where(table.c.id == booking_id, table.c.status == from_status)
            .values(status=to_status, **fields)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError("Booking status update failed", operation="update", table="bookings") from e
        return result.rowcount == 1

    # ==================== Helpers ====================

    def _conflict_exists(
        self,
        booking_date: date,
        start_time: time,
        end_time: time,
        room_id: str,
        staff_id: str,
        exclude_booking_id: Optional[str] = None,
    ):
        existing = aliased(Booking, name="existing")
        stmt = select(existing.id).where(
            existing.booking_date == booking_date,
            existing.status.in_(BLOCKING_STATUSES),
            or_(existing.room_id == room_id, existing.staff_id == staff_id),
            overlap_clause(existing.start_time, existing.end_time, start_time, end_time),
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(existing.id != exclude_booking_id)
        return stmt.correlate(None).exists()

    def _begin_write(self, booking_date: date, room_id: str, staff_id: str) -> None:
        """
        Open a write transaction that serializes writers for the same
        room and staff member.

        SQLite takes the database write lock up front (BEGIN IMMEDIATE);
        PostgreSQL takes transaction-scoped advisory locks on the
        (room, date) and (staff, date) pairs in a fixed order.
        """
        connection = self.db.connection()
        dialect = connection.dialect.name

        if dialect == "sqlite":
            driver_connection = connection.connection.driver_connection
            if not driver_connection.in_transaction:
                connection.exec_driver_sql("BEGIN IMMEDIATE")
        elif dialect == "postgresql":
            keys = sorted({
                _lock_key("room", room_id, booking_date),
                _lock_key("staff", staff_id, booking_date),
            })
            for key in keys:
                connection.execute(select(func.pg_advisory_xact_lock(key)))

    def _conflict_details(
        self,
        room_id: str,
        staff_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
    ) -> Dict[str, Any]:
        return {
            "room_id": room_id,
            "staff_id": staff_id,
            "date": booking_date.isoformat(),
            "start_time": start_time.strftime("%H:%M"),
            "end_time": end_time.strftime("%H:%M"),
        }


def _lock_key(kind: str, resource_id: str, booking_date: date) -> int:
    return zlib.crc32(f"{kind}:{resource_id}:{booking_date.isoformat()}".encode("utf-8"))
