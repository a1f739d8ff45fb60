"""Booking lifecycle: create, reschedule and cancel with commit-time checks."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from roombook.domain.bus import EventBus
from roombook.domain.errors import BookingConflict, InvalidBookingState, NotFound
from roombook.domain.events import (
    BookingCancelled,
    BookingCreated,
    BookingRescheduled,
    ConflictDetected,
)
from roombook.domain.models import Booking, BookingStatus
from roombook.repos.base import BookingStore
from roombook.services.validation import parse_instant, validate_bookable

logger = logging.getLogger(__name__)


class BookingService:
    """Writes bookings through the store and announces each change on the bus.

    The read-side conflict query is advisory; the store's atomic
    ``*_if_no_conflict`` calls are what actually prevent double booking.
    """

    def __init__(self, store: BookingStore, bus: EventBus) -> None:
        self.store = store
        self.bus = bus

    def create(
        self,
        room_id: str,
        title: str,
        start_time: datetime,
        end_time: datetime,
        user_id: str | None = None,
        *,
        override: bool = False,
        now: datetime | None = None,
    ) -> Booking:
        now = now or datetime.now(timezone.utc)
        start_time = parse_instant(start_time)
        end_time = parse_instant(end_time)
        validate_bookable(start_time, end_time, now)

        booking = Booking(
            room_id=room_id,
            title=title,
            user_id=user_id,
            start_time=start_time,
            end_time=end_time,
            is_admin_override=override,
            created_at=now,
            updated_at=now,
        )

        if override:
            self.store.save(booking)
            logger.warning(
                "Admin override booking stored without conflict check",
                extra={"room_id": room_id, "booking_id": booking.id},
            )
        else:
            conflicts = self.store.insert_if_no_conflict(booking)
            if conflicts:
                self._reject(booking, conflicts, existing=False)

        self.bus.publish(
            BookingCreated(
                booking_id=booking.id,
                room_id=booking.room_id,
                is_admin_override=override,
            )
        )
        return booking

    def reschedule(
        self,
        booking_id: str,
        *,
        room_id: str | None = None,
        title: str | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        now: datetime | None = None,
    ) -> Booking:
        now = now or datetime.now(timezone.utc)
        start_time = parse_instant(start_time)
        end_time = parse_instant(end_time)
        current = self._require(booking_id)
        if current.status == BookingStatus.CANCELLED:
            raise InvalidBookingState(f"Booking {booking_id} is already cancelled")

        updated = current.model_copy(
            update={
                "room_id": room_id or current.room_id,
                "title": current.title if title is None else title,
                "start_time": start_time or current.start_time,
                "end_time": end_time or current.end_time,
                "updated_at": now,
            }
        )
        moved = (
            updated.room_id != current.room_id
            or updated.start_time != current.start_time
            or updated.end_time != current.end_time
        )

        if moved:
            validate_bookable(updated.start_time, updated.end_time, now)
            conflicts = self.store.update_if_no_conflict(updated)
            if conflicts:
                self._reject(updated, conflicts, existing=True)
        else:
            self.store.update(updated)

        self.bus.publish(
            BookingRescheduled(
                booking_id=updated.id,
                room_id=updated.room_id,
                previous_room_id=current.room_id,
                previous_start_time=current.start_time,
                previous_end_time=current.end_time,
            )
        )
        return updated

    def cancel(self, booking_id: str, now: datetime | None = None) -> Booking:
        current = self._require(booking_id)
        if current.status == BookingStatus.CANCELLED:
            raise InvalidBookingState(f"Booking {booking_id} is already cancelled")

        cancelled = current.model_copy(
            update={
                "status": BookingStatus.CANCELLED,
                "updated_at": now or datetime.now(timezone.utc),
            }
        )
        self.store.save(cancelled)
        self.bus.publish(
            BookingCancelled(booking_id=cancelled.id, room_id=cancelled.room_id)
        )
        return cancelled

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, booking_id: str) -> Booking:
        booking = self.store.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    def _reject(self, booking: Booking, conflicts: list[Booking], existing: bool) -> None:
        ids = [c.id for c in conflicts]
        logger.warning(
            "Booking rejected at commit time",
            extra={"room_id": booking.room_id, "conflict_count": len(ids)},
        )
        self.bus.publish(
            ConflictDetected(
                room_id=booking.room_id,
                start_time=booking.start_time,
                end_time=booking.end_time,
                conflicting_booking_ids=ids,
                booking_id=booking.id if existing else None,
            )
        )
        raise BookingConflict(
            f"Room {booking.room_id} is already booked during this time", conflicts
        )
