"""Service for detecting booking conflicts within a room."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Iterable

from roombook.domain.errors import ErrorKind, Unavailable
from roombook.domain.models import (
    Booking,
    BookingStatus,
    ConflictResult,
    ConflictWarning,
    Interval,
)
from roombook.repos.base import BookingStore
from roombook.services.validation import local_zone, parse_instant, validate_interval

logger = logging.getLogger(__name__)


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True when the intervals share any interior point.

    Exact boundary touches (a.end == b.start) are NOT overlaps, so
    back-to-back bookings are allowed.
    """
    return a.start < b.end and b.start < a.end


def find_conflicts(
    new_start: datetime,
    new_end: datetime,
    existing_bookings: Iterable[Booking],
    exclude_booking_id: str | None = None,
) -> list[Booking]:
    """Return the confirmed bookings overlapping ``[new_start, new_end)``.

    Pending and cancelled bookings never block. The booking with
    *exclude_booking_id* is skipped so an edit does not conflict with itself.
    Results are ordered by start time, then id.
    """
    candidate = Interval(start=new_start, end=new_end)
    conflicts = [
        booking
        for booking in existing_bookings
        if booking.status == BookingStatus.CONFIRMED
        and booking.id != exclude_booking_id
        and overlaps(candidate, booking.interval)
    ]
    return sorted(conflicts, key=lambda b: (b.start_time, b.id))


def bounding_window(
    start: datetime, end: datetime, tz: tzinfo = timezone.utc
) -> tuple[datetime, datetime]:
    """Local calendar day of *start*, widened to cover the whole candidate."""
    day = start.astimezone(tz).date()
    day_start = datetime.combine(day, time.min, tzinfo=tz)
    day_end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return min(day_start, start), max(day_end, end)


def check_conflicts(
    store: BookingStore,
    room_id: str,
    start_time: str | datetime | None,
    end_time: str | datetime | None,
    exclude_booking_id: str | None = None,
    *,
    now: datetime | None = None,
) -> ConflictResult:
    """Check a candidate interval against the room's confirmed bookings.

    Missing or unparseable input yields an empty result rather than an error.
    Raises ``InvalidInterval`` for a malformed interval and propagates
    ``Unavailable`` from the store.
    """
    checked_at = now or datetime.now(timezone.utc)
    start = parse_instant(start_time)
    end = parse_instant(end_time)
    if not room_id or start is None or end is None:
        return ConflictResult(room_id=room_id or "", checked_at=checked_at)

    candidate = validate_interval(start, end)
    warnings: list[ConflictWarning] = []

    try:
        if exclude_booking_id and store.get_booking_by_id(exclude_booking_id) is None:
            logger.warning(
                "Excluded booking no longer exists",
                extra={"room_id": room_id, "booking_id": exclude_booking_id},
            )
            warnings.append(
                ConflictWarning(
                    kind=ErrorKind.NOT_FOUND,
                    message=f"Booking {exclude_booking_id} no longer exists",
                )
            )
            exclude_booking_id = None

        window_start, window_end = bounding_window(
            candidate.start, candidate.end, local_zone()
        )
        bookings = store.get_bookings_overlapping_window(
            room_id, window_start, window_end
        )
    except Unavailable:
        logger.error("Booking store unavailable", extra={"room_id": room_id})
        raise

    conflicts = find_conflicts(
        candidate.start, candidate.end, bookings, exclude_booking_id
    )
    if conflicts:
        logger.info(
            "Conflicts found",
            extra={"room_id": room_id, "conflict_count": len(conflicts)},
        )
    return ConflictResult(
        room_id=room_id,
        conflicts=conflicts,
        checked_at=checked_at,
        warnings=warnings,
    )
