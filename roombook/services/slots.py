"""Service for suggesting free slots and building a room's day timeline."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from dateutil.rrule import MINUTELY, rrule

from roombook.config import settings
from roombook.domain.models import (
    Booking,
    BookingStatus,
    Interval,
    OperatingHours,
    SuggestedInterval,
    TimeSlot,
)
from roombook.repos.base import BookingStore
from roombook.services.conflicts import find_conflicts
from roombook.services.validation import local_zone, parse_instant, validate_interval

logger = logging.getLogger(__name__)

DEFAULT_STEP_MINUTES = 30


def configured_hours() -> OperatingHours:
    return OperatingHours(start_hour=settings.OPEN_HOUR, end_hour=settings.CLOSE_HOUR)


def _day_bounds(
    day: date, hours: OperatingHours, tz: tzinfo
) -> tuple[datetime, datetime]:
    midnight = datetime.combine(day, time.min, tzinfo=tz)
    return (
        midnight + timedelta(hours=hours.start_hour),
        midnight + timedelta(hours=hours.end_hour),
    )


def _step_points(opens: datetime, closes: datetime, step_minutes: int) -> list[datetime]:
    """Every *step_minutes* from *opens* up to and including *closes*."""
    return list(rrule(MINUTELY, interval=step_minutes, dtstart=opens, until=closes))


def find_next_available_slot(
    room_id: str,
    candidate: Interval,
    bookings: list[Booking],
    operating_hours: OperatingHours | None = None,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    *,
    tz: tzinfo = timezone.utc,
    scan_next_day: bool = True,
    exclude_booking_id: str | None = None,
) -> SuggestedInterval | None:
    """Return the earliest free interval, of the candidate's duration, after it.

    Same day first: step points from opening time, strictly later than the
    candidate start, whose end falls strictly before closing time. Failing
    that, the following day from the candidate's own time of day (or opening
    time when the candidate lies outside operating hours), then later step
    points that still end before closing. Free slots earlier on the next
    morning than the anchor are never offered. With ``scan_next_day`` off,
    the anchor is offered without checking it.
    """
    hours = operating_hours or OperatingHours()
    duration = candidate.duration
    out_tz = candidate.start.tzinfo
    local_start = candidate.start.astimezone(tz)

    def is_free(start: datetime) -> bool:
        return not find_conflicts(start, start + duration, bookings, exclude_booking_id)

    def suggest(start: datetime, same_day: bool, checked: bool = True) -> SuggestedInterval:
        return SuggestedInterval(
            room_id=room_id,
            start_time=start.astimezone(out_tz),
            end_time=(start + duration).astimezone(out_tz),
            same_day=same_day,
            conflict_checked=checked,
        )

    # -- same day ------------------------------------------------------------
    opens, closes = _day_bounds(local_start.date(), hours, tz)
    for point in _step_points(opens, closes, step_minutes):
        if point <= candidate.start:
            continue
        if point + duration >= closes:
            break
        if is_free(point):
            return suggest(point, same_day=True)

    # -- next day ------------------------------------------------------------
    next_day = local_start.date() + timedelta(days=1)
    opens, closes = _day_bounds(next_day, hours, tz)
    anchor = datetime.combine(next_day, local_start.time(), tzinfo=tz)
    if not opens <= anchor < closes:
        anchor = opens

    if not scan_next_day:
        return suggest(anchor, same_day=False, checked=False)

    if is_free(anchor):
        return suggest(anchor, same_day=False)
    for point in _step_points(opens, closes, step_minutes):
        if point <= anchor:
            continue
        if point + duration >= closes:
            break
        if is_free(point):
            return suggest(point, same_day=False)

    logger.info("No free slot on the same or next day", extra={"room_id": room_id})
    return None


def suggest_next_slot(
    store: BookingStore,
    room_id: str,
    start_time: str | datetime | None,
    end_time: str | datetime | None,
    exclude_booking_id: str | None = None,
) -> SuggestedInterval | None:
    """Suggest an alternative to the candidate using the room's stored bookings.

    Returns ``None`` for missing input. One store read covers the candidate's
    day and the following one.
    """
    start = parse_instant(start_time)
    end = parse_instant(end_time)
    if not room_id or start is None or end is None:
        return None

    candidate = validate_interval(start, end)
    tz = local_zone()
    day = candidate.start.astimezone(tz).date()
    window_start = datetime.combine(day, time.min, tzinfo=tz)
    window_end = (
        datetime.combine(day + timedelta(days=2), time.min, tzinfo=tz)
        + candidate.duration
    )
    bookings = store.get_bookings_overlapping_window(room_id, window_start, window_end)

    return find_next_available_slot(
        room_id,
        candidate,
        bookings,
        configured_hours(),
        settings.SLOT_STEP_MINUTES,
        tz=tz,
        scan_next_day=settings.SCAN_NEXT_DAY,
        exclude_booking_id=exclude_booking_id,
    )


def day_availability(
    store: BookingStore,
    room_id: str,
    day: date,
    slot_minutes: int | None = None,
) -> list[TimeSlot]:
    """Split the day's operating hours into fixed slots marked free or occupied."""
    slot_minutes = slot_minutes or settings.TIMELINE_SLOT_MINUTES
    step = timedelta(minutes=slot_minutes)
    opens, closes = _day_bounds(day, configured_hours(), local_zone())

    bookings = [
        b
        for b in store.get_bookings_overlapping_window(room_id, opens, closes)
        if b.status == BookingStatus.CONFIRMED
    ]

    slots: list[TimeSlot] = []
    for point in _step_points(opens, closes, slot_minutes):
        if point + step > closes:
            break
        occupants = find_conflicts(point, point + step, bookings)
        slots.append(
            TimeSlot(
                start_time=point,
                end_time=point + step,
                available=not occupants,
                booking_id=occupants[0].id if occupants else None,
            )
        )
    return slots
