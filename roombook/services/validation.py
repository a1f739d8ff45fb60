"""Parsing and precondition checks for candidate intervals."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse

from roombook.config import settings
from roombook.domain.errors import InvalidInterval
from roombook.domain.models import Interval


def local_zone() -> ZoneInfo:
    """Zone in which operating hours and calendar days are interpreted."""
    return ZoneInfo(settings.BOOKING_TIMEZONE)


def parse_instant(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 instant, returning ``None`` when missing or unparseable.

    Naive values are taken to be UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        result = value
    else:
        raw = value.strip()
        if not raw:
            return None
        try:
            result = isoparse(raw)
        except (ValueError, OverflowError):
            return None
    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result


def validate_interval(start: datetime, end: datetime) -> Interval:
    """Check ordering and duration bounds, returning the candidate interval."""
    if end <= start:
        raise InvalidInterval("end_time must be after start_time")

    minutes = (end - start).total_seconds() / 60
    low, high = settings.MIN_BOOKING_MINUTES, settings.MAX_BOOKING_MINUTES
    if not low <= minutes <= high:
        raise InvalidInterval(
            f"duration must be between {low} and {high} minutes, got {minutes:g}"
        )
    return Interval(start=start, end=end)


def validate_bookable(start: datetime, end: datetime, now: datetime) -> Interval:
    """Full precondition set for committing a booking.

    On top of :func:`validate_interval`, the start must be strictly in the
    future and respect the configured advance notice.
    """
    interval = validate_interval(start, end)
    if start <= now:
        raise InvalidInterval("start_time must be in the future")

    notice = timedelta(hours=settings.ADVANCE_NOTICE_HOURS)
    if start < now + notice:
        raise InvalidInterval(
            f"bookings require {settings.ADVANCE_NOTICE_HOURS} hours advance notice"
        )
    return interval
