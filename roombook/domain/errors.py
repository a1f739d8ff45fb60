"""Typed failures raised by the booking core.

Every error carries an :class:`ErrorKind` so callers can branch on the kind
without matching on exception classes, and a ``retryable`` flag telling them
whether the same request may succeed later.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from roombook.domain.models import Booking


class ErrorKind(StrEnum):
    INVALID_INTERVAL = "invalid_interval"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"


class BookingError(Exception):
    """Base class for all booking-core failures."""

    kind: ErrorKind
    retryable: bool = False


class InvalidInterval(BookingError, ValueError):
    """Raised when end <= start or the duration is outside the bookable bounds."""

    kind = ErrorKind.INVALID_INTERVAL


class Unavailable(BookingError):
    """Raised when the booking store cannot be reached or timed out."""

    kind = ErrorKind.UNAVAILABLE
    retryable = True


class NotFound(BookingError, LookupError):
    """Raised when a referenced booking does not exist."""

    kind = ErrorKind.NOT_FOUND


class InvalidBookingState(BookingError):
    """Raised when a lifecycle transition is not allowed (e.g. editing a cancelled booking)."""

    kind = ErrorKind.INVALID_STATE


class BookingConflict(BookingError):
    """Raised at commit time when confirmed bookings already occupy the interval."""

    kind = ErrorKind.CONFLICT

    def __init__(self, message: str, conflicts: list[Booking]) -> None:
        super().__init__(message)
        self.conflicts = conflicts
