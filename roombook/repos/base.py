from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from roombook.domain.models import Booking


class BookingStore(ABC):
    """Persistence collaborator consumed by the conflict core.

    Implementations raise :class:`roombook.domain.errors.Unavailable` when the
    backing store cannot be reached.
    """

    @abstractmethod
    def get_bookings_overlapping_window(
        self, room_id: str, window_start: datetime, window_end: datetime
    ) -> list[Booking]:
        """Return the room's bookings overlapping the window, in any status.

        Filtering to confirmed bookings is the caller's job.
        """
        raise NotImplementedError

    @abstractmethod
    def get_booking_by_id(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def list_for_room(self, room_id: str) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def insert_if_no_conflict(self, booking: Booking) -> list[Booking]:
        """Atomically insert *booking* unless confirmed bookings overlap it.

        Returns the conflicting bookings; an empty list means it was inserted.
        """
        raise NotImplementedError

    @abstractmethod
    def update_if_no_conflict(self, booking: Booking) -> list[Booking]:
        """Atomically replace the stored booking with the same id.

        The booking never conflicts with its own previous version. Raises
        ``NotFound`` or ``InvalidBookingState`` when the stored booking is
        gone or was cancelled meanwhile.
        """
        raise NotImplementedError

    @abstractmethod
    def update(self, booking: Booking) -> None:
        """Replace the stored booking without a conflict check.

        Same stored-state guard as :meth:`update_if_no_conflict`.
        """
        raise NotImplementedError

    @abstractmethod
    def save(self, booking: Booking) -> None:
        """Store *booking* unconditionally (admin override, cancellation)."""
        raise NotImplementedError
