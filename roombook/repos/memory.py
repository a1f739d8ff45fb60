"""In-memory repositories for bookings and the audit trail."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from threading import Lock

from roombook.domain.errors import InvalidBookingState, NotFound
from roombook.domain.models import AuditEntry, Booking, BookingStatus, Interval
from roombook.repos.base import BookingStore
from roombook.services.conflicts import find_conflicts, overlaps


class InMemoryBookingStore(BookingStore):
    """Dict-backed store for Booking instances, keyed by id.

    The conflict check and the write share one lock, so two concurrent
    requests can never both commit overlapping confirmed bookings.
    """

    def __init__(self) -> None:
        self._store: dict[str, Booking] = {}
        self._lock = Lock()

    def get_bookings_overlapping_window(
        self, room_id: str, window_start: datetime, window_end: datetime
    ) -> list[Booking]:
        window = Interval(start=window_start, end=window_end)
        with self._lock:
            return [
                b
                for b in self._store.values()
                if b.room_id == room_id and overlaps(window, b.interval)
            ]

    def get_booking_by_id(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._store.get(booking_id)

    def list_for_room(self, room_id: str) -> list[Booking]:
        with self._lock:
            return sorted(
                (b for b in self._store.values() if b.room_id == room_id),
                key=lambda b: b.start_time,
            )

    def insert_if_no_conflict(self, booking: Booking) -> list[Booking]:
        with self._lock:
            conflicts = self._conflicts_for(booking)
            if not conflicts:
                self._store[booking.id] = booking
            return conflicts

    def update_if_no_conflict(self, booking: Booking) -> list[Booking]:
        with self._lock:
            self._require_active(booking.id)
            conflicts = self._conflicts_for(booking)
            if not conflicts:
                self._store[booking.id] = booking
            return conflicts

    def update(self, booking: Booking) -> None:
        with self._lock:
            self._require_active(booking.id)
            self._store[booking.id] = booking

    def save(self, booking: Booking) -> None:
        with self._lock:
            self._store[booking.id] = booking

    def _require_active(self, booking_id: str) -> None:
        stored = self._store.get(booking_id)
        if stored is None:
            raise NotFound(f"Booking {booking_id} not found")
        if stored.status == BookingStatus.CANCELLED:
            raise InvalidBookingState(f"Booking {booking_id} is already cancelled")

    def _conflicts_for(self, booking: Booking) -> list[Booking]:
        same_room = [b for b in self._store.values() if b.room_id == booking.room_id]
        return find_conflicts(
            booking.start_time, booking.end_time, same_room, exclude_booking_id=booking.id
        )


class AuditRepository:
    """List-backed store for AuditEntry instances."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def add(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def list_for_booking(self, booking_id: str) -> list[AuditEntry]:
        return sorted(
            [e for e in self._entries if e.booking_id == booking_id],
            key=lambda e: e.timestamp,
        )

    def list_for_room(self, room_id: str) -> list[AuditEntry]:
        return sorted(
            [e for e in self._entries if e.room_id == room_id],
            key=lambda e: e.timestamp,
        )


# ---------------------------------------------------------------------------
# Seed data – a morning of bookings tomorrow, useful for trying conflicts
# ---------------------------------------------------------------------------


def _seed_bookings(store: InMemoryBookingStore) -> None:
    tomorrow = datetime.now(timezone.utc).date() + timedelta(days=1)
    nine = datetime.combine(tomorrow, time(9), tzinfo=timezone.utc)

    store.save(
        Booking(
            room_id="boardroom",
            title="Quarterly planning",
            start_time=nine,
            end_time=nine + timedelta(hours=2),
        )
    )
    store.save(
        Booking(
            room_id="boardroom",
            title="Vendor call",
            start_time=nine + timedelta(hours=2),
            end_time=nine + timedelta(hours=3),
        )
    )
    store.save(
        Booking(
            room_id="huddle-1",
            title="1:1",
            start_time=nine + timedelta(hours=1),
            end_time=nine + timedelta(hours=1, minutes=30),
        )
    )


def create_booking_store(seed: bool = False) -> InMemoryBookingStore:
    """Return an InMemoryBookingStore, optionally pre-loaded with sample data."""
    store = InMemoryBookingStore()
    if seed:
        _seed_bookings(store)
    return store
