"""Tests for the conflict-detection service."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from roombook.domain.errors import ErrorKind, InvalidInterval, Unavailable
from roombook.domain.models import Booking, BookingStatus, Interval
from roombook.repos.base import BookingStore
from roombook.repos.memory import InMemoryBookingStore
from roombook.services.conflicts import (
    bounding_window,
    check_conflicts,
    find_conflicts,
    overlaps,
)

ROOM = "room-r"


def _at(hour: int, minute: int = 0, day: int = 4) -> datetime:
    return datetime(2031, 3, day, hour, minute, tzinfo=timezone.utc)


def _make_booking(
    start: datetime,
    end: datetime,
    room_id: str = ROOM,
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    return Booking(room_id=room_id, title="Existing", start_time=start, end_time=end, status=status)


def _interval(start: datetime, end: datetime) -> Interval:
    return Interval(start=start, end=end)


@pytest.fixture()
def store() -> InMemoryBookingStore:
    return InMemoryBookingStore()


class _DownStore(BookingStore):
    """Store whose backend is unreachable."""

    def get_bookings_overlapping_window(self, room_id, window_start, window_end):
        raise Unavailable("booking store timed out")

    def get_booking_by_id(self, booking_id):
        raise Unavailable("booking store timed out")

    def list_for_room(self, room_id):
        raise Unavailable("booking store timed out")

    def insert_if_no_conflict(self, booking):
        raise Unavailable("booking store timed out")

    def update_if_no_conflict(self, booking):
        raise Unavailable("booking store timed out")

    def update(self, booking):
        raise Unavailable("booking store timed out")

    def save(self, booking):
        raise Unavailable("booking store timed out")


# ---------------------------------------------------------------------------
# overlaps
# ---------------------------------------------------------------------------


_PAIRS = [
    (_interval(_at(9), _at(10)), _interval(_at(10), _at(11))),
    (_interval(_at(9), _at(11)), _interval(_at(10), _at(12))),
    (_interval(_at(9), _at(12)), _interval(_at(10), _at(11))),
    (_interval(_at(9), _at(10)), _interval(_at(9), _at(10))),
    (_interval(_at(8), _at(9)), _interval(_at(14), _at(15))),
]


@pytest.mark.parametrize("a,b", _PAIRS)
def test_overlap_is_symmetric(a: Interval, b: Interval):
    assert overlaps(a, b) == overlaps(b, a)


def test_adjacent_intervals_do_not_overlap():
    """One ending exactly when the other starts is a legal back-to-back booking."""
    assert overlaps(_interval(_at(9), _at(10)), _interval(_at(10), _at(11))) is False


def test_identical_intervals_overlap():
    assert overlaps(_interval(_at(9), _at(10)), _interval(_at(9), _at(10))) is True


def test_contained_interval_overlaps():
    outer = _interval(_at(9), _at(12))
    inner = _interval(_at(10), _at(11))
    assert overlaps(inner, outer) is True


# ---------------------------------------------------------------------------
# find_conflicts
# ---------------------------------------------------------------------------


def test_no_overlap():
    """Bookings that don't overlap should not be returned as conflicts."""
    existing = [_make_booking(_at(8), _at(9))]
    assert find_conflicts(_at(10), _at(11), existing) == []


def test_partial_overlap():
    """A booking that partially overlaps should be returned as a conflict."""
    existing = [_make_booking(_at(9), _at(10, 30))]
    conflicts = find_conflicts(_at(10), _at(11), existing)
    assert len(conflicts) == 1
    assert conflicts[0].start_time == _at(9)


def test_exact_boundary_no_conflict():
    """When existing.end_time == new_start, there is no conflict (boundary touch)."""
    existing = [_make_booking(_at(9), _at(10))]
    assert find_conflicts(_at(10), _at(11), existing) == []


@pytest.mark.parametrize("status", [BookingStatus.PENDING, BookingStatus.CANCELLED])
def test_only_confirmed_bookings_block(status: BookingStatus):
    existing = [_make_booking(_at(10), _at(11), status=status)]
    assert find_conflicts(_at(10), _at(11), existing) == []


def test_excluded_booking_never_reported():
    mine = _make_booking(_at(10), _at(11))
    other = _make_booking(_at(10, 30), _at(11, 30))
    conflicts = find_conflicts(_at(10), _at(11), [mine, other], exclude_booking_id=mine.id)
    assert [c.id for c in conflicts] == [other.id]


def test_conflicts_ordered_by_start_time():
    late = _make_booking(_at(11), _at(12))
    early = _make_booking(_at(9), _at(10, 30))
    middle = _make_booking(_at(10, 15), _at(10, 45))
    conflicts = find_conflicts(_at(9, 30), _at(11, 30), [late, early, middle])
    assert [c.id for c in conflicts] == [early.id, middle.id, late.id]


# ---------------------------------------------------------------------------
# bounding_window
# ---------------------------------------------------------------------------


def test_bounding_window_is_calendar_day():
    start, end = bounding_window(_at(10), _at(11))
    assert start == _at(0)
    assert end == _at(0, day=5)


def test_bounding_window_widens_past_midnight():
    start, end = bounding_window(_at(23, 30), _at(0, 30, day=5))
    assert start == _at(0)
    assert end == _at(0, 30, day=5)


# ---------------------------------------------------------------------------
# check_conflicts
# ---------------------------------------------------------------------------


def test_scenario_single_booking(store: InMemoryBookingStore):
    """10:00–11:00 blocks 10:30–11:30 but not the adjacent hours on either side."""
    booking = _make_booking(_at(10), _at(11))
    store.save(booking)

    overlapping = check_conflicts(store, ROOM, _at(10, 30), _at(11, 30))
    assert [c.id for c in overlapping.conflicts] == [booking.id]
    assert overlapping.has_conflicts

    assert check_conflicts(store, ROOM, _at(11), _at(12)).conflicts == []
    assert check_conflicts(store, ROOM, _at(9), _at(10)).conflicts == []


def test_edit_in_place_excludes_itself(store: InMemoryBookingStore):
    booking = _make_booking(_at(10), _at(11))
    store.save(booking)

    result = check_conflicts(store, ROOM, _at(10), _at(11), exclude_booking_id=booking.id)
    assert result.conflicts == []
    assert result.warnings == []


def test_other_rooms_are_ignored(store: InMemoryBookingStore):
    store.save(_make_booking(_at(10), _at(11), room_id="elsewhere"))
    assert check_conflicts(store, ROOM, _at(10), _at(11)).conflicts == []


def test_accepts_iso8601_strings(store: InMemoryBookingStore):
    booking = _make_booking(_at(10), _at(11))
    store.save(booking)

    result = check_conflicts(store, ROOM, "2031-03-04T10:30:00Z", "2031-03-04T11:30:00+00:00")
    assert [c.id for c in result.conflicts] == [booking.id]


def test_idempotent_for_unchanged_bookings(store: InMemoryBookingStore):
    for start in (_at(9), _at(10), _at(11, 30)):
        store.save(_make_booking(start, start + timedelta(minutes=45)))

    first = check_conflicts(store, ROOM, _at(9, 30), _at(12))
    second = check_conflicts(store, ROOM, _at(9, 30), _at(12))
    assert [c.id for c in first.conflicts] == [c.id for c in second.conflicts]
    assert len(first.conflicts) == 3


def test_finds_booking_just_after_midnight(store: InMemoryBookingStore):
    booking = _make_booking(_at(0, day=5), _at(1, day=5))
    store.save(booking)

    result = check_conflicts(store, ROOM, _at(23, 30), _at(0, 30, day=5))
    assert [c.id for c in result.conflicts] == [booking.id]


@pytest.mark.parametrize(
    "start,end",
    [
        (None, "2031-03-04T11:00:00Z"),
        ("2031-03-04T10:00:00Z", None),
        ("", "2031-03-04T11:00:00Z"),
        ("next tuesday-ish", "2031-03-04T11:00:00Z"),
    ],
)
def test_insufficient_input_yields_empty_result(store: InMemoryBookingStore, start, end):
    store.save(_make_booking(_at(10), _at(11)))
    result = check_conflicts(store, ROOM, start, end)
    assert result.conflicts == []
    assert result.has_conflicts is False


def test_missing_room_yields_empty_result(store: InMemoryBookingStore):
    assert check_conflicts(store, "", _at(10), _at(11)).conflicts == []


def test_checked_at_uses_supplied_clock(store: InMemoryBookingStore):
    now = _at(7, day=1)
    assert check_conflicts(store, ROOM, _at(10), _at(11), now=now).checked_at == now


@pytest.mark.parametrize(
    "start,end",
    [
        (_at(11), _at(10)),
        (_at(10), _at(10)),
        (_at(10), _at(10, 10)),
        (_at(8), _at(17, 1)),
    ],
)
def test_invalid_interval_rejected(store: InMemoryBookingStore, start, end):
    with pytest.raises(InvalidInterval):
        check_conflicts(store, ROOM, start, end)


def test_vanished_exclusion_target_warns(store: InMemoryBookingStore):
    """A missing edit target is reported but conflicts are still computed."""
    other = _make_booking(_at(10), _at(11))
    store.save(other)

    result = check_conflicts(store, ROOM, _at(10), _at(11), exclude_booking_id="gone")
    assert [c.id for c in result.conflicts] == [other.id]
    assert len(result.warnings) == 1
    assert result.warnings[0].kind == ErrorKind.NOT_FOUND


def test_store_outage_propagates():
    """An unreachable store is never reported as 'no conflict'."""
    with pytest.raises(Unavailable) as exc_info:
        check_conflicts(_DownStore(), ROOM, _at(10), _at(11))
    assert exc_info.value.retryable is True
