"""Domain events emitted as bookings move through their lifecycle."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class BookingCreated(BaseModel):
    """Fired after a booking has been committed to the store."""

    booking_id: str
    room_id: str
    is_admin_override: bool = False


class BookingRescheduled(BaseModel):
    """Fired after a booking's room, title or interval was changed."""

    booking_id: str
    room_id: str
    previous_room_id: str
    previous_start_time: datetime
    previous_end_time: datetime


class BookingCancelled(BaseModel):
    booking_id: str
    room_id: str


class ConflictDetected(BaseModel):
    """Fired when a create or edit is rejected at commit time."""

    room_id: str
    start_time: datetime
    end_time: datetime
    conflicting_booking_ids: list[str]
    booking_id: str | None = None
