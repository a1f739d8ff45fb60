"""Domain models for the room booking system."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import StrEnum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from roombook.domain.errors import ErrorKind


class BookingStatus(StrEnum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class AuditAction(StrEnum):
    BOOKING_CREATED = "booking_created"
    BOOKING_UPDATED = "booking_updated"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_ADMIN_OVERRIDE = "booking_admin_override"
    CONFLICT_REJECTED = "conflict_rejected"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Interval(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _end_after_start(self) -> Interval:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class Booking(BaseModel):
    id: str = Field(default_factory=_new_id)
    room_id: str
    title: str = ""
    user_id: str | None = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus = BookingStatus.CONFIRMED
    is_admin_override: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> Booking:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)


class OperatingHours(BaseModel):
    """Daily window, in wall-clock hours, within which slots are suggested."""

    start_hour: int = Field(default=8, ge=0, le=23)
    end_hour: int = Field(default=18, ge=1, le=24)

    @model_validator(mode="after")
    def _close_after_open(self) -> OperatingHours:
        if self.end_hour <= self.start_hour:
            raise ValueError("end_hour must be after start_hour")
        return self


class ConflictWarning(BaseModel):
    kind: ErrorKind
    message: str


class ConflictResult(BaseModel):
    """Point-in-time snapshot of the confirmed bookings overlapping a candidate."""

    room_id: str
    conflicts: list[Booking] = Field(default_factory=list)
    checked_at: datetime = Field(default_factory=_utcnow)
    warnings: list[ConflictWarning] = Field(default_factory=list)

    @computed_field
    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class SuggestedInterval(BaseModel):
    room_id: str
    start_time: datetime
    end_time: datetime
    same_day: bool = True
    conflict_checked: bool = True


class TimeSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    available: bool
    booking_id: str | None = None


class AuditEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    booking_id: str | None = None
    room_id: str
    action: AuditAction
    timestamp: datetime = Field(default_factory=_utcnow)
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request DTOs
# ---------------------------------------------------------------------------


def _assume_utc(value: datetime | None) -> datetime | None:
    """Read timestamps without an offset as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CreateBookingRequest(BaseModel):
    room_id: str = Field(min_length=1)
    title: str = ""
    user_id: str | None = None
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def _times_as_utc(cls, value: datetime | None) -> datetime | None:
        return _assume_utc(value)


class UpdateBookingRequest(BaseModel):
    room_id: str | None = Field(default=None, min_length=1)
    title: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _times_as_utc(cls, value: datetime | None) -> datetime | None:
        return _assume_utc(value)
