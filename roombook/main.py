"""FastAPI application — entry point for the room booking service."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from roombook.config import settings
from roombook.domain.bus import EventBus
from roombook.domain.errors import BookingConflict, BookingError, ErrorKind
from roombook.domain.handlers import HandlerRegistry
from roombook.domain.models import (
    AuditEntry,
    Booking,
    ConflictResult,
    CreateBookingRequest,
    SuggestedInterval,
    TimeSlot,
    UpdateBookingRequest,
)
from roombook.repos.memory import AuditRepository, create_booking_store
from roombook.services.bookings import BookingService
from roombook.services.cache import ConflictResultCache
from roombook.services.conflicts import check_conflicts
from roombook.services.slots import day_availability, suggest_next_slot
from roombook.services.validation import parse_instant


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("room_id", "booking_id", "conflict_count", "kind"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)

app = FastAPI(title="Room Booking Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
booking_store = create_booking_store(seed=settings.SEED_SAMPLE_DATA)
audit_repo = AuditRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    booking_store=booking_store,
    audit_repo=audit_repo,
)
booking_service = BookingService(booking_store, event_bus)

conflict_cache = ConflictResultCache(staleness_seconds=settings.CONFLICT_STALENESS_SECONDS)
conflict_cache.attach(event_bus)


# ── Error mapping ─────────────────────────────────────────────────────

_STATUS_BY_KIND = {
    ErrorKind.INVALID_INTERVAL: 400,
    ErrorKind.INVALID_STATE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAVAILABLE: 503,
}


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    body: dict = {"detail": str(exc), "kind": exc.kind.value}
    headers: dict[str, str] = {}
    if isinstance(exc, BookingConflict):
        body["conflicting_booking_ids"] = [c.id for c in exc.conflicts]
    if exc.retryable:
        headers["Retry-After"] = "1"
    logger.info("Request failed", extra={"kind": exc.kind.value})
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(exc.kind, 400), content=body, headers=headers
    )


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/rooms/{room_id}/conflicts", response_model=ConflictResult)
def get_conflicts(
    room_id: str,
    start_time: str | None = None,
    end_time: str | None = None,
    exclude_booking_id: str | None = None,
) -> ConflictResult:
    """Return confirmed bookings overlapping the candidate interval.

    Incomplete input returns an empty result. Results are reused for a short
    staleness window unless a booking in the room changes meanwhile.
    """
    start = parse_instant(start_time)
    end = parse_instant(end_time)
    if start is None or end is None:
        return check_conflicts(booking_store, room_id, start, end, exclude_booking_id)

    key = (room_id, start, end, exclude_booking_id)
    cached = conflict_cache.get(key)
    if cached is not None:
        return cached

    result = check_conflicts(booking_store, room_id, start, end, exclude_booking_id)
    conflict_cache.put(key, result)
    return result


@app.get("/rooms/{room_id}/next-slot", response_model=SuggestedInterval | None)
def get_next_slot(
    room_id: str,
    start_time: str | None = None,
    end_time: str | None = None,
    exclude_booking_id: str | None = None,
) -> SuggestedInterval | None:
    """Suggest the earliest free slot of the same duration after the candidate."""
    return suggest_next_slot(
        booking_store, room_id, start_time, end_time, exclude_booking_id
    )


@app.get("/rooms/{room_id}/availability", response_model=list[TimeSlot])
def get_availability(room_id: str, day: date) -> list[TimeSlot]:
    return day_availability(booking_store, room_id, day)


@app.get("/rooms/{room_id}/bookings", response_model=list[Booking])
def list_room_bookings(room_id: str) -> list[Booking]:
    return booking_store.list_for_room(room_id)


@app.post("/bookings", response_model=Booking, status_code=201)
def create_booking(payload: CreateBookingRequest) -> Booking:
    return booking_service.create(
        payload.room_id,
        payload.title,
        payload.start_time,
        payload.end_time,
        payload.user_id,
    )


@app.post("/admin/bookings", response_model=Booking, status_code=201)
def create_booking_override(payload: CreateBookingRequest) -> Booking:
    """Create a booking even if it overlaps existing confirmed bookings."""
    return booking_service.create(
        payload.room_id,
        payload.title,
        payload.start_time,
        payload.end_time,
        payload.user_id,
        override=True,
    )


@app.get("/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: str) -> Booking:
    booking = booking_store.get_booking_by_id(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@app.patch("/bookings/{booking_id}", response_model=Booking)
def update_booking(booking_id: str, payload: UpdateBookingRequest) -> Booking:
    return booking_service.reschedule(
        booking_id,
        room_id=payload.room_id,
        title=payload.title,
        start_time=payload.start_time,
        end_time=payload.end_time,
    )


@app.post("/bookings/{booking_id}/cancel", response_model=Booking)
def cancel_booking(booking_id: str) -> Booking:
    return booking_service.cancel(booking_id)


@app.get("/bookings/{booking_id}/audit", response_model=list[AuditEntry])
def get_booking_audit(booking_id: str) -> list[AuditEntry]:
    if booking_store.get_booking_by_id(booking_id) is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return audit_repo.list_for_booking(booking_id)
