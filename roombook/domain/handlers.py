"""Domain event handlers — wired up at application startup."""

from __future__ import annotations

import logging

from roombook.domain.bus import EventBus
from roombook.domain.events import (
    BookingCancelled,
    BookingCreated,
    BookingRescheduled,
    ConflictDetected,
)
from roombook.domain.models import AuditAction, AuditEntry
from roombook.repos.base import BookingStore
from roombook.repos.memory import AuditRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires audit-trail handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        booking_store: BookingStore,
        audit_repo: AuditRepository,
    ) -> None:
        self.bus = bus
        self.booking_store = booking_store
        self.audit_repo = audit_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(BookingCreated, self.on_booking_created)
        self.bus.subscribe(BookingRescheduled, self.on_booking_rescheduled)
        self.bus.subscribe(BookingCancelled, self.on_booking_cancelled)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_booking_created(self, event: BookingCreated) -> None:
        stored = self.booking_store.get_booking_by_id(event.booking_id)
        if stored is None:
            return

        action = (
            AuditAction.BOOKING_ADMIN_OVERRIDE
            if event.is_admin_override
            else AuditAction.BOOKING_CREATED
        )
        self.audit_repo.add(
            AuditEntry(
                booking_id=stored.id,
                room_id=stored.room_id,
                action=action,
                payload={
                    "title": stored.title,
                    "start_time": stored.start_time.isoformat(),
                    "end_time": stored.end_time.isoformat(),
                },
            )
        )
        logger.info(
            "Booking created", extra={"room_id": stored.room_id, "booking_id": stored.id}
        )

    def on_booking_rescheduled(self, event: BookingRescheduled) -> None:
        stored = self.booking_store.get_booking_by_id(event.booking_id)
        if stored is None:
            return

        self.audit_repo.add(
            AuditEntry(
                booking_id=stored.id,
                room_id=stored.room_id,
                action=AuditAction.BOOKING_UPDATED,
                payload={
                    "previous_room_id": event.previous_room_id,
                    "previous_start_time": event.previous_start_time.isoformat(),
                    "previous_end_time": event.previous_end_time.isoformat(),
                    "start_time": stored.start_time.isoformat(),
                    "end_time": stored.end_time.isoformat(),
                },
            )
        )

    def on_booking_cancelled(self, event: BookingCancelled) -> None:
        self.audit_repo.add(
            AuditEntry(
                booking_id=event.booking_id,
                room_id=event.room_id,
                action=AuditAction.BOOKING_CANCELLED,
            )
        )
        logger.info(
            "Booking cancelled",
            extra={"room_id": event.room_id, "booking_id": event.booking_id},
        )

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        self.audit_repo.add(
            AuditEntry(
                booking_id=event.booking_id,
                room_id=event.room_id,
                action=AuditAction.CONFLICT_REJECTED,
                payload={
                    "start_time": event.start_time.isoformat(),
                    "end_time": event.end_time.isoformat(),
                    "conflicting_booking_ids": event.conflicting_booking_ids,
                },
            )
        )
