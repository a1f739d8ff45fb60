"""Short-lived cache of conflict results for callers polling the same candidate."""

from __future__ import annotations

import time
from datetime import datetime
from threading import Lock
from typing import Callable

from roombook.domain.bus import EventBus
from roombook.domain.events import BookingCancelled, BookingCreated, BookingRescheduled
from roombook.domain.models import ConflictResult

CacheKey = tuple[str, datetime, datetime, str | None]


class ConflictResultCache:
    """Holds results for at most ``staleness_seconds``.

    Entries for a room are dropped as soon as a booking in that room changes,
    once the cache is attached to the bus. Expired entries are swept on every
    ``put``.
    """

    def __init__(
        self,
        staleness_seconds: float = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.staleness_seconds = staleness_seconds
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, ConflictResult]] = {}
        self._lock = Lock()

    def get(self, key: CacheKey) -> ConflictResult | None:
        with self._lock:
            hit = self._entries.get(key)
            if hit is None:
                return None
            stored_at, result = hit
            if self._clock() - stored_at >= self.staleness_seconds:
                del self._entries[key]
                return None
            return result

    def put(self, key: CacheKey, result: ConflictResult) -> None:
        with self._lock:
            now = self._clock()
            expired = [
                k
                for k, (stored_at, _) in self._entries.items()
                if now - stored_at >= self.staleness_seconds
            ]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (now, result)

    def invalidate_room(self, room_id: str) -> None:
        with self._lock:
            for key in [k for k in self._entries if k[0] == room_id]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(BookingCreated, self._on_room_changed)
        bus.subscribe(BookingCancelled, self._on_room_changed)
        bus.subscribe(BookingRescheduled, self._on_rescheduled)

    def detach(self, bus: EventBus) -> None:
        bus.unsubscribe(BookingCreated, self._on_room_changed)
        bus.unsubscribe(BookingCancelled, self._on_room_changed)
        bus.unsubscribe(BookingRescheduled, self._on_rescheduled)

    def _on_room_changed(self, event: BookingCreated | BookingCancelled) -> None:
        self.invalidate_room(event.room_id)

    def _on_rescheduled(self, event: BookingRescheduled) -> None:
        self.invalidate_room(event.room_id)
        self.invalidate_room(event.previous_room_id)
