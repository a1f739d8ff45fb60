"""Synchronous in-process bus for booking events."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable


class EventBus:
    """Publish/subscribe bus for domain events.

    Subscribers run synchronously, in registration order, on the publishing
    thread. A failing subscriber propagates to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Callable) -> None:
        self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Callable) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: Any) -> None:
        for handler in list(self._subscribers.get(type(event), [])):
            handler(event)
