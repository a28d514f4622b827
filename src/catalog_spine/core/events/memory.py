"""
In-memory event bus.

Handlers run on the publishing thread, outside the subscriber lock, so a
handler may publish or subscribe in turn. A failing handler is logged and
skipped; the remaining handlers still receive the event.

Tags:
    catalog-spine, events, in-memory, thread-safe
"""

from __future__ import annotations

import itertools
import threading

from catalog_spine.core.events import Event, EventHandler, pattern_matches
from catalog_spine.core.logging import get_logger

__all__ = ["InMemoryEventBus"]

logger = get_logger(__name__)


class InMemoryEventBus:
    """Single-process bus keyed by subscription id.

    Example::

        bus = InMemoryEventBus()
        seen = []
        bus.subscribe("catalog.*", seen.append)
        bus.publish(Event(event_type="catalog.synced", source="catalog.sync"))
    """

    def __init__(self) -> None:
        self._handlers: dict[str, tuple[str, EventHandler]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._closed = False

    def publish(self, event: Event) -> None:
        with self._lock:
            if self._closed:
                return
            targets = [
                (sub_id, handler)
                for sub_id, (pattern, handler) in self._handlers.items()
                if pattern_matches(pattern, event.event_type)
            ]
        for sub_id, handler in targets:
            try:
                handler(event)
            except Exception as e:
                logger.warning(
                    "event_handler_error",
                    subscription_id=sub_id,
                    event_type=event.event_type,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def subscribe(self, event_type: str, handler: EventHandler) -> str:
        with self._lock:
            sub_id = f"sub-{next(self._ids)}"
            self._handlers[sub_id] = (event_type, handler)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> None:
        with self._lock:
            self._handlers.pop(subscription_id, None)

    def close(self) -> None:
        """Drop every subscription; later publishes are ignored."""
        with self._lock:
            self._closed = True
            self._handlers.clear()

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._handlers)
