"""In-process event channel for sync outcomes.

Cataloging runs behind git operations and must never block or fail them, so
event handlers swallow their errors. A swallowed error that only reaches a
log line is invisible to monitoring and tests; every synchronizer decision
is therefore also published here as an :class:`Event`
(``catalog.synced``, ``catalog.failed``, ...). The same bus carries the
hosting platform's lifecycle events (``repository.*``, ``release.*``,
``branch.*``) into the event router.

Sync workers are plain threads, so the bus API is synchronous::

    bus = get_event_bus()
    bus.subscribe("catalog.failed", lambda event: alert(event.payload["error"]))
    publish_event("catalog.failed", "catalog.sync", {"repo_id": 5, "error": "..."})

Patterns are an exact type, ``<prefix>.*`` or ``*``.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "pattern_matches",
    "get_event_bus",
    "set_event_bus",
    "publish_event",
]


def pattern_matches(pattern: str, event_type: str) -> bool:
    """``catalog.*`` matches ``catalog.synced`` but not ``catalogue.synced``."""
    if pattern == "*":
        return True
    if pattern.endswith(".*"):
        return event_type.startswith(pattern[:-1])
    return event_type == pattern


@dataclass(frozen=True)
class Event:
    """One published fact.

    Attributes:
        event_type: dotted type such as ``catalog.synced``
        source: publishing component (``catalog.sync`` for the synchronizer)
        payload: JSON-compatible details
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def matches(self, pattern: str) -> bool:
        return pattern_matches(pattern, self.event_type)


EventHandler = Callable[[Event], None]


@runtime_checkable
class EventBus(Protocol):
    """What the synchronizer and router need from a bus."""

    def publish(self, event: Event) -> None: ...

    def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Register *handler* for a pattern; returns a subscription id."""
        ...

    def unsubscribe(self, subscription_id: str) -> None: ...

    def close(self) -> None: ...


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Process-wide bus, an in-memory one unless :func:`set_event_bus` ran."""
    global _event_bus
    if _event_bus is None:
        from catalog_spine.core.events.memory import InMemoryEventBus

        _event_bus = InMemoryEventBus()
    return _event_bus


def set_event_bus(bus: EventBus) -> None:
    global _event_bus
    _event_bus = bus


def publish_event(
    event_type: str,
    source: str,
    payload: dict[str, Any] | None = None,
    *,
    bus: EventBus | None = None,
) -> Event:
    """Publish on *bus* (default: the process bus) and return the event."""
    event = Event(event_type=event_type, source=source, payload=dict(payload or {}))
    (bus or get_event_bus()).publish(event)
    return event
