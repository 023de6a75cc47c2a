"""Synchronous, priority-ordered event dispatch.

Components publish discrete events (a calculation stage completed, a new
data pack became current) and callers that care subscribe explicitly. The
bus has no global instance; whoever needs one creates it and passes it in.

Typical usage example:
    from perfcalc.core.event_bus import EventBus
    from perfcalc.performance.calculator import StageCompleted

    bus = EventBus()
    bus.subscribe(StageCompleted, lambda e: print(e.stage, e.progress))
    calculator = PerformanceCalculator(pack, event_bus=bus)
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class EventPriority(Enum):
    """Priority levels for event handlers.

    Handlers run from CRITICAL to LOW.
    """

    CRITICAL = auto()
    HIGH = auto()
    NORMAL = auto()
    LOW = auto()


@dataclass
class Event:
    """Base class for all events.

    Attributes:
        timestamp: Unix timestamp when the event was created.
    """

    timestamp: float = field(default_factory=time.time)


class EventBus:
    """Dispatches events to subscribers in priority order.

    Handlers run synchronously in the publisher's thread; an exception in a
    handler propagates to the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[Event], list[tuple[Callable[[Any], None], EventPriority]]] = {}

    def subscribe(
        self,
        event_type: type[Event],
        handler: Callable[[Any], None],
        priority: EventPriority = EventPriority.NORMAL,
    ) -> None:
        """Subscribe a handler to an event type.

        Args:
            event_type: The class of event to subscribe to.
            handler: Callable that accepts the event as its only parameter.
            priority: Priority level for this handler.
        """
        handlers = self._handlers.setdefault(event_type, [])
        handlers.append((handler, priority))
        handlers.sort(key=lambda x: x[1].value)

    def unsubscribe(self, event_type: type[Event], handler: Callable[[Any], None]) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        if event_type in self._handlers:
            self._handlers[event_type] = [
                (h, p) for h, p in self._handlers[event_type] if h != handler
            ]
            if not self._handlers[event_type]:
                del self._handlers[event_type]

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribers of its exact type."""
        for handler, _ in self._handlers.get(type(event), []):
            handler(event)

    def clear(self) -> None:
        """Remove all event handlers."""
        self._handlers.clear()

    def get_subscriber_count(self, event_type: type[Event]) -> int:
        """Get the number of subscribers for an event type."""
        return len(self._handlers.get(event_type, []))
