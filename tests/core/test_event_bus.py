"""Tests for the event bus."""

import time
from dataclasses import dataclass

import pytest

from perfcalc.core.event_bus import Event, EventBus, EventPriority
from perfcalc.datapack.manager import DataPackLoaded
from perfcalc.performance.calculator import CalculationStage, StageCompleted


@dataclass
class PackNote(Event):
    """Local event carrying a note."""

    note: str = ""


class TestEventBus:
    """Test suite for EventBus."""

    def test_subscribe_and_publish(self) -> None:
        """Test that subscribed handlers receive published events."""
        bus = EventBus()
        received = []

        bus.subscribe(StageCompleted, received.append)
        event = StageCompleted(stage=CalculationStage.V_SPEEDS, aircraft="B1900D")
        bus.publish(event)

        assert received == [event]
        assert received[0].aircraft == "B1900D"

    def test_priority_order(self) -> None:
        """Test that handlers are called from CRITICAL to LOW."""
        bus = EventBus()
        call_order = []

        bus.subscribe(PackNote, lambda e: call_order.append("normal"), EventPriority.NORMAL)
        bus.subscribe(PackNote, lambda e: call_order.append("critical"), EventPriority.CRITICAL)
        bus.subscribe(PackNote, lambda e: call_order.append("low"), EventPriority.LOW)
        bus.subscribe(PackNote, lambda e: call_order.append("high"), EventPriority.HIGH)

        bus.publish(PackNote(note="x"))

        assert call_order == ["critical", "high", "normal", "low"]

    def test_same_priority_keeps_subscription_order(self) -> None:
        """Test that equal-priority handlers run in subscription order."""
        bus = EventBus()
        calls = []

        bus.subscribe(PackNote, lambda e: calls.append(1))
        bus.subscribe(PackNote, lambda e: calls.append(2))
        bus.publish(PackNote())

        assert calls == [1, 2]

    def test_different_event_types_isolated(self) -> None:
        """Test that handlers only see their own event type."""
        bus = EventBus()
        stages = []
        loads = []

        bus.subscribe(StageCompleted, stages.append)
        bus.subscribe(DataPackLoaded, loads.append)

        bus.publish(StageCompleted())
        bus.publish(DataPackLoaded(version="2024.1"))
        bus.publish(StageCompleted())

        assert len(stages) == 2
        assert len(loads) == 1

    def test_subclass_events_not_delivered_to_base_subscribers(self) -> None:
        """Test that dispatch is on the exact event type."""
        bus = EventBus()
        received = []

        bus.subscribe(Event, received.append)
        bus.publish(PackNote())

        assert received == []

    def test_unsubscribe(self) -> None:
        """Test that unsubscribing removes a handler and empty lists."""
        bus = EventBus()
        received = []

        bus.subscribe(PackNote, received.append)
        bus.publish(PackNote(note="first"))
        bus.unsubscribe(PackNote, received.append)
        bus.publish(PackNote(note="second"))

        assert [e.note for e in received] == ["first"]
        assert bus.get_subscriber_count(PackNote) == 0

    def test_unsubscribe_unknown_handler(self) -> None:
        """Test that unsubscribing an unknown handler is ignored."""
        bus = EventBus()
        bus.unsubscribe(PackNote, print)
        assert bus.get_subscriber_count(PackNote) == 0

    def test_clear(self) -> None:
        """Test that clear removes all handlers."""
        bus = EventBus()
        received = []

        bus.subscribe(PackNote, received.append)
        bus.subscribe(StageCompleted, received.append)
        bus.clear()
        bus.publish(PackNote())
        bus.publish(StageCompleted())

        assert received == []

    def test_event_has_timestamp(self) -> None:
        """Test that events are timestamped on creation."""
        before = time.time()
        event = PackNote()
        after = time.time()

        assert before <= event.timestamp <= after

    def test_handler_exception_propagates(self) -> None:
        """Test that exceptions in handlers propagate to the publisher."""
        bus = EventBus()

        def failing_handler(event: PackNote) -> None:
            raise ValueError("Handler error")

        bus.subscribe(PackNote, failing_handler)

        with pytest.raises(ValueError, match="Handler error"):
            bus.publish(PackNote())
