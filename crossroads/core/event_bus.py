"""Publish/subscribe bus carrying simulation events to observers."""

from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum, auto
from threading import Lock
from typing import Any, Callable, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of event published by the simulation."""

    # Lifecycle
    TICK = auto()
    SIMULATION_START = auto()
    SIMULATION_PAUSE = auto()
    SIMULATION_RESUME = auto()
    SIMULATION_RESET = auto()

    # Traffic
    VEHICLE_SPAWNED = auto()
    VEHICLE_COMPLETED = auto()

    # Signals
    SIGNAL_PHASE_CHANGED = auto()


@dataclass
class Event:
    """One published event, stamped with the simulation tick it belongs to."""

    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    tick: int = 0
    source: str = ""


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Queue-and-flush event bus.

    Events published during a tick are held until ``flush`` and then delivered
    in publication order. Publishing is safe from other threads; handlers run
    on the flushing thread.
    """

    def __init__(self, history_limit: int = 1000) -> None:
        self._handlers: Dict[EventType, List[EventHandler]] = defaultdict(list)
        self._pending: List[Event] = []
        self._history: Deque[Event] = deque(maxlen=history_limit)
        self._counts: Counter = Counter()
        self._lock = Lock()

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        with self._lock:
            if handler not in self._handlers[event_type]:
                self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        with self._lock:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

    def publish(self, event: Event) -> None:
        """Queue an event for the next flush."""
        with self._lock:
            self._pending.append(event)

    def emit(self, event_type: EventType, source: str, tick: int = 0, **data: Any) -> None:
        """Build and queue an event in one call."""
        self.publish(Event(type=event_type, data=data, tick=tick, source=source))

    def flush(self) -> int:
        """Deliver every queued event. Returns how many were delivered."""
        with self._lock:
            events, self._pending = self._pending, []

        for event in events:
            self._dispatch(event)
        return len(events)

    def _dispatch(self, event: Event) -> None:
        with self._lock:
            self._history.append(event)
            self._counts[event.type] += 1
            handlers = list(self._handlers[event.type])

        # Handlers run outside the lock so they may publish
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Handler for {event.type.name} failed")

    def clear_pending(self) -> None:
        """Drop queued events without delivering them."""
        with self._lock:
            self._pending.clear()

    def get_history(self, event_type: EventType | None = None, limit: int = 100) -> List[Event]:
        """Most recently delivered events, optionally of a single type."""
        with self._lock:
            events = [e for e in self._history if event_type is None or e.type == event_type]
        return events[-limit:]

    def delivered_count(self, event_type: EventType) -> int:
        """Total events of a type delivered since the bus was created."""
        with self._lock:
            return self._counts[event_type]

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Process-wide bus shared by the application and its observers."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Replace the process-wide bus with an empty one."""
    global _event_bus
    _event_bus = EventBus()
