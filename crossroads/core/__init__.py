"""Core simulation components."""

from .event_bus import EventBus, EventType, Event
from .fleet import FleetManager
from .state import MetricsSnapshot, SimulationState
from .clock import SimulationClock
from .simulation import Simulation

__all__ = [
    "EventBus",
    "EventType",
    "Event",
    "FleetManager",
    "MetricsSnapshot",
    "SimulationState",
    "SimulationClock",
    "Simulation",
]
