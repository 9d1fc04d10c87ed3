"""Simulation entities."""

from .vehicle import (
    CompletionEvent,
    InvalidTransitionError,
    TrafficView,
    TurnDecision,
    Vehicle,
    VehicleState,
)
from .intersection import IntersectionGeometry, InvalidDirectionError, Pose, StopLine
from .traffic_light import Direction, LightPlan, LightStates, SignalPhase, SignalState

__all__ = [
    "CompletionEvent",
    "InvalidTransitionError",
    "TrafficView",
    "TurnDecision",
    "Vehicle",
    "VehicleState",
    "IntersectionGeometry",
    "InvalidDirectionError",
    "Pose",
    "StopLine",
    "Direction",
    "LightPlan",
    "LightStates",
    "SignalPhase",
    "SignalState",
]
