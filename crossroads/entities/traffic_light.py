"""Signal states, approach directions and scripted light plans."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

import yaml


class SignalState(Enum):
    """Traffic signal states."""
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"

    @classmethod
    def from_string(cls, s: str) -> "SignalState":
        """Create from string."""
        return cls(str(s).lower())


class Direction(Enum):
    """Sides of the intersection, listed clockwise on screen."""
    NORTH = "north"
    EAST = "east"
    SOUTH = "south"
    WEST = "west"

    @classmethod
    def cycle(cls) -> Tuple["Direction", ...]:
        """Directions in rotation order N -> E -> S -> W."""
        return (cls.NORTH, cls.EAST, cls.SOUTH, cls.WEST)

    @classmethod
    def opposite(cls, direction: "Direction") -> "Direction":
        """Get opposite direction."""
        return direction.rotate(2)

    @classmethod
    def from_string(cls, s: str) -> "Direction":
        """Create from string."""
        return cls(s.lower())

    def rotate(self, steps: int) -> "Direction":
        """Step around the N -> E -> S -> W cycle (negative steps go back)."""
        order = Direction.cycle()
        return order[(order.index(self) + steps) % len(order)]

    @property
    def outward(self) -> Tuple[float, float]:
        """Unit vector from the intersection center toward this side."""
        return _OUTWARD[self]

    @property
    def travel(self) -> Tuple[float, float]:
        """Unit travel vector of a vehicle entering from this side."""
        ox, oy = _OUTWARD[self]
        return (-ox, -oy)


# Canvas coordinates: y grows downward, so north is -y.
_OUTWARD: Dict[Direction, Tuple[float, float]] = {
    Direction.NORTH: (0.0, -1.0),
    Direction.EAST: (1.0, 0.0),
    Direction.SOUTH: (0.0, 1.0),
    Direction.WEST: (-1.0, 0.0),
}

# Per-direction light state as consumed by vehicles each tick
LightStates = Mapping[Direction, SignalState]


def uniform_states(state: SignalState) -> Dict[Direction, SignalState]:
    """Light-state map with every direction set to the same state."""
    return {direction: state for direction in Direction}


@dataclass
class SignalPhase:
    """One step of a light plan: the state of each direction for a fixed time."""

    states: Dict[Direction, SignalState]
    duration_ms: float

    def __post_init__(self) -> None:
        if self.duration_ms <= 0:
            raise ValueError(f"Phase duration must be positive, got {self.duration_ms}")
        # Unlisted directions are held at red
        for direction in Direction:
            self.states.setdefault(direction, SignalState.RED)

    @classmethod
    def from_dict(cls, data: dict) -> "SignalPhase":
        """Create from dictionary (YAML parsing)."""
        states = {
            Direction.from_string(d): SignalState.from_string(s)
            for d, s in (data.get("states") or {}).items()
        }
        return cls(states=states, duration_ms=float(data.get("duration_ms", 10000)))


@dataclass
class LightPlan:
    """
    Scripted, cyclic light timetable.

    Replays a fixed list of phases and makes no decisions of its own. It stands
    in for an external light controller in headless runs and tests.
    """

    phases: List[SignalPhase] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Default to a permanent green so traffic flows when nothing is configured."""
        if not self.phases:
            self.phases = [SignalPhase(states=uniform_states(SignalState.GREEN), duration_ms=60000)]

    @property
    def cycle_ms(self) -> float:
        """Length of one full pass through the phases."""
        return sum(phase.duration_ms for phase in self.phases)

    def phase_at(self, now_ms: float) -> SignalPhase:
        """Get the phase active at a simulation time."""
        t = now_ms % self.cycle_ms
        for phase in self.phases:
            if t < phase.duration_ms:
                return phase
            t -= phase.duration_ms
        return self.phases[-1]

    def states_at(self, now_ms: float) -> Dict[Direction, SignalState]:
        """Light-state map active at a simulation time."""
        return dict(self.phase_at(now_ms).states)

    @classmethod
    def constant(cls, state: SignalState) -> "LightPlan":
        """Plan holding every direction at one state forever."""
        return cls(phases=[SignalPhase(states=uniform_states(state), duration_ms=60000)])

    @classmethod
    def from_dict(cls, data: dict) -> "LightPlan":
        """Create from dictionary (YAML parsing)."""
        return cls(phases=[SignalPhase.from_dict(p) for p in data.get("phases", [])])

    @classmethod
    def from_yaml(cls, path: Path) -> "LightPlan":
        """Load a light plan from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)
