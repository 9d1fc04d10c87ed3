"""Vehicle entity: a finite-state machine moving on continuous canvas coordinates."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Protocol, Tuple
import logging
import math
import random

from config.colors import RGB, Colors
from config.constants import (
    APPROACH_ACCELERATION,
    CROSSING_ACCELERATION,
    CROSSING_SPEED_FACTOR,
    EXIT_MARGIN,
    FOLLOWING_DISTANCE,
    STOP_LINE_APPROACH_DISTANCE,
    TURN_CURVE_DURATION_S,
    TURN_DELAYS_MS,
    TURN_HEADING_LOOKAHEAD,
    TURN_TRIGGER_RADIUS,
)

from .intersection import IntersectionGeometry, Point
from .traffic_light import Direction, LightStates, SignalState

logger = logging.getLogger(__name__)


class VehicleState(Enum):
    """Vehicle states."""
    APPROACHING = "approaching"
    WAITING = "waiting"
    CROSSING = "crossing"
    TURNING = "turning"
    EXITING = "exiting"
    COMPLETED = "completed"


# Legal edges of the state machine
_TRANSITIONS: Dict[VehicleState, FrozenSet[VehicleState]] = {
    VehicleState.APPROACHING: frozenset({VehicleState.WAITING, VehicleState.CROSSING}),
    VehicleState.WAITING: frozenset({VehicleState.CROSSING}),
    VehicleState.CROSSING: frozenset({VehicleState.TURNING, VehicleState.EXITING}),
    VehicleState.TURNING: frozenset({VehicleState.EXITING}),
    VehicleState.EXITING: frozenset({VehicleState.COMPLETED}),
    VehicleState.COMPLETED: frozenset(),
}


class TurnDecision(Enum):
    """Movement chosen once when a vehicle is created."""
    STRAIGHT = "straight"
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def from_draw(cls, draw: float, turn_rate: float) -> "TurnDecision":
        """Map a uniform draw in [0, 1) to a decision: half the turn rate each way."""
        if draw < turn_rate / 2:
            return cls.LEFT
        if draw < turn_rate:
            return cls.RIGHT
        return cls.STRAIGHT

    def destination(self, origin: Direction) -> Direction:
        """Side of the intersection a vehicle from origin leaves by."""
        steps = {TurnDecision.LEFT: -1, TurnDecision.RIGHT: 1, TurnDecision.STRAIGHT: 2}[self]
        return origin.rotate(steps)

    @property
    def delay_ms(self) -> float:
        """Time spent hidden in the Turning state."""
        return TURN_DELAYS_MS.get(self.value, 0.0)


class InvalidTransitionError(RuntimeError):
    """A vehicle was asked to follow an edge the state machine does not have."""


@dataclass(frozen=True)
class CompletionEvent:
    """Emitted once for every vehicle that leaves the simulation."""
    vehicle_id: int
    total_wait_time: float  # ms
    origin_direction: Direction
    destination_direction: Direction


class TrafficView(Protocol):
    """Peer view a vehicle consults for car-following."""

    def vehicle_ahead(self, vehicle: "Vehicle") -> Optional[Tuple["Vehicle", float]]:
        ...


def cubic_bezier(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    """Point on a cubic Bezier curve."""
    u = 1.0 - t
    a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
    return (
        a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
        a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1],
    )


@dataclass
class Vehicle:
    """
    A vehicle crossing the intersection.

    Each tick runs one state step followed by kinematic integration along the
    current heading. Speeds are in canvas units per second, timestamps and
    durations in milliseconds.
    """

    id: int
    origin: Direction
    turn: TurnDecision
    lane: int
    geometry: IntersectionGeometry = field(repr=False)

    # Kinematics
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0  # radians, canvas frame
    speed: float = 0.0
    cruise_speed: float = 25.0

    color: RGB = Colors.GRAY

    # Canvas the vehicle must leave to complete; defaults to the geometry's
    bounds: Tuple[float, float] | None = None

    # Derived at creation
    direction: Direction = field(init=False)
    destination: Direction = field(init=False)

    # State
    state: VehicleState = field(default=VehicleState.APPROACHING, init=False)
    lateral_offset: float = field(default=0.0, init=False)
    hidden: bool = field(default=False, init=False)

    # Timing (ms)
    wait_start: Optional[float] = field(default=None, init=False)
    total_wait_time: float = field(default=0.0, init=False)
    turn_start: Optional[float] = field(default=None, init=False)
    path_progress: float = field(default=0.0, init=False)  # seconds spent crossing

    history: List[Tuple[VehicleState, VehicleState]] = field(default_factory=list, init=False, repr=False)

    _inside_footprint: bool = field(default=False, init=False, repr=False)
    _entered_footprint: bool = field(default=False, init=False, repr=False)
    _positioned_by_curve: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.origin = self.geometry.require_direction(self.origin)
        if self.lane not in (0, 1):
            raise ValueError(f"Lane must be 0 or 1, got {self.lane!r}")
        self.direction = self.origin
        self.destination = self.turn.destination(self.origin)
        if self.bounds is None:
            self.bounds = (self.geometry.canvas_width, self.geometry.canvas_height)
        self._inside_footprint = self.geometry.is_inside_footprint(self.x, self.y)

    @classmethod
    def create(
        cls,
        vehicle_id: int,
        origin: Direction,
        lane: int,
        geometry: IntersectionGeometry,
        rng: random.Random,
        turn_rate: float,
        cruise_speed: float,
    ) -> "Vehicle":
        """Place a new vehicle at the spawn point of its origin and lane."""
        origin = geometry.require_direction(origin)
        x, y = geometry.spawn_point(origin, lane)
        turn = TurnDecision.from_draw(rng.random(), turn_rate)
        color = rng.choice(Colors.vehicle_palette())
        return cls(
            id=vehicle_id,
            origin=origin,
            turn=turn,
            lane=lane,
            geometry=geometry,
            x=x,
            y=y,
            heading=geometry.approach_heading(origin),
            speed=cruise_speed,
            cruise_speed=cruise_speed,
            color=color,
        )

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    @property
    def is_completed(self) -> bool:
        return self.state == VehicleState.COMPLETED

    def transition(self, new_state: VehicleState) -> None:
        """Move to new_state along a legal edge."""
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Vehicle {self.id}: illegal transition {self.state.value} -> {new_state.value}"
            )
        logger.debug(f"Vehicle {self.id}: {self.state.value} -> {new_state.value}")
        self.history.append((self.state, new_state))
        self.state = new_state

    def completion_event(self) -> CompletionEvent:
        return CompletionEvent(
            vehicle_id=self.id,
            total_wait_time=self.total_wait_time,
            origin_direction=self.origin,
            destination_direction=self.destination,
        )

    def update(self, dt_ms: float, light_states: LightStates, now_ms: float, traffic: TrafficView) -> None:
        """
        Advance one tick.

        Args:
            dt_ms: Elapsed simulated time in milliseconds
            light_states: Signal state per direction for this tick
            now_ms: Simulated clock value shared by every vehicle this tick
            traffic: Peer view used for car-following
        """
        if dt_ms <= 0 or self.is_completed:
            return

        dt = dt_ms / 1000.0
        self._positioned_by_curve = False
        light = light_states.get(self.direction)

        if self.state == VehicleState.APPROACHING:
            self._update_approaching(dt, light, now_ms, traffic)
        elif self.state == VehicleState.WAITING:
            self._update_waiting(light, now_ms)
        elif self.state == VehicleState.CROSSING:
            self._update_crossing(dt, now_ms)
        elif self.state == VehicleState.TURNING:
            self._update_turning(now_ms)
        elif self.state == VehicleState.EXITING:
            self._update_exiting()

        if self.speed > 0 and not self.hidden and not self._positioned_by_curve:
            self.x += math.cos(self.heading) * self.speed * dt
            self.y += math.sin(self.heading) * self.speed * dt

        self._inside_footprint = self.geometry.is_inside_footprint(self.x, self.y)

    def _update_approaching(
        self,
        dt: float,
        light: Optional[SignalState],
        now_ms: float,
        traffic: TrafficView,
    ) -> None:
        distance_to_stop = self.geometry.distance_to_stop_line(self.direction, self.x, self.y)

        ahead = traffic.vehicle_ahead(self)
        blocked = ahead is not None and ahead[1] < FOLLOWING_DISTANCE
        red_stop = distance_to_stop <= STOP_LINE_APPROACH_DISTANCE and light == SignalState.RED

        if blocked or red_stop:
            self.transition(VehicleState.WAITING)
            self.speed = 0.0
            # Queueing behind another vehicle does not start the wait clock
            if not blocked:
                self.wait_start = now_ms
            return

        self.speed = min(self.cruise_speed, self.speed + APPROACH_ACCELERATION * dt)

        if self._inside_footprint:
            self.transition(VehicleState.CROSSING)

    def _update_waiting(self, light: Optional[SignalState], now_ms: float) -> None:
        self.speed = 0.0

        if self.wait_start is not None:
            self.total_wait_time = now_ms - self.wait_start

        if light in (SignalState.GREEN, SignalState.YELLOW):
            self.transition(VehicleState.CROSSING)
            self.wait_start = None

    def _update_crossing(self, dt: float, now_ms: float) -> None:
        self.speed = min(self.cruise_speed * CROSSING_SPEED_FACTOR, self.speed + CROSSING_ACCELERATION * dt)

        if self.turn == TurnDecision.STRAIGHT:
            if self._inside_footprint:
                self._entered_footprint = True
            elif self._entered_footprint:
                self.transition(VehicleState.EXITING)
                return
        else:
            # Curve end also hands over, for geometries whose curve stays wide of the center
            curve_done = self.path_progress >= TURN_CURVE_DURATION_S
            if curve_done or self.geometry.distance_to_center(self.x, self.y) < TURN_TRIGGER_RADIUS:
                self.transition(VehicleState.TURNING)
                self.speed = 0.0
                self.hidden = True
                self.turn_start = now_ms
                return
            self._follow_turn_curve()

        self.path_progress += dt

    def _follow_turn_curve(self) -> None:
        """Place the vehicle on the turn curve and keep it tangent."""
        p0 = self.geometry.entry_point(self.origin)
        p3 = self.geometry.exit_point(self.destination)
        p1, p2 = self.geometry.turn_control_points(self.origin, self.destination)

        t = min(max(self.path_progress / TURN_CURVE_DURATION_S, 0.0), 1.0)
        self.x, self.y = cubic_bezier(p0, p1, p2, p3, t)
        self._positioned_by_curve = True

        if t < 1.0:
            lx, ly = cubic_bezier(p0, p1, p2, p3, min(t + TURN_HEADING_LOOKAHEAD, 1.0))
            self.heading = math.atan2(ly - self.y, lx - self.x)

    def _update_turning(self, now_ms: float) -> None:
        if self.turn_start is None or now_ms - self.turn_start < self.turn.delay_ms:
            return

        pose = self.geometry.exit_pose(self.destination, self.lane)
        self.x, self.y = pose.x, pose.y
        self.heading = pose.heading
        self.direction = pose.direction

        self.hidden = False
        self.speed = self.cruise_speed
        self.transition(VehicleState.EXITING)
        self.turn_start = None

    def _update_exiting(self) -> None:
        if self.turn == TurnDecision.LEFT:
            self.lane = 0
        elif self.turn == TurnDecision.RIGHT:
            self.lane = 1
        self.lateral_offset = 0.0
        self.speed = self.cruise_speed

        width, height = self.bounds
        if self.geometry.is_beyond_canvas(self.x, self.y, EXIT_MARGIN, width, height):
            self.transition(VehicleState.COMPLETED)
            logger.debug(f"Vehicle {self.id} left the canvas heading {self.direction.value}")
