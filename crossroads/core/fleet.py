"""Vehicle population: spawning, per-tick updates and completion reaping."""

from typing import Callable, List, Optional, Tuple
import logging
import math
import random

from config.constants import SPAWN_CLEARANCE
from config.settings import TrafficConfig

from ..entities.intersection import IntersectionGeometry
from ..entities.traffic_light import Direction, LightStates
from ..entities.vehicle import CompletionEvent, Vehicle, VehicleState

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[CompletionEvent], None]


class FleetManager:
    """
    Owns the active vehicles of one intersection.

    The manager is the only writer of the vehicle collection. It also serves
    as the peer view vehicles query for car-following.
    """

    def __init__(
        self,
        geometry: IntersectionGeometry,
        config: TrafficConfig,
        rng: random.Random | None = None,
        on_vehicle_completed: CompletionCallback | None = None,
    ) -> None:
        self.geometry = geometry
        self.config = config
        self.rng = rng or random.Random()
        self.on_vehicle_completed = on_vehicle_completed

        self._vehicles: List[Vehicle] = []  # spawn order
        self._next_id = 1
        self._spawn_timer = 0.0
        self._elapsed_ms = 0.0

        self.spawned_count = 0
        self.rejected_count = 0
        self.completed_count = 0

    @property
    def elapsed_ms(self) -> float:
        return self._elapsed_ms

    def tick(
        self,
        dt: float,
        light_states: LightStates,
        config: TrafficConfig | None = None,
        now: float | None = None,
    ) -> List[CompletionEvent]:
        """
        Run one simulation step.

        Args:
            dt: Elapsed simulated time in milliseconds
            light_states: Signal state per direction
            config: Configuration for this tick; the previous one is kept if omitted
            now: Simulated clock in ms; defaults to the manager's own elapsed time

        Returns:
            Completion events for vehicles reaped this tick, in spawn order
        """
        if config is not None:
            self.config = config

        self._elapsed_ms += dt
        if now is None:
            now = self._elapsed_ms

        self._spawn_timer += dt
        interval = self.config.spawn_interval_ms
        if math.isfinite(interval) and self._spawn_timer >= interval:
            self.spawn()
            self._spawn_timer = 0.0

        bounds = (self.config.canvas_width, self.config.canvas_height)
        for vehicle in self._vehicles:
            vehicle.cruise_speed = self.config.cruise_speed
            vehicle.bounds = bounds

        for vehicle in self._vehicles:
            vehicle.update(dt, light_states, now, self)

        return self._reap_completed()

    def _reap_completed(self) -> List[CompletionEvent]:
        """Remove completed vehicles and notify once for each."""
        completed = [v for v in self._vehicles if v.is_completed]
        if not completed:
            return []

        self._vehicles = [v for v in self._vehicles if not v.is_completed]

        events = []
        for vehicle in completed:
            event = vehicle.completion_event()
            self.completed_count += 1
            logger.debug(
                f"Vehicle {vehicle.id} completed {event.origin_direction.value} -> "
                f"{event.destination_direction.value}, waited {event.total_wait_time:.0f} ms"
            )
            if self.on_vehicle_completed:
                self.on_vehicle_completed(event)
            events.append(event)
        return events

    def spawn(self, direction: Direction | None = None, lane: int | None = None) -> Optional[Vehicle]:
        """
        Try to add a vehicle at the canvas edge.

        Direction and lane are drawn from the random source unless forced.
        Returns None when a same-direction vehicle is still within the
        clearance radius of the spawn point.
        """
        if direction is None:
            direction = self.rng.choice(Direction.cycle())
        else:
            direction = self.geometry.require_direction(direction)
        if lane is None:
            lane = self.rng.randrange(2)

        sx, sy = self.geometry.spawn_point(direction, lane)
        for other in self._vehicles:
            if other.direction == direction and math.hypot(other.x - sx, other.y - sy) < SPAWN_CLEARANCE:
                self.rejected_count += 1
                logger.debug(f"Spawn rejected at {direction.value} lane {lane}: vehicle {other.id} too close")
                return None

        vehicle = Vehicle.create(
            vehicle_id=self._next_id,
            origin=direction,
            lane=lane,
            geometry=self.geometry,
            rng=self.rng,
            turn_rate=self.config.turn_rate_fraction,
            cruise_speed=self.config.cruise_speed,
        )
        vehicle.bounds = (self.config.canvas_width, self.config.canvas_height)
        self._next_id += 1
        self._vehicles.append(vehicle)
        self.spawned_count += 1

        logger.debug(
            f"Spawned vehicle {vehicle.id} from {direction.value} lane {lane} ({vehicle.turn.value})"
        )
        return vehicle

    # Peer queries

    def vehicles(self) -> List[Vehicle]:
        """All active vehicles in spawn order (a copy)."""
        return list(self._vehicles)

    def waiting_vehicles(self, direction: Direction) -> List[Vehicle]:
        """Vehicles currently held in the Waiting state for a direction."""
        direction = self.geometry.require_direction(direction)
        return [
            v for v in self._vehicles
            if v.direction == direction and v.state == VehicleState.WAITING
        ]

    def active_count(self) -> int:
        return len(self._vehicles)

    def vehicle_ahead(self, vehicle: Vehicle) -> Optional[Tuple[Vehicle, float]]:
        """Nearest vehicle ahead in the same effective direction and its distance."""
        tx, ty = vehicle.direction.travel
        nearest: Optional[Tuple[Vehicle, float]] = None

        for other in self._vehicles:
            if other is vehicle or other.direction != vehicle.direction:
                continue
            distance = (other.x - vehicle.x) * tx + (other.y - vehicle.y) * ty
            if distance <= 0:
                continue
            if nearest is None or distance < nearest[1]:
                nearest = (other, distance)

        return nearest

    def reset(self) -> None:
        """Drop every vehicle and restart ids, timers and counters."""
        self._vehicles.clear()
        self._next_id = 1
        self._spawn_timer = 0.0
        self._elapsed_ms = 0.0
        self.spawned_count = 0
        self.rejected_count = 0
        self.completed_count = 0
