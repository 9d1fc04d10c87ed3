"""Shared fixtures for the simulation tests."""

from typing import Callable, List, Optional, Tuple
import math

from config.settings import GeometrySettings, TrafficConfig
from crossroads.entities.intersection import IntersectionGeometry
from crossroads.entities.traffic_light import Direction, LightStates, SignalState, uniform_states
from crossroads.entities.vehicle import TurnDecision, Vehicle

DT_MS = 1000.0 / 30

ALL_GREEN = uniform_states(SignalState.GREEN)
ALL_RED = uniform_states(SignalState.RED)


def make_geometry() -> IntersectionGeometry:
    return IntersectionGeometry.from_settings(GeometrySettings())


def quiet_config(**overrides) -> TrafficConfig:
    """Traffic config with automatic spawning switched off."""
    values = {"spawn_rate_per_ten_seconds": 0.0}
    values.update(overrides)
    return TrafficConfig(**values)


class NoTraffic:
    """Peer view with nobody else on the road."""

    def vehicle_ahead(self, vehicle: Vehicle) -> Optional[Tuple[Vehicle, float]]:
        return None


def make_vehicle(
    geometry: IntersectionGeometry,
    origin: Direction = Direction.NORTH,
    turn: TurnDecision = TurnDecision.STRAIGHT,
    lane: int = 0,
    distance_from_center: float = 150.0,
    speed: float = 25.0,
) -> Vehicle:
    """Vehicle on its spawn lane, a given distance out from the center."""
    sx, sy = geometry.spawn_point(origin, lane)
    tx, ty = origin.travel
    advance = (geometry.center_x - sx) * tx + (geometry.center_y - sy) * ty - distance_from_center
    return Vehicle(
        id=1,
        origin=origin,
        turn=turn,
        lane=lane,
        geometry=geometry,
        x=sx + advance * tx,
        y=sy + advance * ty,
        heading=geometry.approach_heading(origin),
        speed=speed,
    )


def drive(
    vehicle: Vehicle,
    ticks: int,
    lights: Callable[[float], LightStates] = lambda now: ALL_GREEN,
    start_tick: int = 0,
    traffic=None,
    observe: Callable[[Vehicle, float], None] | None = None,
) -> int:
    """Tick a lone vehicle; returns the last tick index."""
    traffic = traffic or NoTraffic()
    tick = start_tick
    for _ in range(ticks):
        tick += 1
        now = tick * DT_MS
        vehicle.update(DT_MS, lights(now), now, traffic)
        if observe:
            observe(vehicle, now)
        if vehicle.is_completed:
            break
    return tick


def min_curve_distance(geometry: IntersectionGeometry, origin: Direction, destination: Direction) -> float:
    """Closest approach of a turn curve to the intersection center."""
    from crossroads.entities.vehicle import cubic_bezier

    p0 = geometry.entry_point(origin)
    p3 = geometry.exit_point(destination)
    p1, p2 = geometry.turn_control_points(origin, destination)
    samples: List[float] = []
    for i in range(201):
        x, y = cubic_bezier(p0, p1, p2, p3, i / 200)
        samples.append(math.hypot(x - geometry.center_x, y - geometry.center_y))
    return min(samples)
