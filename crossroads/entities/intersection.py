"""Intersection geometry: stop lines, anchors, spawn points and footprint."""

from dataclasses import dataclass
from typing import Dict, Tuple
import math

from config.constants import (
    EXIT_CLEARANCE,
    HEADING_EAST,
    HEADING_NORTH,
    HEADING_SOUTH,
    HEADING_WEST,
    STOP_LINE_SETBACK,
    TURN_CONTROL_OFFSET,
)
from config.settings import GeometrySettings

from .traffic_light import Direction

Point = Tuple[float, float]

_HEADINGS: Dict[Direction, float] = {
    Direction.NORTH: HEADING_NORTH,
    Direction.EAST: HEADING_EAST,
    Direction.SOUTH: HEADING_SOUTH,
    Direction.WEST: HEADING_WEST,
}


class InvalidDirectionError(ValueError):
    """A value outside {north, east, south, west} reached a geometry query."""


@dataclass(frozen=True)
class StopLine:
    """Segment across an approach road where vehicles hold for a red light."""
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class Pose:
    """Position, heading and direction of travel after a turn."""
    x: float
    y: float
    heading: float
    direction: Direction


def _right_normal(vector: Point) -> Point:
    """Driver's right-hand side for a travel vector (canvas y grows downward)."""
    return (-vector[1], vector[0])


@dataclass(frozen=True)
class IntersectionGeometry:
    """
    Stateless spatial oracle for a single four-way intersection.

    Every answer is a pure function of the construction-time scalars plus a
    direction. Directions outside the four cardinal sides are rejected with
    InvalidDirectionError rather than defaulted.
    """

    center_x: float
    center_y: float
    size: float  # Side of the intersection box; sets stop-line and exit clearances
    road_width: float
    lane_width: float
    canvas_width: float
    canvas_height: float

    def __post_init__(self) -> None:
        """Validate dimensions once so queries never need to."""
        for name in ("center_x", "center_y", "size", "road_width", "lane_width",
                     "canvas_width", "canvas_height"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"Geometry {name} must be a finite number, got {value!r}")
        for name in ("size", "road_width", "lane_width", "canvas_width", "canvas_height"):
            if getattr(self, name) <= 0:
                raise ValueError(f"Geometry {name} must be positive, got {getattr(self, name)}")
        if 2 * self.lane_width > self.road_width:
            raise ValueError(
                f"Two lanes of width {self.lane_width} do not fit a road of width {self.road_width}"
            )
        if self.road_width > self.size:
            raise ValueError(
                f"Road width {self.road_width} exceeds intersection size {self.size}"
            )

    @classmethod
    def from_settings(cls, settings: GeometrySettings) -> "IntersectionGeometry":
        """Build from the geometry section of Settings."""
        return cls(
            center_x=settings.center_x,
            center_y=settings.center_y,
            size=settings.intersection_size,
            road_width=settings.road_width,
            lane_width=settings.lane_width,
            canvas_width=settings.canvas_width,
            canvas_height=settings.canvas_height,
        )

    @property
    def center(self) -> Point:
        return (self.center_x, self.center_y)

    @property
    def half_size(self) -> float:
        return self.size / 2

    @property
    def half_road(self) -> float:
        return self.road_width / 2

    @property
    def lane_offset(self) -> float:
        """Distance from the road center line to a lane center."""
        return self.lane_width / 2

    # Direction handling

    @staticmethod
    def require_direction(direction: object) -> Direction:
        """Coerce to a Direction or fail fast."""
        if isinstance(direction, Direction):
            return direction
        if isinstance(direction, str):
            try:
                return Direction(direction)
            except ValueError:
                pass
        raise InvalidDirectionError(f"Invalid direction: {direction!r}")

    def _offset(self, distance: float, along: Point, lateral: float = 0.0, normal_of: Point | None = None) -> Point:
        """Center displaced by distance along a unit vector, plus a lateral shift."""
        x = self.center_x + distance * along[0]
        y = self.center_y + distance * along[1]
        if lateral and normal_of is not None:
            nx, ny = _right_normal(normal_of)
            x += lateral * nx
            y += lateral * ny
        return (x, y)

    # Queries

    def stop_line(self, direction: Direction) -> StopLine:
        """Stop line across the approach road on the given side."""
        direction = self.require_direction(direction)
        offset = self.half_size + STOP_LINE_SETBACK
        ox, oy = direction.outward
        if ox == 0:
            y = self.center_y + offset * oy
            return StopLine(self.center_x - self.half_road, y, self.center_x + self.half_road, y)
        x = self.center_x + offset * ox
        return StopLine(x, self.center_y - self.half_road, x, self.center_y + self.half_road)

    def distance_to_stop_line(self, direction: Direction, x: float, y: float) -> float:
        """Absolute distance to the stop line measured along the approach axis."""
        direction = self.require_direction(direction)
        line = self.stop_line(direction)
        if direction.outward[0] == 0:
            return abs(y - line.y1)
        return abs(x - line.x1)

    def entry_point(self, direction: Direction) -> Point:
        """Lane-center point where the approach road meets the footprint."""
        direction = self.require_direction(direction)
        return self._offset(self.half_road, direction.outward, self.lane_offset, direction.travel)

    def exit_point(self, direction: Direction) -> Point:
        """Lane-center point where the departure road on this side meets the footprint."""
        direction = self.require_direction(direction)
        return self._offset(self.half_road, direction.outward, self.lane_offset, direction.outward)

    def spawn_point(self, direction: Direction, lane: int) -> Point:
        """Lane-center point on the canvas edge where vehicles from this side appear."""
        direction = self.require_direction(direction)
        if lane not in (0, 1):
            raise ValueError(f"Lane must be 0 or 1, got {lane!r}")

        ox, oy = direction.outward
        if ox != 0:
            x = self.canvas_width if ox > 0 else 0.0
            y = self.center_y
        else:
            x = self.center_x
            y = self.canvas_height if oy > 0 else 0.0

        # Lane 0 is the inbound lane; lane 1 sits across the center line
        sign = 1.0 if lane == 0 else -1.0
        nx, ny = _right_normal(direction.travel)
        return (x + sign * self.lane_offset * nx, y + sign * self.lane_offset * ny)

    def approach_heading(self, direction: Direction) -> float:
        """Heading of a vehicle entering from this side."""
        direction = self.require_direction(direction)
        return _HEADINGS[Direction.opposite(direction)]

    def turn_control_points(self, origin: Direction, destination: Direction) -> Tuple[Point, Point]:
        """
        Interior control points of the cubic turn curve.

        The first handle runs forward from the entry anchor along the approach
        axis, the second runs back from the exit anchor along the departure
        axis. The two axes are orthogonal, so Left and Right turns bend to
        opposite sides.
        """
        origin = self.require_direction(origin)
        destination = self.require_direction(destination)
        ex, ey = self.entry_point(origin)
        xx, xy = self.exit_point(destination)
        tx, ty = origin.travel
        dx, dy = destination.outward
        return (
            (ex + TURN_CONTROL_OFFSET * tx, ey + TURN_CONTROL_OFFSET * ty),
            (xx - TURN_CONTROL_OFFSET * dx, xy - TURN_CONTROL_OFFSET * dy),
        )

    def exit_pose(self, destination: Direction, lane: int) -> Pose:
        """Pose a turning vehicle reappears at on its destination side."""
        destination = self.require_direction(destination)
        # Lane 1 lands on the outbound lane, lane 0 on the inbound one; both kept
        lateral = (lane - 0.5) * self.lane_width
        x, y = self._offset(self.half_size + EXIT_CLEARANCE, destination.outward, lateral, destination.outward)
        return Pose(x=x, y=y, heading=_HEADINGS[destination], direction=destination)

    def is_inside_footprint(self, x: float, y: float) -> bool:
        """Check if a point lies within the central square."""
        return (
            self.center_x - self.half_road <= x <= self.center_x + self.half_road
            and self.center_y - self.half_road <= y <= self.center_y + self.half_road
        )

    def distance_to_center(self, x: float, y: float) -> float:
        return math.hypot(x - self.center_x, y - self.center_y)

    def is_beyond_canvas(
        self,
        x: float,
        y: float,
        margin: float = 0.0,
        width: float | None = None,
        height: float | None = None,
    ) -> bool:
        """True once a point is more than margin outside the canvas on any side."""
        width = self.canvas_width if width is None else width
        height = self.canvas_height if height is None else height
        return x < -margin or x > width + margin or y < -margin or y > height + margin
