"""Centralized constants for the intersection simulation."""

import math

# Car following
STOP_LINE_APPROACH_DISTANCE = 30.0  # Distance to stop line that triggers a red-light stop
FOLLOWING_DISTANCE = 35.0           # Stop when a same-direction vehicle is closer than this

# Spawn admission
SPAWN_CLEARANCE = 60.0              # No same-direction vehicle within this radius of the spawn point
SPAWN_INTERVAL_BASE_MS = 10000.0    # Interval = base / spawn_rate_per_ten_seconds

# Acceleration (units/s^2)
APPROACH_ACCELERATION = 30.0
CROSSING_ACCELERATION = 40.0
CROSSING_SPEED_FACTOR = 1.2         # Crossing speed = cruise * factor

# Turn trajectory
TURN_CURVE_DURATION_S = 1.2         # Seconds to sweep the curve parameter from 0 to 1
TURN_CONTROL_OFFSET = 60.0          # Distance of the Bezier handles from their anchors
TURN_HEADING_LOOKAHEAD = 0.05       # Curve parameter step used to derive heading
TURN_TRIGGER_RADIUS = 20.0          # Distance to center that ends the curve phase

# Turn hold (ms) keyed by TurnDecision.value
TURN_DELAYS_MS = {
    "left": 2000.0,
    "right": 1500.0,
}

# Geometry offsets
STOP_LINE_SETBACK = 5.0             # Stop line sits this far outside the footprint half-size
EXIT_CLEARANCE = 10.0               # Post-turn pose sits this far outside the footprint half-size
EXIT_MARGIN = 50.0                  # Completed once this far beyond the canvas

# Cardinal headings in canvas coordinates (y grows downward)
HEADING_EAST = 0.0
HEADING_SOUTH = math.pi / 2
HEADING_WEST = math.pi
HEADING_NORTH = -math.pi / 2
