"""Simulated time base and speed control."""

from dataclasses import dataclass, field
from enum import Enum

# Upper bound on ticks owed after one slow wall-clock frame
MAX_CATCH_UP_TICKS = 10


class SimulationSpeed(Enum):
    """Multipliers of simulated time over wall time."""
    PAUSED = 0.0
    SLOW = 0.5
    NORMAL = 1.0
    FAST = 2.0
    VERY_FAST = 5.0
    MAX = 10.0


@dataclass
class SimulationClock:
    """
    Fixed-timestep simulated clock.

    Simulated time only moves in whole ticks, so every vehicle in a tick sees
    the same monotonic ``now_ms``. Wall time is only used to decide how many
    ticks are owed.
    """

    ticks_per_second: int = 30
    speed: float = 1.0

    _tick: int = field(default=0, init=False)
    _owed_seconds: float = field(default=0.0, init=False)
    _paused: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.ticks_per_second <= 0:
            raise ValueError(f"ticks_per_second must be positive, got {self.ticks_per_second}")

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def dt_ms(self) -> float:
        """Simulated milliseconds per tick."""
        return 1000.0 / self.ticks_per_second

    @property
    def now_ms(self) -> float:
        return self._tick * self.dt_ms

    @property
    def simulation_time(self) -> float:
        """Simulated seconds since the last reset."""
        return self.now_ms / 1000.0

    @property
    def is_paused(self) -> bool:
        return self._paused

    def advance(self) -> float:
        """Step one tick forward and return the new ``now_ms``."""
        self._tick += 1
        return self.now_ms

    def update(self, real_dt: float) -> int:
        """
        Convert elapsed wall time into a number of ticks to run.

        The clock itself is not advanced; the caller runs that many ticks,
        each through ``advance``. Any remainder smaller than one tick carries
        over to the next call.

        Args:
            real_dt: Wall seconds since the previous call

        Returns:
            Ticks owed, capped at MAX_CATCH_UP_TICKS
        """
        if self._paused or self.speed <= 0:
            return 0

        seconds_per_tick = 1.0 / self.ticks_per_second
        self._owed_seconds += real_dt * self.speed
        owed = min(int(self._owed_seconds / seconds_per_tick), MAX_CATCH_UP_TICKS)
        self._owed_seconds -= owed * seconds_per_tick
        return owed

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        """Resume without paying back the time spent paused."""
        self._paused = False
        self._owed_seconds = 0.0

    def set_speed(self, speed: float | SimulationSpeed) -> None:
        """Set the multiplier, clamped to [0, MAX]."""
        if isinstance(speed, SimulationSpeed):
            speed = speed.value
        self.speed = min(max(float(speed), 0.0), SimulationSpeed.MAX.value)

    def reset(self) -> None:
        self._tick = 0
        self._owed_seconds = 0.0
        self._paused = False

    def format_time(self) -> str:
        """Simulated time as HH:MM:SS."""
        minutes, seconds = divmod(int(self.simulation_time), 60)
        hours, minutes = divmod(minutes, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
