"""Main simulation loop controller."""

import logging
import random
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional
from pathlib import Path

from .event_bus import EventBus, EventType, get_event_bus
from .fleet import FleetManager
from .state import MetricsSnapshot, SimulationState
from .clock import SimulationClock
from ..entities.intersection import IntersectionGeometry
from ..entities.traffic_light import LightPlan, SignalPhase
from ..entities.vehicle import CompletionEvent
from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Simulation:
    """
    Single-intersection simulation.

    Owns the geometry, the fleet, the clock and the light plan. Each tick
    samples the plan at the clock's ``now_ms``, runs the fleet once, and
    records a metrics snapshot. Observers hear about it through the event bus.
    """

    settings: Settings = field(default_factory=get_settings)
    state: SimulationState = field(default_factory=SimulationState)
    clock: SimulationClock | None = None
    event_bus: EventBus = field(default_factory=get_event_bus)
    light_plan: LightPlan | None = None

    geometry: IntersectionGeometry | None = field(default=None, init=False)
    fleet: FleetManager | None = field(default=None, init=False)

    _initialized: bool = field(default=False, init=False)
    _seed: Optional[int] = field(default=None, init=False)
    _current_phase: Optional[SignalPhase] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.clock is None:
            self.clock = SimulationClock(ticks_per_second=self.settings.simulation.ticks_per_second)
        self._seed = self.settings.simulation.seed

    def set_seed(self, seed: int) -> None:
        """
        Seed the traffic random source.

        Spawn directions, lanes, turn decisions and colours all come from the
        fleet's own ``random.Random``; the global ``random`` module is never
        touched. Takes effect immediately if the fleet already exists.
        """
        self._seed = seed
        if self.fleet:
            self.fleet.rng.seed(seed)
        logger.debug(f"Simulation random seed set to {seed}")

    def get_seed(self) -> Optional[int]:
        return self._seed

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self, light_plan_path: Path | str | None = None) -> None:
        """
        Build geometry and fleet, and settle on a light plan.

        Args:
            light_plan_path: Light plan YAML. Without one, a plan passed to the
                constructor is kept, else the configured plan file is loaded,
                else every approach stays green.
        """
        self.geometry = IntersectionGeometry.from_settings(self.settings.geometry)
        self.fleet = FleetManager(
            geometry=self.geometry,
            config=self.settings.traffic,
            rng=random.Random(self._seed),
            on_vehicle_completed=self._on_vehicle_completed,
        )

        if light_plan_path:
            self.light_plan = LightPlan.from_yaml(Path(light_plan_path))
        elif self.light_plan is None:
            configured = self.settings.light_plan_path()
            if configured.exists():
                self.light_plan = LightPlan.from_yaml(configured)
            else:
                logger.warning(f"Light plan {configured} not found, every approach stays green")
                self.light_plan = LightPlan()

        self._current_phase = None
        self._initialized = True
        logger.info(
            f"Simulation initialized: {len(self.light_plan.phases)} light phases "
            f"({self.light_plan.cycle_ms / 1000:.0f} s cycle), "
            f"{self.clock.ticks_per_second} ticks/s, seed={self._seed}"
        )
        self.event_bus.emit(EventType.SIMULATION_START, "simulation", seed=self._seed)

    def update(self, real_dt: float) -> int:
        """
        Run the ticks owed for a stretch of wall time.

        Args:
            real_dt: Wall seconds since the previous call

        Returns:
            Number of ticks run
        """
        if not self._initialized:
            return 0

        ticks = self.clock.update(real_dt)
        for _ in range(ticks):
            self._tick()
        return ticks

    def _tick(self) -> MetricsSnapshot:
        now = self.clock.advance()
        tick = self.clock.tick
        phase = self.light_plan.phase_at(now)
        light_states = dict(phase.states)

        self.event_bus.emit(EventType.TICK, "simulation", tick, dt_ms=self.clock.dt_ms, now_ms=now)
        if phase is not self._current_phase:
            self._current_phase = phase
            self.event_bus.emit(
                EventType.SIGNAL_PHASE_CHANGED,
                "light_plan",
                tick,
                states={d.value: s.value for d, s in light_states.items()},
                duration_ms=phase.duration_ms,
            )

        spawned_before = self.fleet.spawned_count
        self.fleet.tick(self.clock.dt_ms, light_states, self.settings.traffic, now)

        if self.fleet.spawned_count > spawned_before:
            # At most one spawn per tick, appended last; it cannot complete on its first tick
            vehicle = self.fleet.vehicles()[-1]
            self.event_bus.emit(
                EventType.VEHICLE_SPAWNED,
                "fleet",
                tick,
                vehicle_id=vehicle.id,
                origin=vehicle.origin.value,
                lane=vehicle.lane,
                turn=vehicle.turn.value,
            )

        self.event_bus.flush()
        return self.state.update_metrics(tick, now, self.fleet)

    def _on_vehicle_completed(self, event: CompletionEvent) -> None:
        self.state.record_completion(event)
        self.event_bus.emit(
            EventType.VEHICLE_COMPLETED,
            "fleet",
            self.clock.tick,
            vehicle_id=event.vehicle_id,
            total_wait_time=event.total_wait_time,
            origin=event.origin_direction.value,
            destination=event.destination_direction.value,
        )

    def pause(self) -> None:
        self.clock.pause()
        self.event_bus.emit(EventType.SIMULATION_PAUSE, "simulation", self.clock.tick)

    def resume(self) -> None:
        self.clock.resume()
        self.event_bus.emit(EventType.SIMULATION_RESUME, "simulation", self.clock.tick)

    def toggle_pause(self) -> bool:
        """Flip between paused and running. Returns True if now paused."""
        if self.clock.is_paused:
            self.resume()
        else:
            self.pause()
        return self.clock.is_paused

    def reset(self) -> None:
        """Clear vehicles, metrics and time; the same seed replays the same traffic."""
        self.state.reset()
        self.clock.reset()
        self.event_bus.clear_pending()
        self._current_phase = None

        if self.fleet:
            self.fleet.reset()
            self.fleet.rng.seed(self._seed)

        logger.info("Simulation reset")
        self.event_bus.emit(EventType.SIMULATION_RESET, "simulation")

    def run_ticks(self, n_ticks: int) -> List[MetricsSnapshot]:
        """
        Run a fixed number of ticks without pacing (headless mode).

        Returns:
            One MetricsSnapshot per tick
        """
        if not self._initialized:
            raise RuntimeError("Simulation must be initialized before running ticks")

        return [self._tick() for _ in range(n_ticks)]

    def get_current_metrics_dict(self) -> Dict[str, float]:
        """Latest metrics as plain floats, keyed by field name."""
        return {name: float(value) for name, value in asdict(self.state.current_metrics).items()}
