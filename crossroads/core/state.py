"""Simulation metrics container."""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, TYPE_CHECKING
import numpy as np

from ..entities.traffic_light import Direction

if TYPE_CHECKING:
    from .fleet import FleetManager
    from ..entities.vehicle import CompletionEvent


@dataclass
class MetricsSnapshot:
    """Snapshot of simulation metrics at a point in time."""

    tick: int = 0
    time_ms: float = 0.0
    active_vehicles: int = 0
    waiting_vehicles: int = 0
    vehicles_spawned: int = 0
    vehicles_completed: int = 0
    spawns_rejected: int = 0
    average_speed: float = 0.0
    average_wait_time: float = 0.0  # ms, over completed vehicles
    max_queue_length: int = 0
    throughput: float = 0.0  # Vehicles/minute


@dataclass
class SimulationState:
    """
    Metrics collected from the fleet as the simulation runs.

    Completions are kept in arrival order and, like snapshots, trimmed to a
    rolling window. Completed count and mean wait cover the whole run; set
    ``completions_limit`` to None to keep every completion.
    """

    current_metrics: MetricsSnapshot = field(default_factory=MetricsSnapshot)
    metrics_history: List[MetricsSnapshot] = field(default_factory=list)
    metrics_history_limit: int = 3600  # ~2 minutes at 30 ticks/sec

    completions: List["CompletionEvent"] = field(default_factory=list)
    completions_limit: Optional[int] = 3600

    completed_total: int = field(default=0, init=False)
    wait_total_ms: float = field(default=0.0, init=False)

    def record_completion(self, event: "CompletionEvent") -> None:
        """Record a vehicle leaving the simulation."""
        self.completed_total += 1
        self.wait_total_ms += event.total_wait_time
        self.completions.append(event)

        if self.completions_limit is not None and len(self.completions) > self.completions_limit:
            del self.completions[:-self.completions_limit]

    def queue_lengths(self, fleet: "FleetManager") -> Dict[Direction, int]:
        """Number of waiting vehicles per approach."""
        return {d: len(fleet.waiting_vehicles(d)) for d in Direction}

    def update_metrics(self, tick: int, time_ms: float, fleet: "FleetManager") -> MetricsSnapshot:
        """Refresh current metrics from the fleet and append a snapshot."""
        vehicles = fleet.vehicles()
        m = self.current_metrics

        m.tick = tick
        m.time_ms = time_ms
        m.active_vehicles = len(vehicles)
        m.vehicles_spawned = fleet.spawned_count
        m.vehicles_completed = self.completed_total
        m.spawns_rejected = fleet.rejected_count

        if vehicles:
            m.average_speed = float(np.mean([v.speed for v in vehicles]))
        else:
            m.average_speed = 0.0

        if self.completed_total:
            m.average_wait_time = self.wait_total_ms / self.completed_total

        queues = self.queue_lengths(fleet)
        m.waiting_vehicles = sum(queues.values())
        m.max_queue_length = max(queues.values())

        minutes = time_ms / 60000.0
        m.throughput = m.vehicles_completed / minutes if minutes > 0 else 0.0

        snapshot = replace(m)
        self.metrics_history.append(snapshot)

        if len(self.metrics_history) > self.metrics_history_limit:
            self.metrics_history = self.metrics_history[-self.metrics_history_limit:]

        return snapshot

    def wait_times_by_origin(self) -> Dict[Direction, np.ndarray]:
        """Wait times of the retained completions, grouped by origin direction."""
        return {
            d: np.array([e.total_wait_time for e in self.completions if e.origin_direction == d])
            for d in Direction
        }

    def reset(self) -> None:
        """Reset simulation state."""
        self.current_metrics = MetricsSnapshot()
        self.metrics_history.clear()
        self.completions.clear()
        self.completed_total = 0
        self.wait_total_ms = 0.0

    def get_metrics_array(self, metric_name: str, limit: int = 300) -> np.ndarray:
        """Get array of historical metric values."""
        history = self.metrics_history[-limit:]
        return np.array([getattr(m, metric_name, 0) for m in history])
