"""
Seeded headless runs of the intersection.

An experiment is a light plan plus traffic overrides, run for a fixed number
of ticks. Each run yields per-tick metric series, a flat summary row, and the
list of vehicles that completed.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional
from pathlib import Path
import logging

import numpy as np
import pandas as pd
import yaml

from config.settings import CONFIG_DIR, Settings, get_settings

from ..core.event_bus import EventBus
from ..core.simulation import Simulation
from ..core.state import SimulationState
from ..entities.vehicle import CompletionEvent

logger = logging.getLogger(__name__)

COMPLETION_COLUMNS = ["experiment", "seed", "vehicle_id", "origin", "destination", "total_wait_time"]
DEFAULT_TRACKED_METRICS = ["active_vehicles", "waiting_vehicles", "throughput"]


@dataclass
class ExperimentConfig:
    """One experiment at one seed."""

    name: str
    seed: int
    duration_ticks: int
    light_plan: Optional[str] = None  # Relative to the config directory
    traffic: Dict[str, Any] = field(default_factory=dict)  # TrafficConfig overrides
    metrics_to_track: List[str] = field(default_factory=lambda: list(DEFAULT_TRACKED_METRICS))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], seed: int) -> "ExperimentConfig":
        """Build from an ``experiments`` entry of an experiment YAML file."""
        return cls(
            name=data["name"],
            seed=seed,
            duration_ticks=int(data.get("duration_ticks", 5400)),
            light_plan=data.get("light_plan"),
            traffic=dict(data.get("traffic") or {}),
            metrics_to_track=list(data.get("metrics") or DEFAULT_TRACKED_METRICS),
        )


@dataclass
class ExperimentResult:
    config: ExperimentConfig
    time_series: Dict[str, np.ndarray]  # metric -> one value per tick
    summary: Dict[str, float]
    completions: List[CompletionEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "experiment": self.config.name,
            "seed": self.config.seed,
            "duration_ticks": self.config.duration_ticks,
            "light_plan": self.config.light_plan,
            "traffic": dict(self.config.traffic),
            "summary": self.summary,
        }

    def completions_frame(self) -> pd.DataFrame:
        """One row per completed vehicle."""
        rows = [
            (self.config.name, self.config.seed, e.vehicle_id, e.origin_direction.value,
             e.destination_direction.value, e.total_wait_time)
            for e in self.completions
        ]
        return pd.DataFrame(rows, columns=COMPLETION_COLUMNS)


def summarize_series(time_series: Dict[str, np.ndarray]) -> Dict[str, float]:
    """
    Reduce each metric series to mean, std, min, max and a settled value.

    The settled value is the mean of the last tenth of the run, once queues
    have had time to form.
    """
    summary: Dict[str, float] = {}
    for metric, values in time_series.items():
        if values.size == 0:
            continue
        tail = values[-max(1, values.size // 10):]
        summary.update({
            f"{metric}_mean": float(values.mean()),
            f"{metric}_std": float(values.std()),
            f"{metric}_min": float(values.min()),
            f"{metric}_max": float(values.max()),
            f"{metric}_final": float(tail.mean()),
        })
    return summary


def summarize_completions(completions: List[CompletionEvent]) -> Dict[str, float]:
    """Wait-time figures over the vehicles that left the intersection."""
    waits = np.array([e.total_wait_time for e in completions], dtype=float)
    return {
        "vehicles_completed": float(waits.size),
        "average_wait_time": float(waits.mean()) if waits.size else 0.0,
        "max_wait_time": float(waits.max()) if waits.size else 0.0,
    }


class ExperimentRunner:
    """
    Runs experiments and keeps their results.

    Every run builds its own settings, metrics state and event bus, so nothing
    carries over between runs and equal seeds give equal results.
    """

    def __init__(self, settings: Optional[Settings] = None, config_dir: Optional[Path] = None):
        """
        Args:
            settings: Base settings the experiments override (global settings if None)
            config_dir: Directory relative light plan names are resolved against
        """
        self.settings = settings or get_settings()
        self.config_dir = config_dir or CONFIG_DIR
        self._results: List[ExperimentResult] = []

    def _settings_for(self, config: ExperimentConfig) -> Settings:
        # Base settings are left untouched
        return Settings(
            geometry=self.settings.geometry,
            traffic=replace(self.settings.traffic, **config.traffic),
            simulation=replace(self.settings.simulation, seed=config.seed),
        )

    def _light_plan_path(self, config: ExperimentConfig) -> Optional[Path]:
        if not config.light_plan:
            return None
        path = Path(config.light_plan)
        return path if path.is_absolute() else self.config_dir / path

    def run(self, config: ExperimentConfig) -> ExperimentResult:
        """Run one experiment at its seed and store the result."""
        logger.info(f"Experiment {config.name}: seed {config.seed}, {config.duration_ticks} ticks")

        sim = Simulation(
            settings=self._settings_for(config),
            state=SimulationState(completions_limit=None),  # Runs are finite; keep every row
            event_bus=EventBus(),
        )
        sim.initialize(self._light_plan_path(config))
        snapshots = sim.run_ticks(config.duration_ticks)

        time_series = {
            metric: np.array([getattr(s, metric) for s in snapshots], dtype=float)
            for metric in config.metrics_to_track
        }
        completions = list(sim.state.completions)

        summary = summarize_series(time_series)
        summary["vehicles_spawned"] = float(sim.fleet.spawned_count)
        summary["spawns_rejected"] = float(sim.fleet.rejected_count)
        summary.update(summarize_completions(completions))

        logger.debug(
            f"Experiment {config.name} seed {config.seed}: "
            f"{len(completions)}/{sim.fleet.spawned_count} vehicles completed"
        )

        result = ExperimentResult(config=config, time_series=time_series, summary=summary, completions=completions)
        self._results.append(result)
        return result

    def run_comparison(
        self,
        configs: List[Dict[str, Any]],
        n_runs: int = 10,
        base_seed: int = 0,
    ) -> pd.DataFrame:
        """
        Run every experiment at seeds base_seed .. base_seed + n_runs - 1.

        Returns:
            One row per run: experiment, run, seed and the summary columns
        """
        rows: List[Dict[str, Any]] = []
        for entry in configs:
            for run_idx, seed in enumerate(range(base_seed, base_seed + n_runs)):
                result = self.run(ExperimentConfig.from_dict(entry, seed))
                rows.append({"experiment": entry["name"], "run": run_idx, "seed": seed, **result.summary})
        return pd.DataFrame(rows)

    def completions_frame(self) -> pd.DataFrame:
        """Completion rows of every stored result."""
        frames = [r.completions_frame() for r in self._results]
        if not frames:
            return pd.DataFrame(columns=COMPLETION_COLUMNS)
        return pd.concat(frames, ignore_index=True)

    def get_all_results(self) -> List[ExperimentResult]:
        return self._results

    def clear_results(self) -> None:
        self._results.clear()


def load_experiment_config(path: str | Path) -> Dict[str, Any]:
    """Read an experiment YAML file (``settings``, ``metrics``, ``experiments``)."""
    with open(path) as f:
        return yaml.safe_load(f) or {}
