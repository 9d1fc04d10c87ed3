"""Global settings for the Crossroads simulation."""

from dataclasses import dataclass, field, fields, replace, asdict
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import math

import yaml

from .constants import SPAWN_INTERVAL_BASE_MS

logger = logging.getLogger(__name__)


def _require_non_negative(owner: str, name: str, value: float) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        raise ValueError(f"{owner}.{name} must be a finite non-negative number, got {value!r}")


@dataclass(frozen=True)
class GeometrySettings:
    """Construction-time intersection geometry. Immutable once built."""
    center_x: float = 600.0
    center_y: float = 600.0
    intersection_size: float = 120.0
    road_width: float = 60.0
    lane_width: float = 30.0
    canvas_width: float = 1200.0
    canvas_height: float = 1200.0


@dataclass(frozen=True)
class TrafficConfig:
    """
    Per-tick traffic configuration.

    Passed explicitly into every FleetManager tick so a tick never depends on
    state captured elsewhere.
    """
    cruise_speed: float = 25.0  # units per second
    spawn_rate_per_ten_seconds: float = 4.0
    turn_rate_fraction: float = 0.25
    canvas_width: float = 1200.0
    canvas_height: float = 1200.0

    def __post_init__(self) -> None:
        for f in fields(self):
            _require_non_negative("traffic", f.name, getattr(self, f.name))
        if self.turn_rate_fraction > 1.0:
            raise ValueError(
                f"traffic.turn_rate_fraction must be within [0, 1], got {self.turn_rate_fraction}"
            )

    @property
    def spawn_interval_ms(self) -> float:
        """Milliseconds between spawn attempts (inf when spawning is disabled)."""
        if self.spawn_rate_per_ten_seconds <= 0:
            return math.inf
        return SPAWN_INTERVAL_BASE_MS / self.spawn_rate_per_ten_seconds


@dataclass
class SimulationSettings:
    """Headless run parameters."""
    ticks_per_second: int = 30
    seed: Optional[int] = None
    light_plan: str = "light_plan.yaml"  # Relative to the config directory


@dataclass
class Settings:
    """Main settings container."""
    geometry: GeometrySettings = field(default_factory=GeometrySettings)
    traffic: TrafficConfig = field(default_factory=TrafficConfig)
    simulation: SimulationSettings = field(default_factory=SimulationSettings)

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Settings":
        """Load settings from YAML file, falling back to defaults."""
        settings = cls()

        if config_path and config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}

            if "geometry" in data:
                settings.geometry = _overlay(settings.geometry, data["geometry"], "geometry")

            traffic_data = dict(data.get("traffic", {}))
            # Canvas bounds follow the geometry unless set explicitly
            traffic_data.setdefault("canvas_width", settings.geometry.canvas_width)
            traffic_data.setdefault("canvas_height", settings.geometry.canvas_height)
            settings.traffic = _overlay(settings.traffic, traffic_data, "traffic")

            if "simulation" in data:
                for key, value in data["simulation"].items():
                    if hasattr(settings.simulation, key):
                        setattr(settings.simulation, key, value)
                    else:
                        logger.warning(f"Ignoring unknown simulation setting '{key}'")

        return settings

    def save(self, config_path: Path) -> None:
        """Save current settings to YAML file."""
        data = {
            "geometry": asdict(self.geometry),
            "traffic": asdict(self.traffic),
            "simulation": asdict(self.simulation),
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def light_plan_path(self, config_dir: Path | None = None) -> Path:
        """Resolve the light plan file against the config directory."""
        path = Path(self.simulation.light_plan)
        if path.is_absolute():
            return path
        return (config_dir or CONFIG_DIR) / path


def _overlay(section: Any, values: Dict[str, Any], name: str) -> Any:
    """Return a copy of a frozen section with known keys replaced."""
    known = {f.name for f in fields(section)}
    updates = {}
    for key, value in values.items():
        if key in known:
            updates[key] = value
        else:
            logger.warning(f"Ignoring unknown {name} setting '{key}'")
    return replace(section, **updates)


CONFIG_DIR = Path(__file__).parent

_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance."""
    global _settings
    if _settings is None:
        config_path = CONFIG_DIR / "simulation.yaml"
        _settings = Settings.load(config_path)
    return _settings
