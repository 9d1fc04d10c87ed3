"""Configuration module for Crossroads."""

from .settings import Settings, GeometrySettings, TrafficConfig, SimulationSettings, get_settings
from .colors import Colors

__all__ = [
    "Settings",
    "GeometrySettings",
    "TrafficConfig",
    "SimulationSettings",
    "get_settings",
    "Colors",
]
