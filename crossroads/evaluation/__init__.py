"""
Evaluation package for Crossroads experiments.

Modules:
    experiment: ExperimentConfig, ExperimentResult, ExperimentRunner
    analysis: Statistical analysis and export functions
"""

from .experiment import (
    ExperimentConfig,
    ExperimentResult,
    ExperimentRunner,
    load_experiment_config,
)
from .analysis import (
    compute_statistics,
    compare_experiments,
    format_comparison_results,
    wait_time_by_direction,
    export_csv_summary,
)

__all__ = [
    # Experiment
    "ExperimentConfig",
    "ExperimentResult",
    "ExperimentRunner",
    "load_experiment_config",
    # Analysis
    "compute_statistics",
    "compare_experiments",
    "format_comparison_results",
    "wait_time_by_direction",
    "export_csv_summary",
]
