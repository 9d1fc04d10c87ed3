#!/usr/bin/env python3
"""
Batch runner comparing light plans and traffic demand.

Each experiment in the YAML file is run once per seed; every run is headless
and independent.

Usage:
    python scripts/run_experiments.py --config config/experiments/standard.yaml --output results/
    python scripts/run_experiments.py --config config/experiments/standard.yaml --only all_green --n-runs 2

Outputs (in the output directory):
    raw_data.csv           one row per run
    completions.csv        one row per completed vehicle
    summary_table.csv      mean / std / 95% CI per experiment
    wait_by_direction.csv  wait-time statistics per experiment and origin
    comparison.csv         Welch tests of each experiment against the first
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from crossroads.evaluation.analysis import (
    compare_experiments,
    compute_statistics,
    export_csv_summary,
    format_comparison_results,
    wait_time_by_direction,
)
from crossroads.evaluation.experiment import ExperimentRunner, load_experiment_config

logger = logging.getLogger("run_experiments")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run Crossroads light-plan comparisons")
    parser.add_argument("--config", type=str, required=True, help="Experiment YAML file")
    parser.add_argument("--output", type=str, default="results/", help="Output directory (default: results/)")
    parser.add_argument("--n-runs", type=int, default=None, help="Seeds per experiment (default: from config)")
    parser.add_argument("--base-seed", type=int, default=0, help="First seed; runs use base, base+1, ...")
    parser.add_argument(
        "--only",
        action="append",
        default=None,
        metavar="NAME",
        help="Run only the named experiment (repeatable)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args()


def select_experiments(config: Dict[str, Any], only: List[str] | None) -> List[Dict[str, Any]]:
    """Experiment entries with file-level defaults filled in."""
    defaults = config.get("settings", {})
    metrics = config.get("metrics")

    selected = []
    for entry in config.get("experiments", []):
        if only and entry["name"] not in only:
            continue
        entry = dict(entry)
        entry.setdefault("duration_ticks", defaults.get("duration_ticks", 5400))
        if metrics:
            entry.setdefault("metrics", metrics)
        selected.append(entry)

    if only:
        missing = set(only) - {e["name"] for e in selected}
        if missing:
            raise SystemExit(f"Unknown experiment(s): {', '.join(sorted(missing))}")
    return selected


def comparisons_against_baseline(runs: pd.DataFrame, names: List[str]) -> pd.DataFrame:
    """Welch comparison of every experiment against the first one listed."""
    if len(set(names)) < 2 or runs.groupby("experiment").size().min() < 2:
        return pd.DataFrame()

    baseline = names[0]
    frames = []
    for treatment in names[1:]:
        table = format_comparison_results(compare_experiments(runs, baseline, treatment))
        if not table.empty:
            table.insert(0, "treatment", treatment)
            table.insert(0, "baseline", baseline)
            frames.append(table)
    return pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    config = load_experiment_config(args.config)
    experiments = select_experiments(config, args.only)
    n_runs = args.n_runs or config.get("settings", {}).get("n_runs", 10)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Running {len(experiments)} experiments x {n_runs} seeds from {args.config}")

    runner = ExperimentRunner()
    runs = runner.run_comparison(configs=experiments, n_runs=n_runs, base_seed=args.base_seed)
    completions = runner.completions_frame()
    summary = compute_statistics(runs)
    by_direction = wait_time_by_direction(completions)
    comparison = comparisons_against_baseline(runs, [e["name"] for e in experiments])

    runs.to_csv(output_dir / "raw_data.csv", index=False)
    completions.to_csv(output_dir / "completions.csv", index=False)
    export_csv_summary(summary, str(output_dir / "summary_table.csv"))
    by_direction.to_csv(output_dir / "wait_by_direction.csv", index=False)
    if not comparison.empty:
        comparison.to_csv(output_dir / "comparison.csv", index=False)
    logger.info(f"{len(runs)} runs and {len(completions)} completions written to {output_dir}")

    columns = [c for c in ("experiment", "n_runs", "vehicles_completed_mean",
                           "average_wait_time_mean", "average_wait_time_ci95", "max_wait_time_max")
               if c in summary.columns]
    print("\n" + "=" * 60)
    print("EXPERIMENT SUMMARY")
    print("=" * 60)
    print(summary[columns].to_string(index=False))
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
