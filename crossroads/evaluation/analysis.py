"""
Statistical analysis functions for experiment results.

Provides summary statistics with confidence intervals, Welch comparisons
between light plans, and per-direction wait-time breakdowns.
"""

from typing import Dict, List, Optional
import numpy as np
import pandas as pd
from scipy import stats

METADATA_COLUMNS = {"experiment", "run", "seed", "description"}


def _ci95(std: float, n: int) -> float:
    """Half-width of a 95% t confidence interval."""
    if n < 2:
        return 0.0
    return float(stats.t.ppf(0.975, n - 1) * std / np.sqrt(n))


def compute_statistics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Compute mean, std, 95% CI for each metric grouped by experiment.

    Args:
        df: DataFrame with columns: experiment, run, seed, and metric columns

    Returns:
        DataFrame with aggregated statistics per experiment
    """
    metric_cols = [col for col in df.columns if col not in METADATA_COLUMNS]

    results = []

    for exp_name, group in df.groupby("experiment", sort=False):
        row = {"experiment": exp_name, "n_runs": len(group)}

        for metric in metric_cols:
            values = group[metric].dropna()
            if len(values) == 0:
                continue

            std = values.std() if len(values) > 1 else 0.0
            row[f"{metric}_mean"] = values.mean()
            row[f"{metric}_std"] = std
            row[f"{metric}_ci95"] = _ci95(std, len(values))
            row[f"{metric}_min"] = values.min()
            row[f"{metric}_max"] = values.max()

        results.append(row)

    return pd.DataFrame(results)


def _significance_stars(p_value: float) -> str:
    for threshold, stars in ((0.001, "***"), (0.01, "**"), (0.05, "*")):
        if p_value < threshold:
            return stars
    return ""


def compare_experiments(
    runs: pd.DataFrame,
    baseline: str,
    treatment: str,
    metrics: Optional[List[str]] = None,
) -> Dict[str, Dict[str, float]]:
    """
    Welch's t-test of one experiment's runs against another's.

    Args:
        runs: One row per run (see ExperimentRunner.run_comparison)
        baseline: Experiment name used as reference
        treatment: Experiment name compared against it
        metrics: Summary columns to test (all run-level numeric columns if None)

    Returns:
        Per metric: both means, the t statistic, p-value, Cohen's d and
        percent change of the treatment mean relative to the baseline
    """
    base_runs = runs[runs["experiment"] == baseline]
    treat_runs = runs[runs["experiment"] == treatment]
    if base_runs.empty or treat_runs.empty:
        raise ValueError(
            f"No runs to compare: {len(base_runs)} for {baseline!r}, {len(treat_runs)} for {treatment!r}"
        )

    if metrics is None:
        metrics = [
            col for col in runs.select_dtypes("number").columns
            if col not in METADATA_COLUMNS and not col.endswith(("_std", "_ci95"))
        ]

    results = {}
    for metric in metrics:
        a = base_runs[metric].dropna().astype(float)
        b = treat_runs[metric].dropna().astype(float)
        if len(a) < 2 or len(b) < 2:
            continue

        spread = np.sqrt((a.var() + b.var()) / 2)
        if spread == 0:
            # Both samples constant
            continue
        t_stat, p_value = stats.ttest_ind(b, a, equal_var=False)

        results[metric] = {
            "baseline_mean": float(a.mean()),
            "treatment_mean": float(b.mean()),
            "t_statistic": float(t_stat),
            "p_value": float(p_value),
            "cohens_d": float((b.mean() - a.mean()) / spread),
            "pct_change": float((b.mean() - a.mean()) / abs(a.mean()) * 100) if a.mean() != 0 else 0.0,
        }

    return results


def format_comparison_results(comparison: Dict[str, Dict[str, float]]) -> pd.DataFrame:
    """Comparison results as one row per metric with significance stars."""
    df = pd.DataFrame([{"metric": metric, **values} for metric, values in comparison.items()])
    if not df.empty:
        df["significance"] = df["p_value"].map(_significance_stars)
    return df


def wait_time_by_direction(completions: pd.DataFrame) -> pd.DataFrame:
    """
    Wait-time statistics per experiment and origin direction.

    Args:
        completions: Completion records (see ExperimentRunner.completions_frame)

    Returns:
        DataFrame with count, mean, std, ci95 and max wait per group
    """
    columns = ["experiment", "origin", "count", "mean_wait", "std_wait", "ci95_wait", "max_wait"]
    if completions.empty:
        return pd.DataFrame(columns=columns)

    rows = []
    for (exp_name, origin), group in completions.groupby(["experiment", "origin"], sort=False):
        waits = group["total_wait_time"].astype(float)
        std = waits.std() if len(waits) > 1 else 0.0
        rows.append({
            "experiment": exp_name,
            "origin": origin,
            "count": len(waits),
            "mean_wait": waits.mean(),
            "std_wait": std,
            "ci95_wait": _ci95(std, len(waits)),
            "max_wait": waits.max(),
        })
    return pd.DataFrame(rows, columns=columns)


def export_csv_summary(summary_df: pd.DataFrame, path: str) -> None:
    """
    Export summary statistics to CSV file.

    Args:
        summary_df: DataFrame from compute_statistics()
        path: Output file path
    """
    summary_df.to_csv(path, index=False)
