#!/usr/bin/env python3
"""
render_charts.py

Grouped bar charts for the weekly usage summary.

Any table with (grouping column, sub-grouping column, numeric column) can be
drawn with plot_grouped_bars; render_weekly_charts writes the three report
images:
  - rides_by_weekday.png
  - duration_by_weekday.png
  - weekly_usage_combined.png (both charts side by side)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")  # file output only

import matplotlib.pyplot as plt
import pandas as pd

from tripdata_schema import CATEGORY_COLUMN, WEEKDAY_ORDER

RIDER_COLORS = {"casual": "#f28e2b", "member": "#4e79a7"}

CHART_SPECS = [
    ("number_of_rides", "Number of rides by weekday", "Number of rides", "rides_by_weekday.png"),
    ("average_duration", "Average ride duration by weekday", "Average duration (seconds)", "duration_by_weekday.png"),
]
COMBINED_NAME = "weekly_usage_combined.png"


def plot_grouped_bars(
    table: pd.DataFrame,
    group_col: str,
    hue_col: str,
    value_col: str,
    ax: Optional[plt.Axes] = None,
    order: Optional[Sequence[str]] = None,
    title: Optional[str] = None,
    ylabel: Optional[str] = None,
) -> plt.Axes:
    """Draw one bar per (group, hue) pair, bars of a group side by side."""
    missing = [c for c in (group_col, hue_col, value_col) if c not in table.columns]
    if missing:
        raise KeyError(f"Chart table is missing columns: {missing}")

    if ax is None:
        _, ax = plt.subplots(figsize=(10, 6))

    if table.empty:
        # nothing survived filtering: keep the axes and labels, no bars
        labels = list(order) if order is not None else []
        ax.set_xticks(range(len(labels)))
        ax.set_xticklabels(labels)
        ax.text(0.5, 0.5, "No rides to plot", transform=ax.transAxes, ha="center", va="center", color="gray")
    else:
        wide = table.pivot(index=group_col, columns=hue_col, values=value_col)
        if order is not None:
            wide = wide.reindex([g for g in order if g in wide.index])
        wide = wide.astype("float64")

        colors = [RIDER_COLORS.get(str(h), None) for h in wide.columns]
        if any(c is None for c in colors):
            colors = None
        wide.plot(kind="bar", ax=ax, color=colors, edgecolor="none", width=0.8)
        ax.legend(title=hue_col.replace("_", " "))

    ax.set_xlabel(group_col.replace("_", " ").title())
    ax.set_ylabel(ylabel or value_col.replace("_", " "))
    if title:
        ax.set_title(title, fontweight="bold")
    ax.tick_params(axis="x", rotation=0)
    ax.grid(True, alpha=0.3, axis="y")
    return ax


def render_weekly_charts(weekly: pd.DataFrame, out_dir: Path, dpi: int = 150) -> List[Path]:
    """Write the per-metric charts and the combined side-by-side figure."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    if weekly.empty:
        print("WARNING: weekly usage table is empty; charts will have no bars")

    for value_col, title, ylabel, fname in CHART_SPECS:
        fig, ax = plt.subplots(figsize=(10, 6))
        plot_grouped_bars(
            weekly, "day_of_week", CATEGORY_COLUMN, value_col,
            ax=ax, order=WEEKDAY_ORDER, title=title, ylabel=ylabel,
        )
        fig.tight_layout()
        path = out_dir / fname
        fig.savefig(path, dpi=dpi, bbox_inches="tight")
        plt.close(fig)
        print(f"Saved -> {path}")
        written.append(path)

    fig, axes = plt.subplots(1, 2, figsize=(18, 6))
    for ax, (value_col, title, ylabel, _) in zip(axes, CHART_SPECS):
        plot_grouped_bars(
            weekly, "day_of_week", CATEGORY_COLUMN, value_col,
            ax=ax, order=WEEKDAY_ORDER, title=title, ylabel=ylabel,
        )
    fig.suptitle("Casual vs member riders by weekday", fontsize=15, fontweight="bold")
    fig.tight_layout()
    path = out_dir / COMBINED_NAME
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved -> {path}")
    written.append(path)

    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Render weekly usage bar charts from weekly_usage.csv")
    ap.add_argument("--weekly-csv", required=True, type=Path, help="weekly_usage.csv written by the case study run")
    ap.add_argument("--out-dir", required=True, type=Path, help="Where to write the PNG charts")
    ap.add_argument("--dpi", type=int, default=150)
    args = ap.parse_args(argv)

    if not args.weekly_csv.exists():
        print(f"ERROR: weekly csv does not exist: {args.weekly_csv}", file=sys.stderr)
        return 2

    weekly = pd.read_csv(args.weekly_csv, dtype={CATEGORY_COLUMN: "string", "day_of_week": "string"})
    required = {CATEGORY_COLUMN, "day_of_week", "number_of_rides", "average_duration"}
    missing = sorted(required - set(weekly.columns))
    if missing:
        print(f"ERROR: {args.weekly_csv} is missing columns: {missing}", file=sys.stderr)
        return 2

    render_weekly_charts(weekly, args.out_dir, dpi=args.dpi)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
