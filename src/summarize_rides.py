"""
summarize_rides.py

Summary tables over the cleaned trip dataset:
  - ride_length_summary: mean/median/max/min ride_length per rider category
  - weekly_usage: number_of_rides + average_duration per (rider category, weekday)

Plus the markdown highlights report and CSV export.

Design choices:
- Missing ride_length values are skipped by every statistic (never read as 0).
- Statistics are rounded to whole seconds (nullable Int64).
- Rides with no started_at have no weekday, so weekly_usage leaves them out;
  the highlights report counts them.
- Output rows are sorted (category, then Sunday..Saturday) so repeated runs
  write byte-identical CSVs.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from derive_features import FilterReport
from normalize_tripdata import NormalizeReport
from tripdata_schema import CATEGORY_COLUMN, WEEKDAY_ORDER

LENGTH_STATS = ["mean_ride_length", "median_ride_length", "max_ride_length", "min_ride_length"]


def _round_seconds(s: pd.Series) -> pd.Series:
    return s.astype("Float64").round(0).astype("Int64")


def ride_length_summary(df: pd.DataFrame) -> pd.DataFrame:
    out = (
        df.groupby(CATEGORY_COLUMN, as_index=False, sort=True)
        .agg(
            mean_ride_length=("ride_length", "mean"),
            median_ride_length=("ride_length", "median"),
            max_ride_length=("ride_length", "max"),
            min_ride_length=("ride_length", "min"),
        )
    )
    for c in LENGTH_STATS:
        out[c] = _round_seconds(out[c])
    return out.reset_index(drop=True)


def weekly_usage(df: pd.DataFrame) -> pd.DataFrame:
    """Ride count and mean ride_length per (member_casual, day_of_week)."""
    tmp = df[[CATEGORY_COLUMN, "day_of_week", "ride_length"]].copy()
    tmp["day_of_week"] = pd.Categorical(
        tmp["day_of_week"].astype(object), categories=WEEKDAY_ORDER, ordered=True
    )

    out = (
        tmp.groupby([CATEGORY_COLUMN, "day_of_week"], observed=True, as_index=False, sort=True)
        .agg(
            number_of_rides=("ride_length", "size"),
            average_duration=("ride_length", "mean"),
        )
    )
    out["day_of_week"] = out["day_of_week"].astype(str).astype("string")
    out["number_of_rides"] = out["number_of_rides"].astype("int64")
    out["average_duration"] = _round_seconds(out["average_duration"])
    return out.reset_index(drop=True)


# -----------------------------
# Output writers
# -----------------------------
def write_summary_csv(df: pd.DataFrame, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, lineterminator="\n")
    print(f"Saved -> {path} (rows={len(df):,})")
    return path


def build_highlights_markdown(
    normalize_reports: Sequence[NormalizeReport],
    merged_rows: int,
    filter_report: FilterReport,
    df_length: pd.DataFrame,
    df_weekly: pd.DataFrame,
    sentinel_station: Optional[str] = None,
    undated_rides: int = 0,
) -> List[str]:
    lines: List[str] = []
    lines.append("# Casual vs member summary")
    lines.append("")

    lines.append("## Inputs")
    for r in normalize_reports:
        lines.append(f"- **{r.label}**: {r.rows:,} rows")
        if r.unmapped_values:
            vals = ", ".join(f"`{k}` x{v:,}" for k, v in r.unmapped_values.items())
            lines.append(f"  - unmapped rider categories set to null: {vals}")
        for col, n in sorted(r.unparsed_timestamps.items()):
            lines.append(f"  - unparsable `{col}` values: {n:,}")
    lines.append(f"- **merged**: {merged_rows:,} rows")
    lines.append("")

    lines.append("## Cleaning")
    lines.append(
        f"- Kept {filter_report.rows_after:,} of {filter_report.rows_before:,} rows "
        f"(dropped {filter_report.dropped:,})"
    )
    for reason, n in filter_report.by_reason.items():
        label = reason.replace("_", " ")
        if reason == "test_station" and sentinel_station:
            label = f"{label} (`{sentinel_station}`)"
        lines.append(f"  - {label}: {n:,}")
    if undated_rides:
        lines.append(f"- Rides without a usable start time (not in weekly usage): {undated_rides:,}")
    lines.append("")

    if not df_length.empty:
        lines.append("## Ride length (seconds)")
        lines.append("")
        lines.append("| rider | mean | median | max | min |")
        lines.append("| --- | --- | --- | --- | --- |")
        for _, r in df_length.iterrows():
            cells = ["NA" if pd.isna(r[c]) else f"{int(r[c]):,}" for c in LENGTH_STATS]
            lines.append(f"| {r[CATEGORY_COLUMN]} | " + " | ".join(cells) + " |")
        lines.append("")

    if not df_weekly.empty:
        lines.append("## Busiest weekday per rider category")
        for cat in sorted(df_weekly[CATEGORY_COLUMN].unique()):
            sub = df_weekly[df_weekly[CATEGORY_COLUMN] == cat]
            total = sub["number_of_rides"].sum()
            top = sub.sort_values(["number_of_rides", "day_of_week"], ascending=[False, True]).iloc[0]
            pct = (float(top["number_of_rides"]) / total * 100.0) if total else 0.0
            avg = top["average_duration"]
            avg_str = "NA" if pd.isna(avg) else f"{int(avg):,}s"
            lines.append(
                f"- **{cat}**: {top['day_of_week']} with {int(top['number_of_rides']):,} rides "
                f"({pct:.2f}% of {cat}), average duration {avg_str}"
            )
        lines.append("")

    return lines


def write_lines(path: Path, lines: List[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def print_lines(lines: List[str]) -> None:
    for ln in lines:
        print(ln)
