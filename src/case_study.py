#!/usr/bin/env python3
"""
case_study.py

Casual vs member comparison over two Divvy quarters (legacy + modern schema).

Stages (each completes before the next starts):
  load -> normalize -> merge -> derive features / filter -> summarize -> render

Outputs written to --out-dir:
  - ride_length_summary.csv
  - weekly_usage.csv
  - summary_highlights.md (unless --no-highlights)
  - rides_by_weekday.png, duration_by_weekday.png, weekly_usage_combined.png
    (unless --no-charts)
Optionally the cleaned trip table as parquet (--cleaned-parquet).
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from derive_features import FilterReport, derive_features
from ingest_quarters import load_quarter, parse_compression, write_parquet_atomic
from merge_tripdata import merge_tables
from normalize_tripdata import NormalizeReport, normalize_table
from summarize_rides import (
    build_highlights_markdown,
    print_lines,
    ride_length_summary,
    weekly_usage,
    write_lines,
    write_summary_csv,
)
from tripdata_schema import (
    LEGACY_CONFIG,
    MODERN_CONFIG,
    SENTINEL_STATION,
    UNMAPPED_POLICIES,
    NormalizationConfig,
    with_policy,
)


@dataclass
class PipelineResult:
    cleaned: pd.DataFrame
    length_summary: pd.DataFrame
    weekly: pd.DataFrame
    normalize_reports: List[NormalizeReport]
    merged_rows: int
    filter_report: FilterReport
    highlights: List[str] = field(default_factory=list)


def run_pipeline(
    sources: Sequence[pd.DataFrame],
    configs: Sequence[NormalizationConfig],
    sentinel_station: str = SENTINEL_STATION,
) -> PipelineResult:
    """Normalize, merge, derive and summarize already-loaded source tables."""
    if len(sources) != len(configs):
        raise ValueError(f"Got {len(sources)} source table(s) but {len(configs)} config(s)")

    normalized: List[pd.DataFrame] = []
    reports: List[NormalizeReport] = []
    for raw, config in zip(sources, configs):
        df, report = normalize_table(raw, config)
        print(f" - normalized {config.label}: {report.rows:,} rows")
        normalized.append(df)
        reports.append(report)

    merged = merge_tables(normalized)
    print(f" - merged: {len(merged):,} rows")

    cleaned, filter_report = derive_features(merged, sentinel_station=sentinel_station)
    print(
        f" - cleaned: kept {filter_report.rows_after:,} of {filter_report.rows_before:,} rows "
        f"(dropped {filter_report.dropped:,})"
    )
    for reason, n in filter_report.by_reason.items():
        if n:
            print(f"      {reason}: {n:,}")

    df_length = ride_length_summary(cleaned)
    df_weekly = weekly_usage(cleaned)
    undated = int(cleaned["day_of_week"].isna().sum())
    if undated:
        print(f"WARNING: {undated:,} ride(s) have no start time and are left out of weekly usage")
    highlights = build_highlights_markdown(
        reports, len(merged), filter_report, df_length, df_weekly,
        sentinel_station=sentinel_station, undated_rides=undated,
    )

    return PipelineResult(
        cleaned=cleaned,
        length_summary=df_length,
        weekly=df_weekly,
        normalize_reports=reports,
        merged_rows=len(merged),
        filter_report=filter_report,
        highlights=highlights,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        description="Compare casual and member riders across two Divvy quarters",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  divvy-case-study --legacy data/raw/Divvy_Trips_2019_Q1.xlsx \\
      --modern data/raw/Divvy_Trips_2020_Q1.xlsx --out-dir reports/q1

  divvy-case-study --legacy data/raw/Divvy_Trips_2019_Q1.csv \\
      --modern data/raw/Divvy_Trips_2020_Q1.csv --out-dir reports/q1 \\
      --cleaned-parquet data/processed/q1_cleaned.parquet --compression snappy
        """,
    )
    ap.add_argument("--legacy", required=True, type=Path, help="Older-schema export (trip_id, usertype, ...)")
    ap.add_argument("--modern", required=True, type=Path, help="Newer-schema export (ride_id, member_casual, ...)")
    ap.add_argument("--out-dir", required=True, type=Path, help="Where to write summaries, highlights and charts")
    ap.add_argument("--sentinel-station", default=SENTINEL_STATION,
                    help=f"Test station name to drop (case-insensitive). Default: '{SENTINEL_STATION}'")
    ap.add_argument("--on-unmapped", choices=list(UNMAPPED_POLICIES), default="warn",
                    help="Rider categories outside the value map: warn (set null, drop later) or raise")
    ap.add_argument("--cleaned-parquet", type=Path, default=None, help="Optional path for the cleaned trip table")
    ap.add_argument("--compression", type=str, default="none",
                    help="Parquet compression: none|snappy|gzip|zstd|brotli|lz4 (default: none)")
    ap.add_argument("--no-charts", action="store_true", help="Skip the PNG charts")
    ap.add_argument("--no-highlights", action="store_true", help="Skip writing summary_highlights.md")
    ap.add_argument("--no-print", action="store_true", help="Do not print highlights to the terminal")
    args = ap.parse_args(argv)

    # ========== VALIDATE INPUTS ==========
    print("=" * 70)
    print("INPUT VALIDATION")
    print("=" * 70)
    for label, p in (("legacy", args.legacy), ("modern", args.modern)):
        if not p.exists():
            print(f"ERROR: {label} input does not exist: {p}", file=sys.stderr)
            return 2
    try:
        compression = parse_compression(args.compression)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    print(f"✓ Legacy input: {args.legacy}")
    print(f"✓ Modern input: {args.modern}")
    print(f"✓ Unmapped categories: {args.on_unmapped}")
    print()

    configs = [with_policy(LEGACY_CONFIG, args.on_unmapped), with_policy(MODERN_CONFIG, args.on_unmapped)]

    print("=" * 70)
    print("PIPELINE")
    print("=" * 70)
    sources = []
    for p in (args.legacy, args.modern):
        df = load_quarter(p)
        print(f" - loaded {p.name}: {len(df):,} rows, {len(df.columns)} cols")
        sources.append(df)

    result = run_pipeline(sources, configs, sentinel_station=args.sentinel_station)
    print()

    print("=" * 70)
    print("OUTPUTS")
    print("=" * 70)
    out_dir: Path = args.out_dir
    out_dir.mkdir(parents=True, exist_ok=True)
    write_summary_csv(result.length_summary, out_dir / "ride_length_summary.csv")
    write_summary_csv(result.weekly, out_dir / "weekly_usage.csv")

    if args.cleaned_parquet is not None:
        rows = write_parquet_atomic(result.cleaned, args.cleaned_parquet, compression=compression)
        print(f"Saved -> {args.cleaned_parquet} (rows={rows:,})")

    if not args.no_charts:
        from render_charts import render_weekly_charts

        render_weekly_charts(result.weekly, out_dir)

    if not args.no_highlights:
        md_path = out_dir / "summary_highlights.md"
        write_lines(md_path, result.highlights)
        print(f"Saved -> {md_path}")

    if not args.no_print:
        print()
        print_lines(result.highlights)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
