"""
derive_features.py

Calendar + ride-length features on the merged trip table, then the row
filter that produces the cleaned dataset.

Dropped rows:
  - ride_length < 0 (ended_at before started_at)
  - start_station_name equal to the test station sentinel
  - member_casual outside {member, casual} (left null by the normalizer)
Rows with a missing ride_length are kept; the aggregates skip them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np
import pandas as pd

from tripdata_schema import CATEGORY_COLUMN, RIDER_CATEGORIES, SENTINEL_STATION


@dataclass
class FilterReport:
    rows_before: int
    rows_after: int
    by_reason: Dict[str, int] = field(default_factory=dict)

    @property
    def dropped(self) -> int:
        return self.rows_before - self.rows_after


def add_calendar_fields(df: pd.DataFrame, time_col: str = "started_at") -> pd.DataFrame:
    out = df.copy()
    started = out[time_col]
    out["date"] = started.dt.date.where(started.notna(), None)
    out["month"] = started.dt.month.astype("Int64")
    out["day"] = started.dt.day.astype("Int64")
    out["year"] = started.dt.year.astype("Int64")
    out["day_of_week"] = started.dt.day_name().astype("string")
    return out


def add_ride_length(df: pd.DataFrame) -> pd.DataFrame:
    """ride_length = ended_at - started_at, in whole seconds (floored)."""
    out = df.copy()
    seconds = (out["ended_at"] - out["started_at"]).dt.total_seconds()
    out["ride_length"] = np.floor(seconds).astype("Int64")
    return out


def filter_invalid_rides(
    df: pd.DataFrame, sentinel_station: str = SENTINEL_STATION
) -> Tuple[pd.DataFrame, FilterReport]:
    if "ride_length" not in df.columns:
        raise KeyError("ride_length must be derived before filtering (call add_ride_length first)")

    negative = df["ride_length"].lt(0).fillna(False).to_numpy(dtype=bool)

    sentinel = sentinel_station.strip().lower()
    station = df["start_station_name"].astype("string").str.strip().str.lower()
    test_station = station.eq(sentinel).fillna(False).to_numpy(dtype=bool)

    bad_category = (~df[CATEGORY_COLUMN].isin(RIDER_CATEGORIES).fillna(False)).to_numpy(dtype=bool)

    drop = negative | test_station | bad_category
    cleaned = df.loc[~drop].reset_index(drop=True)

    report = FilterReport(
        rows_before=len(df),
        rows_after=len(cleaned),
        by_reason={
            "negative_ride_length": int(negative.sum()),
            "test_station": int(test_station.sum()),
            "unknown_rider_category": int(bad_category.sum()),
        },
    )
    return cleaned, report


def derive_features(
    df: pd.DataFrame, sentinel_station: str = SENTINEL_STATION
) -> Tuple[pd.DataFrame, FilterReport]:
    """Calendar fields, ride_length, then the invalid-row filter."""
    out = add_calendar_fields(df)
    out = add_ride_length(out)
    return filter_invalid_rides(out, sentinel_station=sentinel_station)
