"""
tripdata_schema.py

Canonical Divvy trip schema plus the declarative mapping tables used to
reconcile the legacy (2019-style) and modern (2020-style) quarterly exports.

Legacy columns:
  trip_id, start_time, end_time, bikeid, tripduration,
  from_station_id, from_station_name, to_station_id, to_station_name,
  usertype (Subscriber/Customer), gender, birthyear

Modern columns:
  ride_id, rideable_type, started_at, ended_at,
  start_station_name, start_station_id, end_station_name, end_station_id,
  start_lat, start_lng, end_lat, end_lng, member_casual
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Tuple


# -----------------------------
# Canonical columns
# -----------------------------
CANONICAL_COLS: List[Tuple[str, str]] = [
    ("ride_id", "string"),
    ("started_at", "datetime64[ns]"),
    ("ended_at", "datetime64[ns]"),
    ("rideable_type", "string"),
    ("start_station_id", "string"),
    ("start_station_name", "string"),
    ("end_station_id", "string"),
    ("end_station_name", "string"),
    ("member_casual", "string"),
]
CANONICAL_COLUMNS: List[str] = [n for n, _ in CANONICAL_COLS]
CANONICAL_DTYPES: Dict[str, str] = dict(CANONICAL_COLS)

TIMESTAMP_COLUMNS: Tuple[str, ...] = ("started_at", "ended_at")
STRING_COLUMNS: Tuple[str, ...] = tuple(n for n, t in CANONICAL_COLS if t == "string")

CATEGORY_COLUMN = "member_casual"
RIDER_CATEGORIES: Tuple[str, ...] = ("casual", "member")

# Derived by derive_features
DERIVED_COLUMNS: List[str] = ["date", "month", "day", "year", "day_of_week", "ride_length"]

# Sunday-first, matching the weekly report layout
WEEKDAY_ORDER: List[str] = [
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
]

# Divvy's internal test station (already lowercased by the normalizer)
SENTINEL_STATION = "hq qr"


# -----------------------------
# Mapping tables
# -----------------------------
LEGACY_COLUMN_MAP: Dict[str, str] = {
    "trip_id": "ride_id",
    "bikeid": "rideable_type",
    "start_time": "started_at",
    "end_time": "ended_at",
    "from_station_name": "start_station_name",
    "from_station_id": "start_station_id",
    "to_station_name": "end_station_name",
    "to_station_id": "end_station_id",
    "usertype": "member_casual",
}

MODERN_COLUMN_MAP: Dict[str, str] = {
    "ride_id": "ride_id",
    "rideable_type": "rideable_type",
    "started_at": "started_at",
    "ended_at": "ended_at",
    "member_casual": "member_casual",
}

# Keys are compared after trim + lowercase
MEMBER_CASUAL_MAP: Dict[str, str] = {
    "subscriber": "member",
    "customer": "casual",
    "member": "member",
    "casual": "casual",
}

UNMAPPED_POLICIES = ("warn", "raise")


@dataclass(frozen=True)
class NormalizationConfig:
    """How one source period is mapped onto the canonical schema."""

    label: str
    column_map: Dict[str, str]
    value_map: Dict[str, str] = field(default_factory=lambda: dict(MEMBER_CASUAL_MAP))
    category_column: str = CATEGORY_COLUMN
    timestamp_columns: Tuple[str, ...] = TIMESTAMP_COLUMNS
    string_columns: Tuple[str, ...] = STRING_COLUMNS
    on_unmapped: str = "warn"

    def __post_init__(self) -> None:
        if self.on_unmapped not in UNMAPPED_POLICIES:
            raise ValueError(
                f"Invalid on_unmapped policy: '{self.on_unmapped}'. "
                f"Must be one of: {', '.join(UNMAPPED_POLICIES)}"
            )
        targets = set(self.column_map.values())
        unknown = sorted(targets - set(CANONICAL_COLUMNS))
        if unknown:
            raise ValueError(f"column_map targets non-canonical columns: {unknown}")
        if self.category_column not in targets:
            raise ValueError(f"column_map must produce the category column '{self.category_column}'")

    @property
    def required_source_columns(self) -> List[str]:
        return list(self.column_map.keys())


LEGACY_CONFIG = NormalizationConfig(label="legacy", column_map=LEGACY_COLUMN_MAP)
MODERN_CONFIG = NormalizationConfig(label="modern", column_map=MODERN_COLUMN_MAP)


def with_policy(config: NormalizationConfig, on_unmapped: str) -> NormalizationConfig:
    """Copy of `config` using a different unmapped-category policy."""
    return replace(config, on_unmapped=on_unmapped)


class SchemaMismatchError(ValueError):
    """A table does not carry the columns/types a stage requires."""


class UnmappedCategoryError(ValueError):
    """Rider-category values outside the value map (raise policy only)."""
