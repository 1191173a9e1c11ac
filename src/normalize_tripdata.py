"""
normalize_tripdata.py

Reconcile one raw quarterly table (all-string columns, standardized names)
with the canonical trip schema described in tripdata_schema.py.

Steps, in order:
  1. verify the columns named by the config exist (SchemaMismatchError if not)
  2. rename old -> canonical names
  3. keep canonical columns only (absent optional ones become null)
  4. cast text columns to pandas string, trim + lowercase them
  5. recode member_casual through the value map
  6. parse started_at / ended_at (several formats; unparsable -> NaT)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import pandas as pd
import pyarrow as pa
import pyarrow.compute as pc

from tripdata_schema import (
    CANONICAL_COLUMNS,
    NormalizationConfig,
    SchemaMismatchError,
    UnmappedCategoryError,
)


@dataclass
class NormalizeReport:
    label: str
    rows: int
    unmapped_values: Dict[str, int] = field(default_factory=dict)
    missing_category: int = 0
    unparsed_timestamps: Dict[str, int] = field(default_factory=dict)

    @property
    def unmapped_count(self) -> int:
        return int(sum(self.unmapped_values.values()))


# -----------------------------
# Timestamp parsing
# -----------------------------
TIMESTAMP_FORMATS: List[str] = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%Y-%m-%d",
]


def parse_timestamps(values: pd.Series) -> pd.Series:
    """
    Parse a string Series into naive datetime64[ns].

    Offsets and a trailing 'Z'/' UTC' are dropped before parsing; the first
    format that parses a value wins. Fractional seconds are split off, the
    whole-second part is parsed, and the fraction is added back (truncated to
    nanoseconds).
    """
    if pd.api.types.is_datetime64_any_dtype(values):
        return values.astype("datetime64[ns]")

    raw = values.astype("string").to_numpy(dtype=object, na_value=None)
    s = pa.array(raw, type=pa.string())

    s = pc.utf8_trim_whitespace(s)
    s = pc.replace_substring_regex(s, r"\s*UTC$", "")
    s = pc.replace_substring_regex(s, r"(\d{2}:\d{2}(?::\d{2})?(?:\.\d+)?)(?:Z|[+-]\d{2}:?\d{2})$", r"\1")
    frac = pc.extract_regex(s, r"^.*:\d{2}\.(?P<frac>\d+)$").flatten()[0]
    s = pc.replace_substring_regex(s, r"^(.*:\d{2})\.\d+$", r"\1")

    parsed_any = None
    for fmt in TIMESTAMP_FORMATS:
        parsed = pc.strptime(s, format=fmt, unit="us", error_is_null=True)
        parsed_any = parsed if parsed_any is None else pc.coalesce(parsed_any, parsed)

    out = pd.Series(parsed_any.to_numpy(zero_copy_only=False), index=values.index, name=values.name)
    out = out.astype("datetime64[ns]")

    digits = pd.Series(frac.to_numpy(zero_copy_only=False), index=values.index, name=values.name, dtype="string")
    digits = digits.fillna("0").str.slice(0, 9).str.pad(9, side="right", fillchar="0")
    return out + pd.to_timedelta(pd.to_numeric(digits).astype("int64"), unit="ns")


# -----------------------------
# Normalization
# -----------------------------
def check_required_columns(df: pd.DataFrame, config: NormalizationConfig) -> None:
    missing = [c for c in config.required_source_columns if c not in df.columns]
    if missing:
        raise SchemaMismatchError(
            f"{config.label}: source table is missing columns required by the mapping: {missing}\n"
            f"Columns present (first 25): {list(df.columns)[:25]}"
        )


def clean_text(values: pd.Series) -> pd.Series:
    return values.astype("string").str.strip().str.lower()


def recode_categories(
    values: pd.Series, value_map: Dict[str, str]
) -> Tuple[pd.Series, Dict[str, int]]:
    """
    Map cleaned category values through `value_map`.

    Returns the recoded series (unmapped values -> <NA>) and a
    {raw value: count} dict for the values that had no mapping.
    """
    mapped = values.map(value_map, na_action="ignore").astype("string")
    unmapped_mask = values.notna() & mapped.isna()
    counts = values[unmapped_mask].value_counts(dropna=True).sort_index()
    return mapped, {str(k): int(v) for k, v in counts.items()}


def normalize_table(df: pd.DataFrame, config: NormalizationConfig) -> Tuple[pd.DataFrame, NormalizeReport]:
    """
    Return a new DataFrame in the canonical schema, plus a NormalizeReport.

    Raises:
        SchemaMismatchError: a column named in config.column_map is absent.
        UnmappedCategoryError: config.on_unmapped == "raise" and a category
            value falls outside config.value_map.
    """
    check_required_columns(df, config)

    renamed = df.rename(columns=config.column_map)
    cols = {}
    for name in CANONICAL_COLUMNS:
        if name in renamed.columns:
            cols[name] = renamed[name]
        else:
            cols[name] = pd.Series(pd.NA, index=renamed.index, dtype="string")
    out = pd.DataFrame(cols, index=renamed.index).reset_index(drop=True)

    for name in config.string_columns:
        out[name] = clean_text(out[name])

    cat = config.category_column
    out[cat], unmapped = recode_categories(clean_text(out[cat]), config.value_map)
    report = NormalizeReport(label=config.label, rows=len(out), unmapped_values=unmapped)

    if unmapped:
        if config.on_unmapped == "raise":
            raise UnmappedCategoryError(
                f"{config.label}: {report.unmapped_count:,} '{cat}' value(s) outside the value map: {unmapped}"
            )
        print(
            f"WARNING: {config.label}: {report.unmapped_count:,} '{cat}' value(s) outside the value map "
            f"were set to null: {unmapped}"
        )
    report.missing_category = int(out[cat].isna().sum()) - report.unmapped_count

    for name in config.timestamp_columns:
        raw = out[name]
        out[name] = parse_timestamps(raw)
        unparsed = int((raw.notna() & out[name].isna()).sum())
        if unparsed:
            report.unparsed_timestamps[name] = unparsed

    return out, report
