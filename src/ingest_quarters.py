"""
ingest_quarters.py

Wholesale loading of one quarterly Divvy export (CSV or Excel) into a pandas
DataFrame, plus the atomic Parquet writer used for the cleaned dataset.

Notes:
- Every source column is read as string; typing happens in the normalizer.
- Headers are sanitized (no empty/duplicate header crashes) and then
  standardized to snake_case.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import pyarrow as pa
import pyarrow.csv as pacsv
import pyarrow.parquet as pq


CSV_SUFFIXES = (".csv",)
EXCEL_SUFFIXES = (".xlsx", ".xls")


# -----------------------------
# Header sanitization + naming
# -----------------------------
_NAME_CLEAN_RE = re.compile(r"[^0-9a-zA-Z_]+")


def standardize_name(name: str) -> str:
    """Lower, strip, replace spaces/punct with underscore, collapse underscores."""
    n = name.strip().lower()
    n = n.replace("\ufeff", "")
    n = n.replace(" ", "_")
    n = _NAME_CLEAN_RE.sub("_", n)
    n = re.sub(r"_+", "_", n).strip("_")
    return n


def sanitize_header(header: List[str]) -> List[str]:
    """
    Make header names non-empty and unique.

    Empty names become col_<idx>; repeats (case-insensitive) get __<n>.
    """
    out: List[str] = []
    counts: Dict[str, int] = {}
    for i, raw in enumerate(header):
        h = "" if raw is None else str(raw).strip()
        if h.startswith("\ufeff"):
            h = h.lstrip("\ufeff")
        if h == "" or h.lower().startswith("unnamed:"):
            h = f"col_{i+1}"
        base = h
        key = base.lower()
        if key in counts:
            counts[key] += 1
            base = f"{base}__{counts[key]}"
        else:
            counts[key] = 1
        out.append(base)
    return out


def standardize_header(header: List[str]) -> List[str]:
    # standardizing can collide two distinct raw names, so dedupe again
    return sanitize_header([standardize_name(h) for h in sanitize_header(header)])


# -----------------------------
# Readers
# -----------------------------
def _read_csv_as_strings(path: Path) -> pd.DataFrame:
    with pacsv.open_csv(str(path), read_options=pacsv.ReadOptions(block_size=1 << 16)) as peek:
        raw_header = peek.schema.names

    header = sanitize_header(raw_header)
    col_types = {n: pa.string() for n in header}

    read_opts = pacsv.ReadOptions(column_names=header, skip_rows=1)
    convert_opts = pacsv.ConvertOptions(column_types=col_types, strings_can_be_null=True)
    tbl = pacsv.read_csv(str(path), read_options=read_opts, convert_options=convert_opts)

    df = tbl.to_pandas(types_mapper={pa.string(): pd.StringDtype()}.get)
    df.columns = standardize_header(list(df.columns))
    return df


def _read_excel_as_strings(path: Path, sheet_name: int | str = 0) -> pd.DataFrame:
    df = pd.read_excel(path, sheet_name=sheet_name, dtype=str)
    df.columns = standardize_header([str(c) for c in df.columns])
    return df.astype("string")


def load_quarter(path: Path, sheet_name: int | str = 0) -> pd.DataFrame:
    """
    Read one quarterly export fully into memory, all columns as pandas string.

    Raises:
        FileNotFoundError: the file does not exist.
        ValueError: the suffix is neither CSV nor Excel.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing input file: {path}")

    suffix = path.suffix.lower()
    if suffix in CSV_SUFFIXES:
        return _read_csv_as_strings(path)
    if suffix in EXCEL_SUFFIXES:
        return _read_excel_as_strings(path, sheet_name=sheet_name)
    raise ValueError(
        f"Unsupported input format '{path.suffix}' for {path.name}. "
        f"Expected one of: {', '.join(CSV_SUFFIXES + EXCEL_SUFFIXES)}"
    )


# -----------------------------
# Parquet writing (atomic)
# -----------------------------
def parse_compression(s: str) -> Optional[str]:
    s = s.strip().lower()
    if s in ("none", "off", "no", "false", ""):
        return None
    if s in ("snappy", "gzip", "zstd", "brotli", "lz4"):
        return s
    raise ValueError(f"Unsupported compression: {s}")


def write_parquet_atomic(df: pd.DataFrame, out_path: Path, compression: Optional[str] = None) -> int:
    """
    Write `df` to a single parquet file via a temp file + os.replace.
    Returns rows written.
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = out_path.parent / f"{out_path.name}.tmp.{os.getpid()}"

    tbl = pa.Table.from_pandas(df, preserve_index=False)
    try:
        pq.write_table(tbl, tmp_path, compression=compression, write_statistics=True)
        os.replace(str(tmp_path), str(out_path))
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink()
        raise
    return tbl.num_rows
