"""Row-wise merge of normalized quarterly tables."""

from __future__ import annotations

from typing import Dict, List, Sequence

import pandas as pd

from tripdata_schema import SchemaMismatchError


def schema_of(df: pd.DataFrame) -> Dict[str, str]:
    return {str(c): str(t) for c, t in df.dtypes.items()}


def check_same_schema(frames: Sequence[pd.DataFrame]) -> None:
    """Raise SchemaMismatchError unless every frame has the first frame's columns and dtypes."""
    expected = schema_of(frames[0])
    for i, df in enumerate(frames[1:], start=1):
        got = schema_of(df)
        if got == expected:
            continue
        missing = sorted(set(expected) - set(got))
        extra = sorted(set(got) - set(expected))
        retyped = sorted(
            f"{c}: {expected[c]} != {got[c]}" for c in set(expected) & set(got) if expected[c] != got[c]
        )
        raise SchemaMismatchError(
            f"Table {i} does not match table 0: missing={missing} extra={extra} retyped={retyped}"
        )


def merge_tables(frames: Sequence[pd.DataFrame]) -> pd.DataFrame:
    """
    Concatenate normalized tables, keeping every row (no dedup).
    Column order follows the first table.
    """
    frames = list(frames)
    if not frames:
        raise ValueError("merge_tables needs at least one table")
    check_same_schema(frames)

    order: List[str] = list(frames[0].columns)
    merged = pd.concat([df[order] for df in frames], ignore_index=True)
    return merged.astype(frames[0].dtypes.to_dict())
