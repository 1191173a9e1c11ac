"""Tests for mapping both source schemas onto the canonical trip schema."""

import pandas as pd
import pytest

from normalize_tripdata import clean_text, normalize_table, parse_timestamps, recode_categories
from tripdata_schema import (
    CANONICAL_COLUMNS,
    CANONICAL_DTYPES,
    LEGACY_CONFIG,
    MEMBER_CASUAL_MAP,
    MODERN_CONFIG,
    NormalizationConfig,
    SchemaMismatchError,
    UnmappedCategoryError,
    with_policy,
)


def test_recode_mixed_case_values():
    values = clean_text(pd.Series(["Subscriber", "Customer", " SUBSCRIBER ", "member", None], dtype="string"))
    mapped, unmapped = recode_categories(values, MEMBER_CASUAL_MAP)

    assert mapped.tolist()[:4] == ["member", "casual", "member", "member"]
    assert pd.isna(mapped.iloc[4])
    assert unmapped == {}


def test_recode_reports_unmapped_values():
    values = clean_text(pd.Series(["Dependent", "casual", "dependent", "staff"], dtype="string"))
    mapped, unmapped = recode_categories(values, MEMBER_CASUAL_MAP)

    assert mapped.iloc[1] == "casual"
    assert mapped.isna().tolist() == [True, False, True, True]
    assert unmapped == {"dependent": 2, "staff": 1}


class TestParseTimestamps:
    def test_formats(self):
        raw = pd.Series(
            [
                "2019-01-01 10:00:00",
                "2019-01-01T10:00:00Z",
                "2019-01-01 10:00:00.123",
                "2019-01-01 10:00:00+00:00",
                "01/01/2019 10:00",
                "not a time",
                None,
            ],
            dtype="string",
        )
        parsed = parse_timestamps(raw)

        assert str(parsed.dtype) == "datetime64[ns]"
        expected = pd.Timestamp("2019-01-01 10:00:00")
        assert (parsed.iloc[[0, 1, 3, 4]] == expected).all()
        assert parsed.iloc[2] == pd.Timestamp("2019-01-01 10:00:00.123")
        assert pd.isna(parsed.iloc[5])
        assert pd.isna(parsed.iloc[6])

    def test_fractional_seconds_kept(self):
        raw = pd.Series(["2019-01-01 10:00:00.9", "2019-01-01T10:00:00.250Z", "2019-01-01 10:00:00.1234567891"],
                        dtype="string")
        parsed = parse_timestamps(raw)

        assert parsed.iloc[0] == pd.Timestamp("2019-01-01 10:00:00.900")
        assert parsed.iloc[1] == pd.Timestamp("2019-01-01 10:00:00.250")
        assert parsed.iloc[2] == pd.Timestamp("2019-01-01 10:00:00.123456789")

    def test_already_datetime(self):
        raw = pd.Series(pd.to_datetime(["2020-01-21 20:06:59"]))
        assert parse_timestamps(raw).iloc[0] == pd.Timestamp("2020-01-21 20:06:59")


class TestNormalizeLegacy:
    def setup_method(self):
        from conftest import LEGACY_COLUMNS, LEGACY_ROWS, make_raw

        self.raw = make_raw(LEGACY_ROWS, LEGACY_COLUMNS)
        self.df, self.report = normalize_table(self.raw, LEGACY_CONFIG)

    def test_canonical_columns_and_types(self):
        assert list(self.df.columns) == CANONICAL_COLUMNS
        assert {c: str(t) for c, t in self.df.dtypes.items()} == CANONICAL_DTYPES

    def test_renamed_values(self):
        first = self.df.iloc[0]
        assert first["ride_id"] == "21742443"
        assert first["rideable_type"] == "2167"
        assert first["start_station_id"] == "199"
        assert first["start_station_name"] == "wabash ave & grand ave"
        assert first["end_station_name"] == "milwaukee ave & grand ave"
        assert first["started_at"] == pd.Timestamp("2019-01-01 00:04:37")

    def test_recode(self):
        assert self.df["member_casual"].tolist() == ["member", "casual", "member", "member"]
        assert self.report.unmapped_values == {}
        assert self.report.missing_category == 0

    def test_legacy_only_columns_dropped(self):
        for col in ("gender", "birthyear", "tripduration", "trip_id", "usertype"):
            assert col not in self.df.columns

    def test_source_untouched(self):
        assert "trip_id" in self.raw.columns
        assert self.raw.loc[0, "usertype"] == "Subscriber"


class TestNormalizeModern:
    def test_unmapped_value_warns_and_nulls(self, modern_raw, capsys):
        df, report = normalize_table(modern_raw, MODERN_CONFIG)

        assert list(df.columns) == CANONICAL_COLUMNS
        assert report.rows == 4
        assert report.unmapped_values == {"dependent": 1}
        assert report.unmapped_count == 1
        assert pd.isna(df.loc[3, "member_casual"])
        assert "WARNING: modern" in capsys.readouterr().out

    def test_unmapped_value_raises_under_raise_policy(self, modern_raw):
        with pytest.raises(UnmappedCategoryError, match="dependent"):
            normalize_table(modern_raw, with_policy(MODERN_CONFIG, "raise"))

    def test_lat_lng_dropped_and_text_lowercased(self, modern_raw):
        df, _ = normalize_table(modern_raw, MODERN_CONFIG)
        assert "start_lat" not in df.columns
        assert df.loc[0, "ride_id"] == "eacb19130b0cda4a"
        assert df.loc[2, "start_station_name"] == "hq qr"

    def test_optional_station_columns_null_filled(self, modern_raw):
        trimmed = modern_raw.drop(columns=["end_station_name", "end_station_id"])
        df, _ = normalize_table(trimmed, MODERN_CONFIG)
        assert df["end_station_name"].isna().all()
        assert str(df["end_station_name"].dtype) == "string"


class TestSchemaMismatch:
    def test_missing_mapped_column_fails_fast(self, legacy_raw):
        with pytest.raises(SchemaMismatchError, match="usertype"):
            normalize_table(legacy_raw.drop(columns=["usertype"]), LEGACY_CONFIG)

    def test_wrong_config_for_source(self, modern_raw):
        with pytest.raises(SchemaMismatchError, match="trip_id"):
            normalize_table(modern_raw, LEGACY_CONFIG)


class TestConfig:
    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            NormalizationConfig(label="x", column_map={"usertype": "member_casual"}, on_unmapped="ignore")

    def test_non_canonical_target(self):
        with pytest.raises(ValueError, match="non-canonical"):
            NormalizationConfig(label="x", column_map={"usertype": "member_casual", "gender": "gender"})

    def test_with_policy_keeps_maps(self):
        strict = with_policy(LEGACY_CONFIG, "raise")
        assert strict.on_unmapped == "raise"
        assert strict.column_map == LEGACY_CONFIG.column_map
        assert LEGACY_CONFIG.on_unmapped == "warn"
