"""Shared fixtures: small raw quarters in both source schemas."""

import sys
from pathlib import Path

import pandas as pd
import pytest

# ensure src/ is importable when the project isn't installed editable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


LEGACY_ROWS = [
    # trip_id, start_time, end_time, bikeid, tripduration, from_id, from_name, to_id, to_name, usertype, gender, birthyear
    ("21742443", "2019-01-01 00:04:37", "2019-01-01 00:11:07", "2167", "390.0",
     "199", "Wabash Ave & Grand Ave", "84", "Milwaukee Ave & Grand Ave", "Subscriber", "Male", "1989"),
    ("21742444", "2019-01-01 00:08:13", "2019-01-01 00:15:34", "4386", "441.0",
     "44", "State St & Randolph St", "624", "Dearborn St & Van Buren St (*)", "Customer", "Female", "1990"),
    ("21742445", "2019-01-01 10:00:00", "2019-01-01 10:05:30", "1524", "330.0",
     "15", "Racine Ave & 18th St", "644", "Western Ave & Fillmore St (*)", " SUBSCRIBER ", None, None),
    ("21742446", "2019-01-02 09:00:00", "2019-01-02 08:59:00", "252", "-60.0",
     "123", "California Ave & Milwaukee Ave", "176", "Clark St & Elm St", "Subscriber", "Male", "1975"),
]
LEGACY_COLUMNS = [
    "trip_id", "start_time", "end_time", "bikeid", "tripduration",
    "from_station_id", "from_station_name", "to_station_id", "to_station_name",
    "usertype", "gender", "birthyear",
]

MODERN_ROWS = [
    # ride_id, rideable_type, started_at, ended_at, start_name, start_id, end_name, end_id, lat/lng x4, member_casual
    ("EACB19130B0CDA4A", "docked_bike", "2020-01-21 20:06:59", "2020-01-21 20:14:30",
     "Western Ave & Leland Ave", "239", "Clark St & Leland Ave", "326",
     "41.9665", "-87.6884", "41.9671", "-87.6674", "member"),
    ("8FED874C809DC021", "docked_bike", "2020-01-30 14:22:39", "2020-01-30 14:26:22",
     "Clark St & Montrose Ave", "234", "Southport Ave & Irving Park Rd", "318",
     "41.9616", "-87.666", "41.9542", "-87.6644", "member"),
    ("A2B9D1F6E07C4C21", "docked_bike", "2020-03-01 10:00:00", "2020-03-01 10:10:00",
     "HQ QR", "675", "HQ QR", "675",
     "41.8899", "-87.6803", "41.8899", "-87.6803", "casual"),
    ("55D2FEB1A1E4C0E9", "docked_bike", "2020-01-20 08:00:00", "2020-01-20 08:30:00",
     "Sheffield Ave & Fullerton Ave", "67", "Clark St & Lincoln Ave", "141",
     "41.9256", "-87.6537", "41.9157", "-87.6346", "Dependent"),
]
MODERN_COLUMNS = [
    "ride_id", "rideable_type", "started_at", "ended_at",
    "start_station_name", "start_station_id", "end_station_name", "end_station_id",
    "start_lat", "start_lng", "end_lat", "end_lng", "member_casual",
]


def make_raw(rows, columns) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=columns).astype("string")


@pytest.fixture
def legacy_raw() -> pd.DataFrame:
    return make_raw(LEGACY_ROWS, LEGACY_COLUMNS)


@pytest.fixture
def modern_raw() -> pd.DataFrame:
    return make_raw(MODERN_ROWS, MODERN_COLUMNS)


@pytest.fixture
def write_csv(tmp_path):
    """Write (rows, columns) to a CSV under tmp_path and return its path."""

    def _write(name, rows, columns):
        path = tmp_path / name
        pd.DataFrame(rows, columns=columns).to_csv(path, index=False)
        return path

    return _write
