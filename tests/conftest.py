import sys
from pathlib import Path

import pytest


# Ensure tests can import project packages regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from config import settings  # noqa: E402
from db.connection import connect  # noqa: E402
from db.stations import create_station, create_storage_location  # noqa: E402


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "station_reports.sqlite3"
    monkeypatch.setattr(settings, "DB_PATH", str(path))
    return path


@pytest.fixture
def db_conn(db_path):
    conn = connect(str(db_path))
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def demo_station(db_conn):
    storage_location_id = create_storage_location(db_conn, "/var/radio/demo/media")
    return create_station(
        db_conn,
        name="Demo Radio",
        short_name="demo",
        timezone="UTC",
        media_storage_location_id=storage_location_id,
    )
