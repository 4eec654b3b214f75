from __future__ import annotations

import importlib
import sqlite3
import sys
from datetime import datetime, timezone

import pytest

fastapi = pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from db.media import create_media
from db.song_history import record_song_history
from db.stations import create_station

JAN_15 = int(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc).timestamp())


class _FixedLookup:
    def __init__(self, isrc):
        self.isrc = isrc
        self.calls = 0

    def find_recordings_for_song(self, song, includes=("isrcs",)):
        self.calls += 1
        yield {"isrcs": [self.isrc]}


def _build_client(db_path, lookup=None) -> tuple[TestClient, object]:
    sys.modules.pop("api.main", None)
    module = importlib.import_module("api.main")
    module.app.router.on_startup.clear()
    module.app.state.db_path = str(db_path)
    module.app.state.recording_lookup = lookup
    return TestClient(module.app), module


@pytest.fixture
def seeded(db_conn, demo_station):
    media_id = create_media(
        db_conn,
        storage_location_id=demo_station.media_storage_location_id,
        path="artist_x/song_y.mp3",
        artist="Artist X",
        title="Song Y",
        album="Album Z",
    )
    record_song_history(
        db_conn,
        station_id=demo_station.id,
        song_id="s1",
        media_id=media_id,
        timestamp_start=JAN_15,
        timestamp_end=JAN_15 + 200,
        unique_listeners=7,
    )
    return demo_station


def test_post_returns_text_download(db_path, seeded) -> None:
    client, _ = _build_client(db_path)

    response = client.post(
        f"/api/stations/{seeded.id}/reports/soundexchange",
        data={"start_date": "2024-01-01", "end_date": "2024-01-31"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["content-disposition"] == 'attachment; filename="DEMO01012024-31012024_A.txt"'
    assert response.text.split("\n")[1] == "^DEMO RADIO^|^A^|^ARTIST X^|^SONG Y^|^^|^ALBUM Z^|^^|7"


def test_post_by_short_name_with_isrc_lookup(db_path, seeded) -> None:
    lookup = _FixedLookup("USABC2400001")
    client, _ = _build_client(db_path, lookup=lookup)

    response = client.post(
        "/api/stations/demo/reports/soundexchange",
        data={"start_date": "2024-01-01", "end_date": "2024-01-31", "fetch_isrc": "true"},
    )

    assert response.status_code == 200
    assert "^USABC2400001^" in response.text
    assert lookup.calls == 1


def test_invalid_range_rerenders_form(db_path, seeded) -> None:
    client, _ = _build_client(db_path)

    response = client.post(
        f"/api/stations/{seeded.id}/reports/soundexchange",
        data={"start_date": "2024-02-01", "end_date": "2024-01-01"},
    )

    assert response.status_code == 400
    payload = response.json()
    assert payload["render_mode"] == "edit"
    assert payload["title"] == "SoundExchange Report"
    assert "end_date" in payload["errors"]
    assert payload["form"]["start_date"] == "2024-02-01"


def test_malformed_date_rerenders_form(db_path, seeded) -> None:
    client, _ = _build_client(db_path)

    response = client.post(
        f"/api/stations/{seeded.id}/reports/soundexchange",
        data={"start_date": "01/01/2024", "end_date": "2024-01-31"},
    )

    assert response.status_code == 400
    assert set(response.json()["errors"]) == {"start_date"}


def test_get_form_defaults_to_previous_month(db_path, seeded) -> None:
    client, _ = _build_client(db_path)

    response = client.get(f"/api/stations/{seeded.id}/reports/soundexchange")

    assert response.status_code == 200
    payload = response.json()
    assert payload["render_mode"] == "edit"
    assert payload["form"]["fetch_isrc"] is False
    assert payload["form"]["start_date"].endswith("-01")
    assert payload["form"]["start_date"] <= payload["form"]["end_date"]
    assert payload["station"]["short_name"] == "demo"


def test_unknown_station_is_404(db_path, seeded) -> None:
    client, _ = _build_client(db_path)

    response = client.post("/api/stations/999/reports/soundexchange", data={})

    assert response.status_code == 404


def test_fetch_failure_is_500(db_path, seeded, db_conn, monkeypatch) -> None:
    db_conn.execute("DROP TABLE song_history")
    db_conn.commit()
    client, module = _build_client(db_path)

    def _connect_without_migrations(path):
        conn = sqlite3.connect(path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    monkeypatch.setattr(module, "connect", _connect_without_migrations)

    response = client.post(
        f"/api/stations/{seeded.id}/reports/soundexchange",
        data={"start_date": "2024-01-01", "end_date": "2024-01-31"},
    )

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to build report"


def test_non_ascii_short_name_downloads(db_path, db_conn, seeded) -> None:
    station = create_station(
        db_conn,
        name="東京 FM",
        short_name="東京",
        media_storage_location_id=seeded.media_storage_location_id,
    )
    client, _ = _build_client(db_path)

    response = client.post(
        f"/api/stations/{station.id}/reports/soundexchange",
        data={"start_date": "2024-01-01", "end_date": "2024-01-31"},
    )

    assert response.status_code == 200
    assert response.headers["content-disposition"] == (
        'attachment; filename="01012024-31012024_A.txt"; '
        "filename*=UTF-8''%E6%9D%B1%E4%BA%AC01012024-31012024_A.txt"
    )
    assert response.text.startswith("^NAME_OF_SERVICE^")
