from __future__ import annotations

from db.media import create_media, fetch_station_media, set_media_isrc
from db.stations import create_station, create_storage_location, get_station


def test_fetch_station_media_scopes_by_storage_location(db_conn, demo_station) -> None:
    other_location = create_storage_location(db_conn, "/var/radio/other/media")
    own = create_media(
        db_conn,
        storage_location_id=demo_station.media_storage_location_id,
        path="own.mp3",
        artist="Own",
        title="Track",
        length=245.4,
    )
    create_media(db_conn, storage_location_id=other_location, path="foreign.mp3", artist="Foreign")

    media = fetch_station_media(db_conn, demo_station)

    assert list(media) == [own]
    assert media[own].length_text == "4:05"
    assert media[own].playlists == []


def test_playlists_are_limited_to_station_but_media_kept(db_conn, demo_station) -> None:
    other = create_station(
        db_conn,
        name="Sister Station",
        short_name="sister",
        media_storage_location_id=demo_station.media_storage_location_id,
    )
    in_own = create_media(db_conn, storage_location_id=demo_station.media_storage_location_id, path="a.mp3")
    only_sister = create_media(db_conn, storage_location_id=demo_station.media_storage_location_id, path="b.mp3")
    cur = db_conn.cursor()
    cur.execute("INSERT INTO station_playlists (station_id, name) VALUES (?, 'Daytime')", (demo_station.id,))
    own_playlist = cur.lastrowid
    cur.execute("INSERT INTO station_playlists (station_id, name) VALUES (?, 'Sister Night')", (other.id,))
    sister_playlist = cur.lastrowid
    cur.execute("INSERT INTO station_playlist_media (playlist_id, media_id) VALUES (?, ?)", (own_playlist, in_own))
    cur.execute("INSERT INTO station_playlist_media (playlist_id, media_id) VALUES (?, ?)", (sister_playlist, in_own))
    cur.execute(
        "INSERT INTO station_playlist_media (playlist_id, media_id) VALUES (?, ?)", (sister_playlist, only_sister)
    )
    db_conn.commit()

    media = fetch_station_media(db_conn, demo_station)

    assert set(media) == {in_own, only_sister}
    assert media[in_own].playlists == ["Daytime"]
    assert media[only_sister].playlists == []


def test_custom_fields_are_attached(db_conn, demo_station) -> None:
    media_id = create_media(db_conn, storage_location_id=demo_station.media_storage_location_id, path="c.mp3")
    cur = db_conn.cursor()
    cur.execute("INSERT INTO custom_field (name, short_name) VALUES ('Record Label', 'label')")
    cur.execute(
        "INSERT INTO station_media_custom_field (media_id, field_id, value) VALUES (?, ?, ?)",
        (media_id, cur.lastrowid, "Indie Co"),
    )
    db_conn.commit()

    assert fetch_station_media(db_conn, demo_station)[media_id].custom_fields == {"label": "Indie Co"}


def test_station_without_storage_location_has_no_media(db_conn) -> None:
    station = create_station(db_conn, name="Empty FM")

    assert fetch_station_media(db_conn, station) == {}


def test_set_media_isrc_results(db_conn, demo_station) -> None:
    media_id = create_media(db_conn, storage_location_id=demo_station.media_storage_location_id, path="d.mp3")

    assert set_media_isrc(db_conn, media_id, "USABC2400001").updated is True
    assert set_media_isrc(db_conn, media_id, "USABC2400001").updated is True
    missing = set_media_isrc(db_conn, 9999, "USABC2400001")
    assert (missing.updated, missing.reason) == (False, "media_not_found")
    assert set_media_isrc(db_conn, media_id, " ").reason == "empty_isrc"


def test_short_name_is_derived_when_missing(db_conn) -> None:
    station = create_station(db_conn, name="Klassik Radio 101!")

    assert get_station(db_conn, station.id).get_short_name() == "klassik_radio_101"
