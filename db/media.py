"""Persistence helpers for the station media catalog."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field

from db.stations import Station

logger = logging.getLogger(__name__)


@dataclass
class MediaRecord:
    id: int
    path: str
    storage_location_id: int
    unique_id: str | None = None
    artist: str | None = None
    title: str | None = None
    album: str | None = None
    genre: str | None = None
    isrc: str | None = None
    length: float | None = None
    length_text: str | None = None
    art_updated_at: int = 0
    playlists: list[str] = field(default_factory=list)
    custom_fields: dict[str, str | None] = field(default_factory=dict)


@dataclass(frozen=True)
class IsrcWriteResult:
    """Outcome of an ISRC backfill write."""

    updated: bool
    media_id: int
    reason: str | None = None


def fetch_station_media(conn: sqlite3.Connection, station: Station) -> dict[int, MediaRecord]:
    """Return all media in the station's storage location keyed by media id.

    Playlist names are limited to the station's own playlists; media that sit
    in no playlist (or only in other stations' playlists) are still returned.
    """
    if station.media_storage_location_id is None:
        return {}

    cur = conn.cursor()
    cur.execute(
        """
        SELECT sm.id, sm.unique_id, sm.art_updated_at, sm.path, sm.length, sm.length_text,
               sm.isrc, sm.artist, sm.title, sm.album, sm.genre, sm.storage_location_id
        FROM station_media sm
        WHERE sm.storage_location_id=?
        ORDER BY sm.id ASC
        """,
        (station.media_storage_location_id,),
    )
    media_by_id: dict[int, MediaRecord] = {}
    for row in cur.fetchall():
        media_id = int(row["id"])
        media_by_id[media_id] = MediaRecord(
            id=media_id,
            path=str(row["path"]),
            storage_location_id=int(row["storage_location_id"]),
            unique_id=row["unique_id"],
            artist=row["artist"],
            title=row["title"],
            album=row["album"],
            genre=row["genre"],
            isrc=row["isrc"],
            length=row["length"],
            length_text=row["length_text"],
            art_updated_at=int(row["art_updated_at"] or 0),
        )
    if not media_by_id:
        return media_by_id

    cur.execute(
        """
        SELECT spm.media_id, sp.name
        FROM station_playlist_media spm
        JOIN station_playlists sp ON sp.id = spm.playlist_id AND sp.station_id = ?
        JOIN station_media sm ON sm.id = spm.media_id
        WHERE sm.storage_location_id=?
        ORDER BY spm.media_id ASC, sp.id ASC
        """,
        (station.id, station.media_storage_location_id),
    )
    for row in cur.fetchall():
        record = media_by_id.get(int(row["media_id"]))
        if record is not None:
            record.playlists.append(str(row["name"]))

    cur.execute(
        """
        SELECT smcf.media_id, cf.short_name, smcf.value
        FROM station_media_custom_field smcf
        JOIN custom_field cf ON cf.id = smcf.field_id
        JOIN station_media sm ON sm.id = smcf.media_id
        WHERE sm.storage_location_id=?
        """,
        (station.media_storage_location_id,),
    )
    for row in cur.fetchall():
        record = media_by_id.get(int(row["media_id"]))
        if record is not None:
            record.custom_fields[str(row["short_name"])] = row["value"]

    logger.info("[REPORT] media_fetched station_id=%s count=%s", station.id, len(media_by_id))
    return media_by_id


def set_media_isrc(conn: sqlite3.Connection, media_id: int, isrc: str) -> IsrcWriteResult:
    """Persist a discovered ISRC onto a media record.

    Storage errors are reported in the result rather than raised.
    """
    code = (isrc or "").strip()
    if not code:
        return IsrcWriteResult(updated=False, media_id=media_id, reason="empty_isrc")
    try:
        with conn:
            cur = conn.execute("UPDATE station_media SET isrc=? WHERE id=?", (code, media_id))
    except sqlite3.Error as exc:
        return IsrcWriteResult(updated=False, media_id=media_id, reason=f"storage_error: {exc}")
    if cur.rowcount == 0:
        return IsrcWriteResult(updated=False, media_id=media_id, reason="media_not_found")
    return IsrcWriteResult(updated=True, media_id=media_id)


def create_media(
    conn: sqlite3.Connection,
    *,
    storage_location_id: int,
    path: str,
    artist: str | None = None,
    title: str | None = None,
    album: str | None = None,
    genre: str | None = None,
    isrc: str | None = None,
    length: float | None = None,
    unique_id: str | None = None,
) -> int:
    """Insert a media record and return its id."""
    length_text = None
    if length is not None:
        minutes, seconds = divmod(int(round(length)), 60)
        length_text = f"{minutes}:{seconds:02d}"
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO station_media (
            storage_location_id, unique_id, path, length, length_text,
            isrc, artist, title, album, genre
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (storage_location_id, unique_id, path, length, length_text, isrc, artist, title, album, genre),
    )
    conn.commit()
    return int(cur.lastrowid)
