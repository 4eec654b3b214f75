"""Play history storage and the per-song aggregation used by reports."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass


@dataclass(frozen=True)
class HistoryEntry:
    song_id: str
    text: str | None
    artist: str | None
    title: str | None
    media_id: int | None
    plays: int
    unique_listeners: int


def fetch_history_aggregates(
    conn: sqlite3.Connection,
    station_id: int,
    time_start: int,
    time_end: int,
) -> list[HistoryEntry]:
    """Return play count and summed unique listeners per song overlapping the window.

    Text, artist and title come together from the most recent play of each
    song. Rows are ordered by ascending song identifier.
    """
    cur = conn.cursor()
    cur.execute(
        """
        SELECT agg.song_id AS song_id,
               latest.text AS text,
               latest.artist AS artist,
               latest.title AS title,
               COALESCE(latest.media_id, agg.media_id) AS media_id,
               agg.plays AS plays,
               agg.unique_listeners AS unique_listeners
        FROM (
            SELECT sh.song_id AS song_id,
                   MAX(sh.id) AS latest_id,
                   MAX(sh.media_id) AS media_id,
                   COUNT(sh.id) AS plays,
                   COALESCE(SUM(sh.unique_listeners), 0) AS unique_listeners
            FROM song_history sh
            WHERE sh.station_id=?
              AND sh.timestamp_start <= ?
              AND sh.timestamp_end >= ?
            GROUP BY sh.song_id
        ) agg
        JOIN song_history latest ON latest.id = agg.latest_id
        ORDER BY agg.song_id ASC
        """,
        (station_id, int(time_end), int(time_start)),
    )
    return [
        HistoryEntry(
            song_id=str(row["song_id"]),
            text=row["text"],
            artist=row["artist"],
            title=row["title"],
            media_id=int(row["media_id"]) if row["media_id"] is not None else None,
            plays=int(row["plays"]),
            unique_listeners=int(row["unique_listeners"]),
        )
        for row in cur.fetchall()
    ]


def record_song_history(
    conn: sqlite3.Connection,
    *,
    station_id: int,
    song_id: str,
    timestamp_start: int,
    timestamp_end: int,
    unique_listeners: int = 0,
    artist: str | None = None,
    title: str | None = None,
    text: str | None = None,
    media_id: int | None = None,
) -> int:
    """Insert one play history row and return its id."""
    sid = (song_id or "").strip()
    if not sid:
        raise ValueError("song_id is required")
    if text is None and (artist or title):
        text = f"{artist} - {title}" if artist else title
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO song_history (
            station_id, song_id, text, artist, title, media_id,
            timestamp_start, timestamp_end, unique_listeners
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (station_id, sid, text, artist, title, media_id, int(timestamp_start), int(timestamp_end), int(unique_listeners)),
    )
    conn.commit()
    return int(cur.lastrowid)
