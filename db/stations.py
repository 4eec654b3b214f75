"""Station (tenant) records."""

from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass

from config.settings import DEFAULT_TIMEZONE

_SHORT_NAME_INVALID_RE = re.compile(r"[^a-z0-9]+")


class StationNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class Station:
    id: int
    name: str
    short_name: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    media_storage_location_id: int | None = None
    requests_follow_format: int = 0

    def get_short_name(self) -> str:
        """Return the configured short name, or one derived from the station name."""
        if self.short_name and self.short_name.strip():
            return self.short_name.strip()
        return _SHORT_NAME_INVALID_RE.sub("_", self.name.lower()).strip("_")


def _row_to_station(row: sqlite3.Row) -> Station:
    keys = row.keys()
    return Station(
        id=int(row["id"]),
        name=str(row["name"] or ""),
        short_name=row["short_name"],
        timezone=str(row["timezone"] or DEFAULT_TIMEZONE),
        media_storage_location_id=row["media_storage_location_id"],
        requests_follow_format=int(row["requests_follow_format"] or 0) if "requests_follow_format" in keys else 0,
    )


def get_station(conn: sqlite3.Connection, station_ref: int | str) -> Station:
    """Load a station by numeric id or short name."""
    cur = conn.cursor()
    ref = str(station_ref).strip()
    if ref.isdigit():
        cur.execute("SELECT * FROM station WHERE id=?", (int(ref),))
    else:
        cur.execute("SELECT * FROM station WHERE lower(short_name)=lower(?) ORDER BY id ASC LIMIT 1", (ref,))
    row = cur.fetchone()
    if row is None:
        raise StationNotFoundError(f"station not found: {ref}")
    return _row_to_station(row)


def create_station(
    conn: sqlite3.Connection,
    *,
    name: str,
    short_name: str | None = None,
    timezone: str = DEFAULT_TIMEZONE,
    media_storage_location_id: int | None = None,
    requests_follow_format: int = 0,
) -> Station:
    """Insert a station and return it."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("name is required")
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO station (name, short_name, timezone, media_storage_location_id, requests_follow_format)
        VALUES (?, ?, ?, ?, ?)
        """,
        (cleaned, short_name, timezone, media_storage_location_id, int(bool(requests_follow_format))),
    )
    conn.commit()
    return get_station(conn, int(cur.lastrowid))


def create_storage_location(conn: sqlite3.Connection, path: str) -> int:
    cur = conn.cursor()
    cur.execute("INSERT INTO storage_location (type, path) VALUES ('station_media', ?)", (path,))
    conn.commit()
    return int(cur.lastrowid)
