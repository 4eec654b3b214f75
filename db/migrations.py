"""SQLite migrations for station, media and play-history storage."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

logger = logging.getLogger(__name__)


def ensure_station_tables(conn: sqlite3.Connection) -> None:
    """Ensure station and storage location tables exist."""
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS storage_location (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            type TEXT NOT NULL DEFAULT 'station_media',
            path TEXT NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS station (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            short_name TEXT,
            timezone TEXT NOT NULL DEFAULT 'UTC',
            media_storage_location_id INTEGER,
            FOREIGN KEY (media_storage_location_id) REFERENCES storage_location(id) ON DELETE SET NULL
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_station_short_name ON station (short_name)")
    conn.commit()


def ensure_media_tables(conn: sqlite3.Connection) -> None:
    """Ensure media catalog, playlist and custom field tables exist."""
    ensure_station_tables(conn)
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS station_media (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            storage_location_id INTEGER NOT NULL,
            unique_id TEXT,
            song_id TEXT,
            path TEXT NOT NULL,
            length REAL,
            length_text TEXT,
            isrc TEXT,
            artist TEXT,
            title TEXT,
            album TEXT,
            genre TEXT,
            art_updated_at INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (storage_location_id) REFERENCES storage_location(id) ON DELETE CASCADE,
            UNIQUE (storage_location_id, path)
        )
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_station_media_storage_location "
        "ON station_media (storage_location_id)"
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS station_playlists (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            station_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            FOREIGN KEY (station_id) REFERENCES station(id) ON DELETE CASCADE
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS station_playlist_media (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            playlist_id INTEGER NOT NULL,
            media_id INTEGER NOT NULL,
            weight INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (playlist_id) REFERENCES station_playlists(id) ON DELETE CASCADE,
            FOREIGN KEY (media_id) REFERENCES station_media(id) ON DELETE CASCADE,
            UNIQUE (playlist_id, media_id)
        )
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_station_playlist_media_media "
        "ON station_playlist_media (media_id)"
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS custom_field (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            short_name TEXT NOT NULL UNIQUE
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS station_media_custom_field (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            media_id INTEGER NOT NULL,
            field_id INTEGER NOT NULL,
            value TEXT,
            FOREIGN KEY (media_id) REFERENCES station_media(id) ON DELETE CASCADE,
            FOREIGN KEY (field_id) REFERENCES custom_field(id) ON DELETE CASCADE,
            UNIQUE (media_id, field_id)
        )
        """
    )
    conn.commit()


def ensure_song_history_table(conn: sqlite3.Connection) -> None:
    """Ensure the play history table and its lookup indexes exist."""
    ensure_station_tables(conn)
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS song_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            station_id INTEGER NOT NULL,
            song_id TEXT NOT NULL,
            text TEXT,
            artist TEXT,
            title TEXT,
            media_id INTEGER,
            timestamp_start INTEGER NOT NULL,
            timestamp_end INTEGER NOT NULL DEFAULT 0,
            unique_listeners INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (station_id) REFERENCES station(id) ON DELETE CASCADE,
            FOREIGN KEY (media_id) REFERENCES station_media(id) ON DELETE SET NULL
        )
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_song_history_station_timestamps "
        "ON song_history (station_id, timestamp_start, timestamp_end)"
    )
    conn.commit()


def _table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    cur = conn.cursor()
    cur.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cur.fetchall()}


def add_station_requests_follow_format(conn: sqlite3.Connection) -> None:
    """Add the requests_follow_format flag to station."""
    if "requests_follow_format" in _table_columns(conn, "station"):
        return
    conn.execute("ALTER TABLE station ADD COLUMN requests_follow_format INTEGER NOT NULL DEFAULT 0")
    conn.commit()


def drop_station_requests_follow_format(conn: sqlite3.Connection) -> None:
    """Remove the requests_follow_format flag from station."""
    if "requests_follow_format" not in _table_columns(conn, "station"):
        return
    conn.execute("ALTER TABLE station DROP COLUMN requests_follow_format")
    conn.commit()


@dataclass(frozen=True)
class Migration:
    version: str
    description: str
    up: Callable[[sqlite3.Connection], None]
    down: Callable[[sqlite3.Connection], None]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        version="20240819132902",
        description="Add requests_follow_format field to station",
        up=add_station_requests_follow_format,
        down=drop_station_requests_follow_format,
    ),
)


def _ensure_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            description TEXT,
            applied_at TEXT NOT NULL
        )
        """
    )
    conn.commit()


def applied_migrations(conn: sqlite3.Connection) -> list[str]:
    """Return applied migration versions, oldest first."""
    _ensure_migrations_table(conn)
    cur = conn.cursor()
    cur.execute("SELECT version FROM schema_migrations ORDER BY version ASC")
    return [str(row[0]) for row in cur.fetchall()]


def migrate_up(conn: sqlite3.Connection) -> list[str]:
    """Create base tables and apply pending migrations. Returns applied versions."""
    ensure_media_tables(conn)
    ensure_song_history_table(conn)
    done = set(applied_migrations(conn))
    applied = []
    for migration in MIGRATIONS:
        if migration.version in done:
            continue
        logger.info("[MIGRATION] up version=%s description=%s", migration.version, migration.description)
        migration.up(conn)
        conn.execute(
            "INSERT INTO schema_migrations (version, description, applied_at) VALUES (?, ?, ?)",
            (migration.version, migration.description, datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()
        applied.append(migration.version)
    return applied


def migrate_down(conn: sqlite3.Connection) -> str | None:
    """Revert the most recently applied migration. Returns its version, if any."""
    done = applied_migrations(conn)
    if not done:
        return None
    by_version = {migration.version: migration for migration in MIGRATIONS}
    version = done[-1]
    migration = by_version.get(version)
    if migration is None:
        raise ValueError(f"unknown migration version: {version}")
    logger.info("[MIGRATION] down version=%s description=%s", migration.version, migration.description)
    migration.down(conn)
    conn.execute("DELETE FROM schema_migrations WHERE version=?", (version,))
    conn.commit()
    return version
