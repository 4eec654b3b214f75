"""SQLite connection helpers shared by the station report stores."""

from __future__ import annotations

import sqlite3

from config import settings
from db.migrations import migrate_up


def resolve_db_path() -> str:
    return settings.DB_PATH


def connect(db_path: str | None = None) -> sqlite3.Connection:
    """Open a connection with row access by name and an up-to-date schema."""
    conn = sqlite3.connect(db_path or resolve_db_path(), check_same_thread=False, timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    migrate_up(conn)
    return conn
