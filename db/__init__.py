"""Database helpers for station reports."""

from db.connection import connect, resolve_db_path
from db.media import IsrcWriteResult, MediaRecord, fetch_station_media, set_media_isrc
from db.song_history import HistoryEntry, fetch_history_aggregates
from db.stations import Station, StationNotFoundError, get_station

__all__ = [
    "HistoryEntry",
    "IsrcWriteResult",
    "MediaRecord",
    "Station",
    "StationNotFoundError",
    "connect",
    "fetch_history_aggregates",
    "fetch_station_media",
    "get_station",
    "resolve_db_path",
    "set_media_isrc",
]
