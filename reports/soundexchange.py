"""SoundExchange (US webcaster licensing) report assembly."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, replace
from typing import Any, Iterable, Iterator, Mapping, Protocol

from db.media import MediaRecord, fetch_station_media, set_media_isrc
from db.song_history import HistoryEntry, fetch_history_aggregates
from db.stations import Station
from metadata.song import Song, offline_song_id
from reports.export import HEADER_ROW, build_report_filename, serialize_report
from reports.window import ReportWindow

logger = logging.getLogger(__name__)

TRANSMISSION_CATEGORY = "A"


class RecordingLookup(Protocol):
    def find_recordings_for_song(self, song: Song, includes: Iterable[str] = ...) -> Iterator[dict[str, Any]]:
        raise NotImplementedError


@dataclass(frozen=True)
class MergedRecord:
    song_id: str
    media_id: int | None
    artist: str | None
    title: str | None
    album: str | None
    isrc: str | None
    plays: int
    unique_listeners: int


@dataclass(frozen=True)
class SoundExchangeReport:
    filename: str
    content: str
    rows: list[tuple]
    window: ReportWindow


def _prefer(primary: str | None, fallback: str | None) -> str | None:
    if primary is not None and str(primary).strip():
        return primary
    return fallback


def join_media_and_history(
    media_by_id: Mapping[Any, MediaRecord],
    history_rows: Iterable[HistoryEntry],
) -> dict[str, MergedRecord]:
    """Merge media metadata onto history aggregates, keyed by song id.

    Media values win when present; the history row's denormalized copies fill
    the gaps. Iteration order follows ``history_rows``.
    """
    merged: dict[str, MergedRecord] = {}
    for entry in history_rows:
        media = media_by_id.get(entry.media_id) if entry.media_id is not None else None
        merged[entry.song_id] = MergedRecord(
            song_id=entry.song_id,
            media_id=media.id if media is not None else None,
            artist=_prefer(media.artist if media else None, entry.artist),
            title=_prefer(media.title if media else None, entry.title),
            album=media.album if media else None,
            isrc=(media.isrc or None) if media else None,
            plays=entry.plays,
            unique_listeners=entry.unique_listeners,
        )
    return merged


def exclude_offline_song(merged: dict[str, MergedRecord]) -> dict[str, MergedRecord]:
    """Drop the synthetic "Stream Offline" entry."""
    offline_id = offline_song_id()
    return {song_id: record for song_id, record in merged.items() if song_id != offline_id}


class IsrcEnricher:
    """Backfills missing ISRCs from a recording lookup service.

    Lookup failures leave the ISRC empty. Discovered codes are written back to
    the media record so later reports skip the lookup.
    """

    def __init__(self, lookup: RecordingLookup | None, conn: sqlite3.Connection):
        self.lookup = lookup
        self.conn = conn

    def find_isrc(self, record: MergedRecord) -> str | None:
        if self.lookup is None:
            return None
        song = Song(artist=record.artist, title=record.title, album=record.album)
        try:
            for recording in self.lookup.find_recordings_for_song(song, includes=("isrcs",)):
                isrcs = recording.get("isrcs") if isinstance(recording, dict) else None
                if isrcs:
                    return str(isrcs[0])
        except Exception as exc:
            logger.warning(
                "[REPORT] isrc_lookup_failed song_id=%s artist=%s title=%s error=%s",
                record.song_id,
                record.artist,
                record.title,
                exc,
            )
        return None

    def enrich(self, record: MergedRecord) -> MergedRecord:
        if record.isrc:
            return record
        isrc = self.find_isrc(record)
        if isrc is None:
            return record
        if record.media_id is not None:
            result = set_media_isrc(self.conn, record.media_id, isrc)
            if not result.updated:
                logger.warning(
                    "[REPORT] isrc_backfill_skipped media_id=%s isrc=%s reason=%s",
                    result.media_id,
                    isrc,
                    result.reason,
                )
        return replace(record, isrc=isrc)

    def enrich_all(self, merged: dict[str, MergedRecord]) -> dict[str, MergedRecord]:
        return {song_id: self.enrich(record) for song_id, record in merged.items()}


def build_report_rows(station: Station, merged: Mapping[str, MergedRecord]) -> list[tuple]:
    rows: list[tuple] = [HEADER_ROW]
    for record in merged.values():
        rows.append(
            (
                station.name,
                TRANSMISSION_CATEGORY,
                record.artist or "",
                record.title or "",
                record.isrc or "",
                record.album or "",
                "",
                record.unique_listeners,
            )
        )
    return rows


def build_soundexchange_report(
    conn: sqlite3.Connection,
    station: Station,
    window: ReportWindow,
    *,
    lookup: RecordingLookup | None = None,
) -> SoundExchangeReport:
    """Assemble the SoundExchange export for a station and window."""
    media_by_id = fetch_station_media(conn, station)
    history_rows = fetch_history_aggregates(conn, station.id, window.start_timestamp, window.end_timestamp)
    logger.info(
        "[REPORT] history_fetched station_id=%s songs=%s start=%s end=%s",
        station.id,
        len(history_rows),
        window.start.isoformat(),
        window.end.isoformat(),
    )

    merged = exclude_offline_song(join_media_and_history(media_by_id, history_rows))
    if window.fetch_isrc:
        merged = IsrcEnricher(lookup, conn).enrich_all(merged)

    rows = build_report_rows(station, merged)
    filename = build_report_filename(station.get_short_name(), window.start, window.end)
    logger.info("[REPORT] soundexchange_built station_id=%s rows=%s filename=%s", station.id, len(rows) - 1, filename)
    return SoundExchangeReport(
        filename=filename,
        content=serialize_report(rows),
        rows=rows,
        window=window,
    )
