#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from config.settings import DB_PATH, EXPORT_DIR
from db.connection import connect
from db.stations import StationNotFoundError, get_station
from metadata.services.musicbrainz_service import get_musicbrainz_service
from reports.export import write_report
from reports.soundexchange import build_soundexchange_report
from reports.window import ReportValidationError, resolve_report_window


def main(argv: list[str] | None = None, *, lookup=None) -> int:
    parser = argparse.ArgumentParser(description="Write a SoundExchange report for a station.")
    parser.add_argument("--station", required=True, help="Station id or short name.")
    parser.add_argument("--start", default=None, help="First day (YYYY-MM-DD). Defaults to the start of last month.")
    parser.add_argument("--end", default=None, help="Last day (YYYY-MM-DD). Defaults to the end of last month.")
    parser.add_argument("--fetch-isrc", action="store_true", help="Look up missing ISRCs on MusicBrainz.")
    parser.add_argument("--db", default=DB_PATH, help="SQLite database path.")
    parser.add_argument("--output-dir", default=EXPORT_DIR, help="Directory for the report file.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    conn = connect(args.db)
    try:
        try:
            station = get_station(conn, args.station)
        except StationNotFoundError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1
        try:
            window = resolve_report_window(args.start, args.end, args.fetch_isrc, timezone=station.timezone)
        except ReportValidationError as exc:
            for field, message in exc.errors.items():
                print(f"ERROR: {field} {message}", file=sys.stderr)
            return 2
        if args.fetch_isrc and lookup is None:
            lookup = get_musicbrainz_service()
        report = build_soundexchange_report(conn, station, window, lookup=lookup)
    finally:
        conn.close()

    output_path = write_report(Path(args.output_dir), report.filename, report.content)
    print(f"Wrote {len(report.rows) - 1} rows: {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
