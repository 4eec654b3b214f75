"""Application settings constants."""

from __future__ import annotations

import os


def _env_or_default(name, default):
    value = os.environ.get(name)
    return value if value else default


# SQLite database holding stations, media and play history.
DB_PATH = _env_or_default("STATION_REPORTS_DB_PATH", os.path.join(os.getcwd(), "station_reports.sqlite3"))

LOG_DIR = _env_or_default("STATION_REPORTS_LOG_DIR", os.path.join(os.getcwd(), "logs"))

# Where the CLI writes report files.
EXPORT_DIR = _env_or_default("STATION_REPORTS_EXPORT_DIR", os.path.join(os.getcwd(), "exports"))

# Used when a station has no timezone of its own.
DEFAULT_TIMEZONE = _env_or_default("STATION_REPORTS_DEFAULT_TIMEZONE", "UTC")

MUSICBRAINZ_USER_AGENT = _env_or_default(
    "MUSICBRAINZ_USER_AGENT",
    "StationReports/1.0 (+https://github.com/station-reports/station-reports)",
)
MUSICBRAINZ_DEBUG = str(os.environ.get("STATION_REPORTS_MUSICBRAINZ_DEBUG", "")).strip().lower() in {
    "1",
    "true",
    "yes",
    "on",
}
MUSICBRAINZ_SEARCH_LIMIT = int(_env_or_default("STATION_REPORTS_MUSICBRAINZ_SEARCH_LIMIT", "5"))
