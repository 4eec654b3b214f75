#!/usr/bin/env python3
import functools
import json
import logging
import os
import sqlite3
from urllib.parse import quote

import anyio
from fastapi import FastAPI, Form, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse

from config.settings import DB_PATH, LOG_DIR
from db.connection import connect
from db.stations import StationNotFoundError, get_station
from metadata.services.musicbrainz_service import get_musicbrainz_service
from reports.soundexchange import build_soundexchange_report
from reports.window import ReportValidationError, default_report_dates, resolve_report_window

APP_NAME = "Station Reports API"
SOUNDEXCHANGE_TITLE = "SoundExchange Report"
_TRUTHY = {"1", "true", "yes", "on"}


def _setup_logging(log_dir):
    os.makedirs(log_dir, exist_ok=True)
    root = logging.getLogger("")
    log_path = os.path.join(log_dir, "station_reports.log")
    root.setLevel(logging.INFO)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            if os.path.abspath(getattr(handler, "baseFilename", "")) == os.path.abspath(log_path):
                return
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    file_handler.setLevel(logging.INFO)
    root.addHandler(file_handler)


def _parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUTHY


def _safe_filename(name):
    cleaned = name.replace('"', "'").replace("\n", " ").replace("\r", " ").strip()
    return cleaned or "report.txt"


def _content_disposition(name):
    filename = _safe_filename(name)
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").strip() or "report.txt"
    if ascii_name == filename:
        return f'attachment; filename="{filename}"'
    # Header values are latin-1; non-ASCII names go in the RFC 5987 parameter.
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"



class SafeJSONResponse(JSONResponse):
    def render(self, content):
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
            default=str,
        ).encode("utf-8")


app = FastAPI(
    title=APP_NAME,
    description="Station licensing reports built from media and play history.",
    default_response_class=SafeJSONResponse,
)


@app.on_event("startup")
async def startup():
    _setup_logging(LOG_DIR)
    app.state.db_path = DB_PATH
    app.state.recording_lookup = get_musicbrainz_service()
    logging.info("[REPORT] api_started db_path=%s", DB_PATH)


def _db_path():
    return getattr(app.state, "db_path", None) or DB_PATH


def _recording_lookup():
    lookup = getattr(app.state, "recording_lookup", None)
    return lookup if lookup is not None else get_musicbrainz_service()


def _load_station_or_404(conn, station_id):
    try:
        return get_station(conn, station_id)
    except StationNotFoundError:
        raise HTTPException(status_code=404, detail="Station not found")


def _form_payload(station, values, errors=None):
    return {
        "title": SOUNDEXCHANGE_TITLE,
        "render_mode": "edit",
        "station": {"id": station.id, "name": station.name, "short_name": station.get_short_name()},
        "form": values,
        "errors": errors or {},
    }


def _render_form(station_id):
    conn = connect(_db_path())
    try:
        station = _load_station_or_404(conn, station_id)
        values = dict(default_report_dates(station.timezone))
        values["fetch_isrc"] = False
        return _form_payload(station, values)
    finally:
        conn.close()


def _run_report(station_id, start_date, end_date, fetch_isrc):
    conn = connect(_db_path())
    try:
        station = _load_station_or_404(conn, station_id)
        try:
            window = resolve_report_window(start_date, end_date, fetch_isrc, timezone=station.timezone)
        except ReportValidationError as exc:
            values = {"start_date": start_date, "end_date": end_date, "fetch_isrc": fetch_isrc}
            return SafeJSONResponse(_form_payload(station, values, exc.errors), status_code=400)
        try:
            report = build_soundexchange_report(conn, station, window, lookup=_recording_lookup())
        except sqlite3.Error:
            logging.exception("[REPORT] soundexchange_failed station_id=%s", station.id)
            raise HTTPException(status_code=500, detail="Failed to build report")
        headers = {"Content-Disposition": _content_disposition(report.filename)}
        return PlainTextResponse(report.content, media_type="text/plain", headers=headers)
    finally:
        conn.close()


@app.get("/api/health")
async def api_health():
    return {"status": "ok"}


@app.get("/api/stations/{station_id}/reports/soundexchange")
async def api_soundexchange_form(station_id: str):
    return await anyio.to_thread.run_sync(functools.partial(_render_form, station_id))


@app.post("/api/stations/{station_id}/reports/soundexchange")
async def api_soundexchange_report(
    station_id: str,
    start_date: str | None = Form(None),
    end_date: str | None = Form(None),
    fetch_isrc: str | None = Form(None),
):
    return await anyio.to_thread.run_sync(
        functools.partial(_run_report, station_id, start_date, end_date, _parse_bool(fetch_isrc))
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.environ.get("STATION_REPORTS_HOST", "127.0.0.1"), port=int(os.environ.get("STATION_REPORTS_PORT", "8090")))
