"""SoundExchange text export helpers."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, Sequence

HEADER_ROW = (
    "NAME_OF_SERVICE",
    "TRANSMISSION_CATEGORY",
    "FEATURED_ARTIST",
    "SOUND_RECORDING_TITLE",
    "ISRC",
    "ALBUM_TITLE",
    "MARKETING_LABEL",
    "ACTUAL_TOTAL_PERFORMANCES",
)

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_DATE_FORMAT = "%d%m%Y"


def is_numeric(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return bool(_NUMERIC_RE.match(value))
    return False


def format_field(value) -> str:
    """Numbers pass through; text is upper-cased, stripped of ``^``/``|`` and caret-wrapped."""
    if is_numeric(value):
        return str(value)
    text = "" if value is None else str(value)
    return "^" + text.upper().replace("^", "").replace("|", "") + "^"


def serialize_report(rows: Iterable[Sequence]) -> str:
    """Render report rows (header included) as pipe-delimited lines."""
    return "\n".join("|".join(format_field(value) for value in row) for row in rows)


def build_report_filename(short_name: str, start: datetime, end: datetime) -> str:
    """Example: WABC01012009-31012009_A.txt"""
    return f"{str(short_name).upper()}{start.strftime(_DATE_FORMAT)}-{end.strftime(_DATE_FORMAT)}_A.txt"


def write_report(export_root: Path, filename: str, content: str) -> Path:
    """Create or overwrite a report file.

    Writes are atomic (temp file then replace).
    """
    root = Path(export_root)
    root.mkdir(parents=True, exist_ok=True)

    target_path = root / Path(filename).name
    temp_path = root / f".{target_path.name}.tmp"
    temp_path.write_text(content, encoding="utf-8")
    temp_path.replace(target_path)
    return target_path
