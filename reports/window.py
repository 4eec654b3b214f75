"""Report date window resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config.settings import DEFAULT_TIMEZONE

DATE_FORMAT = "%Y-%m-%d"

logger = logging.getLogger(__name__)


class ReportValidationError(ValueError):
    """Invalid report parameters, with a message per offending field."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {message}" for field, message in self.errors.items()))


@dataclass(frozen=True)
class ReportWindow:
    start: datetime
    end: datetime
    fetch_isrc: bool = False

    @property
    def start_timestamp(self) -> int:
        return int(self.start.timestamp())

    @property
    def end_timestamp(self) -> int:
        return int(self.end.timestamp())


def _resolve_timezone(value):
    try:
        return ZoneInfo(str(value or DEFAULT_TIMEZONE))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("[REPORT] invalid timezone %s; falling back to %s", value, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def month_bounds(day: date) -> tuple[date, date]:
    """Return the first and last day of the calendar month containing ``day``."""
    first_day = day.replace(day=1)
    next_month = (first_day + timedelta(days=32)).replace(day=1)
    return first_day, next_month - timedelta(days=1)


def previous_month_bounds(today: date) -> tuple[date, date]:
    """Return the first and last day of the calendar month before ``today``."""
    return month_bounds(today.replace(day=1) - timedelta(days=1))


def default_report_dates(timezone=None, now: datetime | None = None) -> dict[str, str]:
    """Form defaults: the full previous calendar month in the station's timezone."""
    tz = _resolve_timezone(timezone)
    current = now.astimezone(tz) if now is not None else datetime.now(tz)
    first_day, last_day = previous_month_bounds(current.date())
    return {
        "start_date": first_day.strftime(DATE_FORMAT),
        "end_date": last_day.strftime(DATE_FORMAT),
    }


def _parse_date(field: str, value, errors: dict[str, str]) -> date | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        errors[field] = "must be a valid date in YYYY-MM-DD format"
        return None


def resolve_report_window(
    start_date=None,
    end_date=None,
    fetch_isrc=False,
    *,
    timezone=None,
    now: datetime | None = None,
) -> ReportWindow:
    """Resolve caller parameters into an inclusive report window.

    Missing dates fall back to the previous calendar month. A lone start date
    runs to the end of its month and a lone end date starts at the beginning
    of its month. The window runs from 00:00:00 on the start day through
    23:59:59 on the end day, in the given timezone.
    """
    tz = _resolve_timezone(timezone)
    errors: dict[str, str] = {}
    start_day = _parse_date("start_date", start_date, errors)
    end_day = _parse_date("end_date", end_date, errors)
    if errors:
        raise ReportValidationError(errors)

    if start_day is None and end_day is None:
        defaults = default_report_dates(tz, now)
        start_day = datetime.strptime(defaults["start_date"], DATE_FORMAT).date()
        end_day = datetime.strptime(defaults["end_date"], DATE_FORMAT).date()
    elif end_day is None:
        end_day = month_bounds(start_day)[1]
    elif start_day is None:
        start_day = month_bounds(end_day)[0]
    if start_day > end_day:
        raise ReportValidationError({"end_date": "must be on or after start_date"})

    return ReportWindow(
        start=datetime.combine(start_day, time(0, 0, 0), tzinfo=tz),
        end=datetime.combine(end_day, time(23, 59, 59), tzinfo=tz),
        fetch_isrc=bool(fetch_isrc),
    )
