"""Licensing report builders."""

from reports.soundexchange import SoundExchangeReport, build_soundexchange_report
from reports.window import ReportValidationError, ReportWindow, resolve_report_window

__all__ = [
    "ReportValidationError",
    "ReportWindow",
    "SoundExchangeReport",
    "build_soundexchange_report",
    "resolve_report_window",
]
