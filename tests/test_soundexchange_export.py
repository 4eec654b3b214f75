from __future__ import annotations

from datetime import datetime

import pytest

from reports.export import HEADER_ROW, build_report_filename, format_field, serialize_report, write_report


def test_text_fields_are_uppercased_stripped_and_wrapped() -> None:
    assert format_field("A^B|C") == "^ABC^"
    assert format_field("Demo Radio") == "^DEMO RADIO^"
    assert format_field("") == "^^"
    assert format_field(None) == "^^"


@pytest.mark.parametrize("value", ["42", 42, 7, "3.5", " 12", "-4", "1e3", 0])
def test_numeric_fields_pass_through(value) -> None:
    assert format_field(value) == str(value)


@pytest.mark.parametrize("value", ["42a", "0x1A", "1,000", ".", "abc"])
def test_non_numeric_strings_are_quoted(value) -> None:
    assert format_field(value).startswith("^")


def test_serialize_report_header_and_rows() -> None:
    rows = [
        HEADER_ROW,
        ("Demo Radio", "A", "Artist X", "Song Y", "", "Album Z", "", 7),
    ]

    lines = serialize_report(rows).split("\n")

    assert lines[0] == (
        "^NAME_OF_SERVICE^|^TRANSMISSION_CATEGORY^|^FEATURED_ARTIST^|^SOUND_RECORDING_TITLE^|"
        "^ISRC^|^ALBUM_TITLE^|^MARKETING_LABEL^|^ACTUAL_TOTAL_PERFORMANCES^"
    )
    assert lines[1] == "^DEMO RADIO^|^A^|^ARTIST X^|^SONG Y^|^^|^ALBUM Z^|^^|7"
    assert len(lines) == 2


def test_numeric_title_is_written_verbatim() -> None:
    line = serialize_report([("Demo Radio", "A", "Prince", "1999", "", "1999", "", 3)])

    assert line == "^DEMO RADIO^|^A^|^PRINCE^|1999|^^|1999|^^|3"


def test_build_report_filename() -> None:
    name = build_report_filename("wabc", datetime(2009, 1, 1), datetime(2009, 1, 31, 23, 59, 59))

    assert name == "WABC01012009-31012009_A.txt"


def test_write_report_is_atomic_and_overwrites(tmp_path) -> None:
    export_root = tmp_path / "exports"

    first = write_report(export_root, "DEMO01012024-31012024_A.txt", "first")
    second = write_report(export_root, "DEMO01012024-31012024_A.txt", "second")

    assert first == second
    assert second.read_text(encoding="utf-8") == "second"
    assert sorted(p.name for p in export_root.iterdir()) == ["DEMO01012024-31012024_A.txt"]
