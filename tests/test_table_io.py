"""Tests for parsing input rows and the fixed-width annotated table."""

import io
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from trill_transformer.table_io import (  # noqa: E402
    HEADER,
    SEPARATOR,
    NoteRecord,
    format_row,
    parse_note_line,
    read_table,
    write_table,
)


def test_parse_simple_row():
    assert parse_note_line("1 C4 480 RLN") == NoteRecord(1, "C4", 480, "RLN")


def test_label_keeps_inner_spaces_and_drops_line_endings():
    record = parse_note_line("2\tBb3   960   Long note SN \r\n")
    assert record == NoteRecord(2, "Bb3", 960, "Long note SN")


def test_missing_label_is_empty():
    assert parse_note_line("0 G4 100").label == ""


@pytest.mark.parametrize(
    "line",
    ["", "   ", "1 C4", "x C4 480 RLN", "1 C4 4.5 RLN", "1 C4 0 RLN", "-1 C4 480 RLN", "1 C4 -10 RLN"],
)
def test_malformed_rows_return_none(line):
    assert parse_note_line(line) is None


def test_unknown_pitch_names_are_kept_for_later():
    """Pitch spelling is validated by the transformation, not the parser."""
    assert parse_note_line("1 H4 480 RLN").note == "H4"


def test_header_and_row_column_widths():
    assert HEADER.startswith("Track".ljust(11) + "Note".ljust(11) + "Duration")
    assert len(HEADER) == 11 + 11 + 20 + 20 + 25
    assert SEPARATOR == "-" * 81
    row = format_row(NoteRecord(1, "D4", 120, "RLN", "BTrRs1"))
    assert row[:11] == "1".ljust(11)
    assert row[11:22] == "D4".ljust(11)
    assert row[22:42] == "120".ljust(20)
    assert row[42:62] == "RLN".ljust(20)
    assert row[62:] == "BTrRs1".ljust(25)


def test_write_table_copies_plain_strings():
    buf = io.StringIO()
    write_table([NoteRecord(1, "C4", 480, "RLN", "ORIGINAL"), "garbage line\n"], buf)
    lines = buf.getvalue().splitlines()
    assert lines[0] == HEADER
    assert lines[1] == SEPARATOR
    assert lines[2] == format_row(NoteRecord(1, "C4", 480, "RLN", "ORIGINAL"))
    assert lines[3] == "garbage line"


def test_read_table_recovers_records():
    rows = [
        NoteRecord(1, "D4", 120, "RLN", "BTrRs1"),
        NoteRecord(1, "C4", 480, "CS", "ORIGINAL"),
        NoteRecord(2, "E4", 240, "Passing tone", ""),
        "not a note row",
    ]
    buf = io.StringIO()
    write_table(rows, buf)
    buf.write("\n" + SEPARATOR + "\n")
    buf.seek(0)

    assert read_table(buf) == rows[:3]


def test_read_table_skips_repeated_headers():
    text = "\n".join([HEADER, SEPARATOR, HEADER, format_row(NoteRecord(3, "A4", 60, "DN", "CTrTn5"))])
    assert read_table(io.StringIO(text)) == [NoteRecord(3, "A4", 60, "DN", "CTrTn5")]


def test_over_wide_values_keep_a_column_gap():
    record = NoteRecord(123456789012, "C#4-really-long", 480, "RLN", "BTrRs1")
    row = format_row(record)
    assert row.startswith("123456789012 C#4-really-long 480")
    assert read_table(io.StringIO("\n".join([HEADER, SEPARATOR, row]))) == [record]
