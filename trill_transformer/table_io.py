"""Reading and writing the line-oriented note tables.

Two plain-text formats are involved:

* **Input rows** list one note per line as ``track note duration label``.
  The label is everything after the duration with surrounding whitespace and
  carriage returns removed, so labels may contain spaces.
* **Annotated tables** are written by the transformation pass. They start
  with a header and a dashed separator and lay each row out in fixed-width,
  left-justified columns ``Track | Note | Duration | Label | Trill_Variant``.

Example
-------
>>> from trill_transformer.table_io import parse_note_line, format_row
>>> record = parse_note_line("1 C4 480 RLN")
>>> record.note, record.duration, record.label
('C4', 480, 'RLN')
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Iterator, List, Optional, TextIO, Union

from .variants import VARIANTS

__all__ = [
    "NoteRecord",
    "COLUMN_WIDTHS",
    "HEADER",
    "SEPARATOR",
    "ORIGINAL_MARKER",
    "parse_note_line",
    "format_row",
    "write_table",
    "read_table",
]

# Column widths of the annotated table: track, note, duration, label, variant.
COLUMN_WIDTHS = (11, 11, 20, 20, 25)
HEADER_FIELDS = ("Track", "Note", "Duration", "Label", "Trill_Variant")
SEPARATOR = "-" * 81

# Variant column value for eligible notes that kept their written form.
ORIGINAL_MARKER = "ORIGINAL"


@dataclass(frozen=True)
class NoteRecord:
    """One note of the table.

    ``note`` keeps the spelling found in the file so rows that fail pitch
    parsing can still be echoed unchanged. ``variant`` is empty for rows that
    were never eligible for ornamentation.
    """

    track: int
    note: str
    duration: int
    label: str = ""
    variant: str = ""

    def annotated(self, variant: str) -> "NoteRecord":
        return replace(self, variant=variant)


def _fields(*values: object) -> str:
    # Over-wide values push later columns right but always keep one space
    # before the next column so the row still splits on whitespace.
    return "".join(str(v).ljust(w - 1) + " " for v, w in zip(values, COLUMN_WIDTHS))


HEADER = _fields(*HEADER_FIELDS)


def parse_note_line(line: str) -> Optional[NoteRecord]:
    """Parse ``track note duration label`` or return ``None`` if malformed.

    Only the first three tokens are structural; a missing label yields an
    empty string. Negative tracks and non-positive durations count as
    malformed.
    """

    parts = line.split(None, 3)
    if len(parts) < 3:
        return None
    try:
        track = int(parts[0])
        duration = int(parts[2])
    except ValueError:
        return None
    if track < 0 or duration <= 0:
        return None
    label = parts[3].strip(" \t\r\n") if len(parts) > 3 else ""
    return NoteRecord(track=track, note=parts[1], duration=duration, label=label)


def format_row(record: NoteRecord) -> str:
    """Return ``record`` laid out in the fixed annotated-table columns."""

    return _fields(record.track, record.note, record.duration, record.label, record.variant)


def write_table(rows: Iterable[Union[NoteRecord, str]], fh: TextIO) -> None:
    """Write the header, separator and ``rows`` to ``fh``.

    Plain strings are copied verbatim; the transformation pass uses them for
    input lines it could not parse.
    """

    fh.write(HEADER + "\n")
    fh.write(SEPARATOR + "\n")
    for row in rows:
        if isinstance(row, NoteRecord):
            fh.write(format_row(row) + "\n")
        else:
            fh.write(row.rstrip("\r\n") + "\n")


def _iter_table_records(lines: Iterable[str]) -> Iterator[NoteRecord]:
    iterator = iter(lines)
    # The first two lines are always the header and its separator.
    for _ in range(2):
        next(iterator, None)
    for line in iterator:
        if not line.strip() or line.startswith("-"):
            continue
        record = parse_note_line(line)
        if record is None or record.note in ("Note", "Track"):
            continue
        # Everything after the duration is the label followed by the variant
        # column; the variant is always a single known token.
        head, _, tail = record.label.rpartition(" ")
        if tail == ORIGINAL_MARKER or tail in VARIANTS:
            record = replace(record, label=head.strip(), variant=tail)
        yield record


def read_table(fh: TextIO) -> List[NoteRecord]:
    """Return the note rows of an annotated table read from ``fh``.

    Blank lines, separators, repeated headers and malformed rows (such as
    echoed unparsable input) are skipped.
    """

    return list(_iter_table_records(fh))
