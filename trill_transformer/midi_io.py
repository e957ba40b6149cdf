"""Utilities for writing note tables as Standard MIDI Files.

This module contains the low-level encoder used to turn a flat list of
``(track, pitch, duration)`` notes into a format 1 MIDI file. Each track is
treated as a single monophonic line: notes follow one another back to back,
so a per-track cursor determines every onset.

File layout
-----------
* ``MThd`` header: length 6, format 1, track count, 1024 ticks per quarter.
* One ``MTrk`` chunk per track in ascending track order. Its 4-byte length
  is written as a placeholder and backpatched once the body is known. The
  body opens with a program change to program 0, followed by note events
  (channel 0, velocity 100 on / 0 off) with variable-length delta times, and
  ends with the end-of-track meta event.

Every channel message carries its own status byte; running status is never
used so the output is byte-for-byte predictable.

Message bytes are produced by :mod:`mido` so the encoder agrees with the
library used to read the files back in the tests.
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .note_utils import InvalidPitchName, note_to_midi
from .table_io import NoteRecord, read_table

__all__ = [
    "TICKS_PER_BEAT",
    "TimelineEvent",
    "encode_vlq",
    "decode_vlq",
    "build_timeline",
    "encode_sequence",
    "write_midi_file",
    "convert_table_to_midi",
]

TICKS_PER_BEAT = 1024
MIDI_FORMAT = 1
CHANNEL = 0
PROGRAM = 0
NOTE_ON_VELOCITY = 100
NOTE_OFF_VELOCITY = 0

EncodableNote = Union[NoteRecord, Tuple[int, int, int]]


@dataclass(frozen=True)
class TimelineEvent:
    track: int
    pitch: int
    tick: int
    is_on: bool


def encode_vlq(value: int) -> bytes:
    """Encode ``value`` as a MIDI variable-length quantity.

    Seven bits are stored per byte, most significant group first, with the
    continuation bit set on every byte except the last. ``0`` encodes as a
    single zero byte.
    """

    if value < 0:
        raise ValueError(f"Variable-length quantities must be non-negative, got {value}")
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


def decode_vlq(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a variable-length quantity starting at ``offset``.

    Returns the value and the offset of the first byte after it.
    """

    value = 0
    while True:
        if offset >= len(data):
            raise ValueError("Truncated variable-length quantity")
        byte = data[offset]
        offset += 1
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, offset


def _resolve_note(note: EncodableNote) -> Tuple[int, int, int]:
    """Return ``(track, pitch, duration)`` for a record or plain tuple."""

    if isinstance(note, NoteRecord):
        return note.track, note_to_midi(note.note), note.duration
    track, pitch, duration = note
    if not 0 <= pitch <= 127:
        raise InvalidPitchName(f"MIDI value {pitch} out of range 0-127")
    return track, pitch, duration


def build_timeline(
    notes: Iterable[EncodableNote],
    diagnostics: Optional[List[str]] = None,
) -> Dict[int, List[TimelineEvent]]:
    """Place ``notes`` on per-track timelines.

    Each note starts where the previous note of the same track ended. The
    returned lists are sorted by tick with note-off events ahead of note-on
    events sharing a tick, so a repeated pitch is released before it sounds
    again. Notes whose pitch cannot be resolved, or whose duration is not
    positive, are skipped and described in ``diagnostics`` when a list is
    supplied.
    """

    cursors: Dict[int, int] = {}
    timeline: Dict[int, List[TimelineEvent]] = {}
    for note in notes:
        try:
            track, pitch, duration = _resolve_note(note)
        except InvalidPitchName as exc:
            label = note.note if isinstance(note, NoteRecord) else note[1]
            message = f"Error processing note '{label}': {exc}"
            logging.error(message)
            if diagnostics is not None:
                diagnostics.append(message)
            continue
        if duration <= 0:
            message = f"Skipping note {pitch} on track {track} with duration {duration}"
            logging.warning(message)
            if diagnostics is not None:
                diagnostics.append(message)
            continue

        start = cursors.get(track, 0)
        events = timeline.setdefault(track, [])
        events.append(TimelineEvent(track, pitch, start, True))
        events.append(TimelineEvent(track, pitch, start + duration, False))
        cursors[track] = start + duration

    # ``sorted`` is stable so notes sharing a tick keep their arrival order.
    return {
        track: sorted(events, key=lambda e: (e.tick, e.is_on))
        for track, events in sorted(timeline.items())
    }


def _message_bytes(kind: str, **fields) -> bytes:
    # ``mido`` is imported lazily so the table tools can be used without the
    # MIDI dependency. A clear error message guides users on how to install it.
    try:
        import mido
    except ModuleNotFoundError as exc:
        raise ImportError(
            "mido is required to create MIDI files; install it with 'pip install mido'"
        ) from exc
    if kind == "end_of_track":
        return bytes(mido.MetaMessage(kind).bytes())
    return bytes(mido.Message(kind, channel=CHANNEL, **fields).bytes())


def _write_track(out: io.BytesIO, events: Sequence[TimelineEvent]) -> None:
    out.write(b"MTrk")
    length_pos = out.tell()
    out.write(b"\x00\x00\x00\x00")
    body_start = out.tell()

    out.write(encode_vlq(0))
    out.write(_message_bytes("program_change", program=PROGRAM))
    last_tick = 0
    for event in events:
        out.write(encode_vlq(event.tick - last_tick))
        last_tick = event.tick
        if event.is_on:
            out.write(_message_bytes("note_on", note=event.pitch, velocity=NOTE_ON_VELOCITY))
        else:
            out.write(_message_bytes("note_off", note=event.pitch, velocity=NOTE_OFF_VELOCITY))
    out.write(encode_vlq(0))
    out.write(_message_bytes("end_of_track"))

    body_end = out.tell()
    out.seek(length_pos)
    out.write(struct.pack(">I", body_end - body_start))
    out.seek(body_end)


def encode_sequence(
    notes: Iterable[EncodableNote],
    diagnostics: Optional[List[str]] = None,
) -> bytes:
    """Return the bytes of a format 1 MIDI file containing ``notes``.

    ``notes`` may be :class:`~trill_transformer.table_io.NoteRecord` rows or
    ``(track, pitch, duration)`` tuples in playing order. See
    :func:`build_timeline` for how unusable notes are reported.
    """

    timeline = build_timeline(notes, diagnostics)
    out = io.BytesIO()
    out.write(
        struct.pack(">4sIHHH", b"MThd", 6, MIDI_FORMAT, len(timeline), TICKS_PER_BEAT)
    )
    for events in timeline.values():
        _write_track(out, events)
    return out.getvalue()


def write_midi_file(
    notes: Iterable[EncodableNote],
    output_file: Union[str, Path],
    diagnostics: Optional[List[str]] = None,
) -> bytes:
    """Encode ``notes`` and save them to ``output_file``.

    The parent directory is created automatically. The encoded bytes are
    returned so callers can inspect them without reading the file back.
    """

    data = encode_sequence(notes, diagnostics)
    path = Path(output_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(data)
    logging.info("MIDI file saved to %s", path)
    return data


def convert_table_to_midi(
    table_file: Union[str, Path], midi_file: Union[str, Path]
) -> List[str]:
    """Read an annotated table and write it as a MIDI file.

    Returns the diagnostics for notes that had to be skipped.
    """

    with open(table_file, "r", encoding="utf-8", errors="replace") as fh:
        records = read_table(fh)
    diagnostics: List[str] = []
    write_midi_file(records, midi_file, diagnostics)
    return diagnostics
