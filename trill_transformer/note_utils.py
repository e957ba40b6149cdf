"""Utility functions for translating note names to MIDI numbers.

This module groups helpers dealing with note representation conversions.
The functions are separated from the main package so the transformation
engine, the MIDI encoder and both front ends share one set of rules for
spelling pitches.

Example
-------
>>> from trill_transformer.note_utils import note_to_midi, midi_to_note
>>> note_to_midi("C4")
60
>>> midi_to_note(62)
'D4'
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Dict, List

__all__ = ["InvalidPitchName", "note_to_midi", "midi_to_note", "NOTES", "NOTE_TO_SEMITONE"]

# Sharp spellings are canonical. ``midi_to_note`` only ever produces these
# names so round trips through the annotated table stay stable.
NOTES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# NOTE_TO_SEMITONE maps both sharp and flat spellings to the correct
# semitone offset within an octave so hand-written input such as ``Bb3``
# is accepted alongside the sharp names the tool writes itself.
NOTE_TO_SEMITONE: Dict[str, int] = {
    "C": 0,
    "C#": 1,
    "Db": 1,
    "D": 2,
    "D#": 3,
    "Eb": 3,
    "E": 4,
    "F": 5,
    "F#": 6,
    "Gb": 6,
    "G": 7,
    "G#": 8,
    "Ab": 8,
    "A": 9,
    "A#": 10,
    "Bb": 10,
    "B": 11,
}

_NOTE_PATTERN = re.compile(r"([A-Ga-g])([#b]?)(-?\d+)")


class InvalidPitchName(ValueError):
    """Raised when a note name cannot be converted to a MIDI number."""


@lru_cache(maxsize=None)
def note_to_midi(note: str) -> int:
    """Convert a note string such as ``C#4`` into a MIDI number.

    Parameters
    ----------
    note:
        Note name including octave. Octaves may be negative (``C-1``) or
        contain multiple digits.

    Returns
    -------
    int
        MIDI note number in the range ``0-127``.

    Raises
    ------
    InvalidPitchName
        If ``note`` is not properly formatted, uses an unknown
        letter/accidental combination or maps outside ``0-127``.
    """

    match = _NOTE_PATTERN.fullmatch(note.strip())
    if not match:
        logging.debug("Invalid note format: %s", note)
        raise InvalidPitchName(f"Invalid note name: {note}")

    letter, accidental, octave_str = match.groups()
    name = letter.upper() + accidental
    try:
        semitone = NOTE_TO_SEMITONE[name]
    except KeyError:
        logging.debug("Unknown note name: %s", name)
        raise InvalidPitchName(f"Unknown note name: {name}") from None

    # MIDI's octave numbers are offset by one relative to scientific pitch
    # notation: ``C-1`` is MIDI 0 and ``C4`` is MIDI 60.
    midi_val = (int(octave_str) + 1) * 12 + semitone

    if not 0 <= midi_val <= 127:
        logging.debug("MIDI value out of range: %s -> %d", note, midi_val)
        raise InvalidPitchName(
            f"Computed MIDI value {midi_val} out of range 0-127 for note {note}"
        )
    return midi_val


def midi_to_note(midi_note: int) -> str:
    """Convert a MIDI number into a note name using sharps.

    Unlike :func:`note_to_midi` this never fails: pitch class and octave are
    derived with floor arithmetic, so values outside ``0-127`` still receive
    a name (``-2`` becomes ``A#-2``). The encoder rejects such names later,
    which keeps the failure attached to the offending note.

    Examples
    --------
    >>> midi_to_note(60)
    'C4'
    >>> midi_to_note(127)
    'G9'
    """

    octave = midi_note // 12 - 1
    return f"{NOTES[midi_note % 12]}{octave}"
