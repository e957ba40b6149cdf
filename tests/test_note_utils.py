"""Unit tests for note ↔ MIDI conversion helpers.

These tests exercise both :func:`note_to_midi` and :func:`midi_to_note`. The
goal is to ensure round-trip conversions behave as expected, while invalid
names raise :class:`InvalidPitchName` instead of producing silent garbage."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from trill_transformer.note_utils import (  # noqa: E402
    InvalidPitchName,
    midi_to_note,
    note_to_midi,
)


def test_middle_c_and_sharps():
    """Scientific pitch names map onto the usual MIDI numbers."""
    assert note_to_midi("C4") == 60
    assert note_to_midi("C#4") == 61
    assert note_to_midi("A4") == 69


def test_flat_spellings_are_enharmonic_aliases():
    """Flats produce the same value as their enharmonic sharps."""
    assert note_to_midi("Db4") == note_to_midi("C#4")
    assert note_to_midi("Bb3") == 58


def test_boundaries_and_negative_octave():
    """``C-1`` and ``G9`` are the extremes of the MIDI range."""
    assert note_to_midi("C-1") == 0
    assert note_to_midi("G9") == 127


@pytest.mark.parametrize("name", ["H4", "C", "C#", "Cx4", "E#4", "4C", "", "C4.5"])
def test_unrecognised_names_raise(name):
    """Unknown letters, accidentals or octaves raise ``InvalidPitchName``."""
    with pytest.raises(InvalidPitchName):
        note_to_midi(name)


def test_out_of_range_names_raise():
    """Names outside ``0-127`` are rejected rather than clamped."""
    with pytest.raises(InvalidPitchName, match="out of range"):
        note_to_midi("C-2")
    with pytest.raises(InvalidPitchName, match="out of range"):
        note_to_midi("G#9")


def test_invalid_pitch_name_is_value_error():
    """Callers catching ``ValueError`` also catch pitch-name failures."""
    assert issubclass(InvalidPitchName, ValueError)


def test_round_trip_over_midi_range():
    """Every valid MIDI number survives a name round trip."""
    for pitch in range(128):
        assert note_to_midi(midi_to_note(pitch)) == pitch


def test_midi_to_note_never_fails():
    """Naming uses floor arithmetic so any integer receives a name."""
    assert midi_to_note(0) == "C-1"
    assert midi_to_note(127) == "G9"
    assert midi_to_note(-2) == "A#-2"
    assert midi_to_note(130) == "A#9"
