"""Tests for the trill pattern generators.

The central property is time conservation: however a note is split, the
sub-notes must last exactly as long as the original. A handful of concrete
expansions pin down the alternation order of individual shapes.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from trill_transformer.patterns import (  # noqa: E402
    GENERATORS,
    InvalidDuration,
    InvalidMeter,
    Meter,
    apply_trill,
)
from trill_transformer.variants import VARIANTS, Shape, UnknownVariant  # noqa: E402
from trill_transformer.note_utils import midi_to_note  # noqa: E402

# Includes values not divisible by 4, 6, 8, 12 or 16.
DURATIONS = [1, 5, 7, 13, 97, 240, 479, 480, 481, 1000, 1023, 1024, 4099]


@pytest.mark.parametrize("meter", [Meter.DUPLE, Meter.TRIPLE])
def test_every_variant_conserves_duration(meter):
    """Sub-durations always add up to the written duration."""
    for code in VARIANTS:
        for duration in DURATIONS:
            ornament = apply_trill(60, duration, meter, code)
            assert sum(d for _, d in ornament) == duration, (code, duration)
            assert all(d >= 0 for _, d in ornament)


def test_every_shape_has_a_generator():
    assert set(GENERATORS) == set(Shape)


def test_short_regular_scenario():
    """``C4`` for 480 ticks becomes D4 C4 D4 C4 in four equal parts."""
    ornament = apply_trill(60, 480, Meter.DUPLE, "BTrRs1")
    assert ornament == [(62, 120), (60, 120), (62, 120), (60, 120)]
    assert [midi_to_note(p) for p, _ in ornament] == ["D4", "C4", "D4", "C4"]


def test_remainder_goes_to_last_segment():
    """Floor division leaves the spare ticks on the final sub-note."""
    ornament = apply_trill(60, 483, Meter.DUPLE, "BTrRs1")
    assert [d for _, d in ornament] == [120, 120, 120, 123]


def test_short_regular_triple_uses_sixths():
    ornament = apply_trill(60, 600, Meter.TRIPLE, "CTrRs5")
    assert ornament == [(60, 100), (61, 100), (60, 100), (61, 100), (60, 100), (61, 100)]


def test_normal_and_long_regular_lengths():
    assert len(apply_trill(60, 800, Meter.DUPLE, "BTrRn1")) == 7
    assert len(apply_trill(60, 800, Meter.TRIPLE, "BTrRl1")) == 8


def test_delayed_normal_duple_leads_with_long_note():
    ornament = apply_trill(60, 800, Meter.DUPLE, "BTrDen1")
    assert ornament == [(62, 200), (62, 100), (60, 100), (62, 100), (60, 100), (60, 200)]


def test_delayed_normal_triple_alternates_from_lower_pair_member():
    ornament = apply_trill(60, 800, Meter.TRIPLE, "BTrDen1")
    assert ornament == [(62, 200), (60, 100), (62, 100), (60, 100), (62, 100), (60, 200)]


def test_delayed_long():
    ornament = apply_trill(60, 800, Meter.DUPLE, "CTrDel1")
    assert ornament[0] == (60, 200)
    assert [p for p, _ in ornament[1:6]] == [62, 60, 62, 60, 62]
    assert ornament[-1] == (62, 100)


def test_ascending_short_inserts_quarter_before_remainder():
    ornament = apply_trill(60, 800, Meter.DUPLE, "BTrAs1")
    assert ornament == [(58, 100), (60, 100), (58, 100), (60, 100), (58, 200), (60, 200)]
    triple = apply_trill(60, 1200, Meter.TRIPLE, "BTrAs1")
    assert triple[4] == (58, 200)
    assert sum(d for _, d in triple) == 1200


def test_descending_reuses_ascending_generator_with_upper_start():
    ascending = apply_trill(60, 800, Meter.DUPLE, "BTrAs1")
    descending = apply_trill(60, 800, Meter.DUPLE, "BTrDs1")
    assert [d for _, d in ascending] == [d for _, d in descending]
    assert [p for p, _ in descending][:2] == [62, 60]


def test_ascending_long_subdivisions():
    assert len(apply_trill(60, 1600, Meter.DUPLE, "BTrAl1")) == 16
    assert len(apply_trill(60, 1200, Meter.TRIPLE, "BTrAl1")) == 12


def test_terminal_normal_bends_final_pair():
    ornament = apply_trill(60, 800, Meter.DUPLE, "BTrTn1")
    assert [p for p, _ in ornament] == [62, 60, 62, 60, 62, 60, 58, 60]
    assert len(apply_trill(60, 1200, Meter.TRIPLE, "BTrTn1")) == 12


def test_terminal_long_bends_final_pair():
    ornament = apply_trill(60, 1600, Meter.DUPLE, "CTrTl5")
    assert len(ornament) == 16
    assert [p for p, _ in ornament][:2] == [60, 61]
    assert [p for p, _ in ornament][-2:] == [58, 60]


def test_terminal_short_matches_short_regular_timing():
    ornament = apply_trill(60, 480, Meter.DUPLE, "BTrTs1")
    assert ornament == [(62, 120), (60, 120), (62, 120), (60, 120)]


@pytest.mark.parametrize("duration", [0, -1, 2.5, True])
def test_invalid_duration(duration):
    with pytest.raises(InvalidDuration):
        apply_trill(60, duration, Meter.DUPLE, "BTrRs1")


@pytest.mark.parametrize("meter", [4, 0, "waltz", None])
def test_invalid_meter(meter):
    with pytest.raises(InvalidMeter):
        apply_trill(60, 480, meter, "BTrRs1")


def test_unknown_variant():
    with pytest.raises(UnknownVariant):
        apply_trill(60, 480, Meter.DUPLE, "Nope")


@pytest.mark.parametrize("value,expected", [(2, Meter.DUPLE), ("Triple", Meter.TRIPLE), (Meter.DUPLE, Meter.DUPLE)])
def test_meter_coerce(value, expected):
    assert Meter.coerce(value) is expected
