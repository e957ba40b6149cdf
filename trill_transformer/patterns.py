"""Duration-splitting generators for trill shapes.

Each generator turns one written note into an ordered list of
``(pitch, duration)`` pairs. Durations are measured in MIDI ticks and the
split is always exact: every segment except the last uses floor division and
the final segment absorbs whatever is left, so the ornament lasts precisely as
long as the note it replaces.

Design Notes
------------
Generators receive absolute pitches (the written pitch plus the variant's
offsets) and only ever read the first two entries as the alternating pair.
Terminal shapes additionally close on the last two entries, which the catalog
sets to the lower auxiliary and the main note. Dispatch from shape to
generator is a plain dictionary built once at import; descending shapes map
onto the ascending generators because the catalog already mirrors their
auxiliaries.

Example
-------
>>> from trill_transformer.patterns import apply_trill, Meter
>>> apply_trill(60, 480, Meter.DUPLE, "BTrRs1")
[(62, 120), (60, 120), (62, 120), (60, 120)]
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, Dict, List, Sequence, Tuple, Union

from .variants import Shape, TrillVariant, get_variant

__all__ = [
    "Meter",
    "Ornament",
    "InvalidDuration",
    "InvalidMeter",
    "apply_trill",
    "GENERATORS",
]

Ornament = List[Tuple[int, int]]


class InvalidDuration(ValueError):
    """Raised when a note duration is not a positive number of ticks."""


class InvalidMeter(ValueError):
    """Raised when a meter other than duple or triple is requested."""


class Meter(IntEnum):
    """Beat subdivision used when splitting a note."""

    DUPLE = 2
    TRIPLE = 3

    @classmethod
    def coerce(cls, value: Union["Meter", int, str]) -> "Meter":
        """Return the :class:`Meter` matching ``value``.

        Accepts a member, the integers ``2``/``3`` or the names ``"duple"``
        and ``"triple"`` in any case.
        """

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise InvalidMeter(f"Invalid meter: {value!r}") from None
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise InvalidMeter(f"Invalid meter: {value!r}") from None
        raise InvalidMeter(f"Invalid meter: {value!r}")


def _alternate(first: int, second: int, count: int, segment: int) -> Ornament:
    return [(first if i % 2 == 0 else second, segment) for i in range(count)]


def _close(figure: Ornament, pitch: int, duration: int) -> Ornament:
    """Append the final segment holding the remaining ticks."""

    figure.append((pitch, duration - sum(d for _, d in figure)))
    return figure


def _bend_ending(figure: Ornament, pitches: Sequence[int]) -> Ornament:
    """Re-pitch the final pair onto the lower auxiliary and main note."""

    lower, main = pitches[-2], pitches[-1]
    (_, d1), (_, d2) = figure[-2], figure[-1]
    figure[-2:] = [(lower, d1), (main, d2)]
    return figure


def _short(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    p1, p2 = pitches[0], pitches[1]
    if meter is Meter.DUPLE:
        figure = _alternate(p1, p2, 3, duration // 4)
    else:
        figure = _alternate(p1, p2, 5, duration // 6)
    return _close(figure, p2, duration)


def _normal_regular(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    p1, p2 = pitches[0], pitches[1]
    return _close(_alternate(p1, p2, 6, duration // 8), p2, duration)


def _eighths(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    # Long regular and ascending/descending normal trills share the same
    # seven-step alternation in both meters.
    p1, p2 = pitches[0], pitches[1]
    return _close(_alternate(p1, p2, 7, duration // 8), p2, duration)


def _delayed_normal(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    p1, p2 = pitches[0], pitches[1]
    segment = duration // 8
    if meter is Meter.DUPLE:
        figure = [(p1, duration // 4)] + _alternate(p1, p2, 4, segment)
    else:
        figure = [(p1, segment * 2)] + _alternate(p2, p1, 4, segment)
    return _close(figure, p2, duration)


def _delayed_long(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    p1, p2 = pitches[0], pitches[1]
    segment = duration // 8
    figure = [(p1, segment * 2)] + _alternate(p2, p1, 5, segment)
    return _close(figure, p2, duration)


def _ascending_short(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    p1, p2 = pitches[0], pitches[1]
    figure = _alternate(p1, p2, 4, duration // 8)
    figure.append((p1, duration // 4 if meter is Meter.DUPLE else duration // 6))
    return _close(figure, p2, duration)


def _sixteenths(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    # Fifteen steps in duple time, eleven twelfths in triple time.
    p1, p2 = pitches[0], pitches[1]
    if meter is Meter.DUPLE:
        figure = _alternate(p1, p2, 15, duration // 16)
    else:
        figure = _alternate(p1, p2, 11, duration // 12)
    return _close(figure, p2, duration)


def _terminal_normal(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    p1, p2 = pitches[0], pitches[1]
    if meter is Meter.DUPLE:
        figure = _alternate(p1, p2, 7, duration // 8)
    else:
        figure = _alternate(p1, p2, 11, duration // 12)
    return _bend_ending(_close(figure, p2, duration), pitches)


def _terminal_long(pitches: Sequence[int], duration: int, meter: Meter) -> Ornament:
    return _bend_ending(_sixteenths(pitches, duration, meter), pitches)


Generator = Callable[[Sequence[int], int, Meter], Ornament]

GENERATORS: Dict[Shape, Generator] = {
    Shape.SHORT_REGULAR: _short,
    Shape.TERMINAL_SHORT: _short,
    Shape.NORMAL_REGULAR: _normal_regular,
    Shape.LONG_REGULAR: _eighths,
    Shape.DELAYED_NORMAL: _delayed_normal,
    Shape.DELAYED_LONG: _delayed_long,
    Shape.ASCENDING_SHORT: _ascending_short,
    Shape.DESCENDING_SHORT: _ascending_short,
    Shape.ASCENDING_NORMAL: _eighths,
    Shape.DESCENDING_NORMAL: _eighths,
    Shape.ASCENDING_LONG: _sixteenths,
    Shape.DESCENDING_LONG: _sixteenths,
    Shape.TERMINAL_NORMAL: _terminal_normal,
    Shape.TERMINAL_LONG: _terminal_long,
}


def apply_trill(
    pitch: int,
    duration: int,
    meter: Union[Meter, int, str],
    variant: Union[str, TrillVariant],
) -> Ornament:
    """Expand one note into the ornament described by ``variant``.

    Parameters
    ----------
    pitch:
        MIDI number of the written note.
    duration:
        Length of the written note in ticks; must be positive.
    meter:
        :class:`Meter` (or a value accepted by :meth:`Meter.coerce`).
    variant:
        Catalog code such as ``"BTrRs1"`` or a :class:`TrillVariant`.

    Returns
    -------
    list of tuple
        ``(pitch, duration)`` pairs whose durations sum to ``duration``.

    Raises
    ------
    InvalidDuration, InvalidMeter, UnknownVariant
        For contract violations. These indicate a caller bug and are never
        clamped.
    """

    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise InvalidDuration(f"Duration must be a positive integer, got {duration!r}")
    meter = Meter.coerce(meter)
    if not isinstance(variant, TrillVariant):
        variant = get_variant(variant)

    pitches = [pitch + offset for offset in variant.offsets]
    return GENERATORS[variant.shape](pitches, duration, meter)
