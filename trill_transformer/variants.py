"""Catalog of trill variants.

Every ornament the tool can write is described by one immutable
:class:`TrillVariant`. The catalog is assembled once at import time from a
small set of rules (era, interval size and shape) and indexed by code in
:data:`VARIANTS`, so lookups are a single dictionary access.

Variant codes
-------------
Codes read ``<era>Tr<family><length><interval>``:

* era: ``B`` Baroque (starts on the upper auxiliary) or ``C`` Classical
  (starts on the main note);
* family: ``R`` regular, ``De`` delayed, ``A`` ascending, ``D`` descending,
  ``T`` terminal;
* length: ``s`` short, ``n`` normal, ``l`` long (delayed trills have no short
  form);
* interval: ``1`` major second, ``5`` minor second.

``BTrRs1`` is therefore a Baroque short regular trill on a whole step.

Example
-------
>>> from trill_transformer.variants import get_variant
>>> get_variant("BTrRs1").description
'Baroque Short Regular Trill - Major 2nd'
>>> get_variant("BTrRs1").offsets
(2, 0, 2, 0)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .rng import RandomSource, make_source, shuffled

__all__ = [
    "ANY_VARIANT",
    "Era",
    "Interval",
    "Shape",
    "TrillVariant",
    "UnknownVariant",
    "VARIANTS",
    "ALL_CODES",
    "get_variant",
    "is_any_selection",
    "variant_pool",
    "parse_user_choices",
]

# Sentinel accepted wherever a list of codes is expected. ``RANDOM`` is the
# spelling used by older settings files.
ANY_VARIANT = "any"
_ANY_ALIASES = {"any", "random"}


class UnknownVariant(ValueError):
    """Raised when a variant code has no catalog entry."""


class Era(Enum):
    BAROQUE = "Baroque"
    CLASSICAL = "Classical"


class Interval(Enum):
    MAJOR_SECOND = "Major 2nd"
    MINOR_SECOND = "Minor 2nd"

    @property
    def semitones(self) -> int:
        return 2 if self is Interval.MAJOR_SECOND else 1

    @property
    def digit(self) -> str:
        return "1" if self is Interval.MAJOR_SECOND else "5"


class Shape(Enum):
    """Structural family of a trill.

    The value holds ``(code fragment, title)``; the title is used in the
    human readable description.
    """

    SHORT_REGULAR = ("Rs", "Short Regular")
    NORMAL_REGULAR = ("Rn", "Normal Regular")
    LONG_REGULAR = ("Rl", "Long Regular")
    DELAYED_NORMAL = ("Den", "Delayed Normal")
    DELAYED_LONG = ("Del", "Delayed Long")
    ASCENDING_SHORT = ("As", "Ascending Short")
    ASCENDING_NORMAL = ("An", "Ascending Normal")
    ASCENDING_LONG = ("Al", "Ascending Long")
    DESCENDING_SHORT = ("Ds", "Descending Short")
    DESCENDING_NORMAL = ("Dn", "Descending Normal")
    DESCENDING_LONG = ("Dl", "Descending Long")
    TERMINAL_SHORT = ("Ts", "Terminal Short")
    TERMINAL_NORMAL = ("Tn", "Terminal Normal")
    TERMINAL_LONG = ("Tl", "Terminal Long")

    @property
    def fragment(self) -> str:
        return self.value[0]

    @property
    def title(self) -> str:
        return self.value[1]


@dataclass(frozen=True)
class TrillVariant:
    """One named ornament from the catalog.

    ``offsets`` are semitone distances from the written pitch. Generators
    read the first two as the alternating pair; terminal shapes also read the
    last two as the closing turn.
    """

    code: str
    description: str
    era: Era
    interval: Interval
    shape: Shape
    offsets: Tuple[int, ...]


def _regular(era: Era, step: int, pairs: int) -> Tuple[int, ...]:
    """Alternating offsets, upper note first for Baroque trills."""

    pair = (step, 0) if era is Era.BAROQUE else (0, step)
    return pair * pairs


def _ascending(era: Era, step: int, length: int) -> Tuple[int, ...]:
    """Offsets for a trill approached from the lower auxiliary."""

    head = (-step, 0, 2, 0)
    tail_pair = (2, 0) if era is Era.BAROQUE else (0, 2)
    tail = {"short": 1, "normal": 2, "long": 4}[length]
    return head + tail_pair * tail


def _swap_auxiliaries(offsets: Tuple[int, ...]) -> Tuple[int, ...]:
    """Mirror the lower and upper auxiliaries of an ascending figure.

    Descending trills reuse the ascending generators; only the auxiliary
    offsets in the opening figure change side.
    """

    swapped = list(offsets)
    swapped[0] = -offsets[0]
    swapped[2] = -offsets[2]
    return tuple(swapped)


def _terminal(era: Era, step: int, pairs: int) -> Tuple[int, ...]:
    """Regular alternation closing on the lower auxiliary and main note."""

    if pairs == 0:
        return (step, 0, -2, 0)
    return _regular(era, step, pairs) + (-2, 0)


def _offsets_for(shape: Shape, era: Era, step: int) -> Tuple[int, ...]:
    if shape is Shape.SHORT_REGULAR:
        return _regular(era, step, 2)
    if shape in (Shape.NORMAL_REGULAR, Shape.DELAYED_NORMAL, Shape.DELAYED_LONG):
        return _regular(era, step, 3)
    if shape is Shape.LONG_REGULAR:
        return _regular(era, step, 4)
    if shape is Shape.ASCENDING_SHORT:
        return _ascending(era, step, "short")
    if shape is Shape.ASCENDING_NORMAL:
        return _ascending(era, step, "normal")
    if shape is Shape.ASCENDING_LONG:
        return _ascending(era, step, "long")
    if shape is Shape.DESCENDING_SHORT:
        return _swap_auxiliaries(_ascending(era, step, "short"))
    if shape is Shape.DESCENDING_NORMAL:
        return _swap_auxiliaries(_ascending(era, step, "normal"))
    if shape is Shape.DESCENDING_LONG:
        return _swap_auxiliaries(_ascending(era, step, "long"))
    if shape is Shape.TERMINAL_SHORT:
        return _terminal(era, step, 0)
    if shape is Shape.TERMINAL_NORMAL:
        return _terminal(era, step, 3)
    return _terminal(era, step, 7)


def _build_catalog() -> Dict[str, TrillVariant]:
    catalog: Dict[str, TrillVariant] = {}
    # Iterate shape-major so the catalog order groups related figures the
    # same way the variant listing does.
    for shape in Shape:
        for era in Era:
            for interval in Interval:
                code = f"{era.name[0]}Tr{shape.fragment}{interval.digit}"
                catalog[code] = TrillVariant(
                    code=code,
                    description=f"{era.value} {shape.title} Trill - {interval.value}",
                    era=era,
                    interval=interval,
                    shape=shape,
                    offsets=_offsets_for(shape, era, interval.semitones),
                )
    return catalog


VARIANTS: Dict[str, TrillVariant] = _build_catalog()
ALL_CODES: Tuple[str, ...] = tuple(VARIANTS)


def get_variant(code: str) -> TrillVariant:
    """Return the catalog entry for ``code``.

    Raises
    ------
    UnknownVariant
        If ``code`` is not part of the catalog.
    """

    try:
        return VARIANTS[code]
    except KeyError:
        raise UnknownVariant(f"Unknown trill variant: {code}") from None


def is_any_selection(codes: Iterable[str]) -> bool:
    """Return ``True`` when ``codes`` means "draw from the whole catalog"."""

    codes = list(codes)
    return not codes or (len(codes) == 1 and codes[0].lower() in _ANY_ALIASES)


def variant_pool(size: int = 10, rng: Optional[RandomSource] = None) -> List[TrillVariant]:
    """Return ``size`` distinct variants in random order.

    A short pool keeps interactive multiple-choice menus readable; the full
    catalog is returned shuffled when ``size`` exceeds it.
    """

    if size <= 0:
        raise ValueError("pool size must be positive")
    rng = rng or make_source()
    pool = shuffled(rng, list(VARIANTS.values()))[:size]
    logging.debug("Offering variant pool: %s", ", ".join(v.code for v in pool))
    return pool


def parse_user_choices(text: str, max_choice: int) -> List[int]:
    """Parse 1-based menu selections such as ``"3 1 3 x 12"``.

    Tokens that are not integers or fall outside ``1..max_choice`` are
    ignored and duplicates are dropped, keeping first-seen order.
    """

    choices: List[int] = []
    for token in text.split():
        try:
            choice = int(token)
        except ValueError:
            continue
        if 1 <= choice <= max_choice and choice not in choices:
            choices.append(choice)
    return choices
