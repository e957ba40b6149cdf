"""Injectable random sources.

The transformation engine never touches the module-level :mod:`random`
state directly. Callers hand in any object exposing ``random() -> float`` in
``[0, 1)``; :class:`random.Random` instances satisfy this so seeding a run is
as simple as passing ``random.Random(42)``. Tests can also supply a scripted
source returning predetermined values.
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Protocol, Sequence, TypeVar

__all__ = ["RandomSource", "make_source", "choose_index", "choose", "shuffled"]

T = TypeVar("T")


class RandomSource(Protocol):
    """Anything producing uniform floats in ``[0, 1)``."""

    def random(self) -> float:  # pragma: no cover - protocol definition
        ...


def make_source(seed: Optional[int] = None) -> RandomSource:
    """Return a fresh :class:`random.Random`, seeded when ``seed`` is given."""

    if seed is not None:
        logging.info("Using random seed %d", seed)
    return random.Random(seed)


def choose_index(rng: RandomSource, length: int) -> int:
    """Return a uniformly drawn index in ``range(length)``.

    ``min`` guards against sources that return exactly ``1.0``.
    """

    if length <= 0:
        raise ValueError("cannot choose from an empty sequence")
    return min(int(rng.random() * length), length - 1)


def choose(rng: RandomSource, items: Sequence[T]) -> T:
    """Return one element of ``items`` drawn uniformly with ``rng``."""

    return items[choose_index(rng, len(items))]


def shuffled(rng: RandomSource, items: Sequence[T]) -> List[T]:
    """Return a Fisher-Yates shuffled copy of ``items``."""

    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = choose_index(rng, i + 1)
        result[i], result[j] = result[j], result[i]
    return result
