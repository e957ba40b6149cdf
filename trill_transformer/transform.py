"""Probabilistic trill insertion over a table of notes.

The engine walks the input once. Rows whose label marks an ornamentation
site are *eligible*; each eligible row gets one Bernoulli trial with success
probability ``percentage / 100``. Successful rows are replaced by the
sub-notes of a randomly chosen trill variant, unsuccessful ones are kept and
tagged ``ORIGINAL``. Everything else passes through untouched.

Underlying Algorithm
--------------------
::

    for row in rows:
        if row is malformed:          echo it verbatim
        elif label not eligible:      emit row, empty variant column
        elif rng.random()*100 >= pct: emit row tagged ORIGINAL
        else:
            variant = choose(selection or whole catalog)
            for pitch, ticks in apply_trill(pitch(row), row.duration, meter, variant):
                emit (row.track, name(pitch), ticks, row.label, variant.code)

A failure to parse the note name is recorded in the run statistics and the
row is emitted unchanged, so one bad line never aborts a whole file.

Example
-------
>>> import random
>>> from trill_transformer.transform import TransformConfig, run_transformation
>>> rows, stats = run_transformation(
...     ["1 C4 480 RLN"], TransformConfig(percentage=100, variants=("BTrRs1",)),
...     rng=random.Random(0))
>>> [r.note for r in rows]
['D4', 'C4', 'D4', 'C4']
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

from .note_utils import InvalidPitchName, midi_to_note, note_to_midi
from .patterns import Meter, apply_trill
from .rng import RandomSource, choose, make_source
from .table_io import ORIGINAL_MARKER, NoteRecord, parse_note_line, write_table
from .variants import ALL_CODES, get_variant, is_any_selection

__all__ = [
    "ELIGIBLE_LABELS",
    "TransformConfig",
    "TransformationStats",
    "OutputRow",
    "is_eligible",
    "run_transformation",
    "process_file",
    "format_summary",
]

# Classification labels that mark a note as a site where a trill may be
# written. Matching is exact and case-sensitive.
ELIGIBLE_LABELS: FrozenSet[str] = frozenset(
    {
        "RLN", "CS", "I3", "I8", "U2R", "BM", "SPU", "SPD", "CH", "CW", "CD",
        "HT", "FM", "RN", "LAD", "DN", "DNW", "SN", "LNSN", "SAN", "SMP", "DLP3",
    }
)

OutputRow = Union[NoteRecord, str]


def _clamp_percentage(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError(f"Transformation percentage must be a finite number, got {value}")
    if value < 0.0 or value > 100.0:
        clamped = min(100.0, max(0.0, value))
        logging.warning(
            "Transformation percentage %s outside 0-100; using %s", value, clamped
        )
        return clamped
    return float(value)


@dataclass(frozen=True)
class TransformConfig:
    """Options controlling one transformation run.

    Parameters
    ----------
    percentage:
        Chance, in percent, that an eligible note is ornamented. Values
        outside ``0-100`` are clamped with a warning; NaN and infinities
        raise :class:`ValueError`.
    variants:
        Codes to draw from. Empty, or only ``"any"``, means the whole
        catalog. Unknown codes raise :class:`~trill_transformer.variants.UnknownVariant`.
    meter:
        Subdivision used by the pattern generators.
    """

    percentage: float = 50.0
    variants: Tuple[str, ...] = ()
    meter: Meter = Meter.DUPLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "percentage", _clamp_percentage(float(self.percentage)))
        object.__setattr__(self, "meter", Meter.coerce(self.meter))
        codes = tuple(self.variants)
        if not is_any_selection(codes):
            for code in codes:
                get_variant(code)
        object.__setattr__(self, "variants", codes)

    @property
    def random_selection(self) -> bool:
        return is_any_selection(self.variants)

    def candidate_codes(self) -> Sequence[str]:
        return ALL_CODES if self.random_selection else self.variants


@dataclass
class TransformationStats:
    """Counters collected during a run."""

    total_eligible: int = 0
    transformed: int = 0
    usage: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def rate(self) -> float:
        """Observed fraction of eligible notes that were transformed."""

        if self.total_eligible == 0:
            return 0.0
        return self.transformed / self.total_eligible


def is_eligible(label: str) -> bool:
    return label in ELIGIBLE_LABELS


def _ornament_rows(
    record: NoteRecord, config: TransformConfig, rng: RandomSource
) -> Tuple[str, List[NoteRecord]]:
    pitch = note_to_midi(record.note)
    code = choose(rng, config.candidate_codes())
    ornament = apply_trill(pitch, record.duration, config.meter, code)
    rows = [
        NoteRecord(record.track, midi_to_note(p), ticks, record.label, code)
        for p, ticks in ornament
    ]
    return code, rows


def run_transformation(
    rows: Iterable[Union[str, NoteRecord]],
    config: Optional[TransformConfig] = None,
    rng: Optional[RandomSource] = None,
) -> Tuple[List[OutputRow], TransformationStats]:
    """Apply trills to eligible ``rows``.

    Parameters
    ----------
    rows:
        Raw input lines or already parsed :class:`NoteRecord` objects.
    config:
        Run options; defaults to :class:`TransformConfig()`.
    rng:
        Random source used for the Bernoulli trial and the variant draw. A
        fresh unseeded :class:`random.Random` is used when omitted.

    Returns
    -------
    tuple
        Output rows in input order (records, or verbatim strings for
        malformed lines) and the run's :class:`TransformationStats`.
    """

    config = config or TransformConfig()
    rng = rng or make_source()
    stats = TransformationStats()
    output: List[OutputRow] = []

    for row in rows:
        if isinstance(row, NoteRecord):
            record = row
        else:
            record = parse_note_line(row)
            if record is None:
                output.append(row.rstrip("\r\n"))
                continue

        if not is_eligible(record.label):
            output.append(record.annotated(""))
            continue

        stats.total_eligible += 1
        if not rng.random() * 100.0 < config.percentage:
            output.append(record.annotated(ORIGINAL_MARKER))
            continue

        try:
            code, ornament_rows = _ornament_rows(record, config, rng)
        except InvalidPitchName as exc:
            message = f"Error processing note '{record.note}': {exc}"
            logging.error(message)
            stats.errors.append(message)
            output.append(record.annotated(ORIGINAL_MARKER))
            continue

        stats.transformed += 1
        stats.usage[code] = stats.usage.get(code, 0) + 1
        output.extend(ornament_rows)

    logging.info(
        "Transformed %d of %d eligible notes", stats.transformed, stats.total_eligible
    )
    return output, stats


def process_file(
    input_file: Union[str, Path],
    output_file: Union[str, Path],
    config: Optional[TransformConfig] = None,
    rng: Optional[RandomSource] = None,
) -> TransformationStats:
    """Transform the rows in ``input_file`` and write the annotated table.

    The input is read in full before ``output_file`` is opened, so a missing
    input raises :class:`OSError` without touching an existing table. Bytes
    that are not valid UTF-8 (for example a Latin-1 label) are replaced
    rather than aborting the run. The parent directory of ``output_file`` is
    created when needed.
    """

    with open(input_file, "r", encoding="utf-8", errors="replace") as src:
        lines = src.readlines()
    rows, stats = run_transformation(lines, config, rng)

    output_path = Path(output_file).expanduser()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as dst:
        write_table(rows, dst)
    logging.info("Annotated table saved to %s", output_path)
    return stats


def format_summary(
    stats: TransformationStats,
    config: TransformConfig,
    output_file: Optional[Union[str, Path]] = None,
) -> str:
    """Return a human readable report of a finished run."""

    lines = [
        "Transformation Statistics:",
        f"Total eligible notes found: {stats.total_eligible}",
        f"Notes transformed: {stats.transformed}",
        f"Actual transformation percentage: {stats.rate * 100:.1f}%",
        "",
    ]
    if config.random_selection:
        lines.append("Variant selection: Random")
    elif len(config.variants) == 1:
        lines.append(f"Variant used: {config.variants[0]}")
    else:
        lines.append(f"Variants used ({len(config.variants)} total):")
    for code in sorted(stats.usage):
        lines.append(f"  {code}: {stats.usage[code]} times")
    if stats.errors:
        lines.append("")
        lines.append(f"Notes left unchanged because of errors: {len(stats.errors)}")
        lines.extend(f"  {err}" for err in stats.errors)
    if output_file is not None:
        lines.append(f"Processing complete. Transformed results written to {output_file}")
    return "\n".join(lines) + "\n"
