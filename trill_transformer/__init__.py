#!/usr/bin/env python3
"""Trill Transformer library.

This package adds ornamental trills to tables of analysed notes and writes
the result as a Standard MIDI File. A typical workflow calls
:func:`process_file` (or :func:`run_transformation` for in-memory rows) with
a :class:`TransformConfig`, then feeds the annotated rows into
:func:`encode_sequence` or :func:`convert_table_to_midi`. A command line
interface and a Flask web interface wrap these calls so end users can work
without writing code.

Underlying Algorithm
--------------------
Each input row names a track, a pitch, a duration in ticks and a label
describing the melodic context. Rows whose label marks an ornamentation site
are transformed with a fixed probability: a trill variant is drawn from the
catalog (or from a user selection) and the note is split into the variant's
alternating sub-notes. Splitting uses integer division with the remainder
placed on the last sub-note, so the ornament always lasts exactly as long as
the note it replaces and later notes on the track keep their timing.

The MIDI encoder then lays each track out back to back, pairs every note
with a note-on and note-off event and serialises the result with
variable-length delta times at 1024 ticks per quarter note.

Features include:
- A catalog of 56 Baroque and Classical trill variants.
- Duple and triple subdivisions for every trill shape.
- Seedable, injectable random sources for reproducible runs.
- Byte-exact MIDI output readable by any conformant player.
- Both CLI and web (Flask) interfaces with persistent JSON settings.
"""

__version__ = "0.1.0"

import json
import logging
import os
from pathlib import Path

from .note_utils import InvalidPitchName, midi_to_note, note_to_midi  # noqa: F401
from .variants import (  # noqa: F401
    ALL_CODES,
    ANY_VARIANT,
    VARIANTS,
    Era,
    Interval,
    Shape,
    TrillVariant,
    UnknownVariant,
    get_variant,
    parse_user_choices,
    variant_pool,
)
from .patterns import InvalidDuration, InvalidMeter, Meter, apply_trill  # noqa: F401
from .rng import RandomSource, make_source  # noqa: F401
from .table_io import NoteRecord, read_table, write_table  # noqa: F401
from .transform import (  # noqa: F401
    ELIGIBLE_LABELS,
    TransformConfig,
    TransformationStats,
    format_summary,
    process_file,
    run_transformation,
)
from .midi_io import (  # noqa: F401
    TICKS_PER_BEAT,
    TimelineEvent,
    build_timeline,
    convert_table_to_midi,
    decode_vlq,
    encode_sequence,
    encode_vlq,
    write_midi_file,
)

# Default path for storing user preferences
# The file lives in the user's home directory so settings persist
# between runs of the application.
env_path = os.environ.get("TRILL_SETTINGS_FILE")
if env_path:
    DEFAULT_SETTINGS_FILE = Path(env_path).expanduser()
else:
    DEFAULT_SETTINGS_FILE = Path.home() / ".trill_transformer_settings.json"

# Values used when neither the settings file nor the command line supply an
# option.
DEFAULT_SETTINGS = {
    "percentage": 50.0,
    "variants": [ANY_VARIANT],
    "meter": "duple",
}


def _valid_setting(key: str, value) -> bool:
    """Return ``True`` when ``value`` has the shape expected for ``key``."""

    if key == "percentage":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if key == "variants":
        if isinstance(value, str):
            return True
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return isinstance(value, str)


def load_settings(path: Path = DEFAULT_SETTINGS_FILE) -> dict:
    """Load saved user settings from ``path`` if it exists.

    Stored values of the wrong type (for example ``"percentage": null``)
    are logged and replaced by their defaults.

    @param path (Path): Location of the settings file.
    @returns dict: Loaded settings merged over :data:`DEFAULT_SETTINGS`.
    """
    settings = dict(DEFAULT_SETTINGS)
    # Prefer the user's saved options but fall back to the defaults when the
    # settings file is missing or unreadable.
    if path.is_file():
        try:
            with open(path, "r", encoding="utf-8") as fh:
                stored = json.load(fh)
        except (OSError, ValueError) as exc:
            logging.error(f"Could not load settings: {exc}")
        else:
            if isinstance(stored, dict):
                for key, value in stored.items():
                    if key not in DEFAULT_SETTINGS:
                        continue
                    if _valid_setting(key, value):
                        settings[key] = value
                    else:
                        logging.error(
                            "Ignoring invalid %s setting %r in %s; using %r",
                            key, value, path, DEFAULT_SETTINGS[key],
                        )
            else:
                logging.error("Could not load settings: expected a JSON object in %s", path)
    return settings


def save_settings(settings: dict, path: Path = DEFAULT_SETTINGS_FILE) -> None:
    """Save user ``settings`` to ``path`` as JSON.

    @param settings (dict): Options to be persisted.
    @param path (Path): Destination file path.
    @returns None: Function does not return a value.
    """
    # Any IOError is logged but ignored so failing to save
    # preferences never prevents a transformation run.
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(settings, fh, indent=2)
    except OSError as exc:
        logging.error(f"Could not save settings: {exc}")


def run_cli():
    from .cli import run_cli as _run_cli
    _run_cli()


def main():
    from .cli import main as _main
    _main()


if __name__ == "__main__":
    main()
