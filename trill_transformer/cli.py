"""Command line helpers for Trill Transformer.

This module implements the console entry points for the project. The
``run_cli`` function parses command line arguments, transforms a note table
and optionally writes the MIDI rendering, while :func:`main` configures
logging first.

Options not given on the command line fall back to the JSON settings file
(``--settings-file`` or ``TRILL_SETTINGS_FILE``); ``--save-settings``
stores the effective percentage, variant selection and meter for next time.

Example
-------
Running ``python -m trill_transformer --input rows.txt --output trills.txt \
    --midi trills.mid --percentage 40 --variants BTrRs1,CTrTn5 --seed 7``
ornaments roughly 40% of the eligible notes in ``rows.txt`` with the two
named variants, writes the annotated table to ``trills.txt`` and renders it
to ``trills.mid``. ``--to-midi TABLE --midi OUT`` converts an annotated
table that was produced earlier.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from . import DEFAULT_SETTINGS_FILE, load_settings, save_settings
from .midi_io import convert_table_to_midi
from .rng import RandomSource, make_source
from .transform import TransformConfig, format_summary, process_file
from .variants import ANY_VARIANT, VARIANTS, parse_user_choices, variant_pool

__all__ = ["run_cli", "main", "format_variant_listing"]


def format_variant_listing() -> str:
    """Return one ``code  description`` line per catalog entry."""

    width = max(len(code) for code in VARIANTS) + 2
    return "\n".join(f"{code.ljust(width)}{v.description}" for code, v in VARIANTS.items())


def _split_codes(raw: str) -> List[str]:
    return [code.strip() for code in raw.split(",") if code.strip()]


def _prompt_for_variants(pool_size: int, rng: RandomSource) -> List[str]:
    """Offer a numbered pool of variants and read the user's picks.

    An empty or unusable answer selects from the whole catalog.
    """

    pool = variant_pool(pool_size, rng)
    print("Available trill variants:")
    for number, variant in enumerate(pool, start=1):
        print(f"  {number:2d}. {variant.code:<8} {variant.description}")
    answer = input("Enter the numbers of the variants to use (blank for random): ")
    choices = parse_user_choices(answer, len(pool))
    if not choices:
        logging.info("No valid selection made; drawing from the full catalog.")
        return [ANY_VARIANT]
    return [pool[i - 1].code for i in choices]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Add trills to a note table and optionally render it as MIDI."
    )
    parser.add_argument("--list-variants", action="store_true", help="List all trill variants and exit")
    parser.add_argument("--input", type=str, help="Input note table (track note duration label per line).")
    parser.add_argument("--output", type=str, help="Destination for the annotated table.")
    parser.add_argument("--midi", type=str, help="Also write the result as a MIDI file at this path.")
    parser.add_argument("--to-midi", type=str, metavar="TABLE", help="Convert an existing annotated table to MIDI (requires --midi).")
    parser.add_argument("--percentage", type=float, help="Chance (0-100) that an eligible note receives a trill.")
    parser.add_argument(
        "--variants",
        type=str,
        help=f"Comma-separated variant codes, or '{ANY_VARIANT}' for the whole catalog.",
    )
    parser.add_argument("--meter", type=str, choices=["duple", "triple"], help="Beat subdivision used to split notes.")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output")
    parser.add_argument("--interactive", action="store_true", help="Choose variants from a random numbered pool.")
    parser.add_argument("--pool-size", type=int, default=10, help="Number of variants offered by --interactive (default: 10).")
    parser.add_argument("--settings-file", type=str, help="Path to the JSON settings file")
    parser.add_argument("--save-settings", action="store_true", help="Persist the effective options to the settings file.")
    return parser


def run_cli() -> None:
    """Parse CLI arguments, transform the input table and write the outputs.

    Validation problems and I/O failures are logged and terminate the
    process with exit status ``1`` so calling scripts can react.
    """

    if "--list-variants" in sys.argv[1:]:
        print(format_variant_listing())
        return

    parser = _build_parser()
    args = parser.parse_args()

    if args.to_midi:
        if not args.midi:
            logging.error("--to-midi requires --midi to name the output file.")
            sys.exit(1)
        try:
            diagnostics = convert_table_to_midi(args.to_midi, args.midi)
        except (OSError, ValueError) as exc:
            logging.error("Could not convert table to MIDI: %s", exc)
            sys.exit(1)
        if diagnostics:
            logging.warning("%d notes were skipped while encoding.", len(diagnostics))
        logging.info("MIDI conversion complete.")
        return

    if not args.input or not args.output:
        logging.error("Both --input and --output are required.")
        sys.exit(1)
    if args.pool_size <= 0:
        logging.error("Pool size must be a positive integer.")
        sys.exit(1)

    settings_path = Path(args.settings_file).expanduser() if args.settings_file else DEFAULT_SETTINGS_FILE
    settings = load_settings(settings_path)

    rng = make_source(args.seed)

    percentage = args.percentage if args.percentage is not None else settings["percentage"]
    meter = args.meter or settings["meter"]
    if args.interactive:
        variants = _prompt_for_variants(args.pool_size, rng)
    elif args.variants:
        variants = _split_codes(args.variants)
    elif isinstance(settings["variants"], str):
        variants = _split_codes(settings["variants"])
    else:
        variants = list(settings["variants"])

    try:
        config = TransformConfig(percentage=percentage, variants=tuple(variants), meter=meter)
    except ValueError as exc:
        logging.error(str(exc))
        sys.exit(1)

    try:
        stats = process_file(args.input, args.output, config, rng)
    except (OSError, ValueError) as exc:
        # Missing inputs, permission issues or full disks surface as
        # ``OSError``; nothing useful can be done with a partial pass.
        logging.error("Could not process files: %s", exc)
        sys.exit(1)
    print(format_summary(stats, config, args.output), end="")

    if args.midi:
        try:
            diagnostics = convert_table_to_midi(args.output, args.midi)
        except (OSError, ValueError) as exc:
            logging.error("Could not write MIDI file: %s", exc)
            sys.exit(1)
        if diagnostics:
            logging.warning("%d notes were skipped while encoding.", len(diagnostics))

    if args.save_settings:
        save_settings(
            {
                "percentage": config.percentage,
                "variants": list(config.variants) or [ANY_VARIANT],
                "meter": config.meter.name.lower(),
            },
            settings_path,
        )
    logging.info("Trill transformation complete.")


def main() -> None:
    """Entry point used by ``python -m trill_transformer`` and the console script."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    run_cli()
