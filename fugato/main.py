#!/usr/bin/env python3
"""
Fugato - Modal Counterpoint Generator

Command line entry point. Prints generated voices and optionally writes
them to a Standard MIDI File.

Usage:
    python -m fugato.main <command> [options]

Commands:
    modes       List the mode catalog for a key
    imitate     Chromatic or diatonic imitation of a theme
    entries     Manual fugue exposition from interval:delay entries
    canon       Generate a canon of any supported type
    fugue       Build a fugue with any supported architecture
    stability   Generate or re-bias a theme by scale-degree stability
"""

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from .canon import CANON_TYPES, CanonResult
from .engine import EngineConfig, FugatoEngine
from .errors import FugatoError
from .fugue import ARCHITECTURES, FugueResult
from .modes import Mode
from .parts import EntrySpec, Part
from .pitch import note_name, note_name_to_pitch_class, parse_theme
from .stability import StabilityBias

logger = logging.getLogger(__name__)

DEFAULT_THEME = "60,62,64,65,67,65,64,62,60"


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--key", type=str, default="C",
        help="Tonic as a note name, e.g. C, Db, F# (default: C)"
    )
    parser.add_argument(
        "--mode", type=str, default="Ionian",
        help="Mode name from the catalog (default: Ionian)"
    )
    parser.add_argument(
        "--theme", type=str, default=DEFAULT_THEME,
        help=f"Theme as MIDI numbers or note names (default: {DEFAULT_THEME})"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for reproducible output"
    )
    parser.add_argument(
        "--out", type=str, default=None,
        help="Write the result to this .mid file"
    )
    parser.add_argument(
        "--tempo", type=float, default=96.0,
        help="Tempo in BPM for MIDI export (default: 96)"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="fugato",
        description="Fugato - Modal Counterpoint Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Canon Types:
  """ + ", ".join(CANON_TYPES) + """

Fugue Architectures:
  """ + ", ".join(ARCHITECTURES) + """

Examples:
  python -m fugato.main modes --key D
  python -m fugato.main imitate --interval 7 --delay 4 --diatonic
  python -m fugato.main entries --entries 0:0,7:4,-12:8 --mode Dorian --key D
  python -m fugato.main canon --type inversion --params '{"axis": 60}'
  python -m fugato.main fugue --architecture classic --voices 4 --measures 24 --out fugue.mid
  python -m fugato.main stability --bias mix --ratio 30 --length 12 --seed 3
        """
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    modes = commands.add_parser("modes", help="List the mode catalog")
    modes.add_argument("--key", type=str, default="C", help="Tonic (default: C)")

    imitate = commands.add_parser("imitate", help="Imitate a theme")
    _add_common(imitate)
    imitate.add_argument("--interval", type=int, default=7, help="Interval in semitones (default: 7)")
    imitate.add_argument("--delay", type=float, default=4, help="Entry delay in beats (default: 4)")
    imitate.add_argument("--diatonic", action="store_true", help="Imitate degree by degree in the mode")

    entries = commands.add_parser("entries", help="Manual fugue exposition")
    _add_common(entries)
    entries.add_argument(
        "--entries", type=str, default="0:0,7:4,0:8",
        help="Comma separated interval:delay pairs (default: 0:0,7:4,0:8)"
    )

    canon = commands.add_parser("canon", help="Generate a canon")
    _add_common(canon)
    canon.add_argument("--type", type=str, default="strict", help="Canon type (default: strict)")
    canon.add_argument("--params", type=str, default="{}", help="Extra canon parameters as JSON")
    canon.add_argument("--chromatic", action="store_true", help="Ignore the mode and transpose chromatically")

    fugue = commands.add_parser("fugue", help="Build a fugue")
    _add_common(fugue)
    fugue.add_argument("--architecture", type=str, default="classic", help="Architecture (default: classic)")
    fugue.add_argument("--voices", type=int, default=3, help="Number of voices (default: 3)")
    fugue.add_argument("--measures", type=int, default=16, help="Target length in measures (default: 16)")
    fugue.add_argument("--countersubject", action="store_true", help="Add a countersubject")
    fugue.add_argument("--stretto", type=float, default=0.0, help="Stretto density 0.0-1.0 (default: 0)")
    fugue.add_argument("--params", type=str, default="{}", help="Extra fugue parameters as JSON")

    stability = commands.add_parser("stability", help="Stability-biased theme")
    _add_common(stability)
    stability.add_argument("--bias", type=str, default="stable", help="stable, unstable or mix (default: stable)")
    stability.add_argument("--ratio", type=float, default=50, help="Percent unstable notes for mix (default: 50)")
    stability.add_argument("--length", type=int, default=8, help="Theme length when generating (default: 8)")
    stability.add_argument("--apply", action="store_true", help="Re-bias --theme instead of generating")

    return parser


def parse_entries(text: str) -> list[EntrySpec]:
    """
    Parse entries written as 'interval:delay' pairs.

    Raises:
        ValueError: If an entry is malformed.
    """
    result = []
    for token in text.replace(" ", "").split(","):
        if not token:
            continue
        interval, _, delay = token.partition(":")
        try:
            result.append(EntrySpec(int(interval), int(delay or 0)))
        except ValueError:
            raise ValueError(f"Invalid entry: {token} (expected interval:delay)") from None
    return result


def bias_name_to_type(name: str) -> StabilityBias:
    name = name.lower().strip()
    for bias in StabilityBias:
        if bias.value == name:
            return bias
    raise ValueError(f"Invalid bias: {name}. Use stable, unstable or mix.")


def format_part(label: str, part: Part) -> str:
    notes = " ".join(note_name(n) for n in part.melody)
    return f"  {label:<18} rests={part.leading_rests:<3} {notes}"


def print_parts(parts: Sequence[Part], labels: Optional[Sequence[str]] = None):
    for index, part in enumerate(parts):
        label = labels[index] if labels else f"Voice {index + 1}"
        print(format_part(label, part))


def print_canon(result: CanonResult):
    print(f"\n{result.description}")
    if result.entry_pattern:
        print(f"Entries: {result.entry_pattern}")
    for remark in result.remarks:
        print(f"Note: {remark}")
    print("-" * 50)
    print_parts(result.to_parts(), [v.label for v in result.voices])


def print_fugue(result: FugueResult):
    print(f"\n{result.architecture.title()} fugue: {result.description}")
    print(f"Key {note_name(result.key)}, {result.voices} voices, {result.total_measures} measures")
    print("-" * 50)
    for section in result.sections:
        print(f"  m.{section.start_measure + 1:<4} {section.name} ({section.measures} measures)")
    stations = " ".join(s.roman for s in result.bass_plan.stations)
    print(f"\nFundamental bass: {stations}")


def _theme_and_mode(engine: FugatoEngine, args: argparse.Namespace) -> tuple[list[int], Mode]:
    theme = parse_theme(args.theme)
    mode = engine.find_mode(args.mode, note_name_to_pitch_class(args.key))
    return theme, mode


def run_modes(engine: FugatoEngine, args: argparse.Namespace) -> list[Part]:
    tonic = note_name_to_pitch_class(args.key)
    for category in engine.mode_categories(tonic):
        print(f"\n{category.name}:")
        for mode in category.modes:
            steps = "-".join(str(s) for s in mode.step_pattern)
            print(f"  {mode.name:<32} {steps}")
    return []


def run_imitate(engine: FugatoEngine, args: argparse.Namespace) -> list[Part]:
    theme, mode = _theme_and_mode(engine, args)
    if args.diatonic:
        imitation = engine.imitate_diatonic(theme, mode, args.interval, args.delay)
    else:
        imitation = engine.imitate(theme, args.interval, args.delay)
    parts = [Part.from_melody(theme), imitation]
    print_parts(parts, ["Cantus", "Imitation"])
    return parts


def run_entries(engine: FugatoEngine, args: argparse.Namespace) -> list[Part]:
    theme, mode = _theme_and_mode(engine, args)
    exposition = engine.fugue_entries(theme, mode, parse_entries(args.entries))
    if exposition.first_entry_corrected:
        print(f"Note: first entry interval {exposition.requested_first_interval} replaced by 0")
    print_parts(exposition.parts, [f"Entry {i + 1}" for i in range(len(exposition.parts))])
    return list(exposition.parts)


def run_canon(engine: FugatoEngine, args: argparse.Namespace) -> list[Part]:
    theme, mode = _theme_and_mode(engine, args)
    params = {"type": args.type, **json.loads(args.params)}
    if args.seed is not None:
        params.setdefault("seed", args.seed)
    result = engine.canon(theme, params, mode=None if args.chromatic else mode, seed=args.seed)
    print_canon(result)
    return result.to_parts()


def run_fugue(engine: FugatoEngine, args: argparse.Namespace) -> list[Part]:
    theme, mode = _theme_and_mode(engine, args)
    params = {
        "architecture": args.architecture,
        "subject": theme,
        "voices": args.voices,
        "total_measures": args.measures,
        "countersubject": args.countersubject,
        "stretto_density": args.stretto,
        "mode": mode,
        "seed": args.seed,
        **json.loads(args.params),
    }
    result = engine.fugue(params)
    print_fugue(result)
    return engine.fugue_parts(result) + [result.bass_plan.to_part()]


def run_stability(engine: FugatoEngine, args: argparse.Namespace) -> list[Part]:
    theme, mode = _theme_and_mode(engine, args)
    bias = bias_name_to_type(args.bias)
    if args.apply:
        result = engine.apply_stability(theme, mode, bias, args.ratio, seed=args.seed)
    else:
        result = engine.stability_theme(args.length, mode, bias, args.ratio, seed=args.seed)
    parts = [Part.from_melody(result)]
    print_parts(parts, [f"{bias.value.title()} theme"])
    return parts


COMMANDS = {
    "modes": run_modes,
    "imitate": run_imitate,
    "entries": run_entries,
    "canon": run_canon,
    "fugue": run_fugue,
    "stability": run_stability,
}


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point for Fugato."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = EngineConfig(tempo=getattr(args, "tempo", 96.0), seed=getattr(args, "seed", None))
        engine = FugatoEngine(config)
        parts = COMMANDS[args.command](engine, args)

        out = getattr(args, "out", None)
        if out and parts:
            path = engine.export(out, parts)
            print(f"\nWrote {len(parts)} tracks to {path}")

    except json.JSONDecodeError as e:
        print(f"Error: invalid JSON in --params: {e}")
        sys.exit(1)
    except ValidationError as e:
        print(f"Invalid parameters:\n{e}")
        sys.exit(1)
    except (FugatoError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
