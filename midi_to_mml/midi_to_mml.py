#!/usr/bin/env python
"""MIDI -> MML converter (6 voices, per-voice character budget).

Stage 1: MIDI parsing + note extraction (384 ticks/beat, 24 tick grid).
Stage 2: Voice allocation (melody/bass first, 6 voices).
Stage 3: MML emission, cropped to --char-limit and synchronized.
"""

import sys
import argparse
import json
import logging

from .convert import (
    DEFAULT_CHAR_LIMIT,
    MODES,
    ConversionOptions,
    ConversionResult,
    VoiceResult,
    convert_midi,
)
from .notes import GRID

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _format_summary(result: ConversionResult, options: ConversionOptions, comment: str = ";") -> str:
    lines = [
        f"{comment} MML summary: bpm={result.bpm}, total_notes={result.total_notes}, "
        f"voices={len(result.voices)}",
        f"{comment} Mode: {options.mode} (compress={options.compress_mode}), "
        f"char_limit={options.char_limit}",
    ]
    if result.voices:
        lines.append(f"{comment} Duration: ~{result.voices[0].duration:.3f}s")
    if result.warnings:
        lines.append(f"{comment} Warnings:")
        lines.extend(f"{comment} - {w}" for w in result.warnings)
    return "\n".join(lines) + "\n"


def _format_voice(voice: VoiceResult, comment: str = ";") -> str:
    return (
        f"{comment} {voice.name}: chars={voice.char_count} notes={voice.note_count} "
        f"duration={voice.duration:.3f}s\n{voice.content}\n"
    )


def format_report(result: ConversionResult, options: ConversionOptions) -> str:
    parts = [_format_summary(result, options)]
    parts.extend(_format_voice(v) for v in result.voices)
    return "\n".join(parts)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert a MIDI file to MML voices")
    parser.add_argument("input_mid")
    parser.add_argument("output", nargs="?", default="", help="Output file (default: stdout)")
    parser.add_argument(
        "--profile",
        choices=["accurate", "compact"],
        help="Quick presets: accurate (dotted lengths + ties), compact (shortest text)",
    )
    parser.add_argument("--mode", choices=list(MODES), default="normal", help="normal (by pitch) or instrument")
    parser.add_argument(
        "--char-limit",
        type=int,
        default=DEFAULT_CHAR_LIMIT,
        help=f"Max characters per voice (default {DEFAULT_CHAR_LIMIT})",
    )
    parser.add_argument(
        "--compress",
        dest="compress_mode",
        action="store_true",
        default=False,
        help="Prefer short text over exact rhythm (no dotted lengths or ties)",
    )
    parser.add_argument("--no-compress", dest="compress_mode", action="store_false", help="Prefer accuracy (default)")
    parser.add_argument(
        "--min-note-duration",
        type=int,
        default=GRID,
        help=f"Minimum note length in ticks at 384/beat (default {GRID})",
    )
    parser.add_argument("--json", action="store_true", default=False, help="Emit the result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Debug logging")
    return parser.parse_args(argv[1:])


def main(argv: list[str]) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format=LOG_FORMAT)

    if args.profile == "accurate":
        args.compress_mode = False
    elif args.profile == "compact":
        args.compress_mode = True

    if args.char_limit <= 0:
        print("Error: --char-limit must be > 0.")
        return 2
    if args.min_note_duration < 0:
        print("Error: --min-note-duration must be >= 0.")
        return 2

    try:
        with open(args.input_mid, "rb") as f:
            data = f.read()
    except OSError as exc:
        print(f"Error: cannot read {args.input_mid}: {exc}")
        return 2

    options = ConversionOptions(
        mode=args.mode,
        char_limit=args.char_limit,
        compress_mode=args.compress_mode,
        min_note_duration=args.min_note_duration,
    )
    result = convert_midi(data, options)
    if not result.success:
        print(f"Error: {result.error}")
        return 2

    for w in result.warnings:
        print(f"Warning: {w}", file=sys.stderr)

    if args.json:
        output = json.dumps(result.to_dict(), ensure_ascii=False, indent=2) + "\n"
    else:
        output = format_report(result, options)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
    else:
        sys.stdout.write(output)
    return 0


def run() -> int:
    return main(sys.argv)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
