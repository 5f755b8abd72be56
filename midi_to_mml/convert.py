"""Conversion pipeline: options, modes, voice labels and the result shape."""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field

from .crop import crop_voices
from .errors import ConversionError, MidiToMmlError
from .extract import ExtractStats, extract_notes
from .notes import GRID, Note
from .voices import allocate_voices_with_stats

log = logging.getLogger(__name__)

MODES = ("normal", "instrument")
DEFAULT_CHAR_LIMIT = 1200
MELODY_LABEL = "melody"
HARMONY_LABEL = "harmony"


@dataclass
class ConversionOptions:
    mode: str = "normal"
    char_limit: int = DEFAULT_CHAR_LIMIT
    compress_mode: bool = False
    min_note_duration: int = GRID

    def validate(self) -> None:
        if self.mode not in MODES:
            raise ConversionError(f"unknown mode {self.mode!r} (expected one of {', '.join(MODES)})")
        if self.char_limit <= 0:
            raise ConversionError("char_limit must be > 0")
        if self.min_note_duration < 0:
            raise ConversionError("min_note_duration must be >= 0")


@dataclass
class VoiceResult:
    name: str
    content: str
    char_count: int
    note_count: int
    duration: float


@dataclass
class ConversionResult:
    success: bool
    bpm: int = 0
    total_notes: int = 0
    voices: list[VoiceResult] = field(default_factory=list)
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        out = asdict(self)
        out.pop("warnings")
        return out


def _voice_label(index: int) -> str:
    return MELODY_LABEL if index == 0 else f"{HARMONY_LABEL}-{index}"


def group_by_instrument(notes: list[Note]) -> dict[str, list[Note]]:
    groups: dict[str, list[Note]] = defaultdict(list)
    for note in notes:
        groups[note.instrument].append(note)
    return {name: groups[name] for name in sorted(groups)}


def _allocate(
    notes: list[Note],
    mode: str,
    warnings: list[str],
) -> tuple[list[list[Note]], list[str]]:
    """Non-empty voices and their labels."""
    if mode == "normal":
        voices, stats = allocate_voices_with_stats(notes)
        if stats.dropped:
            warnings.append(f"voice overflow dropped {stats.dropped} notes")
        kept = [(i, v) for i, v in enumerate(voices) if v]
        return [v for _, v in kept], [_voice_label(i) for i, _ in kept]

    all_voices: list[list[Note]] = []
    labels: list[str] = []
    for name, group in group_by_instrument(notes).items():
        voices, stats = allocate_voices_with_stats(group)
        if stats.dropped:
            warnings.append(f"{name}: voice overflow dropped {stats.dropped} notes")
        non_empty = [v for v in voices if v]
        for sub, voice in enumerate(non_empty, start=1):
            inst = f"{name}-{sub}" if len(non_empty) > 1 else name
            labels.append(f"{_voice_label(len(all_voices))} ({inst})")
            all_voices.append(voice)
    return all_voices, labels


def _convert(data: bytes, options: ConversionOptions) -> ConversionResult:
    options.validate()
    stats = ExtractStats()
    notes, bpm = extract_notes(data, options.min_note_duration, stats)
    result = ConversionResult(success=True, bpm=bpm, total_notes=len(notes))
    if stats.unmatched_note_off:
        result.warnings.append(f"{stats.unmatched_note_off} note-off events without a held note")
    if stats.unterminated:
        result.warnings.append(f"{stats.unterminated} notes never released (ignored)")

    voices, labels = _allocate(notes, options.mode, result.warnings)
    if not voices:
        return result

    cropped = crop_voices(voices, bpm, options.char_limit, options.compress_mode)
    for voice in cropped.voices:
        result.voices.append(
            VoiceResult(
                name=labels[voice.index],
                content=voice.content,
                char_count=voice.char_count,
                note_count=voice.note_count,
                duration=cropped.duration,
            )
        )
    if cropped.dropped:
        dropped = ", ".join(labels[i] for i in cropped.dropped)
        result.warnings.append(f"voices dropped by crop: {dropped}")
    log.info(
        "converted: bpm=%d notes=%d voices=%d duration=%.2fs",
        bpm,
        len(notes),
        len(result.voices),
        cropped.duration,
    )
    return result


def convert_midi(data: bytes, options: ConversionOptions | None = None) -> ConversionResult:
    if options is None:
        options = ConversionOptions()
    try:
        return _convert(data, options)
    except MidiToMmlError as exc:
        log.warning("conversion failed: %s", exc)
        return ConversionResult(success=False, error=str(exc))
