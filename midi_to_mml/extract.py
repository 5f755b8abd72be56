"""MIDI parsing and note extraction.

Notes are rescaled to TPB and snapped to the GRID before anything else
sees them, so every later stage works on one fixed tick grid.
"""

import io
import logging
from dataclasses import dataclass

import mido

from .errors import ParseError, UnsupportedTimingError
from .notes import (
    DEFAULT_BPM,
    DEFAULT_PROGRAM,
    DRUM_CHANNEL,
    GRID,
    TPB,
    Note,
    instrument_name,
    round_half_up,
    snap_to_grid,
)

log = logging.getLogger(__name__)

# mido surfaces malformed containers through these.
_DECODE_ERRORS = (
    OSError,
    EOFError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    mido.KeySignatureError,
)


@dataclass
class ExtractStats:
    ticks_per_beat: int = 0
    tracks: int = 0
    tempo_events: int = 0
    program_changes: int = 0
    unmatched_note_off: int = 0
    unterminated: int = 0
    duplicates: int = 0
    note_count: int = 0


def _is_smpte_header(data: bytes) -> bool:
    # MThd <len:4> <format:2> <ntrks:2> <division:2>; bit 15 set means SMPTE.
    return len(data) >= 14 and data[:4] == b"MThd" and bool(data[12] & 0x80)


def load_midi(data: bytes) -> mido.MidiFile:
    if _is_smpte_header(data):
        raise UnsupportedTimingError("SMPTE timing is not supported (need ticks per beat)")
    try:
        mid = mido.MidiFile(file=io.BytesIO(data))
    except _DECODE_ERRORS as exc:
        # EOFError carries no message.
        detail = str(exc) or "unexpected end of file"
        raise ParseError(f"MIDI parse error: {detail}") from exc
    if mid.ticks_per_beat <= 0:
        raise UnsupportedTimingError("SMPTE timing is not supported (need ticks per beat)")
    return mid


def find_bpm(mid: mido.MidiFile) -> tuple[int, int]:
    """First tempo found in storage order (tracks, then messages), and the tempo event count."""
    bpm = None
    count = 0
    for track in mid.tracks:
        for msg in track:
            if msg.type == "set_tempo" and msg.tempo > 0:
                count += 1
                if bpm is None:
                    bpm = round_half_up(60_000_000 / int(msg.tempo))
    return (bpm if bpm is not None else DEFAULT_BPM), count


def _min_duration_floor(min_note_duration: int) -> int:
    if min_note_duration <= GRID:
        return GRID
    return -(-int(min_note_duration) // GRID) * GRID


def _make_note(
    pitch: int,
    start_tick: int,
    end_tick: int,
    velocity: int,
    program: int,
    tpb: int,
    min_duration: int,
) -> Note:
    duration = max(0, end_tick - start_tick)
    if tpb != TPB:
        start_tick = round_half_up(start_tick * TPB / tpb)
        duration = round_half_up(duration * TPB / tpb)
    start = snap_to_grid(start_tick)
    end = snap_to_grid(start_tick + duration)
    duration = max(min_duration, end - start)
    return Note(
        pitch=pitch,
        start=start,
        end=start + duration,
        velocity=velocity,
        instrument=instrument_name(program),
    )


def _extract_track_notes(
    track: mido.MidiTrack,
    tpb: int,
    min_duration: int,
    stats: ExtractStats,
) -> list[Note]:
    abs_tick = 0
    programs: dict[int, int] = {}
    # (channel, note) -> (start_tick, velocity, channel)
    active: dict[tuple[int, int], tuple[int, int, int]] = {}
    notes: list[Note] = []

    for msg in track:
        abs_tick += msg.time

        if msg.type == "program_change":
            programs[msg.channel] = int(msg.program)
            stats.program_changes += 1
            continue
        if msg.type not in ("note_on", "note_off"):
            continue

        channel = msg.channel
        key = (channel, msg.note)
        velocity = getattr(msg, "velocity", 0)

        if msg.type == "note_on" and velocity > 0:
            # Percussion never starts a note.
            if channel != DRUM_CHANNEL:
                active[key] = (abs_tick, velocity, channel)
            continue

        # note_off, or note_on with velocity 0; closes on any channel.
        if key not in active:
            stats.unmatched_note_off += 1
            continue
        start_tick, start_vel, start_channel = active.pop(key)
        program = programs.get(start_channel, DEFAULT_PROGRAM)
        notes.append(
            _make_note(msg.note, start_tick, abs_tick, start_vel, program, tpb, min_duration)
        )

    stats.unterminated += len(active)
    return notes


def dedupe_notes(notes: list[Note]) -> list[Note]:
    """Sort by (start, -pitch) and keep the loudest note per (start, pitch)."""
    ordered = sorted(notes, key=lambda n: (n.start, -n.pitch))
    out: list[Note] = []
    for note in ordered:
        if out and out[-1].start == note.start and out[-1].pitch == note.pitch:
            if note.velocity > out[-1].velocity:
                out[-1] = note
            continue
        out.append(note)
    return out


def extract_notes_from_midi(
    mid: mido.MidiFile,
    min_note_duration: int = GRID,
    stats: ExtractStats | None = None,
) -> tuple[list[Note], int]:
    if stats is None:
        stats = ExtractStats()
    tpb = mid.ticks_per_beat
    if tpb <= 0:
        raise UnsupportedTimingError("SMPTE timing is not supported (need ticks per beat)")
    bpm, stats.tempo_events = find_bpm(mid)
    stats.ticks_per_beat = tpb
    stats.tracks = len(mid.tracks)

    min_duration = _min_duration_floor(min_note_duration)
    notes: list[Note] = []
    for track in mid.tracks:
        notes.extend(_extract_track_notes(track, tpb, min_duration, stats))

    deduped = dedupe_notes(notes)
    stats.duplicates = len(notes) - len(deduped)
    stats.note_count = len(deduped)
    log.debug(
        "extracted %d notes (tpb=%d tracks=%d bpm=%d duplicates=%d unmatched_off=%d unterminated=%d)",
        stats.note_count,
        tpb,
        stats.tracks,
        bpm,
        stats.duplicates,
        stats.unmatched_note_off,
        stats.unterminated,
    )
    return deduped, bpm


def extract_notes(
    data: bytes,
    min_note_duration: int = GRID,
    stats: ExtractStats | None = None,
) -> tuple[list[Note], int]:
    return extract_notes_from_midi(load_midi(data), min_note_duration, stats)
