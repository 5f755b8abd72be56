"""Voice allocation: spread notes over NUM_VOICES monophonic voices.

Notes sharing an onset are ranked (melody, bass, then by velocity) and
each one takes the first voice that is free at its start.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass

from .notes import MELODY_RANGE, NUM_VOICES, Note

log = logging.getLogger(__name__)


@dataclass
class AllocationStats:
    placed: int = 0
    dropped: int = 0
    chords: int = 0


def _chord_priority(chord: list[Note], last_melody: int | None) -> list[Note]:
    ordered = sorted(chord, key=lambda n: -n.pitch)

    melody = ordered[0]
    if last_melody is not None:
        close = [n for n in ordered if abs(n.pitch - last_melody) <= MELODY_RANGE]
        if close:
            melody = close[0]

    bass = ordered[-1]
    priority = [melody]
    if bass.pitch != melody.pitch:
        priority.append(bass)
    remaining = [n for n in ordered if n.pitch not in (melody.pitch, bass.pitch)]
    remaining.sort(key=lambda n: -n.velocity)
    priority.extend(remaining)
    return priority


def allocate_voices_with_stats(
    notes: list[Note],
    num_voices: int = NUM_VOICES,
) -> tuple[list[list[Note]], AllocationStats]:
    """Greedy allocator over onset groups.

    Each onset group is ranked (melody, bass, then by velocity) and every
    note goes to the first voice that is free at its start. Notes that
    find no free voice are dropped; nothing is ever reassigned.
    """
    by_voice: list[list[Note]] = [[] for _ in range(max(1, num_voices))]
    stats = AllocationStats()

    by_start: dict[int, list[Note]] = defaultdict(list)
    for note in notes:
        by_start[note.start].append(note)

    last_melody: int | None = None
    for start in sorted(by_start.keys()):
        group = by_start[start]
        if len(group) == 1:
            priority = group
        else:
            stats.chords += 1
            priority = _chord_priority(group, last_melody)

        for note in priority:
            assigned = -1
            for i, voice in enumerate(by_voice):
                if not voice or voice[-1].end <= note.start:
                    assigned = i
                    break
            if assigned < 0:
                stats.dropped += 1
                continue
            by_voice[assigned].append(note)
            stats.placed += 1
            if assigned == 0:
                last_melody = note.pitch

    log.debug(
        "allocated %d notes into %d voices (dropped=%d chords=%d)",
        stats.placed,
        sum(1 for v in by_voice if v),
        stats.dropped,
        stats.chords,
    )
    return by_voice, stats


def allocate_voices(notes: list[Note], num_voices: int = NUM_VOICES) -> list[list[Note]]:
    return allocate_voices_with_stats(notes, num_voices)[0]
