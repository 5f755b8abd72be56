"""Fit voices into a per-voice character budget.

Each voice is cut independently with a binary search over grid-aligned
cutoffs, then all survivors are cut again at the earliest end among them
so every voice stops on the same tick.
"""

import logging
from dataclasses import dataclass, field

from .mml import encode_voice
from .notes import GRID, TPB, Note, start_octave_for

log = logging.getLogger(__name__)


@dataclass
class CroppedVoice:
    index: int  # position in the input voice list
    notes: list[Note]
    content: str

    @property
    def char_count(self) -> int:
        return len(self.content)

    @property
    def note_count(self) -> int:
        return len(self.notes)


@dataclass
class CropResult:
    voices: list[CroppedVoice] = field(default_factory=list)
    sync_tick: int = 0
    dropped: list[int] = field(default_factory=list)
    resyncs: int = 0

    @property
    def duration(self) -> float:
        return self.sync_tick / TPB / 2


def truncate(notes: list[Note], cutoff: int) -> list[Note]:
    return [n for n in notes if n.start < cutoff]


def encode_notes(notes: list[Note], bpm: int, compact: bool = False) -> str:
    return encode_voice(notes, bpm, start_octave_for(notes), compact)


def _fits(notes: list[Note], bpm: int, char_limit: int, compact: bool) -> bool:
    return len(encode_notes(notes, bpm, compact)) <= char_limit


def crop_voice(
    notes: list[Note],
    bpm: int,
    char_limit: int,
    compact: bool = False,
    limit_tick: int | None = None,
) -> list[Note]:
    """Longest prefix of ``notes`` whose MML fits ``char_limit``.

    The binary search treats encoded length as non-decreasing in the
    cutoff. That does not strictly hold (the L default can change as
    notes are added), so every longer prefix starting before the limit
    is then checked and the longest one that fits wins.
    """
    if not notes:
        return []
    hi = max(n.end for n in notes) if limit_tick is None else limit_tick

    left, right = 0, hi
    best = 0
    while left <= right:
        mid = (left + right) // 2 // GRID * GRID
        # An empty cut always fits.
        if _fits(truncate(notes, mid), bpm, char_limit, compact):
            best = mid
            left = mid + GRID
        else:
            right = mid - GRID

    count = len(truncate(notes, best))
    for size in range(count + 1, len(notes) + 1):
        if notes[size - 1].start >= hi:
            break
        if _fits(notes[:size], bpm, char_limit, compact):
            count = size
    return notes[:count]


def _sync(notes: list[Note], sync_tick: int) -> list[Note]:
    return [n.cropped(sync_tick) for n in notes if n.start < sync_tick]


def crop_voices(
    voices: list[list[Note]],
    bpm: int,
    char_limit: int,
    compact: bool = False,
) -> CropResult:
    result = CropResult()
    current = [crop_voice(v, bpm, char_limit, compact) for v in voices]

    while True:
        alive = [i for i, notes in enumerate(current) if notes]
        if not alive:
            result.dropped = list(range(len(voices)))
            log.debug("crop: nothing fits in %d chars", char_limit)
            return result

        sync_tick = min(current[i][-1].end for i in alive)
        synced = {i: _sync(current[i], sync_tick) for i in alive}
        encoded = {i: encode_notes(notes, bpm, compact) for i, notes in synced.items() if notes}
        over = [i for i, text in encoded.items() if len(text) > char_limit]
        if not over:
            break

        # Shortened notes can need longer tie chains; cut those voices
        # before the sync point and resync.
        result.resyncs += 1
        current = [synced.get(i, []) for i in range(len(current))]
        for i in over:
            notes = synced[i]
            current[i] = crop_voice(notes, bpm, char_limit, compact, limit_tick=notes[-1].start)

    result.sync_tick = sync_tick
    for i in range(len(voices)):
        notes = synced.get(i, [])
        if not notes:
            result.dropped.append(i)
            continue
        result.voices.append(CroppedVoice(index=i, notes=notes, content=encoded[i]))

    log.debug(
        "crop: kept %d/%d voices, sync_tick=%d (%.2fs), resyncs=%d",
        len(result.voices),
        len(voices),
        sync_tick,
        result.duration,
        result.resyncs,
    )
    return result
