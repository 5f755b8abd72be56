"""MML emission for one voice.

Stage 1: per-note length decomposition (octave dependent).
Stage 2: default length pick (L command) from the note histogram.
Stage 3: token stream with rests, octave changes and ties.
"""

from collections import Counter

from .notes import Note

VOLUME = 15
REST_OCTAVE = 4
FALLBACK_LENGTH = ("16", 96)
DEFAULT_LENGTH = "8"
PREFERRED_DEFAULTS = ("8", "16", "4")
MAX_TIES_OCTAVE5 = 2

# ticks -> MML length, longest first
EXACT_LENGTHS = {
    2304: "1.",
    1536: "1",
    1152: "2.",
    768: "2",
    576: "4.",
    384: "4",
    288: "8.",
    192: "8",
    144: "16.",
    96: "16",
    72: "32.",
    48: "32",
    36: "64.",
    24: "64",
}
# No dotted lengths in compact mode.
COMPACT_LENGTHS = {
    1536: "1",
    768: "2",
    384: "4",
    192: "8",
    96: "16",
    48: "32",
    24: "64",
}


def length_table(compact: bool) -> dict[int, str]:
    return COMPACT_LENGTHS if compact else EXACT_LENGTHS


def _tie_chain(ticks: int, table: dict[int, str]) -> list[tuple[str, int]]:
    out = []
    remaining = ticks
    for length_ticks, length in table.items():
        while remaining >= length_ticks:
            out.append((length, length_ticks))
            remaining -= length_ticks
    return out


def _nearest(ticks: int, table: dict[int, str]) -> list[tuple[str, int]]:
    # Ties on distance go to the shorter length.
    best = min(table.keys(), key=lambda t: (abs(t - ticks), t))
    return [(table[best], best)]


def decompose(ticks: int, octave: int, compact: bool = False) -> list[tuple[str, int]]:
    """Split ``ticks`` into (length, ticks) tokens to be tied together."""
    table = length_table(compact)
    if ticks in table:
        return [(table[ticks], ticks)]
    if compact or octave >= 6:
        return _nearest(ticks, table)

    chain = _tie_chain(ticks, table)
    if not chain:
        return [FALLBACK_LENGTH]
    if octave == 5 and len(chain) > MAX_TIES_OCTAVE5:
        # At most two tied tokens at octave 5.
        return _nearest(ticks, table)
    return chain


def pick_default_length(notes: list[Note], compact: bool = False) -> str:
    counts: Counter[str] = Counter()
    for note in notes:
        first = decompose(note.duration, note.octave, compact)[0][0]
        counts[first.rstrip(".")] += 1
    for preferred in PREFERRED_DEFAULTS:
        if counts[preferred]:
            return preferred
    if counts:
        return counts.most_common(1)[0][0]
    return DEFAULT_LENGTH


def _token(name: str, length: str, default: str) -> str:
    return name if length == default else f"{name}{length}"


def encode_voice(notes: list[Note], bpm: int, start_octave: int, compact: bool = False) -> str:
    if not notes:
        return ""

    default = pick_default_length(notes, compact)
    parts = [f"T{bpm}", f"V{VOLUME}", f"O{start_octave}", f"L{default}"]
    octave = start_octave
    cursor = 0

    for note in notes:
        gap = note.start - cursor
        if gap > 0:
            for length, ticks in decompose(gap, REST_OCTAVE, compact):
                parts.append(_token("R", length, default))
                cursor += ticks

        if note.octave != octave:
            parts.append(f"O{note.octave}")
            octave = note.octave

        for i, (length, ticks) in enumerate(decompose(note.duration, note.octave, compact)):
            if i:
                parts.append("&")
            parts.append(_token(note.name, length, default))
            cursor += ticks

    return "".join(parts)
