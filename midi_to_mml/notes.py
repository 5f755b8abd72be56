"""Note record, timing constants and General MIDI names."""

import math
from dataclasses import dataclass, replace

TPB = 384  # canonical ticks per beat
GRID = 24  # 1/16 beat, a 64th note at TPB
NUM_VOICES = 6
DEFAULT_BPM = 120
DEFAULT_PROGRAM = 0
DRUM_CHANNEL = 9
MELODY_RANGE = 12  # semitones
MIN_START_OCTAVE = 2
MAX_START_OCTAVE = 6

PITCH_NAMES = ["C", "C+", "D", "D+", "E", "F", "F+", "G", "G+", "A", "A+", "B"]

GM_INSTRUMENTS = [
    "Acoustic Grand Piano", "Bright Acoustic Piano", "Electric Grand Piano",
    "Honky-tonk Piano", "Electric Piano 1", "Electric Piano 2", "Harpsichord", "Clavinet",
    "Celesta", "Glockenspiel", "Music Box", "Vibraphone", "Marimba", "Xylophone",
    "Tubular Bells", "Dulcimer",
    "Drawbar Organ", "Percussive Organ", "Rock Organ", "Church Organ", "Reed Organ",
    "Accordion", "Harmonica", "Tango Accordion",
    "Acoustic Guitar (nylon)", "Acoustic Guitar (steel)", "Electric Guitar (jazz)",
    "Electric Guitar (clean)", "Electric Guitar (muted)", "Overdriven Guitar",
    "Distortion Guitar", "Guitar Harmonics",
    "Acoustic Bass", "Electric Bass (finger)", "Electric Bass (pick)", "Fretless Bass",
    "Slap Bass 1", "Slap Bass 2", "Synth Bass 1", "Synth Bass 2",
    "Violin", "Viola", "Cello", "Contrabass", "Tremolo Strings", "Pizzicato Strings",
    "Orchestral Harp", "Timpani",
    "String Ensemble 1", "String Ensemble 2", "Synth Strings 1", "Synth Strings 2",
    "Choir Aahs", "Voice Oohs", "Synth Voice", "Orchestra Hit",
    "Trumpet", "Trombone", "Tuba", "Muted Trumpet", "French Horn", "Brass Section",
    "Synth Brass 1", "Synth Brass 2",
    "Soprano Sax", "Alto Sax", "Tenor Sax", "Baritone Sax", "Oboe", "English Horn",
    "Bassoon", "Clarinet",
    "Piccolo", "Flute", "Recorder", "Pan Flute", "Blown Bottle", "Shakuhachi",
    "Whistle", "Ocarina",
    "Lead 1 (square)", "Lead 2 (sawtooth)", "Lead 3 (calliope)", "Lead 4 (chiff)",
    "Lead 5 (charang)", "Lead 6 (voice)", "Lead 7 (fifths)", "Lead 8 (bass + lead)",
    "Pad 1 (new age)", "Pad 2 (warm)", "Pad 3 (polysynth)", "Pad 4 (choir)",
    "Pad 5 (bowed)", "Pad 6 (metallic)", "Pad 7 (halo)", "Pad 8 (sweep)",
    "FX 1 (rain)", "FX 2 (soundtrack)", "FX 3 (crystal)", "FX 4 (atmosphere)",
    "FX 5 (brightness)", "FX 6 (goblins)", "FX 7 (echoes)", "FX 8 (sci-fi)",
    "Sitar", "Banjo", "Shamisen", "Koto", "Kalimba", "Bagpipe", "Fiddle", "Shanai",
    "Tinkle Bell", "Agogo", "Steel Drums", "Woodblock", "Taiko Drum", "Melodic Tom",
    "Synth Drum", "Reverse Cymbal",
    "Guitar Fret Noise", "Breath Noise", "Seashore", "Bird Tweet", "Telephone Ring",
    "Helicopter", "Applause", "Gunshot",
]


@dataclass(frozen=True)
class Note:
    pitch: int  # MIDI note number
    start: int  # ticks at TPB
    end: int
    velocity: int
    instrument: str = GM_INSTRUMENTS[DEFAULT_PROGRAM]

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def octave(self) -> int:
        return self.pitch // 12 - 1

    @property
    def name(self) -> str:
        return PITCH_NAMES[self.pitch % 12]

    def cropped(self, end: int) -> "Note":
        """Copy of this note cut off at ``end`` (no-op if it already ends earlier)."""
        if end >= self.end:
            return self
        return replace(self, end=end)


def instrument_name(program: int) -> str:
    if 0 <= program < len(GM_INSTRUMENTS):
        return GM_INSTRUMENTS[program]
    return f"Program {program}"


def _clamp_int(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def start_octave_for(notes: list[Note]) -> int:
    if not notes:
        return 4
    return _clamp_int(notes[0].octave, MIN_START_OCTAVE, MAX_START_OCTAVE)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def snap_to_grid(tick: int | float, grid: int = GRID) -> int:
    return int((tick + grid / 2) // grid) * grid
