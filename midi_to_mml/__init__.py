"""Convert MIDI performances into per-voice MML scripts."""

from .convert import ConversionOptions, ConversionResult, VoiceResult, convert_midi
from .errors import ConversionError, MidiToMmlError, ParseError, UnsupportedTimingError
from .notes import GRID, NUM_VOICES, TPB, Note

__version__ = "0.1.0"

__all__ = [
    "ConversionError",
    "ConversionOptions",
    "ConversionResult",
    "GRID",
    "MidiToMmlError",
    "NUM_VOICES",
    "Note",
    "ParseError",
    "TPB",
    "UnsupportedTimingError",
    "VoiceResult",
    "convert_midi",
]
