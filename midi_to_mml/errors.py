class MidiToMmlError(Exception):
    """Base class for conversion failures reported to the caller."""


class ParseError(MidiToMmlError):
    pass


class UnsupportedTimingError(MidiToMmlError):
    pass


class ConversionError(MidiToMmlError):
    pass
