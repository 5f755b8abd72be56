import io

import mido
import pytest

from midi_to_mml.notes import Note


def build_midi(tracks: list[list[tuple[int, mido.Message]]], ticks_per_beat: int = 384) -> bytes:
    """Serialize tracks of (absolute_tick, message) pairs into SMF bytes."""
    mid = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)
    for events in tracks:
        track = mido.MidiTrack()
        last = 0
        for tick, msg in sorted(events, key=lambda e: e[0]):
            track.append(msg.copy(time=tick - last))
            last = tick
        mid.tracks.append(track)
    buf = io.BytesIO()
    mid.save(file=buf)
    return buf.getvalue()


def on(tick: int, note: int, velocity: int = 100, channel: int = 0):
    return tick, mido.Message("note_on", note=note, velocity=velocity, channel=channel)


def off(tick: int, note: int, channel: int = 0, velocity: int = 0, as_note_on: bool = False):
    if as_note_on:
        return tick, mido.Message("note_on", note=note, velocity=0, channel=channel)
    return tick, mido.Message("note_off", note=note, velocity=velocity, channel=channel)


def program(tick: int, value: int, channel: int = 0):
    return tick, mido.Message("program_change", program=value, channel=channel)


def tempo(tick: int, bpm: float):
    return tick, mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm))


def mk(pitch: int, start: int, end: int, velocity: int = 100, instrument: str = "Acoustic Grand Piano") -> Note:
    return Note(pitch=pitch, start=start, end=end, velocity=velocity, instrument=instrument)


@pytest.fixture
def midi_bytes():
    return build_midi
