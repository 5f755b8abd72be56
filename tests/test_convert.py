from conftest import mk, off, on, program, tempo
from midi_to_mml import ConversionOptions, convert_midi
from midi_to_mml.convert import group_by_instrument


def _chord_song(midi_bytes):
    return midi_bytes([[tempo(0, 120), on(0, 60), on(0, 64), off(384, 60), off(384, 64)]])


def test_chord_scenario(midi_bytes):
    result = convert_midi(_chord_song(midi_bytes), ConversionOptions(char_limit=200))
    assert result.success
    assert result.error is None
    assert result.bpm == 120
    assert result.total_notes == 2
    assert [(v.name, v.content) for v in result.voices] == [
        ("melody", "T120V15O4L4E"),
        ("harmony-1", "T120V15O4L4C"),
    ]
    melody = result.voices[0]
    assert melody.char_count == len(melody.content)
    assert melody.note_count == 1
    assert melody.duration == 0.5


def test_result_dict_shape(midi_bytes):
    out = convert_midi(_chord_song(midi_bytes), ConversionOptions(char_limit=200)).to_dict()
    assert set(out) == {"success", "bpm", "total_notes", "voices", "error"}
    assert set(out["voices"][0]) == {"name", "content", "char_count", "note_count", "duration"}


def test_tiny_budget_is_empty_success(midi_bytes):
    result = convert_midi(_chord_song(midi_bytes), ConversionOptions(char_limit=3))
    assert result.success
    assert result.voices == []
    assert result.total_notes == 2


def test_no_notes_is_empty_success(midi_bytes):
    result = convert_midi(midi_bytes([[tempo(0, 90)]]))
    assert result.success
    assert result.bpm == 90
    assert result.voices == []


def test_parse_failure_collapses(midi_bytes):
    result = convert_midi(b"garbage bytes here")
    assert not result.success
    assert result.voices == []
    assert result.error
    assert result.bpm == 0


def test_corrupt_meta_collapses_to_failure():
    header = b"MThd" + (6).to_bytes(4, "big") + (0).to_bytes(2, "big") + (1).to_bytes(2, "big")
    header += (384).to_bytes(2, "big")
    body = bytes([0x00, 0xFF, 0x59, 0x02, 0x07, 0xA1, 0x00, 0xFF, 0x2F, 0x00])
    result = convert_midi(header + b"MTrk" + len(body).to_bytes(4, "big") + body)
    assert not result.success
    assert result.error.startswith("MIDI parse error")


def test_bad_options_collapse(midi_bytes):
    result = convert_midi(_chord_song(midi_bytes), ConversionOptions(char_limit=0))
    assert not result.success
    assert "char_limit" in result.error
    result = convert_midi(_chord_song(midi_bytes), ConversionOptions(mode="bogus"))
    assert not result.success


def test_budget_respected_end_to_end(midi_bytes):
    events = []
    for i in range(64):
        events += [on(i * 192, 60 + i % 12), off((i + 1) * 192, 60 + i % 12)]
        events += [on(i * 192, 48 + i % 7, channel=1), off((i + 1) * 192, 48 + i % 7, channel=1)]
    result = convert_midi(midi_bytes([events]), ConversionOptions(char_limit=50))
    assert result.success
    assert result.voices
    assert all(v.char_count <= 50 for v in result.voices)
    assert len({v.duration for v in result.voices}) == 1


def test_compress_mode_shortens_output(midi_bytes):
    events = []
    for i in range(8):
        events += [on(i * 600, 48), off(i * 600 + 600, 48)]
    data = midi_bytes([events])
    accurate = convert_midi(data, ConversionOptions(char_limit=10_000))
    compact = convert_midi(data, ConversionOptions(char_limit=10_000, compress_mode=True))
    assert "&" in accurate.voices[0].content
    assert "&" not in compact.voices[0].content
    assert compact.voices[0].char_count < accurate.voices[0].char_count


def test_group_by_instrument_sorted():
    notes = [mk(60, 0, 384, instrument="Violin"), mk(48, 0, 384, instrument="Cello"), mk(62, 384, 768, instrument="Violin")]
    groups = group_by_instrument(notes)
    assert list(groups) == ["Cello", "Violin"]
    assert [n.pitch for n in groups["Violin"]] == [60, 62]


def test_instrument_mode_labels(midi_bytes):
    data = midi_bytes(
        [
            [program(0, 40), on(0, 72), on(0, 76), off(384, 72), off(384, 76)],
            [program(0, 42, channel=1), on(0, 48, channel=1), off(384, 48, channel=1)],
        ]
    )
    result = convert_midi(data, ConversionOptions(mode="instrument", char_limit=500))
    assert result.success
    assert [v.name for v in result.voices] == [
        "melody (Cello)",
        "harmony-1 (Violin-1)",
        "harmony-2 (Violin-2)",
    ]
    assert [v.content for v in result.voices] == [
        "T120V15O3L4C",
        "T120V15O5L4E",
        "T120V15O5L4C",
    ]


def test_normal_mode_ignores_instruments(midi_bytes):
    data = midi_bytes(
        [
            [program(0, 40), on(0, 72), off(384, 72)],
            [program(0, 42, channel=1), on(0, 48, channel=1), off(384, 48, channel=1)],
        ]
    )
    result = convert_midi(data, ConversionOptions(char_limit=500))
    assert [v.name for v in result.voices] == ["melody", "harmony-1"]
