"""Tests for note and chord symbol helpers."""

import pytest

from harmonic_sketch.core import (
    NoteEvent,
    chord_pitch_classes,
    chord_symbol,
    chord_tones,
    identify_quality,
    midi_to_frequency,
    midi_to_note_name,
    note_name_to_pc,
    parse_chord_symbol,
    transpose_note,
)


class TestNoteNames:
    """Test note-name helpers."""

    @pytest.mark.parametrize("name,pc", [
        ("C", 0), ("F#", 6), ("Bb", 10), ("Ebb", 2), ("B#", 0), ("A4", 9), ("g", 7),
    ])
    def test_note_name_to_pc(self, name, pc):
        assert note_name_to_pc(name) == pc

    @pytest.mark.parametrize("name", ["", "H", "?"])
    def test_unknown_names_map_to_c(self, name):
        assert note_name_to_pc(name) == 0

    def test_midi_helpers(self):
        assert midi_to_note_name(60) == "C4"
        assert midi_to_note_name(70) == "A#4"
        assert midi_to_frequency(69) == pytest.approx(440.0)

    def test_transpose(self):
        assert transpose_note("A", 3) == "C"
        assert transpose_note("Db", -2) == "B"


class TestChordSymbols:
    """Test chord symbol parsing and spelling."""

    @pytest.mark.parametrize("symbol,expected", [
        ("C", (0, "")),
        ("Am", (9, "m")),
        ("F#m7", (6, "m7")),
        ("Bbmaj7", (10, "maj7")),
        ("Ebdim", (3, "dim")),
        ("G7/B", (7, "7")),
        ("Cmin7", (0, "m7")),
    ])
    def test_parse(self, symbol, expected):
        assert parse_chord_symbol(symbol) == expected

    def test_unknown_quality_is_major_triad(self):
        assert parse_chord_symbol("Dxyz") == (2, "")
        assert chord_tones("Dxyz") == ["D", "F#", "A"]

    def test_unknown_root(self):
        assert parse_chord_symbol("Hm") == (0, "")

    def test_chord_tones(self):
        assert chord_tones("E7") == ["E", "G#", "B", "D"]
        assert chord_tones("Bbm") == ["A#", "C#", "F"]

    def test_chord_symbol_uses_sharps(self):
        assert chord_symbol(10, "maj7") == "A#maj7"
        assert chord_pitch_classes(10, "maj7") == (10, 2, 5, 9)

    def test_identify_quality(self):
        assert identify_quality([0, 4, 7, 10]) == "7"
        assert identify_quality([0, 3, 6]) == "dim"
        assert identify_quality([0, 1, 2]) is None


class TestNoteEvent:
    """Test NoteEvent validation."""

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValueError):
            NoteEvent(start=1.0, end=1.0, pitch=60)

    def test_bends_become_tuple(self):
        note = NoteEvent(start=0.0, end=1.0, pitch=60, pitch_bends=[0.2, -0.4])
        assert note.pitch_bends == (0.2, -0.4)
        assert note.max_bend == pytest.approx(0.4)
        assert note.pitch_name == "C4"
