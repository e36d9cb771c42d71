"""Tests for chord suggestions."""

import pytest

from harmonic_sketch.core import NoteEvent, PITCH_NAMES
from harmonic_sketch.analysis import PitchClassFeatures, extract_features
from harmonic_sketch.inference import (
    ChordEngineConfig,
    ChordSource,
    ChordSuggestionEngine,
    HarmonicFunction,
    analyze_harmony,
    generate_chord_suggestions,
)


# ============================================================================
# Helpers
# ============================================================================

def create_features(pcs, last_pc=None, bass_pc=None) -> PitchClassFeatures:
    weights = [0.0] * 12
    for pc in pcs:
        weights[pc] += 1.0
    return PitchClassFeatures.from_weights(weights, last_note_pc=last_pc, bass_pc=bass_pc)


def chords_for(key_id: str, features: PitchClassFeatures, config=None):
    key = analyze_harmony(features).by_id[key_id]
    return generate_chord_suggestions(key, features, config)


A_MINOR_PENTATONIC = create_features([9, 0, 2, 4, 7], last_pc=9, bass_pc=9)
C_MAJOR_SCALE = create_features([0, 2, 4, 5, 7, 9, 11], last_pc=0, bass_pc=0)


# ============================================================================
# Diatonic chords
# ============================================================================

class TestDiatonicChords:
    """Test diatonic chord generation."""

    def test_a_minor_numerals(self):
        result = chords_for("A-minor", A_MINOR_PENTATONIC)

        assert len(result.diatonic) == 7
        assert [c.roman for c in result.diatonic] == ["i", "ii°", "III", "iv", "v", "VI", "VII"]
        assert [c.symbol for c in result.diatonic] == ["Am", "Bdim", "C", "Dm", "Em", "F", "G"]
        assert all(len(c.tones) == 3 for c in result.diatonic)

    def test_c_major_functions(self):
        result = chords_for("C-major", C_MAJOR_SCALE)
        functions = [c.function for c in result.diatonic]

        assert [c.roman for c in result.diatonic] == ["I", "ii", "iii", "IV", "V", "vi", "vii°"]
        assert functions[0] == HarmonicFunction.TONIC
        assert functions[3] == HarmonicFunction.SUBDOMINANT
        assert functions[4] == HarmonicFunction.DOMINANT

    def test_sevenths(self):
        result = chords_for("A-minor", A_MINOR_PENTATONIC, ChordEngineConfig(use_sevenths=True))

        assert len(result.diatonic) == 7
        assert all(len(c.tones) == 4 for c in result.diatonic)
        assert result.diatonic[0].symbol == "Am7"
        assert result.diatonic[1].symbol == "Bm7b5"
        assert result.diatonic[2].symbol == "Cmaj7"

    def test_full_support_for_scale_triads(self):
        """Every diatonic triad is fully covered by an evenly played scale."""
        result = chords_for("C-major", C_MAJOR_SCALE)
        for chord in result.diatonic:
            assert chord.support_score == pytest.approx(1.0)
            assert chord.color_score == 0.0


# ============================================================================
# Secondary dominants and substitutes
# ============================================================================

class TestSecondaryDominants:
    """Test applied chords."""

    def test_e7_resolves_to_minor_v(self):
        result = chords_for("A-minor", A_MINOR_PENTATONIC)

        e7 = result.by_id["E7"]

        assert e7.tones == ("E", "G#", "B", "D")
        assert e7.resolves_to_roman == "v"
        assert e7.source == ChordSource.SECONDARY_DOMINANT
        assert e7.function == HarmonicFunction.DOMINANT
        assert e7 in result.by_resolves_to["v"]
        assert all(e7.color_score > c.color_score for c in result.diatonic)

    def test_dominant_a_fifth_above_target(self):
        result = chords_for("C-major", C_MAJOR_SCALE)
        targets = {c.resolves_to_roman: c for c in result.secondary if c.source == ChordSource.SECONDARY_DOMINANT}

        assert targets["ii"].symbol == "A7"
        assert targets["V"].symbol == "D7"
        assert targets["vi"].symbol == "E7"
        assert targets["ii"].roman == "V7/ii"
        # vii° is not tonicized
        assert "vii°" not in targets

    def test_tritone_substitutes_share_the_tritone(self):
        result = chords_for("C-major", C_MAJOR_SCALE)
        dominants = {
            c.resolves_to_roman: c
            for c in result.secondary
            if c.source == ChordSource.SECONDARY_DOMINANT
        }
        substitutes = [c for c in result.secondary if c.source == ChordSource.TRITONE_SUBSTITUTE]

        assert substitutes
        for sub in substitutes:
            dom = dominants[sub.resolves_to_roman]
            tritone = {(dom.root_pc + 4) % 12, (dom.root_pc + 10) % 12}
            assert tritone <= set(sub.pitch_classes)
            assert sub.color_score > dom.color_score
            assert sub.roman.startswith("subV7/")

    def test_substitutes_can_be_disabled(self):
        result = chords_for("C-major", C_MAJOR_SCALE, ChordEngineConfig(include_substitutes=False))
        assert all(c.source == ChordSource.SECONDARY_DOMINANT for c in result.secondary)


# ============================================================================
# Borrowed chords
# ============================================================================

class TestBorrowedChords:
    """Test modal interchange."""

    def test_minor_iv_in_major(self):
        result = chords_for("C-major", C_MAJOR_SCALE)
        fm = result.by_id["Fm"]

        assert fm.source == ChordSource.BORROWED
        assert fm.roman == "iv"
        assert fm.function == HarmonicFunction.SUBDOMINANT
        assert "C minor" in fm.note

    def test_provenance_lists_every_mode(self):
        result = chords_for("C-major", C_MAJOR_SCALE)
        flat_seven = result.by_id["A#"]

        assert flat_seven.roman == "bVII"
        for mode in ("C minor", "C dorian", "C mixolydian"):
            assert mode in flat_seven.note

    def test_neapolitan(self):
        result = chords_for("C-major", C_MAJOR_SCALE)
        neapolitan = result.by_id["C#"]

        assert neapolitan.roman == "bII"
        assert neapolitan.source == ChordSource.BORROWED
        assert "Neapolitan" in neapolitan.note

    def test_borrowed_absent_from_diatonic(self):
        result = chords_for("A-minor", A_MINOR_PENTATONIC)
        diatonic = {c.symbol for c in result.diatonic}

        assert result.borrowed
        assert not any(c.symbol in diatonic for c in result.borrowed)

    def test_borrowed_seventh_shared_with_applied_dominant(self):
        """C7 is both V7/IV and the Mixolydian I7 in C major."""
        result = chords_for("C-major", C_MAJOR_SCALE, ChordEngineConfig(use_sevenths=True))

        secondary = [c for c in result.secondary if c.symbol == "C7"]
        borrowed = [c for c in result.borrowed if c.symbol == "C7"]

        assert [c.roman for c in secondary] == ["V7/IV"]
        assert len(borrowed) == 1
        assert borrowed[0].source == ChordSource.BORROWED
        assert "C mixolydian" in borrowed[0].note
        assert result.by_id["C7"].source == ChordSource.SECONDARY_DOMINANT
        assert [c.id for c in result.ranked].count("C7") == 1


# ============================================================================
# Result structure
# ============================================================================

class TestChordSuggestionResult:
    """Test indexes and ranking."""

    def test_indexes_are_derived(self):
        result = chords_for("A-minor", A_MINOR_PENTATONIC)
        everything = result.all_chords

        assert len(result.by_id) == len(everything)
        assert sum(len(v) for v in result.by_function.values()) == sum(
            1 for c in everything if c.function is not None
        )
        assert sum(len(v) for v in result.by_roman.values()) == len(everything)
        assert result.by_roman["iv"][0].symbol == "Dm"

    def test_ranking_by_combined_score(self):
        engine = ChordSuggestionEngine()
        key = analyze_harmony(A_MINOR_PENTATONIC).by_id["A-minor"]
        result = engine.suggest(key, A_MINOR_PENTATONIC)
        scores = [engine.combined_score(c) for c in result.ranked]

        assert scores == sorted(scores, reverse=True)
        assert set(result.ranked) == set(result.all_chords)

    def test_empty_features(self):
        features = extract_features([])
        result = chords_for("C-major", features)

        assert result.is_empty
        assert result.diatonic == ()
        assert result.secondary == ()
        assert result.borrowed == ()

    def test_support_score(self):
        features = create_features([0, 4, 7])
        assert ChordSuggestionEngine.support_score((0, 4, 7), features) == pytest.approx(1.0)
        assert ChordSuggestionEngine.support_score((2, 5, 9), features) == 0.0
        assert ChordSuggestionEngine.support_score((0, 3, 7), features) == pytest.approx(2 / 3)

    def test_support_is_per_tone_mass_relative_to_heaviest_bin(self):
        weights = [0.0] * 12
        weights[0], weights[4], weights[7] = 0.5, 0.25, 0.25
        features = PitchClassFeatures.from_weights(weights)

        per_tone = (0.5 + 0.25 + 0.25) / 3
        assert ChordSuggestionEngine.support_score((0, 4, 7), features) == pytest.approx(per_tone / 0.5)
        assert ChordSuggestionEngine.support_score((4, 7, 11), features) == pytest.approx(1 / 3)

    def test_sharp_spelling(self):
        result = chords_for("F-major", create_features([5, 7, 9, 10, 0, 2, 4], 5, 5))
        for chord in result.all_chords:
            assert all(tone in PITCH_NAMES for tone in chord.tones)
        assert result.diatonic[3].symbol == "A#"

    def test_from_notes(self):
        notes = [NoteEvent(start=i * 0.5, end=(i + 1) * 0.5, pitch=p) for i, p in enumerate([57, 60, 64, 69])]
        features = extract_features(notes)
        result = generate_chord_suggestions(analyze_harmony(features).selected, features)

        assert result.key.id == "A-minor"
        # A is doubled, so the heaviest bin is twice the others
        assert result.diatonic[0].support_score == pytest.approx(2 / 3)
