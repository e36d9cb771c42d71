"""Tests for key detection."""

import pytest

from harmonic_sketch.core import NoteEvent, PITCH_NAMES
from harmonic_sketch.analysis import PitchClassFeatures, extract_features
from harmonic_sketch.inference import KeyDetector, KeyScoringWeights, Mode, analyze_harmony


# ============================================================================
# Helpers
# ============================================================================

def create_scale_notes(root: str, mode: str, octave: int = 4, duration: float = 0.5) -> list:
    """Notes of a scale ending on the upper tonic."""
    root_pc = PITCH_NAMES.index(root)
    intervals = [0, 2, 4, 5, 7, 9, 11] if mode == "major" else [0, 2, 3, 5, 7, 8, 10]
    base = (octave + 1) * 12 + root_pc
    pitches = [base + i for i in intervals] + [base + 12]
    return [
        NoteEvent(start=i * duration, end=(i + 1) * duration, pitch=p, velocity=0.8)
        for i, p in enumerate(pitches)
    ]


def a_minor_pentatonic_notes() -> list:
    """A riff on A C D E G starting and ending on A."""
    pitches = [57, 60, 62, 64, 67, 64, 62, 60, 57]
    return [
        NoteEvent(start=i * 0.4, end=(i + 1) * 0.4, pitch=p, velocity=0.7)
        for i, p in enumerate(pitches)
    ]


# ============================================================================
# Key detection
# ============================================================================

class TestKeyDetector:
    """Test KeyDetector ranking."""

    def test_scores_all_24_keys(self):
        analysis = analyze_harmony(extract_features(a_minor_pentatonic_notes()))

        assert len(analysis.candidates) == 24
        assert len({c.id for c in analysis.candidates}) == 24
        assert all(0.0 <= c.score <= 1.0 for c in analysis.candidates)

    def test_deterministic(self):
        features = extract_features(a_minor_pentatonic_notes())
        assert analyze_harmony(features) == analyze_harmony(features)

    def test_a_minor_pentatonic_ranks_a_minor_first(self):
        analysis = analyze_harmony(extract_features(a_minor_pentatonic_notes()))
        by_id = analysis.by_id

        assert analysis.candidates[0].id == "A-minor"
        assert by_id["A-minor"].score > by_id["C-major"].score

    def test_concentrated_weights_with_tonic_ending(self):
        weights = [0.0] * 12
        for pc in (9, 0, 2, 4, 7):
            weights[pc] = 1.0
        features = PitchClassFeatures.from_weights(weights, last_note_pc=9, bass_pc=9)

        analysis = KeyDetector().analyze(features)

        assert analysis.selected_id == "A-minor"
        assert analysis.by_id["A-minor"].score > analysis.by_id["C-major"].score

    def test_tonic_prominence_separates_relative_keys(self):
        """Without ending or bass cues, an emphasized tonic decides between relatives."""
        weights = [0.0] * 12
        weights[9] = 0.4
        for pc in (0, 2, 4, 7):
            weights[pc] = 0.15
        features = PitchClassFeatures.from_weights(weights)

        analysis = KeyDetector().analyze(features)
        flat = KeyDetector(KeyScoringWeights(tonic_weight=0.0)).analyze(features)

        assert analysis.selected_id == "A-minor"
        assert analysis.by_id["A-minor"].score > analysis.by_id["C-major"].score
        assert flat.by_id["A-minor"].score == flat.by_id["C-major"].score
        assert flat.selected_id == "C-major"

    @pytest.mark.parametrize("root,mode", [("C", "major"), ("G", "major"), ("A", "minor"), ("D", "minor")])
    def test_scales(self, root, mode):
        analysis = analyze_harmony(extract_features(create_scale_notes(root, mode)))
        assert analysis.candidates[0].id == f"{root}-{mode}"

    def test_out_of_scale_pitch_classes(self):
        notes = create_scale_notes("C", "major") + [NoteEvent(start=5.0, end=5.5, pitch=66)]
        analysis = analyze_harmony(extract_features(notes))

        assert analysis.by_id["C-major"].out_of_scale == (6,)
        assert analysis.by_id["G-major"].out_of_scale == (5,)

    def test_ranking_tie_breaks(self):
        """Equal scores order by tonic pitch class, then major before minor."""
        analysis = analyze_harmony(PitchClassFeatures())
        ids = [c.id for c in analysis.candidates]

        assert all(c.score == 0.0 for c in analysis.candidates)
        assert ids[:4] == ["C-major", "C-minor", "C#-major", "C#-minor"]

    def test_candidate_fields(self):
        analysis = analyze_harmony(extract_features(a_minor_pentatonic_notes()))
        a_minor = analysis.by_id["A-minor"]

        assert a_minor.mode == Mode.MINOR
        assert a_minor.is_minor
        assert a_minor.name == "A minor"
        assert a_minor.scale_names == ["A", "B", "C", "D", "E", "F", "G"]


class TestHarmonyAnalysis:
    """Test candidate selection."""

    def test_top_subset(self):
        analysis = analyze_harmony(extract_features(a_minor_pentatonic_notes()))

        assert len(analysis.top) == 8
        assert analysis.top == analysis.candidates[:8]

    def test_select_returns_new_analysis(self):
        analysis = analyze_harmony(extract_features(a_minor_pentatonic_notes()))

        other = analysis.select("C-major")

        assert other.selected.id == "C-major"
        assert analysis.selected.id == "A-minor"
        assert other.candidates == analysis.candidates

    def test_select_unknown(self):
        analysis = analyze_harmony(extract_features(a_minor_pentatonic_notes()))
        with pytest.raises(KeyError):
            analysis.select("H-major")
