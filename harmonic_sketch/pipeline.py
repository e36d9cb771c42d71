"""Harmonic analysis pipeline - notes in, key/chord/progression suggestions out.

Every run produces a fresh immutable ``AnalysisSnapshot``. Changing the
selected key or the weirdness control derives a new snapshot from an old
one; nothing is mutated in place.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from .core import NoteEvent, OnsetEvent
from .analysis import FeatureConfig, FeatureExtractor, PitchClassFeatures, snap_notes_to_onsets
from .inference import (
    ChordEngineConfig,
    ChordSuggestionEngine,
    ChordSuggestionResult,
    HarmonyAnalysis,
    KeyCandidate,
    KeyDetector,
    KeyScoringWeights,
    ProgressionConfig,
    ProgressionGenerator,
    ProgressionSuggestion,
    clamp_weirdness,
)
from .processing import ConsolidationConfig, ConsolidationStats, NoteConsolidator
from .output.export import to_json, to_plain


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Result of one pipeline run.

    Attributes:
        notes: Consolidated notes the features were computed from
        features: Pitch-class features
        harmony: All 24 key candidates and the selected one
        chords: Chord catalog for the selected key
        progressions: Ranked progressions for the selected key
        weirdness: Weirdness the progressions were ranked with
        stats: Consolidation statistics
        raw_note_count: Notes received before consolidation
    """

    notes: Tuple[NoteEvent, ...]
    features: PitchClassFeatures
    harmony: HarmonyAnalysis
    chords: ChordSuggestionResult
    progressions: Tuple[ProgressionSuggestion, ...]
    weirdness: float = 0.0
    stats: Optional[ConsolidationStats] = None
    raw_note_count: int = 0

    @property
    def key(self) -> Optional[KeyCandidate]:
        return self.harmony.selected

    def to_dict(self) -> dict:
        return to_plain(self)


class DiagnosticSink(ABC):
    """Receives every snapshot the analyzer produces."""

    @abstractmethod
    def record(self, snapshot: AnalysisSnapshot) -> None:
        pass


class SnapshotRecorder(DiagnosticSink):
    """Keeps the most recent snapshot for manual inspection."""

    def __init__(self):
        self.last: Optional[AnalysisSnapshot] = None
        self.count = 0

    def record(self, snapshot: AnalysisSnapshot) -> None:
        self.last = snapshot
        self.count += 1

    def to_json(self, indent: int = 2) -> str:
        """The last snapshot as JSON ('null' before any analysis)."""
        return to_json(self.last, indent=indent)


class HarmonicAnalyzer:
    """Runs consolidation, features, key detection, chords and progressions."""

    def __init__(
        self,
        consolidation: Optional[ConsolidationConfig] = None,
        features: Optional[FeatureConfig] = None,
        key_weights: Optional[KeyScoringWeights] = None,
        chords: Optional[ChordEngineConfig] = None,
        progressions: Optional[ProgressionConfig] = None,
        sink: Optional[DiagnosticSink] = None,
        snap_distance: float = 0.03,
    ):
        """
        Initialize HarmonicAnalyzer.

        Args:
            consolidation: Note consolidation settings
            features: Feature extraction settings
            key_weights: Key scoring weights
            chords: Chord engine settings
            progressions: Progression generator settings
            sink: Optional receiver for every produced snapshot
            snap_distance: Max seconds a note start moves to meet an onset
        """
        self.consolidator = NoteConsolidator(consolidation)
        self.extractor = FeatureExtractor(features)
        self.key_detector = KeyDetector(key_weights)
        self.chord_engine = ChordSuggestionEngine(chords)
        self.progression_generator = ProgressionGenerator(progressions)
        self.sink = sink
        self.snap_distance = snap_distance

    def analyze(
        self,
        notes: Sequence[NoteEvent],
        weirdness: float = 0.0,
        onsets: Optional[Sequence[OnsetEvent]] = None,
    ) -> AnalysisSnapshot:
        """
        Analyze a complete note list.

        Args:
            notes: Transcribed notes (any order)
            weirdness: Progression weirdness control (0-1)
            onsets: Optional audio onsets used to correct note starts

        Returns:
            New AnalysisSnapshot with the best key selected
        """
        weirdness = clamp_weirdness(weirdness)
        raw = list(notes)
        if onsets:
            raw = snap_notes_to_onsets(raw, onsets, self.snap_distance)

        cleaned, stats = self.consolidator.consolidate(raw, return_stats=True)
        features = self.extractor.extract(cleaned)
        harmony = self.key_detector.analyze(features)
        chords = self.chord_engine.suggest(harmony.selected, features)
        progressions = self.progression_generator.generate(
            harmony.selected, chords, features, weirdness
        )

        snapshot = AnalysisSnapshot(
            notes=tuple(cleaned),
            features=features,
            harmony=harmony,
            chords=chords,
            progressions=tuple(progressions),
            weirdness=weirdness,
            stats=stats,
            raw_note_count=len(raw),
        )
        return self._emit(snapshot)

    def reselect(self, snapshot: AnalysisSnapshot, candidate_id: str) -> AnalysisSnapshot:
        """
        Switch the active key candidate.

        Raises:
            KeyError: If no candidate has this id
        """
        harmony = snapshot.harmony.select(candidate_id)
        chords = self.chord_engine.suggest(harmony.selected, snapshot.features)
        progressions = self.progression_generator.generate(
            harmony.selected, chords, snapshot.features, snapshot.weirdness
        )
        return self._emit(
            replace(
                snapshot,
                harmony=harmony,
                chords=chords,
                progressions=tuple(progressions),
            )
        )

    def with_weirdness(self, snapshot: AnalysisSnapshot, weirdness: float) -> AnalysisSnapshot:
        """Re-rank progressions for a new weirdness value."""
        weirdness = clamp_weirdness(weirdness)
        progressions = self.progression_generator.generate(
            snapshot.harmony.selected, snapshot.chords, snapshot.features, weirdness
        )
        return self._emit(
            replace(snapshot, progressions=tuple(progressions), weirdness=weirdness)
        )

    def _emit(self, snapshot: AnalysisSnapshot) -> AnalysisSnapshot:
        if self.sink is not None:
            self.sink.record(snapshot)
        return snapshot


def analyze_notes(
    notes: Sequence[NoteEvent], weirdness: float = 0.0
) -> AnalysisSnapshot:
    """Run the full pipeline with default settings."""
    return HarmonicAnalyzer().analyze(notes, weirdness)
