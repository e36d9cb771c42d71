"""Pitch-class feature extraction from note sequences."""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from ..core import NoteEvent, PITCH_NAMES


@dataclass
class FeatureConfig:
    """Configuration for feature extraction.

    Attributes:
        use_velocity: Scale each note's duration weight by its velocity (default: True)
    """

    use_velocity: bool = True


@dataclass(frozen=True)
class PitchClassFeatures:
    """Pitch-class summary of a note sequence.

    Attributes:
        weights: 12 non-negative weights indexed by pitch class (sum 1, or all 0)
        top_pitch_classes: All 12 pitch classes, heaviest first
        last_note_pc: Pitch class of the latest-starting note
        bass_pc: Pitch class of the lowest note
        note_count: Number of notes summarized
        total_duration: Summed note duration in seconds
    """

    weights: Tuple[float, ...] = (0.0,) * 12
    top_pitch_classes: Tuple[int, ...] = tuple(range(12))
    last_note_pc: Optional[int] = None
    bass_pc: Optional[int] = None
    note_count: int = 0
    total_duration: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not any(w > 0 for w in self.weights)

    @property
    def vector(self) -> np.ndarray:
        """Weights as a numpy array."""
        return np.array(self.weights, dtype=float)

    @property
    def max_weight(self) -> float:
        return max(self.weights)

    def weight_of(self, pc: int) -> float:
        return self.weights[pc % 12]

    def describe(self) -> str:
        """Human-readable summary (e.g. 'A 0.31, C 0.22, E 0.19')."""
        return ", ".join(
            f"{PITCH_NAMES[pc]} {self.weights[pc]:.2f}"
            for pc in self.top_pitch_classes
            if self.weights[pc] > 0
        )

    @classmethod
    def from_weights(
        cls,
        weights: Sequence[float],
        last_note_pc: Optional[int] = None,
        bass_pc: Optional[int] = None,
    ) -> "PitchClassFeatures":
        """Build features from a raw 12-bin weight vector.

        The vector is normalized; a zero vector stays zero.
        """
        vec = np.clip(np.asarray(weights, dtype=float), 0.0, None)
        if vec.shape != (12,):
            raise ValueError(f"Expected 12 pitch-class weights, got {vec.shape}")
        total = vec.sum()
        if total > 0:
            vec = vec / total
        return cls(
            weights=tuple(float(w) for w in vec),
            top_pitch_classes=rank_pitch_classes(vec),
            last_note_pc=last_note_pc,
            bass_pc=bass_pc,
        )


def rank_pitch_classes(weights: Sequence[float]) -> Tuple[int, ...]:
    """Pitch classes by descending weight, ties by lower index."""
    return tuple(sorted(range(12), key=lambda pc: (-weights[pc], pc)))


class FeatureExtractor:
    """Collapse notes into a 12-bin pitch-class distribution."""

    def __init__(self, config: Optional[FeatureConfig] = None):
        self.config = config or FeatureConfig()

    def extract(self, notes: Sequence[NoteEvent]) -> PitchClassFeatures:
        """
        Extract pitch-class features.

        Args:
            notes: Note sequence (any order)

        Returns:
            PitchClassFeatures (all-zero for an empty sequence)
        """
        if not notes:
            return PitchClassFeatures()

        hist = np.zeros(12)
        for note in notes:
            weight = note.duration
            if self.config.use_velocity:
                weight *= max(note.velocity, 0.0)
            hist[note.pitch_class] += weight

        # Silent velocities still describe which pitches were played
        if hist.sum() <= 0:
            for note in notes:
                hist[note.pitch_class] += note.duration

        hist = hist / hist.sum()

        last = max(notes, key=lambda n: (n.start, -n.pitch))
        bass = min(notes, key=lambda n: n.pitch)

        return PitchClassFeatures(
            weights=tuple(float(w) for w in hist),
            top_pitch_classes=rank_pitch_classes(hist),
            last_note_pc=last.pitch_class,
            bass_pc=bass.pitch_class,
            note_count=len(notes),
            total_duration=float(sum(n.duration for n in notes)),
        )


def extract_features(
    notes: Sequence[NoteEvent], config: Optional[FeatureConfig] = None
) -> PitchClassFeatures:
    """Extract features with the default (or given) configuration."""
    return FeatureExtractor(config).extract(notes)
