"""Key detection - Rank the 24 major/minor keys against pitch-class features.

Scoring is a fixed, documented blend so results are fully reproducible:
- in-scale weight mass (primary term)
- out-of-scale weight mass (penalty)
- melodic cadence bonus when the last note is the tonic
- bass confirmation bonus when the lowest note is the tonic
- tonic prominence (feature weight on the tonic itself)

The tonic prominence term separates relative keys that share a scale
(e.g. A minor vs C major) when the tonic is emphasized.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..core import PITCH_NAMES
from ..analysis.features import PitchClassFeatures


class Mode(Enum):
    """Musical modes."""
    MAJOR = "major"
    MINOR = "minor"
    DORIAN = "dorian"
    MIXOLYDIAN = "mixolydian"


# Semitone steps of each mode above its tonic
SCALE_INTERVALS = {
    Mode.MAJOR: (0, 2, 4, 5, 7, 9, 11),
    Mode.MINOR: (0, 2, 3, 5, 7, 8, 10),
    Mode.DORIAN: (0, 2, 3, 5, 7, 9, 10),
    Mode.MIXOLYDIAN: (0, 2, 4, 5, 7, 9, 10),
}

KEY_MODES = (Mode.MAJOR, Mode.MINOR)


def scale_pitch_classes(tonic_pc: int, mode: Mode) -> Tuple[int, ...]:
    """Ordered 7-note scale of a mode starting on ``tonic_pc``."""
    return tuple((tonic_pc + step) % 12 for step in SCALE_INTERVALS[mode])


@dataclass(frozen=True)
class KeyScoringWeights:
    """Fixed weights for key fit scoring.

    Attributes:
        in_scale: Weight of the in-scale mass (default: 1.0)
        out_of_scale: Penalty per unit of out-of-scale mass (default: 0.5)
        ending: Bonus when the last note is the tonic (default: 0.05)
        bass: Bonus when the lowest note is the tonic (default: 0.03)
        tonic_weight: Weight of the tonic's own feature mass (default: 0.05)
        out_of_scale_report: Minimum weight for a pitch class to be listed
            as out of scale (default: 0.0, i.e. any nonzero weight)
    """

    in_scale: float = 1.0
    out_of_scale: float = 0.5
    ending: float = 0.05
    bass: float = 0.03
    tonic_weight: float = 0.05
    out_of_scale_report: float = 0.0

    @property
    def max_raw(self) -> float:
        """Highest reachable raw score, used to normalize into [0, 1]."""
        return self.in_scale + self.ending + self.bass + self.tonic_weight


@dataclass(frozen=True)
class KeyCandidate:
    """A scored key hypothesis.

    Attributes:
        tonic_pc: Tonic pitch class (0-11)
        mode: Mode.MAJOR or Mode.MINOR
        scale: Ordered 7 pitch classes of the scale
        score: Fit score (0-1)
        out_of_scale: Pitch classes outside the scale carrying weight
        in_scale_mass: Feature mass inside the scale
    """

    tonic_pc: int
    mode: Mode
    scale: Tuple[int, ...]
    score: float
    out_of_scale: Tuple[int, ...] = ()
    in_scale_mass: float = 0.0

    @property
    def id(self) -> str:
        return f"{self.tonic}-{self.mode.value}"

    @property
    def tonic(self) -> str:
        return PITCH_NAMES[self.tonic_pc]

    @property
    def name(self) -> str:
        return f"{self.tonic} {self.mode.value}"

    @property
    def scale_names(self) -> List[str]:
        return [PITCH_NAMES[pc] for pc in self.scale]

    @property
    def is_minor(self) -> bool:
        return self.mode == Mode.MINOR


@dataclass(frozen=True)
class HarmonyAnalysis:
    """All 24 ranked key candidates plus the active selection."""

    candidates: Tuple[KeyCandidate, ...]
    selected_id: Optional[str] = None
    top_n: int = 8

    @property
    def top(self) -> Tuple[KeyCandidate, ...]:
        """The ranked subset normally surfaced to users."""
        return self.candidates[: self.top_n]

    @property
    def by_id(self) -> Dict[str, KeyCandidate]:
        return {c.id: c for c in self.candidates}

    @property
    def selected(self) -> Optional[KeyCandidate]:
        if self.selected_id is None:
            return None
        return self.by_id[self.selected_id]

    def select(self, candidate_id: str) -> "HarmonyAnalysis":
        """Return a copy with another active candidate (scores unchanged).

        Raises:
            KeyError: If no candidate has this id
        """
        if candidate_id not in self.by_id:
            raise KeyError(f"Unknown key candidate: {candidate_id}")
        return replace(self, selected_id=candidate_id)


class KeyDetector:
    """Score all major and minor keys against pitch-class features."""

    TOP_N = 8

    def __init__(self, weights: Optional[KeyScoringWeights] = None, top_n: int = TOP_N):
        """
        Initialize KeyDetector.

        Args:
            weights: Scoring weights (defaults documented on KeyScoringWeights)
            top_n: Number of candidates exposed as the ranked subset
        """
        self.weights = weights or KeyScoringWeights()
        self.top_n = top_n

    def score_candidate(
        self, features: PitchClassFeatures, tonic_pc: int, mode: Mode
    ) -> KeyCandidate:
        """Score a single key hypothesis."""
        w = self.weights
        scale = scale_pitch_classes(tonic_pc, mode)
        scale_set = set(scale)

        in_mass = sum(
            features.weights[pc] for pc in range(12) if pc in scale_set
        )
        out_mass = sum(
            features.weights[pc] for pc in range(12) if pc not in scale_set
        )

        raw = w.in_scale * in_mass - w.out_of_scale * out_mass
        if features.last_note_pc == tonic_pc:
            raw += w.ending
        if features.bass_pc == tonic_pc:
            raw += w.bass
        raw += w.tonic_weight * features.weights[tonic_pc]

        score = min(1.0, max(0.0, raw / w.max_raw))

        out_of_scale = tuple(
            pc
            for pc in range(12)
            if pc not in scale_set and features.weights[pc] > w.out_of_scale_report
        )

        return KeyCandidate(
            tonic_pc=tonic_pc,
            mode=mode,
            scale=scale,
            score=score,
            out_of_scale=out_of_scale,
            in_scale_mass=in_mass,
        )

    def rank(self, features: PitchClassFeatures) -> List[KeyCandidate]:
        """All 24 candidates in rank order.

        Order: higher score, then lower tonic pitch class, then Major before
        Minor.
        """
        candidates = [
            self.score_candidate(features, tonic_pc, mode)
            for tonic_pc in range(12)
            for mode in KEY_MODES
        ]
        return sorted(
            candidates,
            key=lambda c: (-c.score, c.tonic_pc, KEY_MODES.index(c.mode)),
        )

    def analyze(self, features: PitchClassFeatures) -> HarmonyAnalysis:
        """
        Rank keys and select the best one.

        Args:
            features: Pitch-class features of the consolidated notes

        Returns:
            HarmonyAnalysis with 24 candidates and the top one selected
        """
        ranked = self.rank(features)
        return HarmonyAnalysis(
            candidates=tuple(ranked),
            selected_id=ranked[0].id,
            top_n=self.top_n,
        )


def analyze_harmony(
    features: PitchClassFeatures, weights: Optional[KeyScoringWeights] = None
) -> HarmonyAnalysis:
    """Rank key candidates with the default (or given) weights."""
    return KeyDetector(weights).analyze(features)
