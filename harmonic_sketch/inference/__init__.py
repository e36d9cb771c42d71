"""Inference layer - Musical understanding from pitch-class features.

This layer turns features into harmonic suggestions:
- Key detection (24 scored major/minor candidates)
- Chord suggestions (diatonic, applied and borrowed chords)
- Progression generation (skeletons, decorations, weirdness ranking)

Pipeline: Features → Key candidates → Chord catalog → Progressions
"""

from .key import (
    KeyDetector,
    KeyCandidate,
    KeyScoringWeights,
    HarmonyAnalysis,
    Mode,
    analyze_harmony,
    scale_pitch_classes,
)
from .chords import (
    ChordSuggestionEngine,
    ChordEngineConfig,
    ChordSuggestion,
    ChordSuggestionResult,
    ChordSource,
    HarmonicFunction,
    generate_chord_suggestions,
)
from .progressions import (
    ProgressionGenerator,
    ProgressionConfig,
    ProgressionTemplate,
    ProgressionSlot,
    ProgressionSuggestion,
    clamp_weirdness,
    generate_progressions,
)

__all__ = [
    # Key detection
    "KeyDetector",
    "KeyCandidate",
    "KeyScoringWeights",
    "HarmonyAnalysis",
    "Mode",
    "analyze_harmony",
    "scale_pitch_classes",
    # Chord suggestions
    "ChordSuggestionEngine",
    "ChordEngineConfig",
    "ChordSuggestion",
    "ChordSuggestionResult",
    "ChordSource",
    "HarmonicFunction",
    "generate_chord_suggestions",
    # Progressions
    "ProgressionGenerator",
    "ProgressionConfig",
    "ProgressionTemplate",
    "ProgressionSlot",
    "ProgressionSuggestion",
    "clamp_weirdness",
    "generate_progressions",
]
