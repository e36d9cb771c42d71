"""Analysis layer - Signal and note-level feature analysis.

This layer extracts what the harmonic stages consume:
- Onset detection from raw audio (spectral flux)
- Audio level metrics (peak, RMS, noise floor, transients)
- Pitch-class features from note sequences
"""

from .onsets import (
    OnsetDetector,
    OnsetConfig,
    detect_onsets,
    pick_onset_frames,
    find_nearest_onset,
    snap_notes_to_onsets,
    get_onset_density,
    has_strong_onset_near,
)
from .levels import AudioLevels, analyze_levels, normalize_peak
from .features import (
    FeatureExtractor,
    FeatureConfig,
    PitchClassFeatures,
    extract_features,
)

__all__ = [
    # Onsets
    "OnsetDetector",
    "OnsetConfig",
    "detect_onsets",
    "pick_onset_frames",
    "find_nearest_onset",
    "snap_notes_to_onsets",
    "get_onset_density",
    "has_strong_onset_near",
    # Levels
    "AudioLevels",
    "analyze_levels",
    "normalize_peak",
    # Features
    "FeatureExtractor",
    "FeatureConfig",
    "PitchClassFeatures",
    "extract_features",
]
