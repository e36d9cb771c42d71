"""Harmonic Sketch - Key, chord and progression suggestions from notes.

Architecture Layers:
    1. input/         - Audio and note-file loading
    2. transcription/ - Note detection with cooperative cancellation
    3. processing/    - Note consolidation (polyphony, wobbles, merging)
    4. analysis/      - Onsets, levels and pitch-class features
    5. inference/     - Key candidates, chord suggestions, progressions
    6. output/        - MIDI and JSON export
"""

__version__ = "0.1.0"

# Core types
from .core import NoteEvent, OnsetEvent

# Input layer
from .input import AudioLoader, NoteLoader

# Transcription layer
from .transcription import (
    PyinTranscriber,
    TranscriptionCancelled,
    TranscriptionSession,
)

# Processing layer
from .processing import NoteConsolidator, consolidate

# Analysis layer
from .analysis import OnsetDetector, FeatureExtractor, extract_features

# Inference layer
from .inference import (
    KeyDetector,
    ChordSuggestionEngine,
    ProgressionGenerator,
    analyze_harmony,
    generate_chord_suggestions,
    generate_progressions,
)

# Output layer
from .output import MIDIExporter, to_json

# Pipeline
from .pipeline import (
    AnalysisSnapshot,
    DiagnosticSink,
    HarmonicAnalyzer,
    SnapshotRecorder,
)

__all__ = [
    # Core
    "NoteEvent",
    "OnsetEvent",
    # Input
    "AudioLoader",
    "NoteLoader",
    # Transcription
    "PyinTranscriber",
    "TranscriptionCancelled",
    "TranscriptionSession",
    # Processing
    "NoteConsolidator",
    "consolidate",
    # Analysis
    "OnsetDetector",
    "FeatureExtractor",
    "extract_features",
    # Inference
    "KeyDetector",
    "ChordSuggestionEngine",
    "ProgressionGenerator",
    "analyze_harmony",
    "generate_chord_suggestions",
    "generate_progressions",
    # Output
    "MIDIExporter",
    "to_json",
    # Pipeline
    "AnalysisSnapshot",
    "DiagnosticSink",
    "HarmonicAnalyzer",
    "SnapshotRecorder",
]
