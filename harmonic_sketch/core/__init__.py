"""Core types and constants for Harmonic Sketch."""

from .note import (
    NoteEvent,
    OnsetEvent,
    note_name_to_pc,
    midi_to_note_name,
    midi_to_frequency,
    frequency_to_midi,
)
from .chord import (
    QUALITY_INTERVALS,
    parse_chord_symbol,
    chord_symbol,
    chord_tones,
    chord_pitch_classes,
    identify_quality,
    transpose_note,
)
from .constants import (
    PITCH_NAMES,
    DEFAULT_SR,
    DEFAULT_HOP_LENGTH,
    DEFAULT_N_FFT,
    DEFAULT_MAX_POLYPHONY,
    DEFAULT_VELOCITY,
)

__all__ = [
    "NoteEvent",
    "OnsetEvent",
    "note_name_to_pc",
    "midi_to_note_name",
    "midi_to_frequency",
    "frequency_to_midi",
    "QUALITY_INTERVALS",
    "parse_chord_symbol",
    "chord_symbol",
    "chord_tones",
    "chord_pitch_classes",
    "identify_quality",
    "transpose_note",
    "PITCH_NAMES",
    "DEFAULT_SR",
    "DEFAULT_HOP_LENGTH",
    "DEFAULT_N_FFT",
    "DEFAULT_MAX_POLYPHONY",
    "DEFAULT_VELOCITY",
]
