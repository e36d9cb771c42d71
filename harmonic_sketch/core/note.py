"""Note and onset events - the units flowing into the harmonic pipeline."""

from dataclasses import dataclass, field, replace
from typing import Tuple
import numpy as np

from .constants import PITCH_NAMES, NATURAL_PITCH_CLASSES


@dataclass(frozen=True)
class NoteEvent:
    """A transcribed note.

    Attributes:
        start: Start time in seconds
        end: End time in seconds (always after start)
        pitch: MIDI pitch (semitone number)
        velocity: Loudness in the range 0-1
        pitch_bends: Pitch-bend samples in semitones, in time order
    """

    start: float
    end: float
    pitch: int
    velocity: float = 0.5
    pitch_bends: Tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(
                f"Note end ({self.end}) must be after start ({self.start})"
            )
        if not isinstance(self.pitch_bends, tuple):
            object.__setattr__(self, "pitch_bends", tuple(self.pitch_bends))

    @property
    def duration(self) -> float:
        """Note duration in seconds."""
        return self.end - self.start

    @property
    def pitch_class(self) -> int:
        """Get pitch class (0-11, where 0=C)."""
        return self.pitch % 12

    @property
    def pitch_name(self) -> str:
        """Get note name (e.g., 'C4', 'A#3')."""
        return midi_to_note_name(self.pitch)

    @property
    def max_bend(self) -> float:
        """Largest absolute pitch bend in semitones (0 without bends)."""
        if not self.pitch_bends:
            return 0.0
        return max(abs(b) for b in self.pitch_bends)

    def with_start(self, start: float) -> "NoteEvent":
        """Copy of this note starting at ``start``."""
        return replace(self, start=start)


@dataclass(frozen=True)
class OnsetEvent:
    """A detected attack in the raw signal."""

    time: float  # seconds
    strength: float  # normalized spectral flux (0-1)


def note_name_to_pc(name: str) -> int:
    """Convert a note name ('C', 'F#', 'Bb', 'Ebb', 'A4') to a pitch class.

    Unrecognized names map to pitch class 0 (C).
    """
    if not name:
        return 0
    letter = name[0].upper()
    if letter not in NATURAL_PITCH_CLASSES:
        return 0
    pc = NATURAL_PITCH_CLASSES[letter]
    for char in name[1:]:
        if char == "#":
            pc += 1
        elif char == "b":
            pc -= 1
        else:
            break
    return pc % 12


def midi_to_note_name(midi: int) -> str:
    """Convert MIDI pitch to a name with octave (60 -> 'C4')."""
    octave = (midi // 12) - 1
    return f"{PITCH_NAMES[midi % 12]}{octave}"


def midi_to_frequency(midi: float) -> float:
    """Convert MIDI pitch to frequency (Hz)."""
    return 440.0 * (2 ** ((midi - 69) / 12.0))


def frequency_to_midi(freq: float) -> float:
    """Convert frequency (Hz) to fractional MIDI pitch (0 for freq <= 0)."""
    if freq <= 0:
        return 0.0
    return float(69 + 12 * np.log2(freq / 440.0))
