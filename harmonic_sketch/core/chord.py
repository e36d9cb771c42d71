"""Chord symbol helpers - qualities, parsing, and chord tones.

Symbols use sharp spellings for roots (``PITCH_NAMES``) followed by a
quality suffix: '' (major), 'm', 'dim', 'aug', '7', 'maj7', 'm7', 'm7b5',
'dim7', 'sus2', 'sus4', '6', 'm6'.
"""

import re
from typing import List, Optional, Tuple

from .constants import PITCH_NAMES
from .note import note_name_to_pc


# Intervals above the root for each quality suffix
QUALITY_INTERVALS = {
    "": (0, 4, 7),
    "m": (0, 3, 7),
    "dim": (0, 3, 6),
    "aug": (0, 4, 8),
    "7": (0, 4, 7, 10),
    "maj7": (0, 4, 7, 11),
    "m7": (0, 3, 7, 10),
    "m7b5": (0, 3, 6, 10),
    "dim7": (0, 3, 6, 9),
    "sus2": (0, 2, 7),
    "sus4": (0, 5, 7),
    "6": (0, 4, 7, 9),
    "m6": (0, 3, 7, 9),
}

# Alternate spellings accepted when parsing
QUALITY_ALIASES = {
    "M": "",
    "maj": "",
    "major": "",
    "min": "m",
    "minor": "m",
    "-": "m",
    "°": "dim",
    "o": "dim",
    "+": "aug",
    "dom7": "7",
    "M7": "maj7",
    "Δ": "maj7",
    "min7": "m7",
    "-7": "m7",
    "ø": "m7b5",
    "ø7": "m7b5",
    "°7": "dim7",
    "o7": "dim7",
}

MINOR_QUALITIES = {"m", "dim", "m7", "m7b5", "dim7", "m6"}

_SYMBOL_RE = re.compile(r"^\s*([A-Ga-g])([#b]*)(.*?)\s*$")


def normalize_quality(quality: str) -> str:
    """Map a quality spelling to its canonical suffix ('' for unknown)."""
    if quality in QUALITY_INTERVALS:
        return quality
    return QUALITY_ALIASES.get(quality, "")


def quality_intervals(quality: str) -> Tuple[int, ...]:
    """Intervals for a quality; unknown qualities give a major triad."""
    return QUALITY_INTERVALS[normalize_quality(quality)]


def identify_quality(intervals) -> Optional[str]:
    """Find the quality suffix whose intervals match exactly, if any."""
    target = tuple(sorted(i % 12 for i in intervals))
    for quality, known in QUALITY_INTERVALS.items():
        if tuple(sorted(known)) == target:
            return quality
    return None


def parse_chord_symbol(symbol: str) -> Tuple[int, str]:
    """Split a chord symbol into (root pitch class, canonical quality).

    Slash basses are ignored. Unknown roots fall back to C and unknown
    qualities to a major triad.
    """
    match = _SYMBOL_RE.match(symbol.split("/")[0] if symbol else "")
    if not match:
        return 0, ""
    letter, accidentals, quality = match.groups()
    return note_name_to_pc(letter.upper() + accidentals), normalize_quality(quality)


def chord_symbol(root_pc: int, quality: str) -> str:
    """Build a symbol like 'F#m7' from a root pitch class and quality."""
    return f"{PITCH_NAMES[root_pc % 12]}{normalize_quality(quality)}"


def chord_pitch_classes(root_pc: int, quality: str) -> Tuple[int, ...]:
    """Pitch classes of a chord, root first."""
    return tuple((root_pc + i) % 12 for i in quality_intervals(quality))


def chord_tones(symbol: str) -> List[str]:
    """Note names of a chord symbol, root first ('E7' -> ['E', 'G#', 'B', 'D'])."""
    root_pc, quality = parse_chord_symbol(symbol)
    return [PITCH_NAMES[pc] for pc in chord_pitch_classes(root_pc, quality)]


def transpose_note(name: str, semitones: int) -> str:
    """Transpose a note name, returning a sharp spelling."""
    return PITCH_NAMES[(note_name_to_pc(name) + semitones) % 12]


def is_minor_quality(quality: str) -> bool:
    return normalize_quality(quality) in MINOR_QUALITIES
