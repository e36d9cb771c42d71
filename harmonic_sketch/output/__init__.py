"""Output layer - Export (MIDI, plain JSON)."""

from .midi import MIDIExporter
from .export import to_plain, to_json

__all__ = ["MIDIExporter", "to_plain", "to_json"]
