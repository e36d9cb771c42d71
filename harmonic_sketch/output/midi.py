"""MIDI export of consolidated notes and suggested progressions."""

import pretty_midi
from typing import Sequence
from pathlib import Path

from ..core import NoteEvent
from ..inference.progressions import ProgressionSuggestion


class MIDIExporter:
    """Export notes or progressions to MIDI format."""

    def __init__(
        self,
        tempo: float = 120.0,
        instrument_name: str = "Acoustic Grand Piano",
        instrument_program: int = 0,
        chord_octave: int = 4,
        beats_per_chord: int = 4,
    ):
        """
        Initialize MIDIExporter.

        Args:
            tempo: Tempo in BPM
            instrument_name: MIDI instrument name
            instrument_program: MIDI program number (0-127)
            chord_octave: Octave of chord roots for progressions
            beats_per_chord: Length of each progression chord in beats
        """
        self.tempo = tempo
        self.instrument_name = instrument_name
        self.instrument_program = instrument_program
        self.chord_octave = chord_octave
        self.beats_per_chord = beats_per_chord

    def _new_midi(self):
        midi = pretty_midi.PrettyMIDI(initial_tempo=self.tempo)
        instrument = pretty_midi.Instrument(
            program=self.instrument_program,
            name=self.instrument_name,
        )
        midi.instruments.append(instrument)
        return midi, instrument

    def _write(self, midi: pretty_midi.PrettyMIDI, output_path: str) -> None:
        # Ensure output directory exists
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        midi.write(str(output_path))

    @staticmethod
    def _velocity(value: float) -> int:
        return max(1, min(127, int(round(value * 127))))

    def export_notes(self, notes: Sequence[NoteEvent], output_path: str) -> None:
        """
        Export notes to a MIDI file.

        Args:
            notes: Notes to write
            output_path: Path to output MIDI file
        """
        midi, instrument = self._new_midi()
        for note in notes:
            instrument.notes.append(
                pretty_midi.Note(
                    velocity=self._velocity(note.velocity),
                    pitch=int(note.pitch),
                    start=float(note.start),
                    end=float(note.end),
                )
            )
        self._write(midi, output_path)

    def progression_notes(self, progression: ProgressionSuggestion):
        """Block-chord MIDI notes for a progression, one chord per bar."""
        seconds = self.beats_per_chord * 60.0 / self.tempo
        base = 12 * (self.chord_octave + 1)
        notes = []
        for i, chord in enumerate(progression.chords):
            start = i * seconds
            pitch = base + chord.root_pc
            for pc in chord.pitch_classes:
                # Stack upward from the root
                while pitch % 12 != pc:
                    pitch += 1
                notes.append(
                    pretty_midi.Note(
                        velocity=80, pitch=pitch, start=start, end=start + seconds
                    )
                )
        return notes

    def export_progression(
        self, progression: ProgressionSuggestion, output_path: str
    ) -> None:
        """Write a progression as sustained block chords."""
        midi, instrument = self._new_midi()
        instrument.notes.extend(self.progression_notes(progression))
        self._write(midi, output_path)
