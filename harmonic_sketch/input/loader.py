"""Audio and note-file loading utilities."""

import json
import warnings
import numpy as np
import librosa
import pretty_midi
import soundfile as sf
from pathlib import Path
from typing import List, Tuple, Optional

from ..core import DEFAULT_VELOCITY, NoteEvent


class AudioLoader:
    """Handles audio file loading and preprocessing."""

    SUPPORTED_FORMATS = {".wav", ".mp3", ".flac", ".ogg", ".m4a", ".mp4"}

    def __init__(
        self,
        target_sr: int = 22050,
        mono: bool = True,
        normalize: bool = True,
    ):
        """
        Initialize AudioLoader.

        Args:
            target_sr: Target sample rate for resampling
            mono: Convert to mono if True
            normalize: Normalize audio amplitude if True
        """
        self.target_sr = target_sr
        self.mono = mono
        self.normalize = normalize

    def _check(self, path: Path) -> Path:
        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")
        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {self.SUPPORTED_FORMATS}"
            )
        return path

    def load(self, path: str) -> Tuple[np.ndarray, int]:
        """
        Load audio file and preprocess.

        Args:
            path: Path to audio file

        Returns:
            Tuple of (audio array, sample rate)

        Raises:
            ValueError: If file format not supported or a note is malformed
            FileNotFoundError: If file doesn't exist
        """
        path = self._check(Path(path))

        # Load with librosa (handles resampling and mono conversion)
        audio, sr = librosa.load(
            str(path),
            sr=self.target_sr,
            mono=self.mono,
        )

        if self.normalize:
            audio = self._normalize(audio)

        return audio, sr

    def info(self, path: str) -> dict:
        """File metadata without decoding the whole file."""
        path = self._check(Path(path))
        meta = sf.info(str(path))
        return {
            "duration": meta.duration,
            "sample_rate": meta.samplerate,
            "channels": meta.channels,
            "format": meta.format,
        }

    def _normalize(self, audio: np.ndarray) -> np.ndarray:
        """Normalize audio to [-1, 1] range using peak normalization."""
        peak = np.abs(audio).max() if audio.size else 0.0
        if peak > 0:
            audio = audio / peak
        return audio

    def get_duration(self, audio: np.ndarray, sr: Optional[int] = None) -> float:
        """Get duration in seconds."""
        sr = sr or self.target_sr
        return len(audio) / sr


class NoteLoader:
    """Load note events from MIDI or JSON files.

    JSON files hold a list of objects with ``start``, ``end``, ``pitch`` and
    optionally ``velocity`` (0-1) and ``pitch_bends``.
    """

    MIDI_FORMATS = {".mid", ".midi"}
    JSON_FORMATS = {".json"}

    def __init__(self, bend_range: float = 2.0):
        """
        Args:
            bend_range: Pitch-wheel range in semitones for MIDI input
        """
        self.bend_range = bend_range

    def load(self, path: str) -> List[NoteEvent]:
        """
        Load notes sorted by start time.

        Raises:
            ValueError: If file format not supported or a note is malformed
            FileNotFoundError: If file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Note file not found: {path}")

        suffix = path.suffix.lower()
        if suffix in self.MIDI_FORMATS:
            notes = self.load_midi(path)
        elif suffix in self.JSON_FORMATS:
            notes = self.load_json(path)
        else:
            raise ValueError(
                f"Unsupported note format: {suffix}. "
                f"Supported: {self.MIDI_FORMATS | self.JSON_FORMATS}"
            )
        return sorted(notes, key=lambda n: n.start)

    @classmethod
    def supports(cls, path: Path) -> bool:
        return path.suffix.lower() in cls.MIDI_FORMATS | cls.JSON_FORMATS

    def load_midi(self, path: Path) -> List[NoteEvent]:
        """Read every non-drum note; pitch-wheel data becomes semitone bends."""
        midi = pretty_midi.PrettyMIDI(str(path))
        notes = []
        for instrument in midi.instruments:
            if instrument.is_drum:
                continue
            bends = [
                (b.time, pretty_midi.pitch_bend_to_semitones(b.pitch, self.bend_range))
                for b in instrument.pitch_bends
            ]
            for note in instrument.notes:
                if note.end <= note.start:
                    continue
                notes.append(
                    NoteEvent(
                        start=float(note.start),
                        end=float(note.end),
                        pitch=int(note.pitch),
                        velocity=note.velocity / 127.0,
                        pitch_bends=tuple(
                            float(s) for t, s in bends if note.start <= t < note.end
                        ),
                    )
                )
        return notes

    def load_json(self, path: Path) -> List[NoteEvent]:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("notes", [])
        return [self._note_from_item(i, item) for i, item in enumerate(data)]

    def _note_from_item(self, index: int, item) -> NoteEvent:
        if not isinstance(item, dict):
            raise ValueError(f"Note {index} is not an object: {item!r}")
        for field in ("start", "end", "pitch"):
            if field not in item:
                raise ValueError(f"Note {index} is missing required field '{field}'")
        return NoteEvent(
            start=float(item["start"]),
            end=float(item["end"]),
            pitch=int(item["pitch"]),
            velocity=float(item.get("velocity", DEFAULT_VELOCITY)),
            pitch_bends=self._read_bends(item.get("pitch_bends")),
        )

    @staticmethod
    def _read_bends(raw) -> Tuple[float, ...]:
        if not raw:
            return ()
        try:
            return tuple(float(b) for b in raw)
        except (TypeError, ValueError):
            warnings.warn(f"Ignoring unreadable pitch-bend data: {raw!r}")
            return ()
