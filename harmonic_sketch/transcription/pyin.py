"""Monophonic transcription using pYIN pitch tracking and onset detection."""

import numpy as np
import librosa
from typing import List, Optional, Tuple

from .base import CancellationToken, Transcriber
from ..core import DEFAULT_HOP_LENGTH, NoteEvent, frequency_to_midi
from ..core.constants import MIDI_MAX, MIDI_MIN
from ..analysis.onsets import OnsetConfig, OnsetDetector


class PyinTranscriber(Transcriber):
    """Transcribes monophonic audio with librosa's pYIN."""

    def __init__(
        self,
        hop_length: int = DEFAULT_HOP_LENGTH,
        min_note_duration: float = 0.05,
        pitch_confidence_threshold: float = 0.65,
        min_rms_threshold: float = 0.01,
        fmin: str = "C2",
        fmax: str = "C7",
        onset_config: Optional[OnsetConfig] = None,
    ):
        """
        Initialize PyinTranscriber.

        Args:
            hop_length: Samples between analysis frames
            min_note_duration: Minimum note duration in seconds
            pitch_confidence_threshold: Minimum pYIN voicing probability (0.5-0.8)
            min_rms_threshold: Minimum RMS energy to consider a segment (filters noise)
            fmin: Lowest note tracked
            fmax: Highest note tracked
            onset_config: Settings for the segmenting onset detector
        """
        self.hop_length = hop_length
        self.min_note_duration = min_note_duration
        self.pitch_confidence_threshold = pitch_confidence_threshold
        self.min_rms_threshold = min_rms_threshold
        self.fmin = fmin
        self.fmax = fmax
        self.onset_detector = OnsetDetector(onset_config)

    def transcribe(
        self,
        audio: np.ndarray,
        sr: int,
        token: Optional[CancellationToken] = None,
    ) -> List[NoteEvent]:
        """
        Transcribe monophonic audio to notes.

        Args:
            audio: Audio array (mono)
            sr: Sample rate
            token: Optional cancellation token

        Returns:
            List of detected notes
        """
        token = token or CancellationToken()

        times, frequencies, confidences = self._detect_pitch(audio, sr)
        token.raise_if_cancelled()

        onset_times = [o.time for o in self.onset_detector.detect(audio, sr)]
        token.raise_if_cancelled()

        return self._segment_notes(
            times, frequencies, confidences, onset_times, audio, sr
        )

    def _detect_pitch(
        self, audio: np.ndarray, sr: int
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Detect pitch with pYIN.

        Returns:
            Tuple of (times, frequencies, confidences); unvoiced frames have
            frequency 0
        """
        f0, _, voiced_probs = librosa.pyin(
            audio,
            fmin=librosa.note_to_hz(self.fmin),
            fmax=librosa.note_to_hz(self.fmax),
            sr=sr,
            hop_length=self.hop_length,
        )

        times = librosa.frames_to_time(
            np.arange(len(f0)), sr=sr, hop_length=self.hop_length
        )
        f0 = np.nan_to_num(f0, nan=0.0)
        voiced_probs = np.nan_to_num(voiced_probs, nan=0.0)

        return times, f0, voiced_probs

    def _segment_notes(
        self,
        times: np.ndarray,
        frequencies: np.ndarray,
        confidences: np.ndarray,
        onset_times: List[float],
        audio: np.ndarray,
        sr: int,
    ) -> List[NoteEvent]:
        """Split the pitch contour into notes at onset boundaries."""
        notes = []
        duration = len(audio) / sr

        boundaries = sorted({0.0, *[t for t in onset_times if 0 < t < duration], duration})

        for start_time, end_time in zip(boundaries[:-1], boundaries[1:]):
            if end_time - start_time < self.min_note_duration:
                continue

            rms = self._get_segment_rms(audio, sr, start_time, end_time)
            if rms < self.min_rms_threshold:
                continue

            mask = (times >= start_time) & (times < end_time)
            segment_freqs = frequencies[mask]
            segment_confs = confidences[mask]

            confident = (segment_confs >= self.pitch_confidence_threshold) & (
                segment_freqs > 0
            )
            if not np.any(confident):
                continue

            voiced = segment_freqs[confident]
            # Median is robust to octave slips at the edges
            median_freq = float(np.median(voiced))
            pitch = int(np.clip(round(frequency_to_midi(median_freq)), MIDI_MIN, MIDI_MAX))

            # Deviation of each voiced frame from the note center, in semitones
            bends = 12.0 * np.log2(voiced / librosa.midi_to_hz(pitch))

            notes.append(
                NoteEvent(
                    start=float(start_time),
                    end=float(end_time),
                    pitch=pitch,
                    velocity=self._rms_to_velocity(rms),
                    pitch_bends=tuple(float(b) for b in bends),
                )
            )

        return notes

    def _get_segment_rms(
        self,
        audio: np.ndarray,
        sr: int,
        start_time: float,
        end_time: float,
    ) -> float:
        """Calculate RMS energy for an audio segment."""
        segment = audio[int(start_time * sr): int(end_time * sr)]
        if len(segment) == 0:
            return 0.0
        return float(np.sqrt(np.mean(segment**2)))

    def _rms_to_velocity(self, rms: float) -> float:
        """Map RMS energy to a 0-1 velocity (normalized audio: RMS ~0.01-0.5)."""
        return float(np.clip(rms * 2.0, 0.1, 1.0))
