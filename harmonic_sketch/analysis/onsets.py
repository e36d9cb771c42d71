"""Onset detection - Find note attacks directly in the raw signal.

Works independently of the transcription model so note timing can be
aligned or validated against the audio itself. Uses half-wave rectified
spectral flux with an adaptive median threshold.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import librosa
import numpy as np
from scipy.ndimage import median_filter
from scipy.signal import find_peaks

from ..core import NoteEvent, OnsetEvent, DEFAULT_HOP_LENGTH, DEFAULT_N_FFT


@dataclass
class OnsetConfig:
    """Configuration for onset detection.

    Attributes:
        n_fft: Analysis window size in samples (default: 2048)
        hop_length: Samples between frames (default: 512)
        median_size: Median filter length in frames (default: 7)
        threshold_multiplier: Scale applied to the local median (default: 1.5)
        threshold_floor: Constant added to the threshold (default: 0.1)
        min_interval: Minimum seconds between onsets (default: 0.03)
        silence_peak: Peak amplitude below which input counts as silent (default: 1e-4)
    """

    n_fft: int = DEFAULT_N_FFT
    hop_length: int = DEFAULT_HOP_LENGTH
    median_size: int = 7
    threshold_multiplier: float = 1.5
    threshold_floor: float = 0.1
    min_interval: float = 0.03
    silence_peak: float = 1e-4


class OnsetDetector:
    """Detect attack times from a mono amplitude buffer."""

    def __init__(self, config: Optional[OnsetConfig] = None):
        self.config = config or OnsetConfig()

    def spectral_flux(self, samples: np.ndarray) -> np.ndarray:
        """Per-frame half-wave rectified spectral flux normalized to [0, 1].

        The first frame has no predecessor and gets zero flux.
        """
        cfg = self.config
        magnitude = np.abs(
            librosa.stft(
                samples,
                n_fft=cfg.n_fft,
                hop_length=cfg.hop_length,
                window="hann",
                center=False,
            )
        )
        diff = np.diff(magnitude, axis=1)
        flux = np.concatenate([[0.0], np.maximum(diff, 0.0).sum(axis=0)])
        return flux / max(float(flux.max()), 1e-3)

    def detect(self, samples: np.ndarray, sample_rate: int) -> List[OnsetEvent]:
        """
        Detect onsets in a signal.

        Args:
            samples: Mono audio samples
            sample_rate: Sample rate in Hz

        Returns:
            Onsets in time order (empty for short or silent input)
        """
        cfg = self.config
        samples = np.asarray(samples, dtype=np.float32)

        if len(samples) < cfg.n_fft:
            return []
        if float(np.max(np.abs(samples))) < cfg.silence_peak:
            return []

        flux = self.spectral_flux(samples)
        if len(flux) < 3:
            return []

        medians = median_filter(flux, size=cfg.median_size, mode="nearest")
        thresholds = medians * cfg.threshold_multiplier + cfg.threshold_floor
        min_frames = int(math.ceil(cfg.min_interval * sample_rate / cfg.hop_length))

        return [
            OnsetEvent(
                time=i * cfg.hop_length / sample_rate,
                strength=float(flux[i]),
            )
            for i in pick_onset_frames(flux, thresholds, min_frames)
        ]


def pick_onset_frames(
    flux: np.ndarray,
    thresholds: np.ndarray,
    min_frames: int,
) -> List[int]:
    """
    Pick onset frames from a novelty curve.

    Candidates are local maxima of ``flux`` reaching the per-frame
    threshold. Two candidates closer than ``min_frames`` collapse to the
    stronger one; on equal strength the earlier one is kept.

    Args:
        flux: Novelty value per frame
        thresholds: Minimum peak height per frame (same length as ``flux``)
        min_frames: Minimum distance in frames between picked onsets

    Returns:
        Picked frame indices in increasing order
    """
    peaks, _ = find_peaks(flux, height=thresholds)

    picked: List[int] = []
    for i in peaks:
        if picked and i - picked[-1] < min_frames:
            if flux[i] > flux[picked[-1]]:
                picked[-1] = int(i)
            continue
        picked.append(int(i))
    return picked


def detect_onsets(
    samples: np.ndarray,
    sample_rate: int,
    config: Optional[OnsetConfig] = None,
) -> List[OnsetEvent]:
    """Detect onsets with the default (or given) configuration."""
    return OnsetDetector(config).detect(samples, sample_rate)


def find_nearest_onset(
    onsets: Sequence[OnsetEvent],
    time: float,
    max_distance: float = 0.05,
) -> Optional[OnsetEvent]:
    """Closest onset within ``max_distance`` of ``time``, or None.

    Equal distances resolve to the earlier onset in the list.
    """
    nearest = None
    best = math.inf
    for onset in onsets:
        distance = abs(onset.time - time)
        if distance <= max_distance and distance < best:
            best = distance
            nearest = onset
    return nearest


def snap_notes_to_onsets(
    notes: Sequence[NoteEvent],
    onsets: Sequence[OnsetEvent],
    max_distance: float = 0.03,
) -> List[NoteEvent]:
    """Move each note's start to its nearest onset within ``max_distance``.

    A note whose nearest onset lies at or after its end keeps its start.
    """
    if not onsets:
        return list(notes)

    snapped = []
    for note in notes:
        onset = find_nearest_onset(onsets, note.start, max_distance)
        if onset is not None and onset.time < note.end:
            snapped.append(note.with_start(onset.time))
        else:
            snapped.append(note)
    return snapped


def get_onset_density(
    onsets: Sequence[OnsetEvent], start: float, end: float
) -> float:
    """Onsets per second inside ``[start, end)``."""
    duration = end - start
    if duration <= 0:
        return 0.0
    count = sum(1 for o in onsets if start <= o.time < end)
    return count / duration


def has_strong_onset_near(
    onsets: Sequence[OnsetEvent],
    time: float,
    max_distance: float = 0.03,
    min_strength: float = 0.3,
) -> bool:
    """Whether any onset within ``max_distance`` has at least ``min_strength``."""
    return any(
        abs(o.time - time) <= max_distance and o.strength >= min_strength
        for o in onsets
    )
