"""Audio level metrics used to adapt transcription and onset settings."""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core import DEFAULT_N_FFT


# Fraction of quietest frames averaged for the noise floor estimate
NOISE_FLOOR_PERCENTILE = 0.1

# Frame energy jump treated as a transient
TRANSIENT_RATIO = 3.0
MIN_TRANSIENTS = 2
MIN_ENERGY = 1e-10


@dataclass
class AudioLevels:
    """Level measurements of a mono signal (dB values relative to full scale)."""

    peak_db: float
    rms_db: float
    noise_floor_db: float
    dynamic_range_db: float
    has_transients: bool
    peak: float
    rms: float


def linear_to_dbfs(value: float) -> float:
    """Linear amplitude to dBFS (-inf for silence)."""
    if value <= 0:
        return float("-inf")
    return float(20 * np.log10(value))


def dbfs_to_linear(db: float) -> float:
    """dBFS to linear amplitude."""
    if db == float("-inf"):
        return 0.0
    return float(10 ** (db / 20))


def analyze_levels(
    samples: np.ndarray, frame_size: int = DEFAULT_N_FFT
) -> AudioLevels:
    """
    Measure peak, RMS, noise floor and transient content.

    Args:
        samples: Mono audio samples
        frame_size: Frame length for noise floor and transient analysis

    Returns:
        AudioLevels for the signal
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return AudioLevels(
            peak_db=float("-inf"),
            rms_db=float("-inf"),
            noise_floor_db=float("-inf"),
            dynamic_range_db=0.0,
            has_transients=False,
            peak=0.0,
            rms=0.0,
        )

    peak = float(np.max(np.abs(samples)))
    rms = float(np.sqrt(np.mean(samples ** 2)))

    n_frames = len(samples) // frame_size
    frames = samples[: n_frames * frame_size].reshape(n_frames, frame_size)
    frame_rms = np.sqrt(np.mean(frames ** 2, axis=1)) if n_frames else np.array([])

    transients = 0
    energy = frame_rms ** 2
    for prev, curr in zip(energy, energy[1:]):
        if prev < MIN_ENERGY:
            if curr > MIN_ENERGY * TRANSIENT_RATIO:
                transients += 1
        elif curr / prev > TRANSIENT_RATIO:
            transients += 1

    noise_floor_db = float("-inf")
    if frame_rms.size:
        quiet = max(1, int(frame_rms.size * NOISE_FLOOR_PERCENTILE))
        noise_floor_db = linear_to_dbfs(float(np.sort(frame_rms)[:quiet].mean()))

    peak_db = linear_to_dbfs(peak)
    rms_db = linear_to_dbfs(rms)
    dynamic_range = peak_db - rms_db if rms > 0 else 0.0

    return AudioLevels(
        peak_db=peak_db,
        rms_db=rms_db,
        noise_floor_db=noise_floor_db,
        dynamic_range_db=dynamic_range,
        has_transients=transients >= MIN_TRANSIENTS,
        peak=peak,
        rms=rms,
    )


def normalization_gain(peak_db: float, target_peak_db: float = -3.0) -> float:
    """Linear gain that brings ``peak_db`` to ``target_peak_db`` (1.0 for silence)."""
    if peak_db == float("-inf"):
        return 1.0
    return dbfs_to_linear(target_peak_db - peak_db)


def normalize_peak(
    samples: np.ndarray,
    target_peak_db: float = -3.0,
    levels: Optional[AudioLevels] = None,
) -> np.ndarray:
    """Return a copy of ``samples`` scaled to the target peak level, soft-clipped."""
    levels = levels or analyze_levels(samples)
    gain = normalization_gain(levels.peak_db, target_peak_db)
    return np.tanh(np.asarray(samples, dtype=np.float64) * gain)
