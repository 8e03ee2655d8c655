"""Heuristic beat detection with an adaptive spectral-flux threshold."""

from collections import deque
from typing import List, Sequence, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, AnalysisConfig
from .logging_config import get_logger
from .spectral import hamming_window, magnitude_spectra

logger = get_logger(__name__)


def estimate_bpm(beats: Sequence[float], default_bpm: float = 120.0) -> float:
    """Estimate tempo from the mean interval between consecutive beats.

    Args:
        beats: Beat times in seconds, ascending.
        default_bpm: Tempo returned when fewer than two beats are available.

    Returns:
        Estimated BPM.
    """
    if len(beats) < 2:
        return default_bpm
    mean_interval = float(np.mean(np.diff(np.asarray(beats, dtype=float))))
    if mean_interval <= 0:
        return default_bpm
    return 60.0 / mean_interval


def adaptive_thresholds(flux: np.ndarray, history_size: int, std_multiplier: float) -> np.ndarray:
    """Threshold per step: mean + k * stddev over the last ``history_size`` flux values.

    The history at each step includes the value of that step.
    """
    history = deque(maxlen=history_size)
    thresholds = np.empty(len(flux))
    for i, value in enumerate(flux):
        history.append(float(value))
        values = np.fromiter(history, dtype=float, count=len(history))
        thresholds[i] = values.mean() + std_multiplier * values.std()
    return thresholds


class BeatDetector:
    """Detects beat timestamps and tempo from a mono sample buffer."""

    def __init__(self, config: AnalysisConfig = None):
        self.config = config or DEFAULT_CONFIG

    def window_positions(self, n_samples: int) -> np.ndarray:
        """Sample offsets of the analysis windows."""
        cfg = self.config
        return np.arange(0, max(n_samples - cfg.beat_window_size, 0), cfg.beat_hop_size)

    def spectral_flux(self, samples) -> np.ndarray:
        """Simplified flux: total spectral magnitude of each analysis window.

        Only the first ``fft_size`` samples of a window enter the transform,
        tapered by a Hamming window spanning the whole analysis window.
        """
        cfg = self.config
        samples = np.asarray(samples, dtype=float)
        positions = self.window_positions(len(samples))
        if len(positions) == 0:
            return np.zeros(0)

        take = min(cfg.beat_window_size, cfg.fft_size)
        taper = hamming_window(cfg.beat_window_size)[:take]
        views = np.lib.stride_tricks.sliding_window_view(samples, take)

        flux = np.empty(len(positions))
        chunk = max(1, cfg.frame_chunk_size)
        for first in range(0, len(positions), chunk):
            idx = positions[first : first + chunk]
            mags = magnitude_spectra(views[idx] * taper, cfg.fft_size)
            flux[first : first + len(idx)] = mags.sum(axis=1)
        return flux

    def detect(self, samples) -> Tuple[List[float], float]:
        """Detect beats and estimate tempo.

        Args:
            samples: Mono PCM samples at the configured sample rate.

        Returns:
            Tuple of (beat times in seconds, estimated BPM). Silent or short
            input yields no beats and the default BPM.
        """
        cfg = self.config
        samples = np.asarray(samples, dtype=float)
        flux = self.spectral_flux(samples)
        thresholds = adaptive_thresholds(flux, cfg.beat_history_size, cfg.beat_threshold_std)
        positions = self.window_positions(len(samples))

        beats: List[float] = []
        for position, value, threshold in zip(positions, flux, thresholds):
            if value <= threshold:
                continue
            beat_time = float(position) / cfg.sample_rate
            if not beats or beat_time - beats[-1] >= cfg.min_beat_gap:
                beats.append(beat_time)

        bpm = estimate_bpm(beats, cfg.default_bpm)
        logger.debug("Detected %d beats over %d windows, BPM=%.1f", len(beats), len(flux), bpm)
        return beats, bpm
