"""Short-time spectral analysis of mono sample buffers."""

from typing import Iterator, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, AnalysisConfig
from .logging_config import get_logger
from .models import SpectralFrame

logger = get_logger(__name__)


def hamming_window(length: int) -> np.ndarray:
    """Raised-cosine window w(n) = 0.54 - 0.46 cos(2 pi n / (N - 1))."""
    if length < 2:
        return np.ones(max(length, 0))
    n = np.arange(length)
    return 0.54 - 0.46 * np.cos(2 * np.pi * n / (length - 1))


def band_bin_counts(fft_size: int) -> Tuple[int, int, int]:
    """Number of magnitude bins in the low, mid and high bands.

    Low is the first 1/8 of the kept bins, mid runs up to half of them and
    high takes the rest, so the counts always sum to ``fft_size // 2``.
    """
    half = fft_size // 2
    bass_end = half // 8
    mid_end = half // 2
    return bass_end, mid_end - bass_end, half - mid_end


def magnitude_spectra(blocks: np.ndarray, fft_size: int) -> np.ndarray:
    """Magnitudes of the non-negative frequency bins for each row of ``blocks``.

    Rows shorter than ``fft_size`` are zero-padded by the transform.
    """
    spectrum = np.fft.rfft(blocks, n=fft_size, axis=-1)
    return np.abs(spectrum[..., : fft_size // 2])


def band_energies(magnitudes: np.ndarray, fft_size: int) -> np.ndarray:
    """Sum magnitude bins into (low, mid, high) columns."""
    low, mid, _ = band_bin_counts(fft_size)
    return np.stack(
        [
            magnitudes[..., :low].sum(axis=-1),
            magnitudes[..., low : low + mid].sum(axis=-1),
            magnitudes[..., low + mid :].sum(axis=-1),
        ],
        axis=-1,
    )


class SpectralAnalyzer:
    """Turns a sample buffer into per-hop magnitude spectra and band energies."""

    def __init__(self, config: AnalysisConfig = None):
        """Initialize analyzer with configuration.

        Args:
            config: Analysis configuration. Uses DEFAULT_CONFIG if not provided.
        """
        self.config = config or DEFAULT_CONFIG
        self._window = hamming_window(self.config.fft_size)

    def frame_count(self, n_samples: int) -> int:
        """One frame per hop; a buffer shorter than one hop has no frames."""
        hop = self.config.hop_size
        if n_samples < hop:
            return 0
        return (n_samples - hop) // hop + 1

    def _magnitude_chunks(self, samples: np.ndarray) -> Iterator[Tuple[int, np.ndarray]]:
        """Yield (first frame index, magnitude matrix) for batches of frames in order."""
        cfg = self.config
        fft_size, hop = cfg.fft_size, cfg.hop_size
        n_frames = self.frame_count(len(samples))
        chunk = max(1, cfg.frame_chunk_size)

        for first in range(0, n_frames, chunk):
            last = min(first + chunk, n_frames)
            start = first * hop
            stop = (last - 1) * hop + fft_size
            segment = samples[start:stop]
            if len(segment) < stop - start:
                segment = np.pad(segment, (0, stop - start - len(segment)))
            blocks = np.lib.stride_tricks.sliding_window_view(segment, fft_size)[::hop]
            yield first, magnitude_spectra(blocks * self._window, fft_size)

    def frames(self, samples) -> Iterator[SpectralFrame]:
        """Iterate over spectral frames in increasing time order.

        Args:
            samples: Mono PCM samples.

        Yields:
            SpectralFrame for each hop.
        """
        samples = np.asarray(samples, dtype=float)
        fft_size = self.config.fft_size
        for first, mags in self._magnitude_chunks(samples):
            bands = band_energies(mags, fft_size)
            for offset, row in enumerate(mags):
                low, mid, high = bands[offset]
                yield SpectralFrame(
                    index=first + offset,
                    magnitudes=row,
                    bands=(float(low), float(mid), float(high)),
                )

    def analyze(self, samples) -> Tuple[np.ndarray, np.ndarray]:
        """Compute per-frame total energy and band energies without keeping spectra.

        Args:
            samples: Mono PCM samples.

        Returns:
            Tuple of (energy per frame, array of shape (frames, 3) with band energies).
        """
        samples = np.asarray(samples, dtype=float)
        fft_size = self.config.fft_size
        energies = []
        bands = []
        for _, mags in self._magnitude_chunks(samples):
            energies.append(mags.sum(axis=1))
            bands.append(band_energies(mags, fft_size))

        if not energies:
            logger.debug("No spectral frames for %d samples", len(samples))
            return np.zeros(0), np.zeros((0, 3))

        spectral_energy = np.concatenate(energies)
        frequency_bands = np.concatenate(bands)
        logger.debug("Computed %d spectral frames", len(spectral_energy))
        return spectral_energy, frequency_bands
