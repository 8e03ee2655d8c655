"""Tests for short-time spectral analysis."""

import numpy as np

from notemap.config import AnalysisConfig
from notemap.spectral import (
    SpectralAnalyzer,
    band_bin_counts,
    band_energies,
    hamming_window,
    magnitude_spectra,
)

SR = 44100


def _sine(freq, seconds=1.0, amplitude=1.0):
    t = np.arange(int(SR * seconds)) / SR
    return amplitude * np.sin(2 * np.pi * freq * t)


class TestHelpers:
    def test_band_counts_cover_all_bins(self):
        low, mid, high = band_bin_counts(2048)
        assert (low, mid, high) == (128, 384, 512)
        assert low + mid + high == 1024

    def test_band_counts_other_sizes(self):
        for size in (256, 512, 1024, 4096):
            assert sum(band_bin_counts(size)) == size // 2

    def test_hamming_endpoints(self):
        w = hamming_window(2048)
        assert np.isclose(w[0], 0.08)
        assert np.isclose(w[-1], 0.08)
        assert w.max() <= 1.0

    def test_magnitude_spectra_shape(self):
        mags = magnitude_spectra(np.ones((3, 2048)), 2048)
        assert mags.shape == (3, 1024)

    def test_impulse_has_flat_spectrum(self):
        block = np.zeros(2048)
        block[0] = 1.0
        mags = magnitude_spectra(block, 2048)
        assert np.allclose(mags, 1.0)
        assert np.allclose(band_energies(mags, 2048), [128.0, 384.0, 512.0])


class TestSpectralAnalyzer:
    def setup_method(self):
        self.analyzer = SpectralAnalyzer()

    def test_frame_count(self):
        assert self.analyzer.frame_count(0) == 0
        assert self.analyzer.frame_count(511) == 0
        assert self.analyzer.frame_count(512) == 1
        assert self.analyzer.frame_count(SR) == 86

    def test_empty_buffer(self):
        energy, bands = self.analyzer.analyze(np.zeros(0))
        assert energy.shape == (0,)
        assert bands.shape == (0, 3)
        assert list(self.analyzer.frames(np.zeros(0))) == []

    def test_buffer_shorter_than_hop(self):
        energy, bands = self.analyzer.analyze(np.ones(100))
        assert len(energy) == 0
        assert len(bands) == 0

    def test_frames_are_ordered_and_sized(self):
        frames = list(self.analyzer.frames(_sine(440, 0.2)))
        assert [f.index for f in frames] == list(range(len(frames)))
        assert all(len(f.magnitudes) == 1024 for f in frames)

    def test_frames_match_analyze(self):
        samples = _sine(440, 0.3)
        energy, bands = self.analyzer.analyze(samples)
        frames = list(self.analyzer.frames(samples))
        assert np.allclose([f.energy for f in frames], energy)
        assert np.allclose([f.bands for f in frames], bands)

    def test_last_frame_is_zero_padded(self):
        samples = _sine(440)[:600]
        energy, _ = self.analyzer.analyze(samples)
        padded, _ = self.analyzer.analyze(np.pad(samples, (0, 2048 - 600)))
        assert len(energy) == 1
        assert np.isclose(energy[0], padded[0])

    def test_chunk_size_does_not_change_result(self):
        samples = _sine(440, 0.5) + _sine(3000, 0.5, 0.3)
        small = SpectralAnalyzer(AnalysisConfig(frame_chunk_size=3))
        assert np.allclose(small.analyze(samples)[0], self.analyzer.analyze(samples)[0])

    def test_bass_tone_lands_in_low_band(self):
        _, bands = self.analyzer.analyze(_sine(100))
        middle = bands[5:-5]
        assert np.all(middle[:, 0] > 10 * middle[:, 2])
        assert np.all(middle[:, 0] > middle[:, 1])

    def test_treble_tone_lands_in_high_band(self):
        _, bands = self.analyzer.analyze(_sine(15000))
        middle = bands[5:-5]
        assert np.all(middle[:, 2] > 10 * middle[:, 0])
        assert np.all(middle[:, 2] > middle[:, 1])

    def test_silence_has_zero_energy(self):
        energy, bands = self.analyzer.analyze(np.zeros(SR))
        assert np.all(energy == 0)
        assert np.all(bands == 0)
