"""Audio analysis: spectral features, beats and tempo."""

from typing import Optional

import numpy as np

from .audio_source import load_audio
from .beats import BeatDetector
from .cache import CACHE_VERSION, ResultCache
from .config import DEFAULT_CONFIG, AnalysisConfig
from .exceptions import AudioTooShortError
from .logging_config import get_logger
from .models import AnalysisResult
from .spectral import SpectralAnalyzer

logger = get_logger(__name__)


class AudioAnalyzer:
    """Analyzes audio to produce the spectral and beat data notes are generated from."""

    def __init__(self, config: AnalysisConfig = None, use_cache: bool = True):
        """Initialize analyzer with configuration.

        Args:
            config: Analysis configuration. Uses DEFAULT_CONFIG if not provided.
            use_cache: Enable result caching for file analysis. Default True.
        """
        self.config = config or DEFAULT_CONFIG
        self.cache = ResultCache(config=self.config) if use_cache else None
        self.spectral = SpectralAnalyzer(self.config)
        self.beat_detector = BeatDetector(self.config)

    def analyze_samples(self, samples) -> AnalysisResult:
        """Analyzes an in-memory mono sample buffer.

        Never raises for degenerate input: an empty or too-short buffer gives
        an empty result (``is_empty``) with no beats and the default BPM.

        Args:
            samples: Mono PCM samples at the configured sample rate.

        Returns:
            AnalysisResult: Analysis results model.
        """
        samples = np.asarray(samples, dtype=float).ravel()
        duration = len(samples) / float(self.config.sample_rate)

        beats, bpm = self.beat_detector.detect(samples)
        spectral_energy, frequency_bands = self.spectral.analyze(samples)

        result = AnalysisResult(
            duration=duration,
            beat_timestamps=beats,
            spectral_energy=spectral_energy,
            estimated_bpm=bpm,
            frequency_bands=frequency_bands,
            version=CACHE_VERSION,
        )

        if result.is_empty:
            logger.warning("Audio too short or empty: %d samples", len(samples))
        else:
            logger.info(
                "Analysis complete: duration=%.1fs, BPM=%.1f, beats=%d",
                duration,
                bpm,
                len(beats),
            )
        return result

    def analyze(self, file_path: str, cache_key: Optional[str] = None) -> AnalysisResult:
        """Analyzes an audio file.

        Args:
            file_path: Path to the audio file to analyze.
            cache_key: Optional cache key overriding the content hash.

        Returns:
            AnalysisResult: Analysis results model.

        Raises:
            AudioLoadError: If the audio file cannot be loaded.
            AudioTooShortError: If the decoded audio yields no spectral frame.
        """
        if self.cache:
            cached = self.cache.get(file_path, cache_key)
            if cached:
                return cached

        samples = load_audio(file_path, self.config.sample_rate)
        result = self.analyze_samples(samples)

        if result.is_empty:
            raise AudioTooShortError("Audio too short or empty for note generation")

        if self.cache:
            self.cache.set(file_path, result, cache_key)

        return result
