"""Decoding of audio files into normalized mono PCM."""

import librosa
import numpy as np

from .exceptions import AudioLoadError
from .logging_config import get_logger

logger = get_logger(__name__)


def load_audio(file_path: str, sample_rate: int = 44100) -> np.ndarray:
    """Decode an audio file to mono float samples at ``sample_rate``.

    Channel mixing and resampling are delegated to librosa.

    Args:
        file_path: Path to an audio file (mp3, wav, flac, ...).
        sample_rate: Target sample rate in Hz.

    Returns:
        1-D float32 sample array.

    Raises:
        AudioLoadError: If the file cannot be loaded or decoded.
    """
    logger.debug("Loading audio file: %s", file_path)
    try:
        samples, _ = librosa.load(file_path, sr=sample_rate, mono=True)
    except Exception as e:
        logger.error("Failed to load audio file: %s", e)
        raise AudioLoadError("Unable to load audio file")

    logger.debug("Decoded %d samples (%.1fs)", len(samples), len(samples) / sample_rate)
    return samples
