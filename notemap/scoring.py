"""Pure scoring functions over an AnalysisResult.

Song intensity, musical fitness, instrument and rhythm classification are
shared by phrase segmentation, note timing and position generation.
"""

import math
from typing import Sequence

import numpy as np

from .config import DEFAULT_CONFIG, AnalysisConfig
from .models import (
    AnalysisResult,
    InstrumentModifier,
    InstrumentType,
    MusicalPhrase,
    PatternType,
    RhythmType,
)

# --- Frame lookup ---


def frame_index(t: float, n_frames: int, config: AnalysisConfig = DEFAULT_CONFIG) -> int:
    """Spectral frame index for time t, clamped into [0, n_frames - 1]."""
    idx = int(t * config.sample_rate / config.hop_size)
    return min(max(idx, 0), max(n_frames - 1, 0))


def closest_beat_distance(t: float, beats: np.ndarray) -> float:
    """Distance from t to the nearest beat, or infinity without beats."""
    if len(beats) == 0:
        return math.inf
    pos = int(np.searchsorted(beats, t))
    best = math.inf
    for i in (pos - 1, pos):
        if 0 <= i < len(beats):
            best = min(best, abs(float(beats[i]) - t))
    return best


def is_near_beat(t: float, analysis: AnalysisResult, tolerance: float = 0.05) -> bool:
    """Check if a detected beat lies strictly within tolerance of t."""
    return closest_beat_distance(t, analysis.beat_array) < tolerance


# --- Intensity and fitness ---


def song_intensity_at(
    t: float, analysis: AnalysisResult, config: AnalysisConfig = DEFAULT_CONFIG
) -> float:
    """Loudness of t relative to its ~4s neighbourhood and to the whole song.

    Returns:
        0.7 * local ratio + 0.3 * global ratio, clamped to [0.4, 2.0]. 1.0 when
        there is no spectral data.
    """
    energy = analysis.spectral_energy
    n = len(energy)
    if n == 0:
        return 1.0

    idx = frame_index(t, n, config)
    current = float(energy[idx])

    window = min(config.sample_rate // config.hop_size * 4, n // 4)
    start = max(0, idx - window // 2)
    end = min(n - 1, idx + window // 2)
    local_average = float(np.mean(energy[start : end + 1]))
    global_average = analysis.mean_energy

    local_intensity = current / local_average if local_average > 0 else 1.0
    global_intensity = current / global_average if global_average > 0 else 1.0

    return float(np.clip(local_intensity * 0.7 + global_intensity * 0.3, 0.4, 2.0))


def average_intensity(
    start: float,
    end: float,
    analysis: AnalysisResult,
    samples: int = 10,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> float:
    """Mean song intensity over evenly spaced points from start (inclusive) to end."""
    if samples <= 0:
        return 1.0
    step = (end - start) / samples
    total = sum(song_intensity_at(start + i * step, analysis, config) for i in range(samples))
    return total / samples


def score_beat_proximity(distance: float) -> float:
    """Fitness contribution of the distance to the closest beat."""
    if distance <= 0.05:
        return 1.0
    if distance <= 0.1:
        return 0.7
    if distance <= 0.2:
        return 0.3
    return 0.0


def musical_fitness_at(
    t: float, analysis: AnalysisResult, config: AnalysisConfig = DEFAULT_CONFIG
) -> float:
    """Heuristic suitability of t for a note, in [0.0, 2.0].

    Combines beat proximity, an onset bonus, band activity and balance, and a
    penalty for quiet passages.
    """
    energy = analysis.spectral_energy
    n = len(energy)
    if n == 0:
        return 0.0

    idx = frame_index(t, n, config)
    fitness = score_beat_proximity(closest_beat_distance(t, analysis.beat_array))

    current = float(energy[idx])
    if 2 < idx < n - 2:
        previous = (float(energy[idx - 1]) + float(energy[idx - 2])) / 2
        if current - previous > analysis.mean_energy * 0.3:
            fitness += 0.5

    bands = analysis.frequency_bands
    if idx < len(bands):
        low, mid, high = (float(b) for b in bands[idx])
        if low + mid + high > 0.1:
            fitness += 0.3
        strongest = max(low, mid, high)
        if strongest > 0 and min(low, mid, high) / strongest > 0.3:
            fitness += 0.2

    local_window = min(22, n // 20)
    start = max(0, idx - local_window // 2)
    end = min(n - 1, idx + local_window // 2)
    local_max = float(np.max(energy[start : end + 1]))
    if local_max > 0 and current < local_max * 0.1:
        fitness *= 0.2

    return float(np.clip(fitness, 0.0, 2.0))


# --- Instrument classification ---


def is_percussive_hit(
    t: float, analysis: AnalysisResult, config: AnalysisConfig = DEFAULT_CONFIG
) -> bool:
    """Fast attack followed by fast decay in the frame energy around t."""
    energy = analysis.spectral_energy
    idx = int(t * config.sample_rate / config.hop_size)
    if idx < 2 or idx >= len(energy) - 2:
        return False
    current = float(energy[idx])
    quick_attack = current > float(energy[idx - 1]) * 1.8
    quick_decay = float(energy[idx + 1]) < current * 0.6
    return quick_attack and quick_decay


def dominant_instrument(
    t: float, analysis: AnalysisResult, config: AnalysisConfig = DEFAULT_CONFIG
) -> InstrumentType:
    """Classify the dominant instrument family at t from its band energies."""
    bands = analysis.frequency_bands
    if len(bands) == 0:
        return InstrumentType.NONE

    low, mid, high = (float(b) for b in bands[frame_index(t, len(bands), config)])
    total = low + mid + high
    if total < 0.01:
        return InstrumentType.NONE

    strongest = max(low, mid, high)
    percussive = is_percussive_hit(t, analysis, config)

    if low == strongest and low > total * 0.5:
        return InstrumentType.DRUMS if percussive else InstrumentType.BASS
    if high == strongest and high > total * 0.6 and percussive:
        return InstrumentType.DRUMS
    if mid == strongest:
        return InstrumentType.MELODY
    if low > total * 0.3:
        return InstrumentType.BASS
    return InstrumentType.NONE


_INSTRUMENT_MODIFIERS = {
    InstrumentType.BASS: InstrumentModifier(1.3, PatternType.SQUARE, "Bass: heavier, blocky moves"),
    InstrumentType.MELODY: InstrumentModifier(
        1.0, PatternType.SMOOTH_FLOW, "Melody: flowing, melodic moves"
    ),
    InstrumentType.DRUMS: InstrumentModifier(0.7, PatternType.ZIGZAG, "Drums: short, sharp moves"),
    InstrumentType.NONE: InstrumentModifier(1.0, None, "Default: standard moves"),
}


def instrument_modifier(instrument: InstrumentType) -> InstrumentModifier:
    """Distance multiplier and forced pattern for an instrument family."""
    return _INSTRUMENT_MODIFIERS[instrument]


# --- Rhythm classification ---


def classify_rhythm(beat_times: Sequence[float], intensity: float) -> RhythmType:
    """Classify a run of beats by the variability of their intervals.

    Args:
        beat_times: Ascending beat times of one phrase.
        intensity: Phrase intensity level.

    Returns:
        RhythmType. Fewer than three beats count as steady.
    """
    if len(beat_times) < 3:
        return RhythmType.STEADY

    intervals = np.diff(np.asarray(beat_times, dtype=float))
    mean_interval = float(np.mean(intervals))
    variability = float(np.mean(np.abs(intervals - mean_interval)))

    if variability < mean_interval * 0.1:
        return RhythmType.STEADY
    if intensity > 1.3 and mean_interval < 0.4:
        return RhythmType.BURST
    if mean_interval > 1.2:
        return RhythmType.SLOW
    return RhythmType.SYNCOPATED


def phrase_rhythm(phrase: MusicalPhrase) -> RhythmType:
    """Rhythm classification of a phrase."""
    return classify_rhythm(phrase.note_times, phrase.intensity_level)
