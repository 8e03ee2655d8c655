"""Configuration for NoteMap analysis and generation parameters."""

from dataclasses import dataclass
from typing import Dict

from .models import DifficultyLevel, DifficultySettings


@dataclass
class AnalysisConfig:
    """Configuration for audio analysis."""

    # Fixed analysis constants
    sample_rate: int = 44100
    fft_size: int = 2048
    hop_size: int = 512

    # Beat detection (window is 100ms, hop is a quarter window)
    beat_window_divisor: int = 10
    beat_history_size: int = 10
    beat_threshold_std: float = 1.5
    min_beat_gap: float = 0.1
    default_bpm: float = 120.0

    # Number of frames transformed per vectorized batch
    frame_chunk_size: int = 256

    @property
    def beat_window_size(self) -> int:
        return self.sample_rate // self.beat_window_divisor

    @property
    def beat_hop_size(self) -> int:
        return self.beat_window_size // 4


@dataclass
class GenerationConfig:
    """Configuration for phrase, timing and position generation."""

    # Playfield bounds (y is width, z is height, x is always 0)
    screen_width: int = 2200
    screen_height: int = 1100

    # Phrase segmentation
    phrase_beats: int = 4
    phrase_min_ratio: float = 0.75
    phrase_max_ratio: float = 2.0
    phrase_scan_step: float = 0.1
    phrase_pause_ratio: float = 0.4
    phrase_gap: float = 0.2
    phrase_end_margin: float = 1.0
    phrase_intensity_samples: int = 10
    min_phrase_beats: int = 2

    # Note timing
    beat_fitness_threshold: float = 0.4
    subdivision_min_intensity: float = 0.8
    subdivision_min_npm: int = 150
    burst_min_intensity: float = 1.2
    burst_min_npm: int = 250
    burst_scan_step: float = 0.05
    burst_peak_intensity: float = 1.6
    burst_min_fitness: float = 0.6
    phrase_match_tolerance: float = 0.05

    # Tunable position constants
    hard_cut_probability: float = 0.3
    beat_pattern_probability: float = 0.6
    offbeat_pattern_probability: float = 0.25
    pattern_blend_factor: float = 0.25
    phrase_jump_min: float = 500.0
    phrase_jump_range: float = 800.0
    beat_match_tolerance: float = 0.05

    # Spatial repulsion
    max_repulsion_iterations: int = 25


# Default configuration instances
DEFAULT_CONFIG = AnalysisConfig()
DEFAULT_GENERATION_CONFIG = GenerationConfig()


DIFFICULTY_PRESETS: Dict[DifficultyLevel, DifficultySettings] = {
    DifficultyLevel.EASY: DifficultySettings(60, 0.7, 0.8, 200.0),
    DifficultyLevel.NORMAL: DifficultySettings(120, 0.6, 0.5, 175.0),
    DifficultyLevel.HARD: DifficultySettings(200, 0.5, 0.3, 150.0),
    DifficultyLevel.EXPERT: DifficultySettings(300, 0.4, 0.2, 125.0),
    DifficultyLevel.MASTER: DifficultySettings(450, 0.3, 0.15, 100.0),
}


def get_difficulty_settings(level: DifficultyLevel) -> DifficultySettings:
    """Look up the preset for a difficulty level.

    Args:
        level: Difficulty level.

    Returns:
        A fresh DifficultySettings copy. Unknown levels fall back to Normal.
    """
    preset = DIFFICULTY_PRESETS.get(level, DIFFICULTY_PRESETS[DifficultyLevel.NORMAL])
    return DifficultySettings(
        notes_per_minute=preset.notes_per_minute,
        beat_sensitivity=preset.beat_sensitivity,
        min_time_between_notes=preset.min_time_between_notes,
        min_node_distance_px=preset.min_node_distance_px,
    )
