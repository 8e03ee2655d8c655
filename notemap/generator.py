"""Note map generation from an analyzed song."""

from typing import Optional

import numpy as np

from .analyzer import AudioAnalyzer
from .config import DEFAULT_CONFIG, DEFAULT_GENERATION_CONFIG, AnalysisConfig, GenerationConfig
from .logging_config import get_logger
from .models import (
    AnalysisResult,
    DifficultyLevel,
    DifficultySettings,
    GameMap,
    MapMetadata,
    NoteEvent,
)
from .phrases import PhraseSegmenter
from .positions import PositionGenerator
from .timing import NoteTimingGenerator

logger = get_logger(__name__)

TOO_SHORT_WARNING = "Audio too short or empty for note generation"


class MapGenerator:
    """Runs phrase segmentation, note timing and placement over an AnalysisResult."""

    def __init__(
        self,
        config: GenerationConfig = None,
        analysis_config: AnalysisConfig = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """Initialize generator.

        Args:
            config: Generation configuration. Uses DEFAULT_GENERATION_CONFIG if not provided.
            analysis_config: Analysis constants. Uses DEFAULT_CONFIG if not provided.
            rng: Random generator shared by all stages. Created from ``seed`` if omitted.
            seed: Seed for a new generator; ignored when ``rng`` is given.
        """
        self.config = config or DEFAULT_GENERATION_CONFIG
        self.analysis_config = analysis_config or DEFAULT_CONFIG
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.phrase_segmenter = PhraseSegmenter(self.rng, self.config, self.analysis_config)
        self.timing_generator = NoteTimingGenerator(self.config, self.analysis_config)
        self.position_generator = PositionGenerator(self.rng, self.config, self.analysis_config)

    def generate(
        self,
        analysis: AnalysisResult,
        settings: DifficultySettings,
        song_name: str = "",
        difficulty: DifficultyLevel = DifficultyLevel.NORMAL,
    ) -> GameMap:
        """Generate a note map.

        Args:
            analysis: Spectral and beat analysis of the song.
            settings: Difficulty settings.
            song_name: Name stored in the metadata.
            difficulty: Base difficulty stored in the metadata.

        Returns:
            GameMap with time-ascending notes. ``warning`` is set when the
            analysis was empty.
        """
        warning = TOO_SHORT_WARNING if analysis.is_empty else None

        phrases = self.phrase_segmenter.segment(analysis)
        timings = self.timing_generator.generate(phrases, analysis, settings)
        positions, stats = self.position_generator.generate(timings, analysis, settings, phrases)

        notes = [
            NoteEvent(
                time=timing.time,
                y=y,
                z=z,
                phrase_id=timing.phrase_id,
                phrase_position=timing.phrase_position,
            )
            for timing, (y, z) in zip(timings, positions)
        ]

        metadata = MapMetadata(
            song_name=song_name,
            difficulty=difficulty,
            duration=analysis.duration,
            bpm=analysis.estimated_bpm,
            note_count=len(notes),
            placement=stats,
        )
        game_map = GameMap(notes=notes, metadata=metadata, phrases=phrases, warning=warning)

        logger.info(
            "Generated %d notes in %d phrases (%.0f notes/min)",
            len(notes),
            len(phrases),
            game_map.notes_per_minute,
        )
        return game_map


def generate_from_samples(
    samples,
    settings: DifficultySettings,
    song_name: str = "",
    difficulty: DifficultyLevel = DifficultyLevel.NORMAL,
    seed: Optional[int] = None,
    analysis_config: AnalysisConfig = None,
    config: GenerationConfig = None,
) -> GameMap:
    """Analyze an in-memory mono buffer and generate its note map.

    Args:
        samples: Mono PCM samples at the analysis sample rate.
        settings: Difficulty settings.
        song_name: Name stored in the metadata.
        difficulty: Base difficulty stored in the metadata.
        seed: Random seed for reproducible maps.
        analysis_config: Analysis constants.
        config: Generation configuration.

    Returns:
        GameMap. Empty or too-short input gives an empty map with ``warning`` set.
    """
    analysis = AudioAnalyzer(analysis_config, use_cache=False).analyze_samples(samples)
    generator = MapGenerator(config=config, analysis_config=analysis_config, seed=seed)
    return generator.generate(analysis, settings, song_name, difficulty)
