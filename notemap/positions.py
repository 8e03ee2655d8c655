"""Spatial placement of notes on the playfield."""

import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, DEFAULT_GENERATION_CONFIG, AnalysisConfig, GenerationConfig
from .logging_config import get_logger
from .models import (
    AnalysisResult,
    DifficultySettings,
    MusicalPhrase,
    NoteTiming,
    PatternType,
    PlacementStats,
)
from .patterns import Point, apply_pattern, blend
from .scoring import (
    dominant_instrument,
    frame_index,
    instrument_modifier,
    is_near_beat,
    song_intensity_at,
)

logger = get_logger(__name__)

# (max notes per minute, base movement distance in px)
MOVEMENT_TIERS = ((100, 350.0), (150, 450.0), (250, 550.0), (350, 650.0))
MAX_TIER_DISTANCE = 800.0


def base_movement_distance(notes_per_minute: int) -> float:
    """Base pattern distance for a note density tier."""
    for limit, distance in MOVEMENT_TIERS:
        if notes_per_minute <= limit:
            return distance
    return MAX_TIER_DISTANCE


class PositionGenerator:
    """Assigns a legal (y, z) position to every note time, in order."""

    def __init__(
        self,
        rng: np.random.Generator,
        config: GenerationConfig = None,
        analysis_config: AnalysisConfig = None,
    ):
        """Initialize generator.

        Args:
            rng: Random generator for placement, jumps and pattern angles.
            config: Generation configuration.
            analysis_config: Analysis constants used to map times to frames.
        """
        self.rng = rng
        self.config = config or DEFAULT_GENERATION_CONFIG
        self.analysis_config = analysis_config or DEFAULT_CONFIG

    # --- Basic placement ---

    def clamp(self, y: float, z: float) -> Point:
        cfg = self.config
        return (
            min(max(y, 0.0), float(cfg.screen_width)),
            min(max(z, 0.0), float(cfg.screen_height)),
        )

    def random_position(self) -> Point:
        cfg = self.config
        return (
            float(self.rng.integers(0, cfg.screen_width)),
            float(self.rng.integers(0, cfg.screen_height)),
        )

    def melody_aware_position(self, t: float, analysis: AnalysisResult) -> Point:
        """Height follows the spectral balance at t: bass low, treble high.

        The horizontal coordinate is random. Without band activity the whole
        position is random.
        """
        bands = analysis.frequency_bands
        if len(bands) > 0:
            low, mid, high = (
                float(b) for b in bands[frame_index(t, len(bands), self.analysis_config)]
            )
            total = low + mid + high
            if total > 0.01:
                height = (mid / total) * 0.5 + (high / total) * 1.0
                y = float(self.rng.integers(0, self.config.screen_width))
                return y, height * self.config.screen_height
        return self.random_position()

    def phrase_jump(self, last: Point) -> Point:
        """Large move away from the previous note when a new phrase begins.

        With ``hard_cut_probability`` the note instead lands in an outer third
        of both axes.
        """
        cfg = self.config
        direction = float(self.rng.random()) * 2 * math.pi
        distance = cfg.phrase_jump_min + float(self.rng.random()) * cfg.phrase_jump_range

        y = last[0] + distance * math.cos(direction)
        z = last[1] + distance * math.sin(direction)

        if self.rng.random() < cfg.hard_cut_probability:
            y = float(self._outer_third(cfg.screen_width))
            z = float(self._outer_third(cfg.screen_height))

        return self.clamp(y, z)

    def _outer_third(self, size: int) -> int:
        if self.rng.random() < 0.5:
            return int(self.rng.integers(0, size // 3))
        return int(self.rng.integers(2 * size // 3, size))

    # --- Movement patterns ---

    def should_apply_pattern(self, t: float, analysis: AnalysisResult) -> bool:
        cfg = self.config
        if is_near_beat(t, analysis, cfg.beat_match_tolerance):
            return self.rng.random() < cfg.beat_pattern_probability
        return self.rng.random() < cfg.offbeat_pattern_probability

    def movement_position(
        self,
        base: Point,
        last: Point,
        settings: DifficultySettings,
        note_index: int,
        pattern: PatternType,
        t: float,
        analysis: AnalysisResult,
    ) -> Point:
        """Blend the base position with the phrase's movement pattern.

        Args:
            base: Melody-aware or phrase-jump position.
            last: Position of the previous note.
            settings: Difficulty settings.
            note_index: Position of the note within its phrase.
            pattern: Phrase pattern; a dominant instrument may override it.
            t: Note time.
            analysis: Song analysis.

        Returns:
            Clamped position.
        """
        intensity = song_intensity_at(t, analysis, self.analysis_config)
        distance = base_movement_distance(settings.notes_per_minute)
        distance *= min(max(intensity, 0.3), 2.0)

        modifier = instrument_modifier(dominant_instrument(t, analysis, self.analysis_config))
        distance *= modifier.distance_multiplier

        angle = float(self.rng.random()) * 2 * math.pi
        if modifier.force_pattern is not None:
            pattern = modifier.force_pattern

        target = apply_pattern(pattern, base, last, distance, note_index, angle, self.rng)
        y, z = blend(base, target, self.config.pattern_blend_factor)
        return self.clamp(y, z)

    # --- Minimum distance ---

    def enforce_minimum_distance(
        self,
        candidate: Point,
        placed_y: np.ndarray,
        placed_z: np.ndarray,
        min_distance: float,
    ) -> Tuple[Point, bool, int]:
        """Push a candidate away from every placed note closer than ``min_distance``.

        Each pass walks the placed notes in order and moves the candidate to
        exactly ``min_distance`` from any note it violates, reclamping after
        each move. Passes repeat until one makes no move or the iteration cap
        is reached.

        Returns:
            Tuple of (position, resolved, passes used). ``resolved`` is False
            when a violation remains after the cap.
        """
        count = len(placed_y)
        if count == 0 or min_distance <= 0:
            return candidate, True, 0

        # Tolerance keeps a push to exactly min_distance from re-triggering
        threshold = min_distance * min_distance * (1 - 1e-9)
        y, z = candidate
        max_iterations = self.config.max_repulsion_iterations

        for iteration in range(max_iterations):
            adjusted = False
            j = 0
            while j < count:
                dy = y - placed_y[j:]
                dz = z - placed_z[j:]
                hits = np.flatnonzero(dy * dy + dz * dz < threshold)
                if len(hits) == 0:
                    break
                k = j + int(hits[0])
                dy_k = y - placed_y[k]
                dz_k = z - placed_z[k]
                dist = math.sqrt(dy_k * dy_k + dz_k * dz_k)
                if dist < 1e-3:
                    angle = float(self.rng.random()) * 2 * math.pi
                    dir_y, dir_z = math.cos(angle), math.sin(angle)
                else:
                    dir_y, dir_z = dy_k / dist, dz_k / dist
                y, z = self.clamp(
                    placed_y[k] + dir_y * min_distance, placed_z[k] + dir_z * min_distance
                )
                adjusted = True
                j = k + 1

            if not adjusted:
                return (y, z), True, iteration

        dy = y - placed_y
        dz = z - placed_z
        resolved = bool(np.all(dy * dy + dz * dz >= threshold))
        return (y, z), resolved, max_iterations

    # --- Driver ---

    def generate(
        self,
        timings: Sequence[NoteTiming],
        analysis: AnalysisResult,
        settings: DifficultySettings,
        phrases: Sequence[MusicalPhrase],
    ) -> Tuple[List[Point], PlacementStats]:
        """Place every note in time order.

        Args:
            timings: Note timings ascending in time.
            analysis: Song analysis.
            settings: Difficulty settings.
            phrases: Phrases referenced by the timings.

        Returns:
            Tuple of ((y, z) positions aligned with ``timings``, placement stats).
        """
        n = len(timings)
        placed_y = np.zeros(n)
        placed_z = np.zeros(n)
        positions: List[Point] = []
        stats = PlacementStats()
        by_id: Dict[int, MusicalPhrase] = {p.id: p for p in phrases}

        last = self.random_position()
        current_phrase: Optional[int] = None
        pattern = PatternType.SMOOTH_FLOW

        for i, timing in enumerate(timings):
            t = timing.time
            base = self.melody_aware_position(t, analysis)

            if timing.phrase_id != current_phrase:
                current_phrase = timing.phrase_id
                phrase = by_id.get(timing.phrase_id)
                if phrase is not None:
                    pattern = phrase.pattern_type
                    if i > 0:
                        base = self.phrase_jump(last)

            if self.should_apply_pattern(t, analysis) and i > 0:
                candidate = self.movement_position(
                    base, last, settings, timing.phrase_position, pattern, t, analysis
                )
            else:
                candidate = base

            position, resolved, passes = self.enforce_minimum_distance(
                candidate, placed_y[:i], placed_z[:i], settings.min_node_distance_px
            )
            placed_y[i], placed_z[i] = position
            positions.append(position)
            last = position

            stats.placed += 1
            stats.max_iterations = max(stats.max_iterations, passes)
            if not resolved:
                stats.unresolved += 1

        if stats.unresolved:
            logger.debug(
                "%d of %d notes still closer than %.0fpx after %d passes",
                stats.unresolved,
                stats.placed,
                settings.min_node_distance_px,
                self.config.max_repulsion_iterations,
            )
        return positions, stats
