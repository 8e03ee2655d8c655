"""Segmentation of the beat timeline into musical phrases."""

from typing import List

import numpy as np

from .config import DEFAULT_CONFIG, DEFAULT_GENERATION_CONFIG, AnalysisConfig, GenerationConfig
from .logging_config import get_logger
from .models import AnalysisResult, MusicalPhrase, PatternType
from .scoring import average_intensity, song_intensity_at

logger = get_logger(__name__)


class PhraseSegmenter:
    """Groups beats into phrases cut at energy dips or randomized lengths."""

    def __init__(
        self,
        rng: np.random.Generator,
        config: GenerationConfig = None,
        analysis_config: AnalysisConfig = None,
    ):
        """Initialize segmenter.

        Args:
            rng: Random generator for phrase lengths and pattern tags.
            config: Generation configuration.
            analysis_config: Analysis constants used to map times to frames.
        """
        self.rng = rng
        self.config = config or DEFAULT_GENERATION_CONFIG
        self.analysis_config = analysis_config or DEFAULT_CONFIG

    def phrase_length_bounds(self, bpm: float):
        """Return (min, max) phrase length in seconds for a tempo."""
        cfg = self.config
        typical = 60.0 / bpm * cfg.phrase_beats
        return typical * cfg.phrase_min_ratio, typical * cfg.phrase_max_ratio

    def find_phrase_end(
        self, start: float, min_length: float, max_length: float, analysis: AnalysisResult
    ) -> float:
        """Pick where the phrase starting at ``start`` ends.

        The quietest point of the search range wins when it is clearly below
        the intensity at the phrase start; otherwise a random length between
        the bounds is used.
        """
        cfg = self.config
        ideal_end = start + min_length + float(self.rng.random()) * (max_length - min_length)
        search_start = start + min_length
        search_end = min(start + max_length, analysis.duration)

        best_pause = ideal_end
        lowest = np.inf
        steps = int(np.ceil((search_end - search_start) / cfg.phrase_scan_step))
        for k in range(max(steps, 0)):
            t = search_start + k * cfg.phrase_scan_step
            if t >= search_end:
                break
            intensity = song_intensity_at(t, analysis, self.analysis_config)
            if intensity < lowest:
                lowest = intensity
                best_pause = t

        start_intensity = song_intensity_at(start, analysis, self.analysis_config)
        if lowest < start_intensity * cfg.phrase_pause_ratio:
            return best_pause
        return ideal_end

    def segment(self, analysis: AnalysisResult) -> List[MusicalPhrase]:
        """Partition the timeline into phrases.

        Args:
            analysis: Spectral and beat analysis of the song.

        Returns:
            Non-overlapping phrases in time order, each with at least
            ``min_phrase_beats`` beats.
        """
        cfg = self.config
        if len(analysis.beat_timestamps) < cfg.min_phrase_beats:
            logger.debug("Too few beats (%d) for phrases", len(analysis.beat_timestamps))
            return []

        beats = analysis.beat_array
        min_length, max_length = self.phrase_length_bounds(analysis.estimated_bpm)

        phrases: List[MusicalPhrase] = []
        current = 0.0
        dropped = 0
        while current < analysis.duration - cfg.phrase_end_margin:
            end = self.find_phrase_end(current, min_length, max_length, analysis)

            lo = int(np.searchsorted(beats, current, side="left"))
            hi = int(np.searchsorted(beats, end, side="right"))
            members = [float(b) for b in beats[lo:hi]]

            if len(members) >= cfg.min_phrase_beats:
                phrases.append(
                    MusicalPhrase(
                        id=len(phrases),
                        start_time=current,
                        end_time=end,
                        note_times=members,
                        pattern_type=PatternType(int(self.rng.integers(0, len(PatternType)))),
                        intensity_level=average_intensity(
                            current,
                            end,
                            analysis,
                            cfg.phrase_intensity_samples,
                            self.analysis_config,
                        ),
                    )
                )
            else:
                dropped += 1

            current = end + cfg.phrase_gap

        logger.debug("Segmented %d phrases (%d dropped)", len(phrases), dropped)
        return phrases
