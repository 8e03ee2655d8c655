"""Note timing synthesis: beat selection, subdivisions and spacing."""

from bisect import bisect_left, bisect_right
from typing import List, Sequence, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, DEFAULT_GENERATION_CONFIG, AnalysisConfig, GenerationConfig
from .logging_config import get_logger
from .models import (
    AnalysisResult,
    DifficultySettings,
    MusicalPhrase,
    NoteTiming,
    RhythmType,
)
from .scoring import musical_fitness_at, phrase_rhythm, song_intensity_at

logger = get_logger(__name__)


def enforce_minimum_spacing(timings: Sequence[float], min_spacing: float) -> List[float]:
    """Greedily keep sorted timestamps at least ``min_spacing`` after the last kept one."""
    kept: List[float] = []
    for t in timings:
        if not kept or t - kept[-1] >= min_spacing:
            kept.append(t)
    return kept


class PhraseIndex:
    """Binary-search lookup of the phrase containing a time."""

    def __init__(self, phrases: Sequence[MusicalPhrase], tolerance: float = 0.05):
        self.phrases = list(phrases)
        self.tolerance = tolerance
        self._starts = [p.start_time for p in self.phrases]

    def find(self, t: float) -> Tuple[int, int]:
        """Return (phrase id, index of the matching phrase beat) for time t.

        The position is the first phrase beat strictly within tolerance of t, or
        0 when none matches. Times outside every phrase map to (0, 0).
        """
        i = bisect_right(self._starts, t) - 1
        if i < 0:
            return 0, 0
        phrase = self.phrases[i]
        if t > phrase.end_time:
            return 0, 0

        beats = phrase.note_times
        j = bisect_left(beats, t - self.tolerance)
        while j < len(beats) and beats[j] < t + self.tolerance:
            if abs(beats[j] - t) < self.tolerance:
                return phrase.id, j
            j += 1
        return phrase.id, 0

    def get(self, phrase_id: int):
        """Phrase by id, or None."""
        if 0 <= phrase_id < len(self.phrases) and self.phrases[phrase_id].id == phrase_id:
            return self.phrases[phrase_id]
        for phrase in self.phrases:
            if phrase.id == phrase_id:
                return phrase
        return None


class NoteTimingGenerator:
    """Chooses note times inside phrases and enforces the minimum gap."""

    def __init__(self, config: GenerationConfig = None, analysis_config: AnalysisConfig = None):
        self.config = config or DEFAULT_GENERATION_CONFIG
        self.analysis_config = analysis_config or DEFAULT_CONFIG

    def _fitness(self, t: float, analysis: AnalysisResult) -> float:
        return musical_fitness_at(t, analysis, self.analysis_config)

    def subdivisions(
        self,
        beat: float,
        next_beat: float,
        rhythm: RhythmType,
        analysis: AnalysisResult,
        settings: DifficultySettings,
    ) -> List[float]:
        """Extra note times between two consecutive phrase beats.

        Args:
            beat: Current beat time.
            next_beat: Following beat of the same phrase.
            rhythm: Rhythm classification of the phrase.
            analysis: Song analysis.
            settings: Difficulty settings.

        Returns:
            Accepted subdivision times.
        """
        interval = next_beat - beat
        extra: List[float] = []

        if rhythm is RhythmType.BURST:
            if interval > 0.2:
                for k in (1, 2, 3):
                    t = beat + interval * 0.25 * k
                    if self._fitness(t, analysis) > 0.3:
                        extra.append(t)
        elif rhythm is RhythmType.SYNCOPATED:
            t = beat + interval * 0.375
            if self._fitness(t, analysis) > 0.5:
                extra.append(t)
        elif rhythm is RhythmType.STEADY:
            if interval > settings.min_time_between_notes * 2:
                t = beat + interval * 0.5
                if self._fitness(t, analysis) > 0.4:
                    extra.append(t)
        elif rhythm is RhythmType.SLOW:
            pass
        else:
            raise ValueError(f"Unhandled rhythm type: {rhythm}")

        return extra

    def intensity_bursts(
        self,
        phrase: MusicalPhrase,
        analysis: AnalysisResult,
        settings: DifficultySettings,
        notes: List[float],
    ) -> List[float]:
        """Scan a very intense phrase for energy peaks worth extra notes.

        Accepted times are appended to ``notes`` as they are found, so later
        candidates are checked against earlier bursts too.
        """
        cfg = self.config
        min_gap = settings.min_time_between_notes * 0.5
        added: List[float] = []
        steps = int(np.ceil((phrase.end_time - phrase.start_time) / cfg.burst_scan_step))
        for k in range(max(steps, 0)):
            t = phrase.start_time + k * cfg.burst_scan_step
            if t >= phrase.end_time:
                break
            intensity = song_intensity_at(t, analysis, self.analysis_config)
            if intensity <= cfg.burst_peak_intensity:
                continue
            if self._fitness(t, analysis) <= cfg.burst_min_fitness:
                continue
            if any(abs(n - t) < min_gap for n in notes):
                continue
            notes.append(t)
            added.append(t)
        return added

    def notes_for_phrase(
        self, phrase: MusicalPhrase, analysis: AnalysisResult, settings: DifficultySettings
    ) -> List[float]:
        """Candidate note times for one phrase, unsorted."""
        cfg = self.config
        rhythm = phrase_rhythm(phrase)
        add_subdivisions = (
            phrase.intensity_level > cfg.subdivision_min_intensity
            and settings.notes_per_minute >= cfg.subdivision_min_npm
        )

        notes: List[float] = []
        beats = phrase.note_times
        for i, beat in enumerate(beats):
            if self._fitness(beat, analysis) >= cfg.beat_fitness_threshold:
                notes.append(beat)
            if add_subdivisions and i < len(beats) - 1:
                notes.extend(self.subdivisions(beat, beats[i + 1], rhythm, analysis, settings))

        if (
            phrase.intensity_level > cfg.burst_min_intensity
            and settings.notes_per_minute >= cfg.burst_min_npm
        ):
            self.intensity_bursts(phrase, analysis, settings, notes)

        return notes

    def generate(
        self,
        phrases: Sequence[MusicalPhrase],
        analysis: AnalysisResult,
        settings: DifficultySettings,
    ) -> List[NoteTiming]:
        """Produce the final time-ordered, minimum-spaced note timings.

        Args:
            phrases: Phrases in time order.
            analysis: Song analysis.
            settings: Difficulty settings.

        Returns:
            NoteTiming list, ascending in time.
        """
        candidates: List[float] = []
        for phrase in phrases:
            candidates.extend(self.notes_for_phrase(phrase, analysis, settings))

        # Burst scans may run past the end of the audio
        candidates = sorted(t for t in candidates if 0.0 <= t <= analysis.duration)
        kept = enforce_minimum_spacing(candidates, settings.min_time_between_notes)

        index = PhraseIndex(phrases, self.config.phrase_match_tolerance)
        timings = []
        for t in kept:
            phrase_id, position = index.find(t)
            timings.append(NoteTiming(time=t, phrase_id=phrase_id, phrase_position=position))

        logger.debug(
            "Kept %d of %d candidate note times (min gap %.2fs)",
            len(timings),
            len(candidates),
            settings.min_time_between_notes,
        )
        return timings
