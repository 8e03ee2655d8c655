"""Tests for note timing synthesis."""

import unittest.mock as mock

import numpy as np
import pytest

from notemap.config import get_difficulty_settings
from notemap.models import (
    AnalysisResult,
    DifficultyLevel,
    DifficultySettings,
    MusicalPhrase,
    PatternType,
    RhythmType,
)
from notemap.phrases import PhraseSegmenter
from notemap.timing import NoteTimingGenerator, PhraseIndex, enforce_minimum_spacing

FRAME = 512 / 44100


def _phrase(pid, start, end, beats, intensity=1.0):
    return MusicalPhrase(
        id=pid,
        start_time=start,
        end_time=end,
        note_times=list(beats),
        pattern_type=PatternType.STREAM,
        intensity_level=intensity,
    )


def _random_analysis(seconds=20.0, beat_period=0.25, seed=0):
    rng = np.random.default_rng(seed)
    n = int(seconds / FRAME)
    return AnalysisResult(
        duration=seconds,
        beat_timestamps=list(np.arange(beat_period, seconds, beat_period)),
        spectral_energy=rng.uniform(0.5, 2.0, n),
        estimated_bpm=60.0 / beat_period,
        frequency_bands=rng.uniform(0.1, 1.0, (n, 3)),
    )


class TestMinimumSpacing:
    def test_greedy_keep(self):
        kept = enforce_minimum_spacing([0.0, 0.1, 0.3, 0.35, 0.9], 0.25)
        assert kept == [0.0, 0.3, 0.9]

    def test_exact_gap_is_kept(self):
        assert enforce_minimum_spacing([0.0, 0.5, 1.0], 0.5) == [0.0, 0.5, 1.0]

    def test_empty(self):
        assert enforce_minimum_spacing([], 0.5) == []


class TestPhraseIndex:
    def setup_method(self):
        self.index = PhraseIndex(
            [
                _phrase(0, 0.0, 2.0, [0.5, 1.0, 1.5]),
                _phrase(1, 2.2, 4.0, [2.5, 3.0]),
            ]
        )

    def test_exact_beat(self):
        assert self.index.find(1.0) == (0, 1)
        assert self.index.find(3.0) == (1, 1)

    def test_within_tolerance(self):
        assert self.index.find(1.02) == (0, 1)
        assert self.index.find(2.47) == (1, 0)

    def test_between_beats(self):
        assert self.index.find(1.25) == (0, 0)

    def test_outside_phrases(self):
        assert self.index.find(-1.0) == (0, 0)
        assert self.index.find(5.0) == (0, 0)

    def test_get(self):
        assert self.index.get(1).start_time == 2.2
        assert self.index.get(9) is None


class TestSubdivisions:
    def setup_method(self):
        self.generator = NoteTimingGenerator()
        self.analysis = _random_analysis()
        self.settings = DifficultySettings(300, 0.4, 0.1, 125.0)

    def _subdivide(self, rhythm, interval, fitness=1.0, settings=None):
        with mock.patch.object(self.generator, "_fitness", return_value=fitness):
            return self.generator.subdivisions(
                1.0, 1.0 + interval, rhythm, self.analysis, settings or self.settings
            )

    def test_burst(self):
        assert self._subdivide(RhythmType.BURST, 0.4) == pytest.approx([1.1, 1.2, 1.3])

    def test_burst_needs_room(self):
        assert self._subdivide(RhythmType.BURST, 0.2) == []

    def test_syncopated(self):
        assert self._subdivide(RhythmType.SYNCOPATED, 0.4) == pytest.approx([1.15])

    def test_steady(self):
        assert self._subdivide(RhythmType.STEADY, 0.4) == pytest.approx([1.2])

    def test_steady_needs_room(self):
        settings = DifficultySettings(300, 0.4, 0.3, 125.0)
        assert self._subdivide(RhythmType.STEADY, 0.4, settings=settings) == []

    def test_slow(self):
        assert self._subdivide(RhythmType.SLOW, 2.0) == []

    def test_unfit_times_rejected(self):
        for rhythm in RhythmType:
            assert self._subdivide(rhythm, 0.4, fitness=0.0) == []


class TestNoteTimingGenerator:
    def setup_method(self):
        self.generator = NoteTimingGenerator()

    def test_no_phrases(self):
        settings = get_difficulty_settings(DifficultyLevel.NORMAL)
        assert self.generator.generate([], _random_analysis(), settings) == []

    def test_unfit_beats_dropped(self):
        analysis = _random_analysis()
        phrase = _phrase(0, 0.0, 2.0, [0.5, 1.0, 1.5])
        settings = get_difficulty_settings(DifficultyLevel.EASY)
        with mock.patch.object(self.generator, "_fitness", return_value=0.1):
            assert self.generator.notes_for_phrase(phrase, analysis, settings) == []
        with mock.patch.object(self.generator, "_fitness", return_value=1.0):
            assert self.generator.notes_for_phrase(phrase, analysis, settings) == [0.5, 1.0, 1.5]

    def test_intensity_bursts_respect_existing_notes(self):
        analysis = _random_analysis()
        phrase = _phrase(0, 1.0, 1.5, [1.0, 1.5], intensity=1.5)
        settings = DifficultySettings(450, 0.3, 0.18, 100.0)
        notes = [1.0]
        with mock.patch.object(self.generator, "_fitness", return_value=1.0), mock.patch(
            "notemap.timing.song_intensity_at", return_value=2.0
        ):
            added = self.generator.intensity_bursts(phrase, analysis, settings, notes)
        assert added == pytest.approx([1.1, 1.2, 1.3, 1.4])
        assert notes[0] == 1.0
        assert all(b - a >= 0.09 for a, b in zip(notes, notes[1:]))

    @pytest.mark.parametrize("level", list(DifficultyLevel))
    def test_generated_timings(self, level):
        analysis = _random_analysis()
        settings = get_difficulty_settings(level)
        phrases = PhraseSegmenter(np.random.default_rng(5)).segment(analysis)
        timings = self.generator.generate(phrases, analysis, settings)

        times = [t.time for t in timings]
        assert times == sorted(times)
        assert all(0.0 <= t <= analysis.duration for t in times)
        assert all(b - a >= settings.min_time_between_notes for a, b in zip(times, times[1:]))

        ids = {p.id for p in phrases}
        for timing in timings:
            assert timing.phrase_id in ids or timing.phrase_id == 0
            assert timing.phrase_position >= 0

    def test_denser_settings_give_more_notes(self):
        analysis = _random_analysis()
        phrases = PhraseSegmenter(np.random.default_rng(5)).segment(analysis)
        easy = self.generator.generate(
            phrases, analysis, get_difficulty_settings(DifficultyLevel.EASY)
        )
        master = self.generator.generate(
            phrases, analysis, get_difficulty_settings(DifficultyLevel.MASTER)
        )
        assert len(master) >= len(easy)
