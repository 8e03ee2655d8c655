"""End-to-end tests for map generation."""

import numpy as np
import pytest

from notemap.analyzer import AudioAnalyzer
from notemap.config import get_difficulty_settings
from notemap.generator import TOO_SHORT_WARNING, MapGenerator, generate_from_samples
from notemap.models import AnalysisResult, DifficultyLevel, DifficultySettings

SR = 44100
FRAME = 512 / SR


def _steady_analysis(seconds=60.0, beat_period=1.0):
    n = int(seconds / FRAME)
    return AnalysisResult(
        duration=seconds,
        beat_timestamps=list(np.arange(beat_period / 2, seconds, beat_period)),
        spectral_energy=np.ones(n),
        estimated_bpm=60.0 / beat_period,
        frequency_bands=np.ones((n, 3)),
    )


def _random_analysis(seconds=30.0, seed=0):
    rng = np.random.default_rng(seed)
    n = int(seconds / FRAME)
    return AnalysisResult(
        duration=seconds,
        beat_timestamps=list(np.arange(0.25, seconds, 0.25)),
        spectral_energy=rng.uniform(0.5, 2.0, n),
        estimated_bpm=240.0,
        frequency_bands=rng.uniform(0.0, 1.0, (n, 3)),
    )


def _click_track(period=0.5, seconds=20):
    samples = np.zeros(SR * seconds)
    samples[np.arange(0, SR * seconds, int(SR * period))] = 1.0
    return samples


class TestEmptyInput:
    def test_empty_buffer(self):
        analysis = AudioAnalyzer(use_cache=False).analyze_samples(np.zeros(0))
        assert analysis.duration == 0
        assert analysis.beat_timestamps == []
        assert analysis.estimated_bpm == 120.0
        assert analysis.is_empty

        settings = get_difficulty_settings(DifficultyLevel.NORMAL)
        game_map = generate_from_samples(np.zeros(0), settings, seed=1)
        assert game_map.notes == []
        assert game_map.warning == TOO_SHORT_WARNING
        assert game_map.metadata.bpm == 120.0
        assert game_map.notes_per_minute == 0.0

    def test_silence(self):
        settings = get_difficulty_settings(DifficultyLevel.NORMAL)
        game_map = generate_from_samples(np.zeros(SR * 10), settings, seed=1)
        assert game_map.notes == []
        assert game_map.phrases == []
        assert game_map.warning is None
        assert game_map.metadata.duration == pytest.approx(10.0)


class TestMapGenerator:
    def test_spacing_bounds_note_count(self):
        settings = DifficultySettings(60, 0.7, 0.8, 200.0)
        game_map = MapGenerator(seed=4).generate(_steady_analysis(), settings)
        # Every note sits on one of the 60 beats
        assert 30 <= len(game_map.notes) <= 60
        assert len(game_map.notes) <= 60 / 0.8

    @pytest.mark.parametrize("level", list(DifficultyLevel))
    def test_note_invariants(self, level):
        analysis = _random_analysis()
        settings = get_difficulty_settings(level)
        game_map = MapGenerator(seed=9).generate(analysis, settings, "song", level)

        times = [n.time for n in game_map.notes]
        assert times == sorted(times)
        assert all(b - a >= settings.min_time_between_notes for a, b in zip(times, times[1:]))
        for note in game_map.notes:
            assert note.x == 0.0
            assert 0.0 <= note.y <= 2200.0
            assert 0.0 <= note.z <= 1100.0
            assert 0.0 <= note.time <= analysis.duration

        meta = game_map.metadata
        assert meta.song_name == "song"
        assert meta.difficulty is level
        assert meta.note_count == len(game_map.notes)
        assert meta.placement.placed == len(game_map.notes)

    def test_same_seed_same_map(self):
        analysis = _random_analysis()
        settings = get_difficulty_settings(DifficultyLevel.HARD)
        first = MapGenerator(seed=123).generate(analysis, settings)
        second = MapGenerator(seed=123).generate(analysis, settings)
        assert first.notes == second.notes

    def test_different_seed_different_map(self):
        analysis = _random_analysis()
        settings = get_difficulty_settings(DifficultyLevel.HARD)
        first = MapGenerator(seed=1).generate(analysis, settings)
        second = MapGenerator(seed=2).generate(analysis, settings)
        assert [(n.y, n.z) for n in first.notes] != [(n.y, n.z) for n in second.notes]

    def test_injected_rng_is_shared(self):
        rng = np.random.default_rng(0)
        generator = MapGenerator(rng=rng)
        assert generator.phrase_segmenter.rng is rng
        assert generator.position_generator.rng is rng

    def test_notes_reference_phrases(self):
        game_map = MapGenerator(seed=5).generate(
            _random_analysis(), get_difficulty_settings(DifficultyLevel.EXPERT)
        )
        ids = {p.id for p in game_map.phrases}
        assert ids
        assert all(n.phrase_id in ids for n in game_map.notes)


class TestFromSamples:
    def test_click_track_map(self):
        settings = get_difficulty_settings(DifficultyLevel.NORMAL)
        game_map = generate_from_samples(_click_track(), settings, "clicks", seed=3)
        assert game_map.warning is None
        assert game_map.metadata.bpm == pytest.approx(120.0, abs=10.0)
        assert len(game_map.notes) > 0
        assert len(game_map.notes) <= 20 / settings.min_time_between_notes + 1
