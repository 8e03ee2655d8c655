"""Tests for map serialization and the terminal preview."""

import json
from pathlib import Path

import numpy as np
import pytest
from rich.console import Console

from notemap.export import default_output_path, save_map, to_data_table, to_map_dict
from notemap.models import (
    AnalysisResult,
    DifficultyLevel,
    GameMap,
    MapMetadata,
    MusicalPhrase,
    NoteEvent,
    PatternType,
    PlacementStats,
)
from notemap.visualizer import _compute_envelope, _note_density, render_map_preview


def _make_map():
    notes = [
        NoteEvent(time=0.5, y=100.0, z=200.0, phrase_id=0, phrase_position=0),
        NoteEvent(time=1.0, y=400.0, z=300.0, phrase_id=0, phrase_position=1),
        NoteEvent(time=2.5, y=1500.0, z=900.0, phrase_id=1, phrase_position=0),
    ]
    phrases = [
        MusicalPhrase(0, 0.0, 1.8, [0.5, 1.0, 1.5], PatternType.SPIRAL, 1.1),
        MusicalPhrase(1, 2.0, 4.0, [2.5, 3.0], PatternType.JUMP, 0.9),
    ]
    metadata = MapMetadata(
        song_name="demo",
        difficulty=DifficultyLevel.HARD,
        duration=30.0,
        bpm=120.0,
        note_count=len(notes),
        placement=PlacementStats(placed=3, unresolved=1, max_iterations=25),
    )
    return GameMap(notes=notes, metadata=metadata, phrases=phrases)


class TestDataTable:
    def test_rows(self):
        rows = to_data_table(_make_map(), "song-1", "hard-1")
        assert len(rows) == 3
        assert rows[0] == {
            "Position": {"X": 0.0, "Y": 100.0, "Z": 200.0},
            "TimeSec": 0.5,
            "Index": 0,
            "Name": "Row_000",
            "SongIdentifier": "song-1",
            "DifficultyIdentifier": "hard-1",
        }
        assert [r["Name"] for r in rows] == ["Row_000", "Row_001", "Row_002"]

    def test_empty_map(self):
        game_map = _make_map()
        game_map.notes = []
        assert to_data_table(game_map) == []


class TestMapDict:
    def test_notes_and_metadata(self):
        data = to_map_dict(_make_map())
        assert data["notes"][1] == {
            "x": 0.0,
            "y": 400.0,
            "z": 300.0,
            "time": 1.0,
            "phraseId": 0,
            "phrasePosition": 1,
        }
        meta = data["metadata"]
        assert meta["songName"] == "demo"
        assert meta["difficulty"] == "Hard"
        assert meta["noteCount"] == 3
        assert meta["unresolvedSpacing"] == 1
        assert "created" in meta

    def test_without_placement_stats(self):
        game_map = _make_map()
        game_map.metadata.placement = None
        assert "unresolvedSpacing" not in to_map_dict(game_map)["metadata"]


class TestSaveMap:
    def test_default_output_path(self):
        path = default_output_path("/music/song.mp3", DifficultyLevel.EXPERT)
        assert path == Path("/music/song_Expert.json")

    def test_save_table(self, tmp_path):
        path = save_map(_make_map(), tmp_path / "out.json", "s", "d")
        rows = json.loads(path.read_text())
        assert len(rows) == 3
        assert rows[2]["Position"]["Y"] == 1500.0
        assert rows[2]["SongIdentifier"] == "s"

    def test_save_map_layout(self, tmp_path):
        path = save_map(_make_map(), str(tmp_path / "out.json"), layout="map")
        data = json.loads(path.read_text())
        assert set(data) == {"notes", "metadata"}

    def test_unknown_layout(self, tmp_path):
        with pytest.raises(ValueError):
            save_map(_make_map(), tmp_path / "out.json", layout="xml")
        assert not (tmp_path / "out.json").exists()


class TestPreview:
    def test_envelope(self):
        envelope = _compute_envelope(np.array([0.0, 1.0, 2.0, 4.0]), 2)
        assert envelope == pytest.approx([0.5 / 3.0, 1.0])
        assert _compute_envelope(np.zeros(0), 3) == [0.0, 0.0, 0.0]

    def test_note_density(self):
        density = _note_density(_make_map().notes, 30.0, 3)
        assert density == pytest.approx([1.0, 0.0, 0.0])
        assert _note_density([], 0.0, 2) == [0.0, 0.0]

    def test_render(self):
        analysis = AnalysisResult(
            duration=30.0,
            beat_timestamps=[0.5, 1.0],
            spectral_energy=np.linspace(0, 1, 2000),
            estimated_bpm=120.0,
            frequency_bands=np.ones((2000, 3)),
        )
        console = Console(record=True, width=120)
        render_map_preview(_make_map(), analysis, title="demo.wav", width=60, console=console)
        output = console.export_text()
        assert "demo.wav" in output
        assert "BPM: 120.0" in output
        assert "phrases" in output
        assert "notes" in output
