"""Serialization of generated maps to JSON."""

import json
from pathlib import Path
from typing import List

from .logging_config import get_logger
from .models import DifficultyLevel, GameMap

logger = get_logger(__name__)


def to_data_table(
    game_map: GameMap, song_identifier: str = "", difficulty_identifier: str = ""
) -> List[dict]:
    """Convert notes to data-table rows, one row per note in time order.

    Args:
        game_map: Generated map.
        song_identifier: Value for every row's SongIdentifier column.
        difficulty_identifier: Value for every row's DifficultyIdentifier column.

    Returns:
        List of row dicts.
    """
    return [
        {
            "Position": {"X": note.x, "Y": note.y, "Z": note.z},
            "TimeSec": note.time,
            "Index": i,
            "Name": f"Row_{i:03d}",
            "SongIdentifier": song_identifier,
            "DifficultyIdentifier": difficulty_identifier,
        }
        for i, note in enumerate(game_map.notes)
    ]


def to_map_dict(game_map: GameMap) -> dict:
    """Convert a map to a dict with notes and metadata."""
    meta = game_map.metadata
    metadata = {
        "songName": meta.song_name,
        "difficulty": meta.difficulty.display_name,
        "duration": meta.duration,
        "bpm": meta.bpm,
        "noteCount": meta.note_count,
        "created": meta.created.isoformat(),
    }
    if meta.placement is not None:
        metadata["unresolvedSpacing"] = meta.placement.unresolved
    return {"notes": [note.to_dict() for note in game_map.notes], "metadata": metadata}


def default_output_path(audio_path: str, difficulty: DifficultyLevel) -> Path:
    """``<stem>_<Difficulty>.json`` next to the audio file."""
    path = Path(audio_path)
    return path.with_name(f"{path.stem}_{difficulty.display_name}.json")


def save_map(
    game_map: GameMap,
    output_path,
    song_identifier: str = "",
    difficulty_identifier: str = "",
    layout: str = "table",
) -> Path:
    """Write a map as indented JSON.

    Args:
        game_map: Generated map.
        output_path: Destination file.
        song_identifier: SongIdentifier column for the table layout.
        difficulty_identifier: DifficultyIdentifier column for the table layout.
        layout: "table" for data-table rows, "map" for notes plus metadata.

    Returns:
        Path written.
    """
    if layout == "table":
        payload = to_data_table(game_map, song_identifier, difficulty_identifier)
    elif layout == "map":
        payload = to_map_dict(game_map)
    else:
        raise ValueError(f"Unknown layout: {layout}")

    output_path = Path(output_path)
    output_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.debug("Wrote %d notes to %s", len(game_map.notes), output_path)
    return output_path
