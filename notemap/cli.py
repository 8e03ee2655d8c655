"""Command-line interface for NoteMap note map generation."""

import json
import sys
from pathlib import Path

import click

from .analyzer import AudioAnalyzer
from .config import get_difficulty_settings
from .exceptions import AudioLoadError, AudioTooShortError
from .export import default_output_path, save_map, to_map_dict
from .generator import MapGenerator
from .logging_config import setup_logging
from .models import DifficultyLevel, DifficultySettings, GameMap
from .visualizer import render_map_preview

DIFFICULTY_CHOICES = [level.name.lower() for level in DifficultyLevel]


def format_time(seconds):
    """Formats seconds into M:SS.S format.

    Args:
        seconds: Time in seconds, or None.

    Returns:
        str: Formatted time string or "N/A" if None.

    Example:
        >>> format_time(125.3)
        '2:05.3'
    """
    if seconds is None:
        return "N/A"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}:{secs:04.1f}"


def build_settings(
    difficulty: DifficultyLevel,
    notes_per_minute=None,
    beat_sensitivity=None,
    min_time=None,
    min_distance=None,
) -> DifficultySettings:
    """Start from the difficulty preset and apply any explicit overrides."""
    settings = get_difficulty_settings(difficulty)
    if notes_per_minute is not None:
        settings.notes_per_minute = notes_per_minute
    if beat_sensitivity is not None:
        settings.beat_sensitivity = beat_sensitivity
    if min_time is not None:
        settings.min_time_between_notes = min_time
    if min_distance is not None:
        settings.min_node_distance_px = min_distance
    return settings


def format_analysis_result(file_path, analysis):
    """Format a single analysis result for text output."""
    lines = [
        f"Analyzing: {file_path}",
        f"Duration: {analysis.duration:.1f}s",
        f"BPM: {analysis.estimated_bpm:.1f}",
        f"Beats detected: {len(analysis.beat_timestamps)}",
        f"Spectral frames: {analysis.frame_count}",
    ]
    return "\n".join(lines)


def format_map_summary(game_map: GameMap, preview_count: int = 5):
    """Format a generated map summary with its first notes."""
    meta = game_map.metadata
    lines = [
        f"Song: {meta.song_name}",
        f"Difficulty: {meta.difficulty.display_name}",
        f"BPM: {meta.bpm:.1f}",
        f"Duration: {meta.duration:.1f}s",
        f"Notes: {meta.note_count} ({game_map.notes_per_minute:.0f} per minute)",
    ]
    if meta.placement is not None and meta.placement.unresolved:
        lines.append(f"Spacing unresolved: {meta.placement.unresolved} note(s)")

    if game_map.notes:
        lines.append("First notes:")
        for i, note in enumerate(game_map.notes[:preview_count], 1):
            lines.append(
                f"  {i}. time {format_time(note.time)}, "
                f"Y={note.y:.0f} (width), Z={note.z:.0f} (height), phrase {note.phrase_id}"
            )
        remaining = len(game_map.notes) - preview_count
        if remaining > 0:
            lines.append(f"  ... and {remaining} more")
    return "\n".join(lines)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, verbose):
    """NoteMap - rhythm game note maps from audio."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("audio_files", nargs=-1, required=True)
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.option("--no-cache", is_flag=True, help="Do not read or write cached analysis")
def analyze(audio_files, output_format, no_cache):
    """Analyze audio files for duration, tempo and beats.

    Example:
        notemap analyze song.mp3 --format json
    """
    analyzer = AudioAnalyzer(use_cache=not no_cache)
    results = []

    for file_path in audio_files:
        if not Path(file_path).exists():
            click.echo("Error: Unable to load audio file", err=True)
            sys.exit(1)
        try:
            analysis = analyzer.analyze(file_path)
            results.append({"file": file_path, "analysis": analysis})
        except AudioLoadError:
            click.echo("Error: Unable to load audio file", err=True)
            sys.exit(1)
        except AudioTooShortError as e:
            results.append({"file": file_path, "warning": str(e)})

    if output_format == "json":
        tracks = []
        for r in results:
            if "warning" in r:
                tracks.append({"file": r["file"], "warning": r["warning"]})
                continue
            a = r["analysis"]
            tracks.append(
                {
                    "file": r["file"],
                    "duration": a.duration,
                    "bpm": a.estimated_bpm,
                    "beat_count": len(a.beat_timestamps),
                    "beats": a.beat_timestamps,
                }
            )
        output = tracks[0] if len(tracks) == 1 else {"tracks": tracks}
        click.echo(json.dumps(output, indent=2))
        return

    for i, r in enumerate(results):
        if i > 0:
            click.echo()
        if "warning" in r:
            click.echo(f"Analyzing: {r['file']}")
            click.echo(r["warning"])
        else:
            click.echo(format_analysis_result(r["file"], r["analysis"]))


@cli.command()
@click.argument("audio_file")
@click.option(
    "--difficulty",
    "-d",
    default="normal",
    type=click.Choice(DIFFICULTY_CHOICES, case_sensitive=False),
    help="Base difficulty preset (default: normal)",
)
@click.option("--notes-per-minute", type=click.IntRange(10, 1000, clamp=True))
@click.option("--beat-sensitivity", type=click.FloatRange(0.1, 1.5, clamp=True))
@click.option(
    "--min-time",
    type=click.FloatRange(0.05, 2.0, clamp=True),
    help="Minimum seconds between notes",
)
@click.option(
    "--min-distance",
    type=click.FloatRange(10.0, 1000.0, clamp=True),
    help="Minimum pixel distance between notes",
)
@click.option("--seed", type=int, help="Random seed for reproducible maps")
@click.option("--song-id", default="", help="SongIdentifier written to every row")
@click.option("--difficulty-id", default="", help="DifficultyIdentifier written to every row")
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False), help="Output JSON path"
)
@click.option(
    "--layout",
    default="table",
    type=click.Choice(["table", "map"]),
    help="JSON layout: data-table rows or notes with metadata",
)
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.option("--preview/--no-preview", default=False, help="Show a terminal preview")
@click.option("--no-cache", is_flag=True, help="Do not read or write cached analysis")
def generate(
    audio_file,
    difficulty,
    notes_per_minute,
    beat_sensitivity,
    min_time,
    min_distance,
    seed,
    song_id,
    difficulty_id,
    output,
    layout,
    output_format,
    preview,
    no_cache,
):
    """Generate a note map from an audio file.

    Preset values come from the difficulty level; explicit options override
    them and are clamped to their allowed ranges.

    Example:
        notemap generate song.mp3 --difficulty hard --seed 7
    """
    if not Path(audio_file).exists():
        click.echo("Error: Unable to load audio file", err=True)
        sys.exit(1)

    level = DifficultyLevel[difficulty.upper()]
    settings = build_settings(level, notes_per_minute, beat_sensitivity, min_time, min_distance)

    try:
        analysis = AudioAnalyzer(use_cache=not no_cache).analyze(audio_file)
    except AudioLoadError:
        click.echo("Error: Unable to load audio file", err=True)
        sys.exit(1)
    except AudioTooShortError as e:
        click.echo(f"Analyzing: {audio_file}")
        click.echo(str(e))
        return

    song_name = Path(audio_file).stem
    game_map = MapGenerator(seed=seed).generate(analysis, settings, song_name, level)

    output_path = Path(output) if output else default_output_path(audio_file, level)
    save_map(game_map, output_path, song_id, difficulty_id, layout=layout)

    if output_format == "json":
        payload = to_map_dict(game_map)
        payload["output"] = str(output_path)
        click.echo(json.dumps(payload, indent=2))
        return

    click.echo(format_map_summary(game_map))
    click.echo(f"Map saved as: {output_path}")
    if preview:
        render_map_preview(game_map, analysis, title=Path(audio_file).name)


if __name__ == "__main__":
    cli()
