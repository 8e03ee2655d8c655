"""Rich terminal preview of a generated note map."""

from typing import List, Sequence

import numpy as np
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from notemap.models import AnalysisResult, GameMap, MusicalPhrase, NoteEvent

BLOCKS = " ▁▂▃▄▅▆▇█"
COLORS = ["blue", "cyan", "green", "yellow", "red"]


def _amplitude_color(level: float) -> str:
    """Map normalized level (0-1) to a color name."""
    idx = min(int(level * len(COLORS)), len(COLORS) - 1)
    return COLORS[idx]


def _format_time(seconds: float) -> str:
    """Format seconds as M:SS."""
    m = int(seconds) // 60
    s = int(seconds) % 60
    return f"{m}:{s:02d}"


def _compute_envelope(spectral_energy: np.ndarray, width: int) -> List[float]:
    """Downsample per-frame energy to ``width`` columns normalized to 0-1."""
    if len(spectral_energy) == 0 or width <= 0:
        return [0.0] * max(width, 0)
    columns = np.array_split(np.asarray(spectral_energy, dtype=float), width)
    envelope = np.array([c.mean() if len(c) else 0.0 for c in columns])
    peak = envelope.max()
    if peak > 0:
        envelope = envelope / peak
    return envelope.tolist()


def _note_density(notes: Sequence[NoteEvent], duration: float, width: int) -> List[float]:
    """Notes per column normalized to 0-1."""
    counts = np.zeros(width)
    if duration <= 0 or width <= 0:
        return counts.tolist()
    for note in notes:
        counts[min(int(note.time / duration * width), width - 1)] += 1
    peak = counts.max()
    if peak > 0:
        counts = counts / peak
    return counts.tolist()


def _build_level_line(levels: List[float]) -> Text:
    """Build a Rich Text line of colored Unicode block characters."""
    text = Text()
    for level in levels:
        idx = min(int(level * (len(BLOCKS) - 1)), len(BLOCKS) - 1)
        text.append(BLOCKS[idx], style=_amplitude_color(level))
    return text


def _build_phrase_line(duration: float, width: int, phrases: Sequence[MusicalPhrase]) -> Text:
    """Mark phrase starts with '|'."""
    line = Text(" " * width)
    if duration <= 0:
        return line
    for phrase in phrases:
        pos = min(int(phrase.start_time / duration * width), width - 1)
        line.plain = line.plain[:pos] + "|" + line.plain[pos + 1 :]
        line.stylize("magenta", pos, pos + 1)
    return line


def _build_timeline(duration: float, width: int) -> Text:
    """Build a timeline ruler with markers every 30 seconds."""
    line = Text(" " * width)
    if duration <= 0:
        return line
    t = 0.0
    while t <= duration:
        pos = int(t / duration * (width - 1))
        for i, ch in enumerate(_format_time(t)):
            p = pos + i
            if p < width:
                line.plain = line.plain[:p] + ch + line.plain[p + 1 :]
        t += 30.0
    line.stylize("dim", 0, width)
    return line


def render_map_preview(
    game_map: GameMap, analysis: AnalysisResult, title: str = "", width: int = 70, console=None
) -> None:
    """Render energy, note density and phrase boundaries to the terminal.

    Args:
        game_map: Generated map.
        analysis: Analysis the map was generated from.
        title: Panel title, typically the audio file name.
        width: Character width of the preview.
        console: Optional Rich console (defaults to a new stdout console).
    """
    console = console or Console()
    meta = game_map.metadata
    duration = meta.duration

    header = Text(
        f"BPM: {meta.bpm:.1f}  Notes: {meta.note_count}  "
        f"Phrases: {len(game_map.phrases)}  Difficulty: {meta.difficulty.display_name}"
    )

    content = Text()
    content.append_text(header)
    content.append("\n\n")
    if game_map.phrases:
        content.append_text(_build_phrase_line(duration, width, game_map.phrases))
        content.append("  ← phrases\n")
    content.append_text(_build_level_line(_compute_envelope(analysis.spectral_energy, width)))
    content.append("  ← energy\n")
    content.append_text(_build_level_line(_note_density(game_map.notes, duration, width)))
    content.append("  ← notes\n")
    content.append_text(_build_timeline(duration, width))

    console.print(Panel(content, title=title or meta.song_name or "map", expand=False))
