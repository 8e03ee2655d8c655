"""Domain models for NoteMap."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from functools import cached_property
from typing import List, Optional, Tuple

import numpy as np


class RhythmType(Enum):
    """Local rhythm character of a phrase."""

    STEADY = "steady"
    BURST = "burst"
    SYNCOPATED = "syncopated"
    SLOW = "slow"


class InstrumentType(Enum):
    """Dominant instrument family at a point in time."""

    NONE = "none"
    BASS = "bass"
    MELODY = "melody"
    DRUMS = "drums"


class PatternType(IntEnum):
    """Movement pattern applied between consecutive notes."""

    SMOOTH_FLOW = 0
    STREAM = 1
    TRIANGLE = 2
    SQUARE = 3
    SPIRAL = 4
    ZIGZAG = 5
    STAR = 6
    JUMP = 7


class DifficultyLevel(IntEnum):
    """Difficulty presets."""

    EASY = 1
    NORMAL = 2
    HARD = 3
    EXPERT = 4
    MASTER = 5

    @property
    def display_name(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class SpectralFrame:
    """Magnitude spectrum and band energies of one analysis hop."""

    index: int
    magnitudes: np.ndarray  # length fft_size // 2
    bands: Tuple[float, float, float]  # low, mid, high

    @property
    def energy(self) -> float:
        return float(np.sum(self.magnitudes))


@dataclass
class DifficultySettings:
    """Generation parameters supplied per map."""

    notes_per_minute: int
    beat_sensitivity: float
    min_time_between_notes: float
    min_node_distance_px: float


@dataclass
class AnalysisResult:
    """Result of spectral and beat analysis for a sample buffer."""

    duration: float  # seconds
    beat_timestamps: List[float]
    spectral_energy: np.ndarray  # total magnitude per frame
    estimated_bpm: float
    frequency_bands: np.ndarray  # shape (frames, 3): low, mid, high
    version: int = 1  # cache invalidation version

    @property
    def frame_count(self) -> int:
        return len(self.spectral_energy)

    @property
    def is_empty(self) -> bool:
        """True when the input was too short or empty to produce any frame."""
        return self.frame_count == 0

    @cached_property
    def mean_energy(self) -> float:
        if self.frame_count == 0:
            return 0.0
        return float(np.mean(self.spectral_energy))

    @cached_property
    def beat_array(self) -> np.ndarray:
        return np.asarray(self.beat_timestamps, dtype=float)


@dataclass
class MusicalPhrase:
    """A contiguous span of beats sharing one movement pattern."""

    id: int
    start_time: float
    end_time: float
    note_times: List[float]
    pattern_type: PatternType
    intensity_level: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def note_count(self) -> int:
        return len(self.note_times)


@dataclass(frozen=True)
class NoteTiming:
    """A kept note time attributed to its phrase."""

    time: float
    phrase_id: int
    phrase_position: int


@dataclass(frozen=True)
class NoteEvent:
    """A placed note."""

    time: float
    y: float  # width axis
    z: float  # height axis
    phrase_id: int = 0
    phrase_position: int = 0
    x: float = 0.0

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "time": self.time,
            "phraseId": self.phrase_id,
            "phrasePosition": self.phrase_position,
        }


@dataclass
class InstrumentModifier:
    """How an instrument family shapes movement."""

    distance_multiplier: float = 1.0
    force_pattern: Optional[PatternType] = None
    description: str = ""


@dataclass
class PlacementStats:
    """Outcome of minimum-distance enforcement over a map."""

    placed: int = 0
    unresolved: int = 0  # notes still too close after the iteration cap
    max_iterations: int = 0

    @property
    def converged(self) -> int:
        return self.placed - self.unresolved


@dataclass
class MapMetadata:
    """Summary information about a generated map."""

    song_name: str
    difficulty: DifficultyLevel
    duration: float
    bpm: float
    note_count: int
    created: datetime = field(default_factory=datetime.now)
    placement: Optional[PlacementStats] = None


@dataclass
class GameMap:
    """A generated note map."""

    notes: List[NoteEvent]
    metadata: MapMetadata
    phrases: List[MusicalPhrase] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def notes_per_minute(self) -> float:
        """Realised note density."""
        if self.metadata.duration <= 0:
            return 0.0
        return len(self.notes) / self.metadata.duration * 60
