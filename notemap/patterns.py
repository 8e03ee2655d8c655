"""Parametric movement patterns between consecutive notes.

Each pattern maps (base position, previous position, movement distance, note
index, random angle) to a target position on the (y, z) plane. Points are
plain ``(y, z)`` tuples; clamping happens in the caller.
"""

import math
from typing import Callable, Dict, Tuple

import numpy as np

from .models import PatternType

Point = Tuple[float, float]
PatternFn = Callable[[Point, Point, float, int, float, np.random.Generator], Point]


def smooth_flow(base, last, distance, note_index, angle, rng) -> Point:
    """Continue from the previous note, roughly away from the base position."""
    flow_distance = distance * 0.8
    flow_angle = math.atan2(last[1] - base[1], last[0] - base[0])
    flow_angle += (float(rng.random()) - 0.5) * math.pi * 0.7
    return (
        last[0] + flow_distance * math.cos(flow_angle),
        last[1] + flow_distance * math.sin(flow_angle),
    )


def stream(base, last, distance, note_index, angle, rng) -> Point:
    """Runs of notes along one of eight compass directions."""
    stream_distance = distance * 0.6
    stream_angle = angle
    if note_index % 4 != 0:
        stream_angle = (note_index % 8) * math.pi / 4
    return (
        last[0] + stream_distance * math.cos(stream_angle),
        last[1] + stream_distance * math.sin(stream_angle),
    )


def triangle(base, last, distance, note_index, angle, rng) -> Point:
    corner = (note_index % 3) * 2 * math.pi / 3
    return (
        last[0] + distance * math.cos(corner + angle),
        last[1] + distance * math.sin(corner + angle),
    )


def square(base, last, distance, note_index, angle, rng) -> Point:
    """Right, up, left, down; the untouched axis keeps the base coordinate."""
    size = distance * 0.9
    side = note_index % 4
    y, z = base
    if side == 0:
        y = last[0] + size
    elif side == 1:
        z = last[1] + size
    elif side == 2:
        y = last[0] - size
    else:
        z = last[1] - size
    return y, z


def spiral(base, last, distance, note_index, angle, rng) -> Point:
    radius = distance * (0.7 + 0.15 * (note_index % 10))
    spiral_angle = angle + note_index * 0.5
    return (
        last[0] + radius * math.cos(spiral_angle),
        last[1] + radius * math.sin(spiral_angle),
    )


def zigzag(base, last, distance, note_index, angle, rng) -> Point:
    direction = 1 if note_index % 2 == 0 else -1
    zigzag_angle = angle + direction * math.pi / 2.5
    return (
        last[0] + distance * math.cos(zigzag_angle),
        last[1] + distance * math.sin(zigzag_angle),
    )


def star(base, last, distance, note_index, angle, rng) -> Point:
    """Five-pointed star around the previous note."""
    radius = distance * 1.1
    point = (note_index % 5) * 2 * math.pi / 5
    return (
        last[0] + radius * math.cos(point + angle),
        last[1] + radius * math.sin(point + angle),
    )


def jump(base, last, distance, note_index, angle, rng) -> Point:
    """Large random leap from the base position."""
    jump_distance = distance * 1.5
    return (
        base[0] + jump_distance * math.cos(angle),
        base[1] + jump_distance * math.sin(angle),
    )


PATTERNS: Dict[PatternType, PatternFn] = {
    PatternType.SMOOTH_FLOW: smooth_flow,
    PatternType.STREAM: stream,
    PatternType.TRIANGLE: triangle,
    PatternType.SQUARE: square,
    PatternType.SPIRAL: spiral,
    PatternType.ZIGZAG: zigzag,
    PatternType.STAR: star,
    PatternType.JUMP: jump,
}

assert set(PATTERNS) == set(PatternType), "every PatternType needs a movement function"


def apply_pattern(
    pattern: PatternType,
    base: Point,
    last: Point,
    distance: float,
    note_index: int,
    angle: float,
    rng: np.random.Generator,
) -> Point:
    """Target position for ``pattern`` before blending and clamping."""
    return PATTERNS[pattern](base, last, distance, note_index, angle, rng)


def blend(base: Point, target: Point, base_weight: float) -> Point:
    """Mix ``base_weight`` of the base position with the rest of the pattern target."""
    return (
        base[0] * base_weight + target[0] * (1 - base_weight),
        base[1] * base_weight + target[1] * (1 - base_weight),
    )
