"""Exercise-specific rep shapes relative to the overlay line.

Each exercise maps to one pure check over the path's points. In screen space
"above the line" means ``y < line_y`` and "below" means ``y > line_y``.
Adding an exercise means adding an enum member and one entry to
``PATTERN_CHECKS``.
"""

from __future__ import annotations

from typing import Callable, Dict, Sequence

from barline.config import ExerciseType
from barline.geometry import Point

PatternCheck = Callable[[Sequence[Point], float], bool]

# Maximum |start.y - end.y| for lifts that must return to where they began.
RETURN_TOLERANCE = 0.05
# Slack allowed for a row to reach, rather than clear, the line.
ROW_REACH_TOLERANCE = 0.02


def _highest(points: Sequence[Point]) -> Point:
    """Visually highest point (smallest y)."""
    return min(points, key=lambda p: p.y)


def _lowest(points: Sequence[Point]) -> Point:
    """Visually lowest point (largest y)."""
    return max(points, key=lambda p: p.y)


def _returns_to_start(points: Sequence[Point]) -> bool:
    return abs(points[0].y - points[-1].y) < RETURN_TOLERANCE


def squat_pattern(points: Sequence[Point], line_y: float) -> bool:
    """Start above the line, descend below it, stand back up above it."""
    return (
        points[0].y < line_y
        and _lowest(points).y > line_y
        and points[-1].y < line_y
        and _returns_to_start(points)
    )


def bench_press_pattern(points: Sequence[Point], line_y: float) -> bool:
    return (
        points[0].y > line_y
        and _highest(points).y < line_y
        and points[-1].y > line_y
        and _returns_to_start(points)
    )


def deadlift_pattern(points: Sequence[Point], line_y: float) -> bool:
    """Pull from the floor above the line and return; no return tolerance."""
    return points[0].y > line_y and _highest(points).y < line_y and points[-1].y > line_y


def overhead_press_pattern(points: Sequence[Point], line_y: float) -> bool:
    return (
        points[0].y > line_y
        and _highest(points).y < line_y
        and points[-1].y > line_y
        and _returns_to_start(points)
    )


def barbell_row_pattern(points: Sequence[Point], line_y: float) -> bool:
    """Pull up to (or just short of) the line and lower again."""
    return (
        points[0].y > line_y
        and _highest(points).y <= line_y + ROW_REACH_TOLERANCE
        and points[-1].y > line_y
    )


PATTERN_CHECKS: Dict[ExerciseType, PatternCheck] = {
    ExerciseType.SQUAT: squat_pattern,
    ExerciseType.BENCH_PRESS: bench_press_pattern,
    ExerciseType.DEADLIFT: deadlift_pattern,
    ExerciseType.OVERHEAD_PRESS: overhead_press_pattern,
    ExerciseType.BARBELL_ROW: barbell_row_pattern,
}


def matches_exercise_pattern(
    exercise: ExerciseType, points: Sequence[Point], line_y: float
) -> bool:
    if not points:
        return False
    return PATTERN_CHECKS[ExerciseType(exercise)](points, line_y)
