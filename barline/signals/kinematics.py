"""Kinematic analysis of a completed bar path.

Converts a rep's normalized screen trajectory into distance, velocity, phase
timing and deviation metrics, then scores it. All real-world units come from
``AnalyzerConfig.cm_per_unit``; the analyzer never returns NaN or infinite
metrics: degenerate paths yield ``None`` instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from barline.config import AnalyzerConfig, OverlaySettings
from barline.geometry import Point
from barline.quality.scoring import RepData, quality_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseDurations:
    """Seconds spent before, at, and after the turnaround of a rep."""

    eccentric: float
    pause: float
    concentric: float


def _as_arrays(points: Sequence[Point]) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    t = np.array([p.timestamp_ms for p in points], dtype=float) / 1000.0
    x = np.array([p.x for p in points], dtype=float)
    y = np.array([p.y for p in points], dtype=float)
    return t, x, y


def segment_speeds(distances: np.ndarray, dt: np.ndarray) -> np.ndarray:
    """Per-segment speed; segments with no elapsed time get speed 0."""
    speeds = np.zeros_like(distances)
    np.divide(distances, dt, out=speeds, where=dt > 0)
    return speeds


def phase_durations(t: np.ndarray, y: np.ndarray, pause_threshold: float) -> PhaseDurations:
    """Split a rep at its turnaround.

    The turnaround is the point farthest (vertically) from the start. The
    pause is the contiguous run of slow segments around it; eccentric time
    runs up to the pause and concentric time from the pause to the end.
    """
    extreme = int(np.argmax(np.abs(y - y[0])))
    vertical_speed = segment_speeds(np.abs(np.diff(y)), np.diff(t))

    pause_start = extreme
    while pause_start > 0 and vertical_speed[pause_start - 1] < pause_threshold:
        pause_start -= 1
    pause_end = extreme
    while pause_end < len(vertical_speed) and vertical_speed[pause_end] < pause_threshold:
        pause_end += 1

    return PhaseDurations(
        eccentric=float(t[pause_start] - t[0]),
        pause=float(t[pause_end] - t[pause_start]),
        concentric=float(t[-1] - t[pause_end]),
    )


def crossing_reference_x(x: np.ndarray, y: np.ndarray, line_y: float) -> float:
    """Mean x where the path crosses ``line_y``.

    Falls back to the x of the point nearest the line when the path never
    crosses it.
    """
    side = np.sign(y - line_y)
    crossing = np.nonzero(side[:-1] * side[1:] < 0)[0]
    if crossing.size:
        return float(np.mean((x[crossing] + x[crossing + 1]) / 2.0))
    return float(x[int(np.argmin(np.abs(y - line_y)))])


def path_deviation(x: np.ndarray, y: np.ndarray, line_y: float) -> float:
    """Mean horizontal distance (normalized) from the ideal path through the line.

    The ideal path crosses the overlay line perpendicularly, so it is the
    vertical through the point where the bar crosses the line. Drift is
    measured sideways because the vertical distance to a horizontal line is
    the range of motion itself: a full-depth rep would score as a large
    deviation. The cm thresholds in scoring (insights at 1, 2 and 3 cm,
    adherence falling 50 points per cm) assume this sideways drift.
    """
    reference = crossing_reference_x(x, y, line_y)
    return float(np.mean(np.abs(x - reference)))


def analyze_rep(
    points: Sequence[Point],
    *,
    exercise: str,
    tempo: str,
    rep_number: int,
    settings: OverlaySettings,
    config: AnalyzerConfig | None = None,
    timestamp: Optional[datetime] = None,
) -> Optional[RepData]:
    """Compute a :class:`RepData` for one rep, or ``None`` for degenerate paths.

    Args:
        points: Time-ordered points of the completed path.
        exercise: Display label recorded in the result.
        tempo: Display label recorded in the result.
        rep_number: Sequential rep number recorded in the result.
        settings: Overlay snapshot; provides the line position and the
            prescribed tempo used for scoring.
        config: Calibration and scoring weights.
        timestamp: Wall-clock time recorded in the result (defaults to now).
    """

    config = config or AnalyzerConfig()
    if len(points) < 2:
        logger.debug("Rep %d skipped: %d point(s)", rep_number, len(points))
        return None

    t, x, y = _as_arrays(points)
    duration = float(t[-1] - t[0])
    if duration <= 0:
        logger.debug("Rep %d skipped: non-positive duration", rep_number)
        return None

    scale = config.cm_per_unit
    dt = np.diff(t)
    distances = np.hypot(np.diff(x), np.diff(y)) * scale

    total_distance = float(distances.sum())
    vertical_range = float((y.max() - y.min()) * scale)
    avg_velocity = total_distance / duration
    peak_velocity = float(segment_speeds(distances, dt).max())
    deviation = path_deviation(x, y, settings.line_screen_y) * scale
    phases = phase_durations(t, y, config.pause_velocity_threshold)
    score = quality_score(deviation, duration, settings.tempo, config)

    metrics = (total_distance, vertical_range, avg_velocity, peak_velocity, deviation, score)
    if not all(np.isfinite(metrics)):
        logger.warning("Rep %d skipped: non-finite metrics %s", rep_number, metrics)
        return None

    return RepData(
        rep_number=rep_number,
        timestamp=timestamp or datetime.now(),
        exercise=exercise,
        tempo=tempo,
        total_distance=total_distance,
        vertical_range=vertical_range,
        avg_velocity=avg_velocity,
        peak_velocity=peak_velocity,
        path_deviation=deviation,
        duration=duration,
        eccentric_duration=phases.eccentric,
        pause_duration=phases.pause,
        concentric_duration=phases.concentric,
        quality_score=score,
    )
