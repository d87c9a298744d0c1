"""Overlay-line rep segmentation.

A path becomes a rep once it has stopped growing (the lifter paused or the
lift segment ended) and it:

- spends enough points inside the range-of-motion band around the line,
- crosses the line at least twice with hysteresis,
- matches the exercise's shape relative to the line,
- lasts a plausible amount of time.

Paths that fail stay active; they are evaluated again on later ingestions and
eventually time out in the trajectory store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from barline.config import OverlaySettings, TrackerConfig
from barline.geometry import Point
from barline.repdetect.patterns import matches_exercise_pattern
from barline.tracking.store import BarPath, PathStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletedRep:
    """A promoted path, frozen at the moment it was accepted as a rep."""

    rep_number: int
    points: Tuple[Point, ...]
    color: str
    start_time: int

    @classmethod
    def from_path(cls, path: BarPath, rep_number: int) -> "CompletedRep":
        return cls(
            rep_number=rep_number,
            points=tuple(path.points),
            color=path.color,
            start_time=path.start_time,
        )

    @property
    def duration(self) -> float:
        """Seconds between the first and last point."""
        if not self.points:
            return 0.0
        return (self.points[-1].timestamp_ms - self.points[0].timestamp_ms) / 1000.0


def count_line_crossings(points: Sequence[Point], line_y: float, threshold: float) -> int:
    """Count transitions across ``line_y`` that clear it by more than ``threshold`` on both sides."""
    upper = line_y - threshold
    lower = line_y + threshold
    crossings = 0
    for prev, curr in zip(points, points[1:]):
        if (prev.y < upper and curr.y > lower) or (prev.y > lower and curr.y < upper):
            crossings += 1
    return crossings


def points_in_band(points: Sequence[Point], band: Tuple[float, float]) -> int:
    top, bottom = band
    return sum(1 for p in points if top <= p.y <= bottom)


def is_overlay_line_rep(
    points: Sequence[Point], settings: OverlaySettings, config: TrackerConfig
) -> bool:
    """Decide whether ``points`` trace one valid rep through the overlay line."""
    if len(points) < config.min_path_points:
        return False

    line_y = settings.line_screen_y
    in_band = points_in_band(points, settings.band)
    if in_band < config.min_path_points // 2:
        logger.debug("Path rejected: %d point(s) inside the overlay band", in_band)
        return False

    crossings = count_line_crossings(points, line_y, config.crossing_threshold)
    if crossings < 2:
        logger.debug("Path rejected: %d overlay line crossing(s)", crossings)
        return False

    if not matches_exercise_pattern(settings.exercise, points, line_y):
        logger.debug("Path rejected: not a %s pattern", settings.exercise.display_name)
        return False

    duration = (points[-1].timestamp_ms - points[0].timestamp_ms) / 1000.0
    if not config.min_rep_seconds <= duration <= config.max_rep_seconds:
        logger.debug("Path rejected: duration %.2fs out of range", duration)
        return False

    logger.debug(
        "Valid overlay line rep: line_y=%.3f crossings=%d duration=%.2fs",
        line_y,
        crossings,
        duration,
    )
    return True


class OverlayLineSegmenter:
    """Promotes stabilized paths from a :class:`PathStore` to completed reps."""

    def __init__(self, config: TrackerConfig | None = None) -> None:
        self.config = config or TrackerConfig()
        self._completed: List[CompletedRep] = []
        self._next_rep = 1

    @property
    def completed(self) -> List[CompletedRep]:
        return list(self._completed)

    @property
    def next_rep_number(self) -> int:
        return self._next_rep

    def evaluate(
        self, store: PathStore, settings: OverlaySettings, now: int
    ) -> List[CompletedRep]:
        """Check every stable path and promote the ones that qualify.

        Returns the reps promoted during this call.
        """
        promoted: List[CompletedRep] = []
        for path in store.stable_paths(now):
            if not is_overlay_line_rep(path.points, settings, self.config):
                continue
            rep = CompletedRep.from_path(store.pop(path), self._next_rep)
            self._completed.append(rep)
            self._next_rep += 1
            promoted.append(rep)
            logger.info(
                "Overlay line rep detected: rep #%d (%s, %.1fs)",
                rep.rep_number,
                settings.exercise.display_name,
                rep.duration,
            )
        return promoted

    def reset(self) -> None:
        self._completed.clear()
        self._next_rep = 1
