"""Multi-path trajectory store.

Detections are attributed to the nearest recently-updated path, or spawn a new
path when nothing is close enough. The store is bounded: at capacity the path
that was updated longest ago is evicted, and a periodic cleanup pass drops
stale paths and paths that never gathered enough points.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from barline.config import TrackerConfig
from barline.geometry import Detection, Point

logger = logging.getLogger(__name__)

PATH_COLORS = ("cyan", "yellow", "green", "magenta")


@dataclass(eq=False)
class BarPath:
    """A trajectory under construction.

    Paths compare by identity: two paths with equal points are still distinct
    tracked objects.
    """

    start_time: int
    color: str = PATH_COLORS[0]
    points: List[Point] = field(default_factory=list)

    @property
    def last_point(self) -> Optional[Point]:
        return self.points[-1] if self.points else None

    @property
    def last_timestamp(self) -> int:
        last = self.last_point
        return last.timestamp_ms if last is not None else 0

    def add_point(self, point: Point) -> None:
        last = self.last_point
        if last is not None and point.timestamp_ms <= last.timestamp_ms:
            raise ValueError(
                f"Point at {point.timestamp_ms}ms is not after last point at {last.timestamp_ms}ms"
            )
        self.points.append(point)

    def truncate(self, keep: int) -> None:
        """Keep only the newest ``keep`` points."""
        del self.points[: max(len(self.points) - keep, 0)]


class PathStore:
    """Bounded set of concurrently tracked bar paths."""

    def __init__(self, config: TrackerConfig | None = None) -> None:
        self.config = config or TrackerConfig()
        self._paths: List[BarPath] = []
        self._last_cleanup = 0

    @property
    def paths(self) -> List[BarPath]:
        """Snapshot of the active paths."""
        return list(self._paths)

    @property
    def total_points(self) -> int:
        return sum(len(path.points) for path in self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def add_detection(self, detection: Detection, now: int) -> List[BarPath]:
        """Attribute a detection to a path and return the active paths.

        Detections that would break the time ordering of their path are dropped.
        """
        point = detection.to_point()
        path = self._find_closest_path(point, now)
        if path is None:
            path = self._create_path(now)

        last = path.last_point
        if last is not None and point.timestamp_ms <= last.timestamp_ms:
            logger.debug(
                "Dropping out-of-order detection at %dms (path last at %dms)",
                point.timestamp_ms,
                last.timestamp_ms,
            )
        else:
            path.add_point(point)

        return self.paths

    def _find_closest_path(self, point: Point, now: int) -> Optional[BarPath]:
        best: Optional[BarPath] = None
        best_distance = float("inf")
        for path in self._paths:
            last = path.last_point
            if last is None or now - last.timestamp_ms >= self.config.match_window_ms:
                continue
            distance = point.distance_to(last)
            if distance < best_distance:
                best, best_distance = path, distance
        if best is not None and best_distance < self.config.match_distance:
            return best
        return None

    def _create_path(self, now: int) -> BarPath:
        if len(self._paths) >= self.config.max_active_paths:
            oldest = min(self._paths, key=lambda p: p.last_timestamp)
            self._paths.remove(oldest)
            logger.debug("Evicted path started at %dms to make room", oldest.start_time)

        path = BarPath(start_time=now, color=PATH_COLORS[len(self._paths) % len(PATH_COLORS)])
        self._paths.append(path)
        return path

    def cleanup_due(self, now: int) -> bool:
        return now - self._last_cleanup >= self.config.cleanup_interval_ms

    def cleanup(self, now: int) -> List[BarPath]:
        """Evict stale and short-lived paths and cap per-path memory.

        Returns the evicted paths.
        """
        cfg = self.config
        kept: List[BarPath] = []
        evicted: List[BarPath] = []
        for path in self._paths:
            stale = not path.points or now - path.last_timestamp > cfg.path_timeout_ms
            too_short = (
                len(path.points) < cfg.min_path_points
                and now - path.start_time >= cfg.short_path_grace_ms
            )
            (evicted if stale or too_short else kept).append(path)

        for path in kept:
            if len(path.points) > cfg.max_path_points:
                path.truncate(cfg.retained_path_points)

        self._paths = kept
        self._last_cleanup = now
        if evicted:
            logger.debug("Cleanup evicted %d path(s); %d active", len(evicted), len(kept))
        return evicted

    def maybe_cleanup(self, now: int) -> List[BarPath]:
        if not self.cleanup_due(now):
            return []
        return self.cleanup(now)

    def stable_paths(self, now: int) -> List[BarPath]:
        """Paths long enough to evaluate whose last update is old enough."""
        cfg = self.config
        return [
            path
            for path in self._paths
            if len(path.points) >= cfg.min_path_points
            and now - path.last_timestamp >= cfg.stability_ms
        ]

    def pop(self, path: BarPath) -> BarPath:
        """Remove ``path`` from the active set and hand it to the caller."""
        self._paths.remove(path)
        return path

    def clear(self) -> None:
        self._paths.clear()
