"""Geometric value types in normalized screen space.

Coordinates are in [0, 1] with the origin at the top-left corner, so y grows
downward: a smaller y is visually higher on screen.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    """Bar centre at one instant."""

    x: float
    y: float
    timestamp_ms: int

    def distance_to(self, other: "Point") -> float:
        """Euclidean distance in normalized units, ignoring time."""
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class BoundingBox:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def center(self) -> tuple[float, float]:
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)


@dataclass(frozen=True)
class Detection:
    """One frame's barbell observation produced by the detector."""

    bbox: BoundingBox
    timestamp_ms: int

    def to_point(self) -> Point:
        x, y = self.bbox.center
        return Point(x=x, y=y, timestamp_ms=self.timestamp_ms)
