"""Shared configuration and enums used across the tracking pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class ExerciseType(str, Enum):
    """Barbell lifts with a known overlay-line rep pattern."""

    SQUAT = "squat"
    BENCH_PRESS = "bench_press"
    DEADLIFT = "deadlift"
    OVERHEAD_PRESS = "overhead_press"
    BARBELL_ROW = "barbell_row"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class Tempo(str, Enum):
    """Prescribed rep tempo, each with a target rep duration in seconds."""

    SLOW = "slow"
    MODERATE = "moderate"
    FAST = "fast"
    EXPLOSIVE = "explosive"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def target_duration(self) -> float:
        return _TEMPO_TARGET_SECONDS[self]


_TEMPO_TARGET_SECONDS = {
    Tempo.SLOW: 4.0,
    Tempo.MODERATE: 2.5,
    Tempo.FAST: 1.5,
    Tempo.EXPLOSIVE: 1.0,
}


class LiftPhase(str, Enum):
    """Phase reported by the host UI. Stored with the settings, informational."""

    READY = "ready"
    ECCENTRIC = "eccentric"
    PAUSE = "pause"
    CONCENTRIC = "concentric"
    LOCKOUT = "lockout"


# Overlay line height (dp from the top) that maps onto the vertical screen centre.
OVERLAY_REFERENCE_DP = 400.0


@dataclass(frozen=True)
class OverlaySettings:
    """Snapshot of the overlay guide configured in the host UI.

    Attributes:
        line_height_dp: Overlay line position in device-independent pixels
            measured from the top of the screen.
        range_of_motion: Height of the acceptance band around the line (dp).
        exercise: Exercise whose rep pattern is validated.
        tempo: Prescribed tempo used for tempo-consistency scoring.
        phase: Current lift phase as shown by the UI.
        canvas_height: Canvas height used to normalize dp values; must be > 0.
    """

    line_height_dp: float = 300.0
    range_of_motion: float = 300.0
    exercise: ExerciseType = ExerciseType.SQUAT
    tempo: Tempo = Tempo.MODERATE
    phase: LiftPhase = LiftPhase.READY
    canvas_height: float = 1920.0

    def __post_init__(self) -> None:
        for name in ("line_height_dp", "range_of_motion", "canvas_height"):
            value = getattr(self, name)
            if math.isnan(value) or math.isinf(value):
                raise ValueError(f"{name} must be a finite number")
        if self.canvas_height <= 0:
            raise ValueError("canvas_height must be positive")
        # Accept raw strings from callers that bypass the enums.
        object.__setattr__(self, "exercise", ExerciseType(self.exercise))
        object.__setattr__(self, "tempo", Tempo(self.tempo))
        object.__setattr__(self, "phase", LiftPhase(self.phase))

    @property
    def line_screen_y(self) -> float:
        """Overlay line position in normalized screen space, clamped to [0, 1]."""
        offset = (self.line_height_dp - OVERLAY_REFERENCE_DP) / self.canvas_height
        return min(max(0.5 + offset, 0.0), 1.0)

    @property
    def band(self) -> tuple[float, float]:
        """Return (top, bottom) of the acceptance band in normalized units."""
        half = (self.range_of_motion / 2.0) / self.canvas_height
        line_y = self.line_screen_y
        return (line_y - half, line_y + half)


@dataclass(frozen=True)
class TrackerConfig:
    """Tracking and segmentation thresholds.

    These are tuning heuristics rather than physical constants; distances are
    normalized screen units and times are milliseconds unless noted.
    """

    max_active_paths: int = 2
    path_timeout_ms: int = 4000
    min_path_points: int = 15
    match_distance: float = 0.1
    match_window_ms: int = 2000
    cleanup_interval_ms: int = 2000
    short_path_grace_ms: int = 3000
    max_path_points: int = 300
    retained_path_points: int = 200
    stability_ms: int = 1500
    crossing_threshold: float = 0.02
    min_rep_seconds: float = 0.5
    max_rep_seconds: float = 15.0

    def __post_init__(self) -> None:
        if self.max_active_paths < 1:
            raise ValueError("max_active_paths must be at least 1")
        if self.retained_path_points > self.max_path_points:
            raise ValueError("retained_path_points cannot exceed max_path_points")


@dataclass(frozen=True)
class AnalyzerConfig:
    """Calibration and scoring weights for rep analysis.

    Attributes:
        cm_per_unit: Real-world centimetres spanned by one normalized screen
            unit (the full frame height).
        pause_velocity_threshold: Vertical speed (normalized units/s) below
            which the bar counts as paused near the turnaround.
        deviation_penalty_per_cm: Deviation score lost per cm of drift.
        deviation_weight: Share of the quality score driven by deviation.
        tempo_weight: Share of the quality score driven by tempo consistency.
    """

    cm_per_unit: float = 200.0
    pause_velocity_threshold: float = 0.05
    deviation_penalty_per_cm: float = 10.0
    deviation_weight: float = 0.7
    tempo_weight: float = 0.3

    def __post_init__(self) -> None:
        if self.cm_per_unit <= 0:
            raise ValueError("cm_per_unit must be positive")
        if not math.isclose(self.deviation_weight + self.tempo_weight, 1.0):
            raise ValueError("deviation_weight and tempo_weight must sum to 1")
