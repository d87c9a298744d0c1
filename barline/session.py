"""Session-level rep tracking.

:class:`SessionTracker` ties the trajectory store, the overlay-line segmenter
and the rep analyzer together for one lifting session. It is not thread-safe:
one caller feeds detections and issues queries sequentially.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from barline.config import (
    AnalyzerConfig,
    ExerciseType,
    LiftPhase,
    OverlaySettings,
    Tempo,
    TrackerConfig,
)
from barline.geometry import Detection
from barline.io.report import ReportSink, SessionInfo
from barline.quality.scoring import RepData, average_quality
from barline.repdetect.baseline import CompletedRep, OverlayLineSegmenter
from barline.signals.kinematics import analyze_rep
from barline.tracking.store import BarPath, PathStore

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def format_session_duration(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"


@dataclass(frozen=True)
class SessionStats:
    total_reps: int
    average_quality: float
    session_duration_seconds: float


class SessionTracker:
    """Tracks bar paths and completed reps for a single session.

    Args:
        tracker_config: Tracking and segmentation thresholds.
        analyzer_config: Calibration and scoring weights.
        settings: Initial overlay settings snapshot.
        clock: Monotonic millisecond clock used when ``now`` is omitted.
        wall_clock: Source of report and rep timestamps.
    """

    def __init__(
        self,
        tracker_config: TrackerConfig | None = None,
        analyzer_config: AnalyzerConfig | None = None,
        settings: OverlaySettings | None = None,
        *,
        clock: Clock = monotonic_ms,
        wall_clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.tracker_config = tracker_config or TrackerConfig()
        self.analyzer_config = analyzer_config or AnalyzerConfig()
        self.settings = settings or OverlaySettings()
        self._clock = clock
        self._wall_clock = wall_clock
        self._store = PathStore(self.tracker_config)
        self._segmenter = OverlayLineSegmenter(self.tracker_config)
        self._session_start: Optional[int] = None
        # (tracking time, clock time) of the latest ingestion.
        self._last_ingest: Optional[Tuple[int, int]] = None

    def update_overlay_settings(
        self,
        line_height_dp: float,
        range_of_motion: float,
        exercise: ExerciseType,
        tempo: Tempo,
        phase: LiftPhase,
        canvas_height: float,
    ) -> OverlaySettings:
        """Replace the overlay snapshot; invalid values raise ``ValueError`` and keep the old one."""
        self.settings = OverlaySettings(
            line_height_dp=line_height_dp,
            range_of_motion=range_of_motion,
            exercise=exercise,
            tempo=tempo,
            phase=phase,
            canvas_height=canvas_height,
        )
        logger.debug(
            "Updated overlay settings: line_height=%s range=%s exercise=%s",
            line_height_dp,
            range_of_motion,
            self.settings.exercise.display_name,
        )
        return self.settings

    def start_session(self, now: Optional[int] = None) -> None:
        self._session_start = self._now(now)
        self._store.clear()
        self._segmenter.reset()
        self._last_ingest = None
        logger.info("New rep tracking session started")

    def clear_all_paths(self) -> None:
        """Drop active paths and completed reps; the session start time is kept."""
        self._store.clear()
        self._segmenter.reset()
        self._last_ingest = None
        logger.info("All paths and completed reps cleared")

    def add_detection(self, detection: Detection, now: Optional[int] = None) -> List[BarPath]:
        """Ingest one detection and return the active paths afterwards.

        Tracking time is the detection's own timestamp unless ``now`` is given.
        """
        now = detection.timestamp_ms if now is None else now
        self._last_ingest = (now, self._clock())
        self._store.add_detection(detection, now)
        self._advance(now)
        return self._store.paths

    def tick(self, now: Optional[int] = None) -> List[CompletedRep]:
        """Advance time without a detection; returns reps promoted by this call.

        Without ``now``, tracking time moves on from the latest ingestion by the
        clock time elapsed since it.
        """
        if now is None and self._last_ingest is not None:
            tracked, clocked = self._last_ingest
            now = tracked + max(self._clock() - clocked, 0)
        return self._advance(self._now(now))

    def _advance(self, now: int) -> List[CompletedRep]:
        promoted = self._segmenter.evaluate(self._store, self.settings, now)
        self._store.maybe_cleanup(now)
        return promoted

    def _now(self, now: Optional[int]) -> int:
        return self._clock() if now is None else now

    def current_paths(self) -> List[BarPath]:
        return self._store.paths

    def completed_reps(self) -> List[CompletedRep]:
        return self._segmenter.completed

    def active_path_count(self) -> int:
        return len(self._store)

    def total_points(self) -> int:
        return self._store.total_points

    def rep_data(
        self, exercise: Optional[str] = None, tempo: Optional[str] = None
    ) -> List[RepData]:
        """Analyze every completed rep in completion order, skipping failures."""
        exercise = exercise or self.settings.exercise.display_name
        tempo = tempo or self.settings.tempo.display_name
        timestamp = self._wall_clock()
        results: List[RepData] = []
        for rep in self._segmenter.completed:
            data = analyze_rep(
                rep.points,
                exercise=exercise,
                tempo=tempo,
                rep_number=rep.rep_number,
                settings=self.settings,
                config=self.analyzer_config,
                timestamp=timestamp,
            )
            if data is not None:
                results.append(data)
        return results

    def session_duration(self, now: Optional[int] = None) -> float:
        if self._session_start is None:
            return 0.0
        return max(self._now(now) - self._session_start, 0) / 1000.0

    def session_stats(self, now: Optional[int] = None) -> SessionStats:
        return SessionStats(
            total_reps=len(self._segmenter.completed),
            average_quality=average_quality(self.rep_data()),
            session_duration_seconds=self.session_duration(now),
        )

    def generate_report(
        self,
        sink: ReportSink,
        exercise: str,
        tempo: str,
        now: Optional[int] = None,
    ) -> Optional[str]:
        """Hand the analyzed reps to ``sink``; ``None`` if there is nothing to report."""
        if not self._segmenter.completed:
            logger.info("No completed reps to report")
            return None

        reps = self.rep_data(exercise, tempo)
        if not reps:
            logger.info("No valid rep data to report")
            return None

        duration = (
            format_session_duration(self.session_duration(now))
            if self._session_start is not None
            else "Unknown"
        )
        info = SessionInfo(
            exercise=exercise,
            tempo=tempo,
            timestamp=self._wall_clock(),
            duration=duration,
            overlay_line_height=self.settings.line_height_dp,
            range_of_motion=self.settings.range_of_motion,
        )
        return sink.generate_report(reps, info)
