"""
Service helpers holding per-session trackers for the HTTP layer.

Each session owns one SessionTracker guarded by an asyncio.Lock, so ingestion, queries and report
generation for a session run one at a time. Sessions share nothing.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from api.schemas import (
    CompletedRepOut,
    DetectionIn,
    OverlaySettingsIn,
    PathOut,
    PointOut,
    RepDataOut,
    SessionStatsOut,
)
from barline.geometry import BoundingBox, Detection
from barline.io.report import CsvReportSink
from barline.quality.scoring import RepData
from barline.repdetect.baseline import CompletedRep
from barline.session import SessionTracker
from barline.tracking.store import BarPath

logger = logging.getLogger(__name__)

DEFAULT_REPORTS_DIR = Path(os.getenv("BARLINE_REPORTS_DIR", "reports"))


@dataclass
class ManagedSession:
    tracker: SessionTracker
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionRegistry:
    def __init__(self, reports_dir: Path = DEFAULT_REPORTS_DIR) -> None:
        self.sink = CsvReportSink(reports_dir)
        self._sessions: Dict[str, ManagedSession] = {}

    def create(self) -> str:
        session_id = uuid4().hex
        tracker = SessionTracker()
        tracker.start_session()
        self._sessions[session_id] = ManagedSession(tracker=tracker)
        logger.info("Created session %s", session_id)
        return session_id

    def get(self, session_id: str) -> ManagedSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}") from None

    def delete(self, session_id: str) -> None:
        self.get(session_id)
        del self._sessions[session_id]
        logger.info("Deleted session %s", session_id)


def path_out(path: BarPath) -> PathOut:
    return PathOut(
        color=path.color,
        start_time=path.start_time,
        points=[PointOut(x=p.x, y=p.y, timestamp_ms=p.timestamp_ms) for p in path.points],
    )


def completed_rep_out(rep: CompletedRep) -> CompletedRepOut:
    return CompletedRepOut(
        rep_number=rep.rep_number,
        duration=rep.duration,
        color=rep.color,
        start_time=rep.start_time,
        points=[PointOut(x=p.x, y=p.y, timestamp_ms=p.timestamp_ms) for p in rep.points],
    )


def rep_data_out(rep: RepData) -> RepDataOut:
    return RepDataOut(
        rep_number=rep.rep_number,
        timestamp=rep.formatted_timestamp,
        exercise=rep.exercise,
        tempo=rep.tempo,
        total_distance=rep.total_distance,
        vertical_range=rep.vertical_range,
        avg_velocity=rep.avg_velocity,
        peak_velocity=rep.peak_velocity,
        path_deviation=rep.path_deviation,
        duration=rep.duration,
        eccentric_duration=rep.eccentric_duration,
        pause_duration=rep.pause_duration,
        concentric_duration=rep.concentric_duration,
        quality_score=rep.quality_score,
        grade=rep.grade,
        overlay_line_adherence=rep.overlay_line_adherence,
        insights=rep.performance_insights(),
    )


async def update_settings(session: ManagedSession, payload: OverlaySettingsIn) -> None:
    async with session.lock:
        try:
            session.tracker.update_overlay_settings(
                line_height_dp=payload.line_height_dp,
                range_of_motion=payload.range_of_motion,
                exercise=payload.exercise,
                tempo=payload.tempo,
                phase=payload.phase,
                canvas_height=payload.canvas_height,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc


async def ingest_detection(session: ManagedSession, payload: DetectionIn) -> List[PathOut]:
    detection = Detection(
        bbox=BoundingBox(**payload.bbox.model_dump()),
        timestamp_ms=payload.timestamp_ms,
    )
    async with session.lock:
        paths = session.tracker.add_detection(detection, now=payload.now)
        return [path_out(path) for path in paths]


async def advance(session: ManagedSession, now: Optional[int]) -> List[CompletedRepOut]:
    async with session.lock:
        return [completed_rep_out(rep) for rep in session.tracker.tick(now)]


async def session_stats(session: ManagedSession) -> SessionStatsOut:
    async with session.lock:
        tracker = session.tracker
        stats = tracker.session_stats()
        return SessionStatsOut(
            total_reps=stats.total_reps,
            average_quality=stats.average_quality,
            session_duration_seconds=stats.session_duration_seconds,
            active_paths=tracker.active_path_count(),
            total_points=tracker.total_points(),
        )


async def generate_report(
    session: ManagedSession,
    sink: CsvReportSink,
    exercise: Optional[str],
    tempo: Optional[str],
) -> Optional[str]:
    """
    Run report generation off the event loop while holding the session lock.
    """
    async with session.lock:
        tracker = session.tracker
        exercise = exercise or tracker.settings.exercise.display_name
        tempo = tempo or tracker.settings.tempo.display_name
        return await asyncio.to_thread(tracker.generate_report, sink, exercise, tempo)
