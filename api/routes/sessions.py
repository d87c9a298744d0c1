from __future__ import annotations

from typing import List

from fastapi import APIRouter, Request, Response

from api.schemas import (
    CompletedRepOut,
    DetectionIn,
    OverlaySettingsIn,
    PathOut,
    RepDataOut,
    ReportIn,
    ReportOut,
    SessionCreated,
    SessionStatsOut,
    TickIn,
)
from api.services import sessions as service
from api.services.sessions import SessionRegistry

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


@router.post("", response_model=SessionCreated, status_code=201)
async def create_session(request: Request) -> SessionCreated:
    return SessionCreated(session_id=_registry(request).create())


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str, request: Request) -> Response:
    _registry(request).delete(session_id)
    return Response(status_code=204)


@router.post("/{session_id}/settings", status_code=204)
async def update_settings(session_id: str, payload: OverlaySettingsIn, request: Request) -> Response:
    """
    Replace the session's overlay settings (last write wins).
    """
    await service.update_settings(_registry(request).get(session_id), payload)
    return Response(status_code=204)


@router.post("/{session_id}/detections", response_model=List[PathOut])
async def add_detection(session_id: str, payload: DetectionIn, request: Request) -> List[PathOut]:
    """
    Ingest one detection; responds with the active paths after assignment and rep promotion.
    """
    return await service.ingest_detection(_registry(request).get(session_id), payload)


@router.post("/{session_id}/tick", response_model=List[CompletedRepOut])
async def tick(session_id: str, payload: TickIn, request: Request) -> List[CompletedRepOut]:
    """
    Advance session time without a detection; responds with reps promoted by this call.
    """
    return await service.advance(_registry(request).get(session_id), payload.now)


@router.post("/{session_id}/clear", status_code=204)
async def clear_session(session_id: str, request: Request) -> Response:
    session = _registry(request).get(session_id)
    async with session.lock:
        session.tracker.clear_all_paths()
    return Response(status_code=204)


@router.get("/{session_id}/paths", response_model=List[PathOut])
async def current_paths(session_id: str, request: Request) -> List[PathOut]:
    session = _registry(request).get(session_id)
    async with session.lock:
        return [service.path_out(path) for path in session.tracker.current_paths()]


@router.get("/{session_id}/reps", response_model=List[RepDataOut])
async def reps(session_id: str, request: Request) -> List[RepDataOut]:
    session = _registry(request).get(session_id)
    async with session.lock:
        return [service.rep_data_out(rep) for rep in session.tracker.rep_data()]


@router.get("/{session_id}/stats", response_model=SessionStatsOut)
async def stats(session_id: str, request: Request) -> SessionStatsOut:
    return await service.session_stats(_registry(request).get(session_id))


@router.post("/{session_id}/report", response_model=ReportOut)
async def report(session_id: str, payload: ReportIn, request: Request) -> ReportOut:
    registry = _registry(request)
    location = await service.generate_report(
        registry.get(session_id), registry.sink, payload.exercise, payload.tempo
    )
    if location is None:
        return ReportOut(message="No report written")
    return ReportOut(message="Report generated", location=location)
