import math
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from barline.config import ExerciseType, LiftPhase, Tempo

NormalizedCoord = Annotated[float, Field(ge=0.0, le=1.0)]


class BoundingBoxIn(BaseModel):
    left: NormalizedCoord
    top: NormalizedCoord
    right: NormalizedCoord
    bottom: NormalizedCoord

    @model_validator(mode="after")
    def corners_ordered(self) -> "BoundingBoxIn":
        if self.right < self.left or self.bottom < self.top:
            raise ValueError("bbox must satisfy left <= right and top <= bottom")
        return self


class DetectionIn(BaseModel):
    bbox: BoundingBoxIn
    timestamp_ms: int = Field(..., ge=0, description="Detection time (ms, monotonic).")
    now: Optional[int] = Field(None, ge=0, description="Tracking time for this ingestion; defaults to timestamp_ms.")


class TickIn(BaseModel):
    now: Optional[int] = Field(None, ge=0, description="Time to advance to; defaults to the latest detection time plus server time elapsed since.")


class OverlaySettingsIn(BaseModel):
    """
    Overlay guide pushed by the host UI. Rejected outright when it would make normalization divide by zero.
    """
    line_height_dp: float = Field(..., description="Overlay line position in dp from the top.")
    range_of_motion: float = Field(..., ge=0, description="Acceptance band height in dp.")
    exercise: ExerciseType = ExerciseType.SQUAT
    tempo: Tempo = Tempo.MODERATE
    phase: LiftPhase = LiftPhase.READY
    canvas_height: float = Field(..., gt=0, description="Canvas height in px; must be positive.")

    @field_validator("line_height_dp", "range_of_motion", "canvas_height")
    @classmethod
    def finite(cls, v: float) -> float:
        if math.isnan(v) or math.isinf(v):
            raise ValueError("value must be finite")
        return v


class ReportIn(BaseModel):
    exercise: Optional[str] = Field(None, description="Label for the report; defaults to the configured exercise.")
    tempo: Optional[str] = Field(None, description="Label for the report; defaults to the configured tempo.")


class PointOut(BaseModel):
    x: float
    y: float
    timestamp_ms: int


class PathOut(BaseModel):
    color: str
    start_time: int
    points: List[PointOut]


class CompletedRepOut(PathOut):
    rep_number: int
    duration: float


class RepDataOut(BaseModel):
    rep_number: int
    timestamp: str
    exercise: str
    tempo: str
    total_distance: float
    vertical_range: float
    avg_velocity: float
    peak_velocity: float
    path_deviation: float
    duration: float
    eccentric_duration: float
    pause_duration: float
    concentric_duration: float
    quality_score: float
    grade: str
    overlay_line_adherence: float
    insights: List[str]


class SessionCreated(BaseModel):
    session_id: str


class SessionStatsOut(BaseModel):
    total_reps: int
    average_quality: float
    session_duration_seconds: float
    active_paths: int
    total_points: int


class ReportOut(BaseModel):
    message: str
    location: Optional[str] = Field(None, description="Report location when one was written.")
