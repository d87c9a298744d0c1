"""Rep quality scoring, grading, and coaching feedback."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence

import numpy as np

from barline.config import AnalyzerConfig, Tempo

CSV_HEADER = (
    "Rep_Number",
    "Timestamp",
    "Exercise",
    "Tempo",
    "Total_Distance_cm",
    "Vertical_Range_cm",
    "Avg_Velocity_cm_s",
    "Peak_Velocity_cm_s",
    "Path_Deviation_cm",
    "Duration_sec",
    "Eccentric_Duration_sec",
    "Pause_Duration_sec",
    "Concentric_Duration_sec",
    "Quality_Score",
    "Grade",
    "Overlay_Line_Adherence",
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_QUALITY_GRADES = ((90.0, "A"), (80.0, "B"), (70.0, "C"), (60.0, "D"))
_ADHERENCE_GRADES = ((90.0, "Excellent"), (80.0, "Good"), (70.0, "Fair"), (60.0, "Poor"))


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(max(value, low), high)


def overlay_line_adherence(quality_score: float, path_deviation: float) -> float:
    """Blend quality with raw deviation (cm) from the overlay line into [0, 100]."""
    deviation_factor = max(0.0, 100.0 - path_deviation * 50.0)
    return _clamp(quality_score * 0.7 + deviation_factor * 0.3)


def quality_grade(quality_score: float) -> str:
    for threshold, grade in _QUALITY_GRADES:
        if quality_score >= threshold:
            return grade
    return "F"


def adherence_grade(adherence: float) -> str:
    for threshold, grade in _ADHERENCE_GRADES:
        if adherence >= threshold:
            return grade
    return "Very Poor"


def deviation_score(path_deviation: float, config: AnalyzerConfig) -> float:
    return _clamp(100.0 - path_deviation * config.deviation_penalty_per_cm)


def tempo_score(duration: float, tempo: Tempo) -> float:
    """Score how closely the rep duration matches the tempo's target."""
    target = Tempo(tempo).target_duration
    return _clamp(100.0 * (1.0 - abs(duration - target) / target))


def quality_score(
    path_deviation: float, duration: float, tempo: Tempo, config: AnalyzerConfig
) -> float:
    """Composite 0-100 score; deviation carries the larger weight."""
    score = (
        config.deviation_weight * deviation_score(path_deviation, config)
        + config.tempo_weight * tempo_score(duration, tempo)
    )
    return _clamp(score)


@dataclass(frozen=True)
class RepData:
    """Analysis record for one completed rep.

    Distances are in cm, velocities in cm/s and durations in seconds.
    ``overlay_line_adherence`` is derived from ``quality_score`` and
    ``path_deviation`` when the record is built.
    """

    rep_number: int
    timestamp: datetime
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
    overlay_line_adherence: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "overlay_line_adherence",
            overlay_line_adherence(self.quality_score, self.path_deviation),
        )

    @property
    def grade(self) -> str:
        return quality_grade(self.quality_score)

    @property
    def adherence_grade(self) -> str:
        return adherence_grade(self.overlay_line_adherence)

    @property
    def formatted_timestamp(self) -> str:
        return self.timestamp.strftime(TIMESTAMP_FORMAT)

    def to_csv_row(self) -> List[str]:
        """Fields in ``CSV_HEADER`` order with fixed precision."""
        return [
            str(self.rep_number),
            self.formatted_timestamp,
            self.exercise,
            self.tempo,
            f"{self.total_distance:.2f}",
            f"{self.vertical_range:.2f}",
            f"{self.avg_velocity:.2f}",
            f"{self.peak_velocity:.2f}",
            f"{self.path_deviation:.2f}",
            f"{self.duration:.1f}",
            f"{self.eccentric_duration:.1f}",
            f"{self.pause_duration:.1f}",
            f"{self.concentric_duration:.1f}",
            f"{self.quality_score:.0f}",
            self.grade,
            f"{self.overlay_line_adherence:.1f}",
        ]

    def detailed_summary(self) -> str:
        return "\n".join(
            [
                f"Rep #{self.rep_number} Analysis:",
                f"- Exercise: {self.exercise} ({self.tempo} tempo)",
                f"- Duration: {self.duration:.1f}s",
                f"- Path Deviation: {self.path_deviation:.2f}cm from overlay line",
                f"- Quality Score: {self.quality_score:.0f}/100 ({self.grade})",
                f"- Overlay Line Adherence: {self.overlay_line_adherence:.1f}% ({self.adherence_grade})",
                f"- Phase Breakdown: {self.eccentric_duration:.1f}s down, "
                f"{self.pause_duration:.1f}s pause, {self.concentric_duration:.1f}s up",
            ]
        )

    def performance_insights(self) -> List[str]:
        insights: List[str] = []

        if self.quality_score >= 90:
            insights.append("Excellent form - maintain this consistency")
        elif self.quality_score >= 80:
            insights.append("Good form - minor improvements possible")
        elif self.quality_score >= 70:
            insights.append("Acceptable form - focus on consistency")
        elif self.quality_score >= 60:
            insights.append("Form needs work - consider reducing weight")
        else:
            insights.append("Poor form - focus on technique over weight")

        if self.path_deviation < 1.0:
            insights.append("Excellent bar path - stayed close to overlay line")
        elif self.path_deviation < 2.0:
            insights.append("Good bar path - minor deviations from overlay line")
        elif self.path_deviation < 3.0:
            insights.append("Moderate deviation - focus on following overlay line")
        else:
            insights.append("High deviation - work on bar path consistency")

        if self.duration < 1.5:
            insights.append("Rep too fast - slow down for better control")
        elif self.duration > 8.0:
            insights.append("Rep too slow - work on smooth movement")
        else:
            insights.append("Good tempo - maintain this pace")

        phase_total = self.eccentric_duration + self.pause_duration + self.concentric_duration
        if phase_total > 0:
            if self.eccentric_duration / phase_total < 0.3:
                insights.append("Eccentric phase too fast - slow down the negative")
            if self.concentric_duration / phase_total > 0.6:
                insights.append("Concentric phase too slow - work on explosive power")

        return insights


def average_quality(reps: Sequence[RepData]) -> float:
    if not reps:
        return 0.0
    return float(np.mean([rep.quality_score for rep in reps]))


def consistency_rating(reps: Sequence[RepData]) -> str:
    """Rate how repeatable the bar path was from the spread of deviations."""
    if not reps:
        return "N/A"
    spread = float(np.std([rep.path_deviation for rep in reps]))
    if spread < 0.5:
        return "Excellent"
    if spread < 1.0:
        return "Good"
    if spread < 1.5:
        return "Fair"
    return "Needs Work"


def form_note(quality: float) -> str:
    if quality >= 90:
        return "Excellent form"
    if quality >= 80:
        return "Good form"
    if quality >= 70:
        return "Acceptable form"
    if quality >= 60:
        return "Needs improvement"
    return "Poor form"


_EXERCISE_RECOMMENDATIONS = {
    "Squat": "For squats: Focus on hitting depth consistently below the overlay line",
    "Bench Press": "For bench press: Ensure bar touches chest level consistently",
    "Deadlift": "For deadlifts: Keep bar close to body throughout the movement",
}


def session_recommendations(reps: Sequence[RepData], exercise: str) -> List[str]:
    if not reps:
        return ["No reps detected - ensure barbell is visible and crosses the overlay line"]

    recommendations: List[str] = []
    avg_quality = average_quality(reps)
    avg_deviation = float(np.mean([rep.path_deviation for rep in reps]))
    avg_duration = float(np.mean([rep.duration for rep in reps]))

    if avg_quality >= 85:
        recommendations.append("Excellent form! Maintain this consistency")
    elif avg_quality >= 75:
        recommendations.append("Good form overall. Focus on reducing path deviation")
    elif avg_quality >= 65:
        recommendations.append("Form needs improvement. Work on bar path consistency")
    else:
        recommendations.append(
            "Poor form detected. Consider reducing weight and focusing on technique"
        )

    if avg_deviation > 2.0:
        recommendations.append(
            "High path deviation detected. Focus on keeping the bar in line with the overlay guide"
        )

    if avg_duration < 2.0:
        recommendations.append("Reps are too fast. Slow down and focus on control")
    elif avg_duration > 6.0:
        recommendations.append("Reps are too slow. Work on smooth, controlled movement")

    if exercise in _EXERCISE_RECOMMENDATIONS:
        recommendations.append(_EXERCISE_RECOMMENDATIONS[exercise])

    return recommendations
