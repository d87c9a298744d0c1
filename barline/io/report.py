"""Report sinks for analyzed sessions.

The session tracker only depends on the :class:`ReportSink` protocol. The CSV
sink here writes one self-describing file per session: a commented header, the
per-rep table, and summary/recommendation blocks.
"""

from __future__ import annotations

import csv
import io
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

import numpy as np

from barline.quality.scoring import (
    CSV_HEADER,
    TIMESTAMP_FORMAT,
    RepData,
    average_quality,
    consistency_rating,
    form_note,
    session_recommendations,
)

logger = logging.getLogger(__name__)

REPORT_TITLE = "PowerLifting AR Coach - Overlay Line Rep Analysis Report"
FILENAME_TIME_FORMAT = "%Y-%m-%d_%H-%M-%S"


@dataclass(frozen=True)
class SessionInfo:
    """Metadata printed at the top of a report."""

    exercise: str
    tempo: str
    timestamp: datetime
    duration: str
    overlay_line_height: Optional[float] = None
    range_of_motion: Optional[float] = None

    @property
    def formatted_timestamp(self) -> str:
        return self.timestamp.strftime(TIMESTAMP_FORMAT)


class ReportSink(Protocol):
    def generate_report(self, reps: Sequence[RepData], info: SessionInfo) -> Optional[str]:
        """Persist ``reps`` and return a location, or ``None`` on failure."""
        ...


def report_filename(info: SessionInfo) -> str:
    exercise = info.exercise.replace(" ", "_")
    return f"PowerLifting_{exercise}_OverlayLine_{info.timestamp.strftime(FILENAME_TIME_FORMAT)}.csv"


def render_report(reps: Sequence[RepData], info: SessionInfo) -> str:
    """Render the full CSV report as text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    avg_quality = average_quality(reps)

    comments = [
        REPORT_TITLE,
        f"Generated: {info.formatted_timestamp}",
        f"Exercise: {info.exercise}",
        f"Tempo: {info.tempo}",
        f"Total Reps: {len(reps)}",
        f"Session Duration: {info.duration}",
        f"Average Quality Score: {avg_quality:.1f}",
        "Rep Detection Method: AR Overlay Line Crossing Analysis",
        "Note: Reps counted based on barbell crossing the AR movement guide line",
    ]
    if info.overlay_line_height is not None:
        comments.append(f"Overlay Line Height: {info.overlay_line_height}dp")
    if info.range_of_motion is not None:
        comments.append(f"Range of Motion: {info.range_of_motion}dp")
    for line in comments:
        buffer.write(f"# {line}\n")
    buffer.write("\n")

    writer.writerow(CSV_HEADER)
    for rep in reps:
        writer.writerow(rep.to_csv_row())

    if reps:
        best = max(rep.quality_score for rep in reps)
        avg_duration = float(np.mean([rep.duration for rep in reps]))
        avg_range = float(np.mean([rep.vertical_range for rep in reps]))
        avg_deviation = float(np.mean([rep.path_deviation for rep in reps]))
    else:
        best = avg_duration = avg_range = avg_deviation = 0.0

    buffer.write("\n# OVERLAY LINE ANALYSIS SUMMARY\n")
    writer.writerow(("Metric", "Value", "Notes"))
    writer.writerows(
        [
            ("Total Reps", len(reps), "Detected by overlay line crossing"),
            ("Average Quality Score", f"{avg_quality:.1f}", "Based on line adherence"),
            ("Best Rep Quality", f"{best:.0f}", "Highest overlay line adherence"),
            ("Average Duration", f"{avg_duration:.1f} sec", "Time per rep"),
            ("Average Vertical Range", f"{avg_range:.1f} cm", "Movement range"),
            ("Average Path Deviation", f"{avg_deviation:.2f} cm", "Deviation from overlay line"),
            ("Consistency Rating", consistency_rating(reps), "Based on deviation variance"),
        ]
    )

    buffer.write("\n# MOVEMENT PATTERN ANALYSIS\n")
    writer.writerow(("Rep_Number", "Quality_Grade", "Path_Deviation_cm", "Duration_sec", "Notes"))
    for rep in reps:
        writer.writerow(
            (
                rep.rep_number,
                rep.grade,
                f"{rep.path_deviation:.2f}",
                f"{rep.duration:.1f}",
                form_note(rep.quality_score),
            )
        )

    buffer.write("\n# TRAINING RECOMMENDATIONS\n")
    for recommendation in session_recommendations(reps, info.exercise):
        buffer.write(f"# {recommendation}\n")

    return buffer.getvalue()


def read_rep_rows(report_file: Path) -> List[Dict[str, str]]:
    """Parse the per-rep table of a CSV report back into dicts keyed by column."""
    rows: List[Dict[str, str]] = []
    with Path(report_file).open("r", encoding="utf-8", newline="") as fh:
        reader = csv.reader(fh)
        in_table = False
        for row in reader:
            if not in_table:
                in_table = tuple(row) == CSV_HEADER
                continue
            if not row or row[0].startswith("#"):
                break
            rows.append(dict(zip(CSV_HEADER, row)))
    return rows


class CsvReportSink:
    """Writes session reports as CSV files under ``reports_dir``.

    Files are written to a temporary name in the same directory and renamed
    into place, so a failed write never leaves a partial report.
    """

    def __init__(self, reports_dir: str | Path) -> None:
        self.reports_dir = Path(reports_dir)

    def generate_report(self, reps: Sequence[RepData], info: SessionInfo) -> Optional[str]:
        try:
            destination = self._write(render_report(reps, info), report_filename(info))
        except OSError:
            logger.exception("Failed to generate CSV report")
            return None
        logger.info("CSV report generated: %s", destination)
        return str(destination)

    def _write(self, content: str, filename: str) -> Path:
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        destination = self.reports_dir / filename
        fd, tmp_name = tempfile.mkstemp(dir=self.reports_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(content)
            os.replace(tmp_name, destination)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return destination

    def saved_reports(self) -> List[Path]:
        """CSV reports in the directory, newest first."""
        if not self.reports_dir.exists():
            return []
        reports = [p for p in self.reports_dir.iterdir() if p.suffix == ".csv"]
        return sorted(reports, key=lambda p: p.stat().st_mtime, reverse=True)

    def cleanup_old_reports(self, keep: int = 10) -> List[Path]:
        """Delete all but the ``keep`` newest reports; returns the deleted paths."""
        deleted: List[Path] = []
        for report in self.saved_reports()[keep:]:
            try:
                report.unlink()
            except OSError:
                logger.exception("Failed to delete old report: %s", report.name)
                continue
            logger.debug("Deleted old report: %s", report.name)
            deleted.append(report)
        return deleted
