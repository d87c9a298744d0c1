"""Command-line interface for replaying recorded detection logs.

Example::

    barline replay session.jsonl --exercise squat --line-height 400 --report-dir reports/
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from barline.config import ExerciseType, OverlaySettings, Tempo, TrackerConfig
from barline.io.detections import load_detections
from barline.io.report import CsvReportSink
from barline.session import SessionTracker

logger = logging.getLogger("barline")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="barline", description=__doc__.splitlines()[0])
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    replay = subparsers.add_parser("replay", help="Replay a JSONL detection log.")
    replay.add_argument("log", type=Path, help="Detection log (JSONL).")
    replay.add_argument(
        "--exercise",
        choices=[e.value for e in ExerciseType],
        default=ExerciseType.SQUAT.value,
    )
    replay.add_argument("--tempo", choices=[t.value for t in Tempo], default=Tempo.MODERATE.value)
    replay.add_argument("--line-height", type=float, default=400.0, help="Overlay line height (dp).")
    replay.add_argument("--range-of-motion", type=float, default=300.0, help="Band height (dp).")
    replay.add_argument("--canvas-height", type=float, default=1920.0)
    replay.add_argument("--max-paths", type=int, default=TrackerConfig.max_active_paths)
    replay.add_argument("--report-dir", type=Path, help="Write a CSV report into this directory.")
    return parser


def replay(args: argparse.Namespace) -> int:
    settings = OverlaySettings(
        line_height_dp=args.line_height,
        range_of_motion=args.range_of_motion,
        exercise=args.exercise,
        tempo=args.tempo,
        canvas_height=args.canvas_height,
    )
    tracker_config = TrackerConfig(max_active_paths=args.max_paths)
    session = SessionTracker(tracker_config, settings=settings)

    detections = load_detections(args.log)
    first = next(detections, None)
    if first is None:
        logger.error("No detections in %s", args.log)
        return 1

    session.start_session(now=first.timestamp_ms)
    session.add_detection(first, now=first.timestamp_ms)
    last_ts = first.timestamp_ms
    for detection in detections:
        session.add_detection(detection, now=detection.timestamp_ms)
        last_ts = detection.timestamp_ms
    # Let the trailing path settle so the final rep can be promoted.
    end = last_ts + tracker_config.stability_ms
    session.tick(now=end)

    exercise = settings.exercise.display_name
    tempo = settings.tempo.display_name
    for rep in session.rep_data(exercise, tempo):
        print(rep.detailed_summary())
        print()

    stats = session.session_stats(now=end)
    print(
        f"Total reps: {stats.total_reps}  "
        f"Average quality: {stats.average_quality:.1f}  "
        f"Duration: {stats.session_duration_seconds:.1f}s"
    )

    if args.report_dir is not None:
        location = session.generate_report(CsvReportSink(args.report_dir), exercise, tempo, now=end)
        if location is None:
            logger.error("No report written")
            return 1
        print(f"Report: {location}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "replay":
            return replay(args)
    except (OSError, ValueError) as exc:
        # Covers invalid overlay settings and DetectionLogError.
        logger.error("%s", exc)
        return 1
    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
