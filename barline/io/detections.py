"""JSONL detection logs for offline replay.

A log holds one detection per line::

    {"timestamp_ms": 1200, "bbox": {"left": 0.4, "top": 0.3, "right": 0.6, "bottom": 0.35}}

Logs are recorded from the detector output so that sessions can be replayed
through the tracker deterministically.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Iterable, Iterator

from barline.geometry import BoundingBox, Detection


class DetectionLogError(ValueError):
    """Raised when a detection log line cannot be parsed."""


def _detection_to_json(detection: Detection) -> str:
    payload = {
        "timestamp_ms": detection.timestamp_ms,
        "bbox": asdict(detection.bbox),
    }
    return json.dumps(payload)


def _detection_from_obj(obj: dict) -> Detection:
    return Detection(
        bbox=BoundingBox(**obj["bbox"]),
        timestamp_ms=int(obj["timestamp_ms"]),
    )


def save_detections(
    log_file: Path, detections: Iterable[Detection], *, overwrite: bool = True
) -> Path:
    """Write detections to a JSONL log file."""

    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    if log_file.exists() and not overwrite:
        raise FileExistsError(f"Detection log already exists: {log_file}")

    with log_file.open("w", encoding="utf-8") as fh:
        for detection in detections:
            fh.write(_detection_to_json(detection))
            fh.write("\n")
    return log_file


def load_detections(log_file: Path) -> Iterator[Detection]:
    """Read detections from a JSONL log file, skipping blank lines."""
    with Path(log_file).open("r", encoding="utf-8") as fh:
        for line_number, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                yield _detection_from_obj(json.loads(line))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                raise DetectionLogError(f"{log_file}:{line_number}: {exc}") from exc
