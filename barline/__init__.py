"""barline: barbell path tracking with overlay-line rep detection.

This package hosts trajectory tracking of detector bounding boxes, overlay
line rep segmentation, per-exercise pattern checks, kinematic rep analysis,
and session reporting.
"""

__all__ = [
    "cli",
    "config",
    "session",
]

__version__ = "0.1.0"
