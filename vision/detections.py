"""Stable detection schemas for the alert pipeline.

Bounding boxes are normalized to the source frame dimensions and represented as
``(x, y, width, height)`` with each value expected in the inclusive range
``[0.0, 1.0]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class Detection:
    """Single object detection result."""

    label: str
    confidence: float
    bbox: tuple[float, float, float, float]

    @property
    def center(self) -> tuple[float, float]:
        """Return the normalized ``(x, y)`` center of the bounding box."""

        x, y, w, h = self.bbox
        return (x + w / 2.0, y + h / 2.0)


@dataclass(frozen=True)
class DetectionSet:
    """Ranked detections for one processed frame."""

    timestamp: float
    detections: tuple[Detection, ...] = field(default_factory=tuple)
    frame_id: int | None = None

    def __iter__(self) -> Iterator[Detection]:
        return iter(self.detections)

    def __len__(self) -> int:
        return len(self.detections)

    def __bool__(self) -> bool:
        return bool(self.detections)

    @property
    def labels(self) -> list[str]:
        return [detection.label for detection in self.detections]

    @classmethod
    def empty(cls, timestamp: float, frame_id: int | None = None) -> "DetectionSet":
        return cls(timestamp=timestamp, detections=(), frame_id=frame_id)
