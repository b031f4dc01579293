"""Overlay payloads for the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Callable, Protocol

from core.logging import logger
from vision.detections import Detection, DetectionSet


@dataclass(frozen=True)
class OverlayBox:
    """Labelled normalized box drawn over the camera preview."""

    label: str
    confidence: float
    bbox: tuple[float, float, float, float]

    @property
    def caption(self) -> str:
        return describe(self.label, self.confidence)

    @classmethod
    def from_detection(cls, detection: Detection) -> "OverlayBox":
        return cls(
            label=detection.label,
            confidence=detection.confidence,
            bbox=tuple(detection.bbox),
        )


class PresentationSink(Protocol):
    """Consumer of per-frame summaries and overlay boxes."""

    def present(self, summary: str, boxes: list[OverlayBox]) -> None:
        """Receive the latest summary text and boxes."""


def describe(label: str, confidence: float) -> str:
    return f"{label} ({int(confidence * 100)}%)"


def format_summary(detections: DetectionSet) -> str:
    """Return ``"Label (NN%)"`` entries joined by commas."""

    return ", ".join(describe(item.label, item.confidence) for item in detections)


def overlay_boxes(detections: DetectionSet) -> list[OverlayBox]:
    return [OverlayBox.from_detection(item) for item in detections]


class OverlayStore:
    """Thread-safe holder for the latest overlay, readable by a UI loop."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._summary = ""
        self._boxes: tuple[OverlayBox, ...] = ()
        self._subscribers: set[Callable[[str, list[OverlayBox]], None]] = set()

    def present(self, summary: str, boxes: list[OverlayBox]) -> None:
        with self._lock:
            changed = summary != self._summary
            self._summary = summary
            self._boxes = tuple(boxes)
            subscribers = list(self._subscribers)

        if changed and summary:
            logger.info("[OVERLAY] %s", summary)

        for callback in subscribers:
            try:
                callback(summary, list(boxes))
            except Exception:
                logger.exception("[OVERLAY] Subscriber callback failed")

    def get_latest(self) -> tuple[str, list[OverlayBox]]:
        with self._lock:
            return self._summary, list(self._boxes)

    def subscribe(self, callback: Callable[[str, list[OverlayBox]], None]) -> None:
        with self._lock:
            self._subscribers.add(callback)

    def unsubscribe(self, callback: Callable[[str, list[OverlayBox]], None]) -> None:
        with self._lock:
            self._subscribers.discard(callback)
