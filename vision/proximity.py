"""Depth-based proximity classification for detections."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable

from vision.detections import Detection
from vision.frames import DepthFrame


PROXIMITY_THRESHOLD_M = 1.0


@dataclass(frozen=True)
class ProximityReading:
    """Depth sampled at a detection center, or no signal.

    ``distance_m`` is ``None`` when the sample was unavailable; such a
    reading is neither near nor far.
    """

    distance_m: float | None

    @property
    def available(self) -> bool:
        return self.distance_m is not None

    @property
    def near(self) -> bool:
        return self.distance_m is not None and self.distance_m < PROXIMITY_THRESHOLD_M


UNAVAILABLE = ProximityReading(distance_m=None)


class ProximityEstimator:
    """Sample a depth grid at each detection's box center."""

    def pixel_for(self, detection: Detection, depth: DepthFrame) -> tuple[int, int]:
        center_x, center_y = detection.center
        return int(center_x * depth.width), int(center_y * depth.height)

    def estimate(self, detection: Detection, depth: DepthFrame) -> ProximityReading:
        column, row = self.pixel_for(detection, depth)
        if not (0 <= column < depth.width and 0 <= row < depth.height):
            return UNAVAILABLE

        distance = depth.sample(column, row)
        if not math.isfinite(distance):
            return UNAVAILABLE
        return ProximityReading(distance_m=distance)

    def classify_frame(
        self, detections: Iterable[Detection], depth: DepthFrame | None
    ) -> list[ProximityReading]:
        """Return one reading per detection; all unavailable without depth."""

        if depth is None:
            return [UNAVAILABLE for _ in detections]
        return [self.estimate(detection, depth) for detection in detections]

    def any_near(self, detections: Iterable[Detection], depth: DepthFrame | None) -> bool:
        return any(reading.near for reading in self.classify_frame(detections, depth))
