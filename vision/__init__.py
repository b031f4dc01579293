"""Vision package exports."""

from vision.detections import Detection, DetectionSet
from vision.detector import DetectionPipeline, DetectionSettings
from vision.frames import ColorFrame, DepthFrame, SynchronizedFrame
from vision.overlay import OverlayBox, OverlayStore, format_summary
from vision.proximity import UNAVAILABLE, ProximityEstimator, ProximityReading
from vision.synchronizer import FrameSynchronizer

__all__ = [
    "ColorFrame",
    "DepthFrame",
    "Detection",
    "DetectionPipeline",
    "DetectionSet",
    "DetectionSettings",
    "FrameSynchronizer",
    "OverlayBox",
    "OverlayStore",
    "ProximityEstimator",
    "ProximityReading",
    "SynchronizedFrame",
    "UNAVAILABLE",
    "format_summary",
]
