"""Detection pipeline that turns raw inference output into ranked detections."""

from __future__ import annotations

from dataclasses import dataclass
import math
import string
import threading
from typing import Any, Mapping, Protocol

from core.logging import logger
from vision.detections import Detection, DetectionSet
from vision.frames import SynchronizedFrame


_LABEL_KEYS = ("label", "class_name", "class", "name")
_CONFIDENCE_KEYS = ("confidence", "score")
_BBOX_KEYS = ("bbox", "box", "rect")
_CORNER_KEYS = ("xmin", "ymin", "xmax", "ymax")


class InferenceBackend(Protocol):
    """Object detector consumed by the pipeline."""

    def infer(self, pixels: Any) -> list[Any]:
        """Return raw detections for one color frame; may raise."""


@dataclass(frozen=True)
class DetectionSettings:
    """Runtime settings for detection filtering."""

    enabled: bool = True
    model: str = "yolov8n.pt"
    min_confidence: float = 0.6
    max_detections: int = 3

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "DetectionSettings":
        detection_cfg = config.get("detection") if isinstance(config, Mapping) else None
        if not isinstance(detection_cfg, Mapping):
            return cls()
        return cls(
            enabled=bool(detection_cfg.get("enabled", True)),
            model=str(detection_cfg.get("model", "yolov8n.pt")),
            min_confidence=float(detection_cfg.get("min_confidence", 0.6)),
            max_detections=max(1, int(detection_cfg.get("max_detections", 3))),
        )


def canonical_label(value: Any) -> str:
    """Return ``value`` stripped with every word capitalized."""

    if value is None:
        return ""
    return string.capwords(str(value).strip())


class DetectionPipeline:
    """Run inference on synchronized frames and rank the results.

    When constructed without a backend the pipeline stays disabled for its
    whole lifetime: ``detect`` returns empty sets and the reason is logged
    once.
    """

    def __init__(
        self,
        backend: InferenceBackend | None,
        settings: DetectionSettings | None = None,
        disabled_reason: str = "",
    ) -> None:
        self.settings = settings or DetectionSettings()
        self._backend = backend
        self._lock = threading.Lock()
        self._frames_processed = 0
        self._inference_errors = 0
        self._enabled = backend is not None and self.settings.enabled
        self._disabled_reason = disabled_reason
        if not self._enabled:
            if not self._disabled_reason:
                self._disabled_reason = (
                    "detection disabled in config"
                    if not self.settings.enabled
                    else "inference model not initialized"
                )
            logger.error(
                "[DETECT] Detection pipeline disabled (%s); no alerts will be produced.",
                self._disabled_reason,
            )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def disabled_reason(self) -> str:
        return self._disabled_reason

    def detect(self, frame: SynchronizedFrame) -> DetectionSet:
        """Return at most ``max_detections`` detections ranked by confidence."""

        if not self._enabled or self._backend is None:
            return DetectionSet.empty(frame.timestamp, frame.frame_id)

        try:
            raw_detections = self._backend.infer(frame.color.pixels)
        except Exception:
            with self._lock:
                self._inference_errors += 1
            logger.exception("[DETECT] Inference failed for frame %s", frame.frame_id)
            return DetectionSet.empty(frame.timestamp, frame.frame_id)

        detections = self.rank(self.convert_raw_detections(raw_detections or []))
        with self._lock:
            self._frames_processed += 1
        return DetectionSet(
            timestamp=frame.timestamp,
            detections=tuple(detections),
            frame_id=frame.frame_id,
        )

    def rank(self, detections: list[Detection]) -> list[Detection]:
        """Keep detections above the threshold, highest confidence first."""

        kept = [
            detection
            for detection in detections
            if detection.confidence > self.settings.min_confidence
        ]
        kept.sort(key=lambda detection: detection.confidence, reverse=True)
        return kept[: self.settings.max_detections]

    def convert_raw_detections(self, raw_detections: list[Any]) -> list[Detection]:
        normalized: list[Detection] = []
        for raw in raw_detections:
            detection = self._convert_single_detection(raw)
            if detection is not None:
                normalized.append(detection)
        return normalized

    def get_runtime_status(self) -> dict[str, int | str]:
        with self._lock:
            return {
                "enabled": int(self._enabled),
                "disabled_reason": self._disabled_reason,
                "frames_processed": self._frames_processed,
                "inference_errors": self._inference_errors,
            }

    def _convert_single_detection(self, raw: Any) -> Detection | None:
        if isinstance(raw, Detection):
            label = canonical_label(raw.label)
            if not label:
                return None
            return Detection(
                label=label,
                confidence=raw.confidence,
                bbox=self._normalize_bbox(*raw.bbox),
            )

        payload = self._to_mapping(raw)
        if payload is None:
            return None

        confidence = self._extract_confidence(payload)
        if confidence is None or confidence <= 0.0:
            return None

        label = canonical_label(self._first_present(payload, _LABEL_KEYS))
        if not label:
            return None

        bbox = self._extract_bbox(payload)
        if bbox is None:
            return None

        return Detection(label=label, confidence=confidence, bbox=bbox)

    def _to_mapping(self, raw: Any) -> dict[str, Any] | None:
        if isinstance(raw, Mapping):
            return dict(raw)

        mapping: dict[str, Any] = {}
        for field in _LABEL_KEYS + _CONFIDENCE_KEYS + _BBOX_KEYS + _CORNER_KEYS:
            if hasattr(raw, field):
                mapping[field] = getattr(raw, field)
        return mapping or None

    def _first_present(self, payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
        for key in keys:
            if payload.get(key) is not None:
                return payload[key]
        return None

    def _extract_confidence(self, payload: Mapping[str, Any]) -> float | None:
        confidence = self._to_finite_float(self._first_present(payload, _CONFIDENCE_KEYS))
        if confidence is None:
            return None
        return min(1.0, confidence)

    def _extract_bbox(self, payload: Mapping[str, Any]) -> tuple[float, float, float, float] | None:
        raw_bbox = self._first_present(payload, _BBOX_KEYS)

        if isinstance(raw_bbox, (list, tuple)) and len(raw_bbox) >= 4:
            values = [self._to_finite_float(value) for value in raw_bbox[:4]]
            if None in values:
                return None
            return self._normalize_bbox(*values)

        if all(key in payload for key in _CORNER_KEYS):
            xmin, ymin, xmax, ymax = (self._to_finite_float(payload[key]) for key in _CORNER_KEYS)
            if None in (xmin, ymin, xmax, ymax):
                return None
            return self._normalize_bbox(xmin, ymin, xmax - xmin, ymax - ymin)

        return None

    def _to_finite_float(self, value: Any) -> float | None:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        return number

    def _normalize_bbox(self, x: float, y: float, w: float, h: float) -> tuple[float, float, float, float]:
        x = max(0.0, min(1.0, x))
        y = max(0.0, min(1.0, y))
        w = max(0.0, min(1.0 - x, w))
        h = max(0.0, min(1.0 - y, h))
        return (x, y, w, h)
