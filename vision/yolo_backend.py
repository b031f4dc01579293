"""Ultralytics YOLO inference backend."""

from __future__ import annotations

import importlib
import importlib.util
from typing import Any

from core.logging import logger


class UltralyticsInference:
    """Run a YOLO model and emit normalized top-left ``(x, y, w, h)`` boxes."""

    def __init__(self, model: str = "yolov8n.pt") -> None:
        if importlib.util.find_spec("ultralytics") is None:
            raise RuntimeError("ultralytics is required for UltralyticsInference")

        ultralytics = importlib.import_module("ultralytics")
        self.model_name = model
        self._model = ultralytics.YOLO(model)
        logger.info("[DETECT] Loaded YOLO model %s", model)

    def infer(self, pixels: Any) -> list[dict[str, Any]]:
        results = self._model(pixels, verbose=False)
        detections: list[dict[str, Any]] = []
        for result in results:
            names = getattr(result, "names", {}) or {}
            boxes = getattr(result, "boxes", None)
            if boxes is None:
                continue
            for xywhn, confidence, class_id in zip(
                boxes.xywhn.tolist(), boxes.conf.tolist(), boxes.cls.tolist()
            ):
                center_x, center_y, width, height = xywhn
                detections.append(
                    {
                        "label": names.get(int(class_id), str(int(class_id))),
                        "confidence": float(confidence),
                        "bbox": (
                            center_x - width / 2.0,
                            center_y - height / 2.0,
                            width,
                            height,
                        ),
                    }
                )
        return detections
