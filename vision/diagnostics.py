"""Diagnostics routines for the detection model."""

from __future__ import annotations

import importlib.util
from pathlib import Path

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe(model: str = "yolov8n.pt", available_modules: set[str] | None = None) -> DiagnosticResult:
    """Check that the inference library is importable and the model is resolvable.

    Args:
        model: Model weights name or path from the detection config.
        available_modules: Optional override set for offline testing.

    Returns:
        Diagnostic result indicating detection readiness.
    """

    name = "detection"
    if available_modules is not None:
        has_ultralytics = "ultralytics" in available_modules
    else:
        has_ultralytics = importlib.util.find_spec("ultralytics") is not None

    if not has_ultralytics:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="ultralytics is not installed; detection will stay disabled",
        )

    model_path = Path(model)
    if model_path.suffix and model_path.parent != Path(".") and not model_path.exists():
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Model weights missing at {model_path}",
        )

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Detection model configured: {model}",
    )
