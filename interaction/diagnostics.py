"""Diagnostics routines for the speech subsystem."""

from __future__ import annotations

import importlib
import importlib.util

from diagnostics.models import DiagnosticResult, DiagnosticStatus
from interaction.speech_hal import SpeechEngineBackend


def probe(backend: SpeechEngineBackend | None = None) -> DiagnosticResult:
    """Run a speech probe to validate text-to-speech availability.

    Args:
        backend: Optional offline speech backend for testing.

    Returns:
        Diagnostic result indicating speech output readiness.
    """

    name = "speech_output"

    if backend is not None:
        try:
            voices = backend.list_voices()
            if not voices:
                return DiagnosticResult(
                    name=name,
                    status=DiagnosticStatus.WARN,
                    details="No offline voices configured",
                )

            backend.open_engine()
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.PASS,
                details=f"Offline voices: {', '.join(voices)}",
            )
        except Exception as exc:  # noqa: BLE001 - probe should not raise
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"Offline speech probe failed: {exc}",
            )

    if importlib.util.find_spec("pyttsx3") is None:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details="pyttsx3 is not installed; alerts will only be logged",
        )

    try:
        pyttsx3 = importlib.import_module("pyttsx3")
        engine = pyttsx3.init()
        voices = engine.getProperty("voices") or []
        engine.stop()
    except Exception as exc:  # noqa: BLE001 - probe should not raise
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Speech engine failed to initialize: {exc}",
        )

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"pyttsx3 engine ready ({len(voices)} voices)",
    )
