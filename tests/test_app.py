"""Tests for application wiring."""

from __future__ import annotations

import threading

from core.app import AppConfig, build_detector, build_haptics, build_pipeline, build_speech, run
from hardware.haptic_motor import NullHaptics
from interaction.speech import LoggingSpeech
from vision.detector import DetectionPipeline, DetectionSettings
from vision.overlay import OverlayStore


class _Backend:
    def infer(self, pixels):
        return [{"label": "chair", "confidence": 0.9, "bbox": (0.4, 0.4, 0.2, 0.2)}]


def _config(**sections):
    config = {
        "camera": {"enabled": False, "depth_enabled": False},
        "detection": {"enabled": False},
        "alerts": {"debounce_s": 2.0},
        "speech": {"enabled": False},
        "haptics": {"enabled": False},
    }
    config.update(sections)
    return config


def test_disabled_detection_builds_disabled_pipeline() -> None:
    """Disabled detection yields a permanently disabled pipeline."""

    detector = build_detector(DetectionSettings(enabled=False))

    assert detector.enabled is False
    assert detector.disabled_reason == "detection disabled in config"


def test_disabled_outputs_fall_back_to_stand_ins() -> None:
    """Disabled speech and haptics use logging and null outputs."""

    assert isinstance(build_speech(_config()), LoggingSpeech)
    assert isinstance(build_haptics(_config()), NullHaptics)


def test_build_pipeline_uses_config_sections() -> None:
    """Pipeline wiring follows the camera and alerts sections."""

    store = OverlayStore()
    pipeline = build_pipeline(
        _config(camera={"enabled": False, "depth_enabled": True}),
        detector=DetectionPipeline(_Backend()),
        presentation=store,
    )

    assert pipeline.synchronizer.depth_enabled is True
    assert pipeline.policy.settings.debounce_s == 2.0
    assert pipeline.policy.settings.cleanup_s == 4.0


def test_run_with_camera_disabled_stops_cleanly() -> None:
    """Run returns success when stopped with the camera disabled."""

    stop_event = threading.Event()
    stop_event.set()

    assert run(_config(), AppConfig(duration_s=0.0), stop_event) == 0
