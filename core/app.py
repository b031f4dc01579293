"""Application runtime: build the alert pipeline and run it."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any, Mapping

from core.alert_policy import AlertPolicyEngine
from core.dispatcher import OutputDispatcher
from core.logging import log_error, log_warning, logger
from core.pipeline import AlertPipeline
from hardware.camera_source import CameraSettings, Picamera2ColorSource
from hardware.haptic_motor import HapticMotor, HapticOutput, HapticSettings, NullHaptics
from interaction.speech import LoggingSpeech, Pyttsx3Speech, SpeechOutput
from vision.detector import DetectionPipeline, DetectionSettings
from vision.overlay import OverlayStore, PresentationSink
from vision.synchronizer import FrameSynchronizer


@dataclass(frozen=True)
class AppConfig:
    """Runtime options that do not come from the YAML config.

    Attributes:
        duration_s: Stop after this many seconds; run until interrupted when None.
        status_log_period_s: Interval between pipeline status log lines.
    """

    duration_s: float | None = None
    status_log_period_s: float = 15.0


def build_detector(settings: DetectionSettings) -> DetectionPipeline:
    """Create the detection pipeline, disabled if the model cannot be loaded."""

    if not settings.enabled:
        return DetectionPipeline(None, settings)

    try:
        from vision.yolo_backend import UltralyticsInference

        backend = UltralyticsInference(settings.model)
    except Exception as exc:
        return DetectionPipeline(None, settings, disabled_reason=f"model load failed: {exc}")
    return DetectionPipeline(backend, settings)


def build_speech(config: Mapping[str, Any]) -> SpeechOutput:
    speech_cfg = config.get("speech") or {}
    if not speech_cfg.get("enabled", True):
        logger.info("[SPEECH] Disabled in config; alerts will only be logged.")
        return LoggingSpeech()
    try:
        return Pyttsx3Speech(
            words_per_minute=int(speech_cfg.get("words_per_minute", 175)),
            voice=speech_cfg.get("voice"),
        )
    except Exception as exc:
        logger.warning("[SPEECH] Speech output unavailable (%s); logging alerts instead.", exc)
        return LoggingSpeech()


def build_haptics(config: Mapping[str, Any]) -> HapticOutput:
    settings = HapticSettings.from_config(config)
    if not settings.enabled:
        return NullHaptics()
    try:
        return HapticMotor(settings)
    except Exception as exc:
        logger.warning("[HAPTIC] Motor unavailable (%s); haptics disabled.", exc)
        return NullHaptics()


def build_pipeline(
    config: Mapping[str, Any],
    *,
    detector: DetectionPipeline | None = None,
    speech: SpeechOutput | None = None,
    haptics: HapticOutput | None = None,
    presentation: PresentationSink | None = None,
) -> AlertPipeline:
    """Wire every pipeline component from ``config``.

    Collaborators passed explicitly take precedence over the ones built from
    configuration.
    """

    camera_settings = CameraSettings.from_config(config)
    policy = AlertPolicyEngine.from_config(config)
    dispatcher = OutputDispatcher(
        policy,
        speech=speech if speech is not None else build_speech(config),
        haptics=haptics if haptics is not None else build_haptics(config),
        presentation=presentation if presentation is not None else OverlayStore(),
    )
    return AlertPipeline(
        synchronizer=FrameSynchronizer(depth_enabled=camera_settings.depth_enabled),
        detector=detector if detector is not None else build_detector(DetectionSettings.from_config(config)),
        policy=policy,
        dispatcher=dispatcher,
    )


def run(config: Mapping[str, Any], app_config: AppConfig | None = None, stop_event: threading.Event | None = None) -> int:
    """Run the pipeline against the camera until stopped.

    Returns:
        Process exit code (0 for success).
    """

    app_config = app_config or AppConfig()
    stop_event = stop_event or threading.Event()
    camera_settings = CameraSettings.from_config(config)

    pipeline = build_pipeline(config)
    pipeline.start()

    camera: Picamera2ColorSource | None = None
    if camera_settings.enabled:
        try:
            camera = Picamera2ColorSource(pipeline.on_color_frame, camera_settings)
            camera.start()
        except Exception as exc:
            log_error(f"[CAMERA] Camera unavailable: {exc}")
            pipeline.stop()
            pipeline.dispatcher.close()
            return 1
    else:
        log_warning("[CAMERA] Camera disabled in config; pipeline idle.")

    if camera_settings.depth_enabled:
        logger.info("[SYNC] Depth enabled; waiting for a depth source to call on_depth_frame.")

    elapsed_s = 0.0
    period_s = max(1.0, app_config.status_log_period_s)
    try:
        while not stop_event.is_set():
            wait_s = period_s
            if app_config.duration_s is not None:
                remaining_s = app_config.duration_s - elapsed_s
                if remaining_s <= 0:
                    break
                wait_s = min(wait_s, remaining_s)
            stop_event.wait(wait_s)
            elapsed_s += wait_s
            _log_status(pipeline)
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
    finally:
        if camera is not None:
            camera.stop()
        pipeline.stop()
        pipeline.dispatcher.close()

    return 0


def _log_status(pipeline: AlertPipeline) -> None:
    status = pipeline.get_runtime_status()
    sync_stats = status["synchronizer"]
    policy_status = status["policy"]
    logger.info(
        "[PIPELINE] Status: processed=%s dropped_busy=%s emitted=%s "
        "waiting_for_depth=%s speech=%s tracked_labels=%s",
        status["frames_processed"],
        status["frames_dropped_busy"],
        sync_stats["emitted"],
        sync_stats["dropped_waiting_for_depth"],
        policy_status["speech_state"],
        policy_status["tracked_labels"],
    )
