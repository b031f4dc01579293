"""Perception-to-alert pipeline with one-frame-in-flight backpressure."""

from __future__ import annotations

from dataclasses import dataclass
import threading

from core.alert_policy import AlertDecision, AlertPolicyEngine
from core.dispatcher import OutputDispatcher
from core.logging import logger
from vision.detections import DetectionSet
from vision.detector import DetectionPipeline
from vision.frames import ColorFrame, DepthFrame, SynchronizedFrame
from vision.proximity import ProximityEstimator, ProximityReading
from vision.synchronizer import FrameSynchronizer


@dataclass(frozen=True)
class FrameResult:
    """Everything produced while processing one synchronized frame."""

    detections: DetectionSet
    readings: tuple[ProximityReading, ...]
    decision: AlertDecision
    summary: str

    @property
    def near(self) -> bool:
        return any(reading.near for reading in self.readings)


class AlertPipeline:
    """Owns the synchronizer, detector, policy and dispatcher for one session.

    Camera callbacks call ``on_color_frame``/``on_depth_frame``. Synchronized
    frames are handed to a single worker thread; a frame offered while the
    worker holds or processes another one is dropped rather than queued.
    """

    def __init__(
        self,
        synchronizer: FrameSynchronizer,
        detector: DetectionPipeline,
        policy: AlertPolicyEngine,
        dispatcher: OutputDispatcher,
        proximity: ProximityEstimator | None = None,
    ) -> None:
        self.synchronizer = synchronizer
        self.detector = detector
        self.policy = policy
        self.dispatcher = dispatcher
        self.proximity = proximity or ProximityEstimator()

        self._cond = threading.Condition(threading.Lock())
        self._pending: SynchronizedFrame | None = None
        self._busy = False
        self._running = False
        self._stopping = False
        self._worker_thread: threading.Thread | None = None
        self._frames_processed = 0
        self._frames_dropped_busy = 0
        self._processing_errors = 0

        self.synchronizer.set_sink(self.submit)

    def on_color_frame(self, frame: ColorFrame) -> None:
        self.synchronizer.on_color_frame(frame)

    def on_depth_frame(self, frame: DepthFrame) -> None:
        self.synchronizer.on_depth_frame(frame)

    def start(self) -> None:
        """Start the processing worker (safe to call repeatedly)."""

        with self._cond:
            if self._running:
                return
            if self._worker_thread is not None and self._worker_thread.is_alive():
                logger.warning("[PIPELINE] Worker is still running; restart deferred")
                return
            self._running = True
            self._stopping = False
            self._worker_thread = threading.Thread(
                target=self._worker_loop,
                name="alert-pipeline-worker",
                daemon=True,
            )
            self._worker_thread.start()
        logger.info("[PIPELINE] Started (depth_enabled=%s)", self.synchronizer.depth_enabled)

    def stop(self) -> None:
        """Stop the worker after its current frame (safe to call repeatedly)."""

        with self._cond:
            if not self._running:
                return
            self._running = False
            self._stopping = True
            self._pending = None
            worker = self._worker_thread
            self._cond.notify_all()

        if worker is not None:
            worker.join(timeout=2.0)
            if worker.is_alive():
                logger.warning("[PIPELINE] Worker did not stop within timeout")
                return

        with self._cond:
            if self._worker_thread is worker:
                self._worker_thread = None
        logger.info("[PIPELINE] Stopped after %s frames", self._frames_processed)

    def submit(self, frame: SynchronizedFrame) -> bool:
        """Offer ``frame`` to the worker without blocking.

        Returns ``False`` when the frame was dropped because the worker is
        busy or not running.
        """

        with self._cond:
            if not self._running:
                return False
            if self._busy:
                self._frames_dropped_busy += 1
                return False
            self._pending = frame
            self._busy = True
            self._cond.notify()
        return True

    def process_frame(self, frame: SynchronizedFrame, now: float | None = None) -> FrameResult:
        """Run one frame through detection, proximity, policy and dispatch.

        ``now`` defaults to the frame's capture timestamp.
        """

        now = frame.timestamp if now is None else now
        detections = self.detector.detect(frame)
        summary = self.dispatcher.present(detections)

        readings = tuple(self.proximity.classify_frame(detections, frame.depth))
        near = any(reading.near for reading in readings)

        decision = self.policy.evaluate(detections.labels, near, now)
        if decision.any:
            logger.debug(
                "[PIPELINE] frame=%s announce=%s haptic=%s speak_proximity=%s",
                frame.frame_id,
                list(decision.labels_to_announce),
                decision.haptic,
                decision.speak_proximity,
            )
        self.dispatcher.dispatch(decision, now)

        with self._cond:
            self._frames_processed += 1
        return FrameResult(
            detections=detections,
            readings=readings,
            decision=decision,
            summary=summary,
        )

    def get_runtime_status(self) -> dict[str, object]:
        with self._cond:
            status: dict[str, object] = {
                "running": int(self._running),
                "busy": int(self._busy),
                "frames_processed": self._frames_processed,
                "frames_dropped_busy": self._frames_dropped_busy,
                "processing_errors": self._processing_errors,
            }
        status["synchronizer"] = self.synchronizer.get_stats()
        status["detector"] = self.detector.get_runtime_status()
        status["policy"] = self.policy.get_runtime_status()
        return status

    def _worker_loop(self) -> None:
        while True:
            with self._cond:
                while self._pending is None and not self._stopping:
                    self._cond.wait()
                if self._stopping:
                    self._busy = False
                    return
                frame = self._pending
                self._pending = None

            try:
                self.process_frame(frame)
            except Exception:
                with self._cond:
                    self._processing_errors += 1
                logger.exception("[PIPELINE] Failed to process frame %s", frame.frame_id)
            finally:
                with self._cond:
                    self._busy = False
