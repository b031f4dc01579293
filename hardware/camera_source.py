"""Color frame capture from a Raspberry Pi camera."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
import threading
import time
from typing import Any, Callable, Mapping

from core.logging import logger
from vision.frames import ColorFrame

ColorFrameCallback = Callable[[ColorFrame], Any]


@dataclass(frozen=True)
class CameraSettings:
    """Capture settings for the color camera."""

    enabled: bool = True
    fps_cap: int = 15
    size: tuple[int, int] = (640, 480)
    depth_enabled: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "CameraSettings":
        camera_cfg = config.get("camera") if isinstance(config, Mapping) else None
        if not isinstance(camera_cfg, Mapping):
            return cls()
        size = camera_cfg.get("size") or (640, 480)
        return cls(
            enabled=bool(camera_cfg.get("enabled", True)),
            fps_cap=max(1, int(camera_cfg.get("fps_cap", 15))),
            size=(int(size[0]), int(size[1])),
            depth_enabled=bool(camera_cfg.get("depth_enabled", False)),
        )


class Picamera2ColorSource:
    """Capture RGB frames on a daemon thread and hand them to a callback."""

    def __init__(self, on_color_frame: ColorFrameCallback, settings: CameraSettings | None = None) -> None:
        if importlib.util.find_spec("picamera2") is None:
            raise RuntimeError("picamera2 is required for Picamera2ColorSource")

        self.settings = settings or CameraSettings()
        self._on_color_frame = on_color_frame
        self._lock = threading.Lock()
        self._worker_thread: threading.Thread | None = None
        self._worker_stop = threading.Event()
        self._frames_captured = 0

    def start(self) -> None:
        """Start capturing (safe to call repeatedly)."""

        with self._lock:
            if self._worker_thread is not None and self._worker_thread.is_alive():
                return
            self._worker_stop.clear()
            self._worker_thread = threading.Thread(
                target=self._worker_loop,
                name="camera-capture",
                daemon=True,
            )
            self._worker_thread.start()

    def stop(self) -> None:
        """Stop capturing (safe to call repeatedly)."""

        with self._lock:
            worker = self._worker_thread
            self._worker_stop.set()

        if worker is not None:
            worker.join(timeout=2.0)
            if worker.is_alive():
                logger.warning("[CAMERA] Capture thread did not stop within timeout")
                return

        with self._lock:
            if self._worker_thread is worker:
                self._worker_thread = None

    @property
    def frames_captured(self) -> int:
        with self._lock:
            return self._frames_captured

    def _create_camera(self) -> Any:
        picamera2 = importlib.import_module("picamera2")
        camera = picamera2.Picamera2()
        configuration = camera.create_preview_configuration(
            main={"size": self.settings.size, "format": "RGB888"},
            buffer_count=2,
        )
        camera.configure(configuration)
        camera.start()
        return camera

    def _worker_loop(self) -> None:
        camera: Any = None
        period_s = 1.0 / max(1, self.settings.fps_cap)
        try:
            camera = self._create_camera()
            logger.info(
                "[CAMERA] Capture started (size=%sx%s fps_cap=%s)",
                self.settings.size[0],
                self.settings.size[1],
                self.settings.fps_cap,
            )
            while not self._worker_stop.is_set():
                loop_start = time.monotonic()
                try:
                    pixels = camera.capture_array("main")
                except Exception:
                    logger.exception("[CAMERA] Failed to capture frame")
                    pixels = None

                if pixels is not None:
                    with self._lock:
                        self._frames_captured += 1
                    try:
                        self._on_color_frame(ColorFrame(pixels=pixels, timestamp=time.monotonic()))
                    except Exception:
                        logger.exception("[CAMERA] Frame callback failed")

                elapsed_s = time.monotonic() - loop_start
                self._worker_stop.wait(max(0.0, period_s - elapsed_s))
        except Exception as exc:
            logger.exception("[CAMERA] Capture initialization failed: %s", exc)
        finally:
            self._shutdown_camera(camera)

    def _shutdown_camera(self, camera: Any) -> None:
        if camera is None:
            return
        for method_name in ("stop", "close"):
            method = getattr(camera, method_name, None)
            if callable(method):
                try:
                    method()
                except Exception:
                    logger.exception("[CAMERA] Failed to %s camera", method_name)
