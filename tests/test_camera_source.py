"""Tests for the Picamera2 color source."""

from __future__ import annotations

import importlib.machinery
import sys
import threading
import types

import pytest

from hardware.camera_source import CameraSettings, Picamera2ColorSource
from vision.frames import ColorFrame


class _FakePicamera2:
    instances: list["_FakePicamera2"] = []

    def __init__(self) -> None:
        self.configured = None
        self.started = False
        self.closed = False
        _FakePicamera2.instances.append(self)

    def create_preview_configuration(self, main, buffer_count):
        return {"main": main, "buffer_count": buffer_count}

    def configure(self, configuration) -> None:
        self.configured = configuration

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def close(self) -> None:
        self.closed = True

    def capture_array(self, stream: str):
        return [[0, 0, 0]]


@pytest.fixture
def fake_picamera2(monkeypatch):
    module = types.ModuleType("picamera2")
    module.__spec__ = importlib.machinery.ModuleSpec("picamera2", None)
    module.Picamera2 = _FakePicamera2
    _FakePicamera2.instances = []
    monkeypatch.setitem(sys.modules, "picamera2", module)
    return module


def test_capture_hands_frames_to_callback(fake_picamera2) -> None:
    """Captured frames reach the callback and the camera is released on stop."""

    frames: list[ColorFrame] = []
    got_frames = threading.Event()

    def _on_frame(frame: ColorFrame) -> None:
        frames.append(frame)
        if len(frames) >= 2:
            got_frames.set()

    source = Picamera2ColorSource(_on_frame, CameraSettings(fps_cap=100, size=(320, 240)))
    source.start()
    source.start()
    try:
        assert got_frames.wait(timeout=5.0)
    finally:
        source.stop()
        source.stop()

    camera = _FakePicamera2.instances[0]
    assert len(_FakePicamera2.instances) == 1
    assert camera.configured["main"] == {"size": (320, 240), "format": "RGB888"}
    assert camera.closed is True
    assert source.frames_captured >= 2
    assert all(frame.frame_id is None for frame in frames)


def test_callback_errors_do_not_stop_capture(fake_picamera2) -> None:
    """A failing frame callback does not stop capture."""

    calls: list[int] = []
    enough = threading.Event()

    def _failing(frame: ColorFrame) -> None:
        calls.append(1)
        if len(calls) >= 3:
            enough.set()
        raise RuntimeError("consumer failed")

    source = Picamera2ColorSource(_failing, CameraSettings(fps_cap=100))
    source.start()
    try:
        assert enough.wait(timeout=5.0)
    finally:
        source.stop()


def test_missing_picamera2_raises(monkeypatch) -> None:
    """The color source requires picamera2."""

    monkeypatch.setitem(sys.modules, "picamera2", None)

    with pytest.raises(RuntimeError):
        Picamera2ColorSource(lambda frame: None)


def test_camera_settings_from_config() -> None:
    """Camera settings are read and clamped from config."""

    settings = CameraSettings.from_config(
        {"camera": {"fps_cap": 0, "size": [1280, 720], "depth_enabled": True}}
    )

    assert settings == CameraSettings(enabled=True, fps_cap=1, size=(1280, 720), depth_enabled=True)
