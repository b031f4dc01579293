"""Tests for color/depth frame pairing."""

from __future__ import annotations

import threading

import numpy as np

from vision.frames import ColorFrame, DepthFrame, SynchronizedFrame
from vision.synchronizer import FrameSynchronizer


def _color(timestamp: float) -> ColorFrame:
    return ColorFrame(pixels=object(), timestamp=timestamp)


def _depth(timestamp: float, value: float = 2.0) -> DepthFrame:
    return DepthFrame(depth_map=np.full((4, 4), value, dtype=np.float32), timestamp=timestamp)


def test_depth_disabled_emits_every_color_frame_without_depth() -> None:
    """Without depth every color frame is emitted."""

    emitted: list[SynchronizedFrame] = []
    sync = FrameSynchronizer(depth_enabled=False, on_frame=emitted.append)

    for index in range(5):
        sync.on_color_frame(_color(float(index)))

    assert len(emitted) == 5
    assert all(frame.depth is None for frame in emitted)
    assert [frame.frame_id for frame in emitted] == [1, 2, 3, 4, 5]


def test_depth_enabled_drops_color_frames_before_first_depth() -> None:
    """Color frames before the first depth frame are dropped."""

    emitted: list[SynchronizedFrame] = []
    sync = FrameSynchronizer(depth_enabled=True, on_frame=emitted.append)

    assert sync.on_color_frame(_color(0.0)) is None
    assert sync.on_color_frame(_color(0.1)) is None
    assert emitted == []

    depth = _depth(0.15)
    sync.on_depth_frame(depth)
    result = sync.on_color_frame(_color(0.2))

    assert result is not None
    assert result.depth is depth
    assert emitted == [result]
    assert sync.get_stats()["dropped_waiting_for_depth"] == 2


def test_newest_depth_wins_and_is_reused_until_replaced() -> None:
    """The newest depth frame pairs with later color frames."""

    sync = FrameSynchronizer(depth_enabled=True)
    older = _depth(0.0, value=3.0)
    newer = _depth(0.1, value=0.5)

    sync.on_depth_frame(older)
    sync.on_depth_frame(newer)
    first = sync.on_color_frame(_color(0.2))
    second = sync.on_color_frame(_color(0.3))

    assert first is not None and first.depth is newer
    assert second is not None and second.depth is newer


def test_depth_frames_ignored_when_depth_disabled() -> None:
    """Depth frames are ignored when depth is disabled."""

    sync = FrameSynchronizer(depth_enabled=False)

    sync.on_depth_frame(_depth(0.0))
    frame = sync.on_color_frame(_color(0.1))

    assert frame is not None and frame.depth is None
    assert sync.get_stats()["depth_frames"] == 0


def test_color_frame_ownership_is_not_copied() -> None:
    """Pixel buffers are handed through without copying."""

    pixels = np.zeros((2, 2, 3), dtype=np.uint8)
    sync = FrameSynchronizer(depth_enabled=False)

    frame = sync.on_color_frame(ColorFrame(pixels=pixels, timestamp=1.0, frame_id=42))

    assert frame is not None
    assert frame.color.pixels is pixels
    assert frame.frame_id == 42


def test_concurrent_producers_emit_each_color_frame_once() -> None:
    """Concurrent producers emit each color frame exactly once."""

    emitted: list[SynchronizedFrame] = []
    emitted_lock = threading.Lock()

    def _sink(frame: SynchronizedFrame) -> None:
        with emitted_lock:
            emitted.append(frame)

    sync = FrameSynchronizer(depth_enabled=True, on_frame=_sink)
    sync.on_depth_frame(_depth(0.0))
    depth_frames = [_depth(float(index), value=float(index)) for index in range(200)]

    def _depth_producer() -> None:
        for frame in depth_frames:
            sync.on_depth_frame(frame)

    def _color_producer() -> None:
        for index in range(500):
            sync.on_color_frame(_color(float(index)))

    threads = [threading.Thread(target=_depth_producer), threading.Thread(target=_color_producer)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(emitted) == 500
    assert len({frame.frame_id for frame in emitted}) == 500
    assert all(frame.depth is not None for frame in emitted)
    assert sync.get_stats()["depth_frames"] == 201
