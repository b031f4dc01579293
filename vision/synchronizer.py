"""Pair color frames with the latest depth frame across capture threads."""

from __future__ import annotations

from dataclasses import replace
import threading
from typing import Callable

from core.logging import logger
from vision.frames import ColorFrame, DepthFrame, SynchronizedFrame

FrameSink = Callable[[SynchronizedFrame], None]


class FrameSynchronizer:
    """Newest-wins depth slot paired with each arriving color frame.

    ``on_color_frame`` and ``on_depth_frame`` may run concurrently on
    different threads. Both only hold the lock long enough to swap or read
    the depth slot, so neither producer waits on the other's processing.
    """

    def __init__(self, depth_enabled: bool, on_frame: FrameSink | None = None) -> None:
        self._depth_enabled = bool(depth_enabled)
        self._on_frame = on_frame
        self._lock = threading.Lock()
        self._latest_depth: DepthFrame | None = None
        self._next_frame_id = 0
        self._color_frames = 0
        self._depth_frames = 0
        self._emitted = 0
        self._dropped_waiting_for_depth = 0
        self._depth_disabled_warning_logged = False

    @property
    def depth_enabled(self) -> bool:
        return self._depth_enabled

    def set_sink(self, on_frame: FrameSink | None) -> None:
        self._on_frame = on_frame

    def on_depth_frame(self, frame: DepthFrame) -> None:
        """Replace the latest depth frame; older unconsumed frames are discarded."""

        if not self._depth_enabled:
            if not self._depth_disabled_warning_logged:
                self._depth_disabled_warning_logged = True
                logger.warning("[SYNC] Depth frame received but depth is disabled; ignoring.")
            return

        with self._lock:
            self._latest_depth = frame
            self._depth_frames += 1

    def on_color_frame(self, frame: ColorFrame) -> SynchronizedFrame | None:
        """Pair ``frame`` with a snapshot of the depth slot and emit it.

        Returns the emitted frame, or ``None`` when depth is enabled and no
        depth frame has arrived yet.
        """

        with self._lock:
            self._color_frames += 1
            depth = self._latest_depth
            if self._depth_enabled and depth is None:
                self._dropped_waiting_for_depth += 1
                dropped = self._dropped_waiting_for_depth
                frame_to_emit = None
            else:
                self._next_frame_id += 1
                if frame.frame_id is None:
                    frame = replace(frame, frame_id=self._next_frame_id)
                self._emitted += 1
                frame_to_emit = SynchronizedFrame(color=frame, depth=depth)

        if frame_to_emit is None:
            if dropped == 1:
                logger.info("[SYNC] Waiting for first depth frame; dropping color frames.")
            return None

        sink = self._on_frame
        if sink is not None:
            sink(frame_to_emit)
        return frame_to_emit

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "color_frames": self._color_frames,
                "depth_frames": self._depth_frames,
                "emitted": self._emitted,
                "dropped_waiting_for_depth": self._dropped_waiting_for_depth,
            }
