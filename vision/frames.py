"""Frame containers exchanged between capture callbacks and the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class ColorFrame:
    """Color pixel buffer handed over by the camera callback.

    The pixel buffer is not copied; the synchronizer takes ownership.
    """

    pixels: Any
    timestamp: float
    frame_id: int | None = None


@dataclass(frozen=True)
class DepthFrame:
    """Depth grid in meters, shaped ``(height, width)``."""

    depth_map: np.ndarray
    timestamp: float

    def __post_init__(self) -> None:
        if np.ndim(self.depth_map) != 2:
            raise ValueError(
                f"Depth map must be two-dimensional, got shape {np.shape(self.depth_map)}"
            )

    @property
    def width(self) -> int:
        return int(self.depth_map.shape[1])

    @property
    def height(self) -> int:
        return int(self.depth_map.shape[0])

    def sample(self, column: int, row: int) -> float:
        return float(self.depth_map[row, column])


@dataclass(frozen=True)
class SynchronizedFrame:
    """A color frame paired with the newest depth frame available at pairing time."""

    color: ColorFrame
    depth: DepthFrame | None = None

    @property
    def timestamp(self) -> float:
        return self.color.timestamp

    @property
    def frame_id(self) -> int | None:
        return self.color.frame_id
