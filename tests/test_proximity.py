"""Tests for depth-based proximity estimation."""

from __future__ import annotations

import numpy as np
import pytest

from vision.detections import Detection
from vision.frames import DepthFrame
from vision.proximity import UNAVAILABLE, ProximityEstimator, ProximityReading


def _depth(value: float, width: int = 640, height: int = 480) -> DepthFrame:
    return DepthFrame(depth_map=np.full((height, width), value, dtype=np.float32), timestamp=0.0)


def _centered(center_x: float, center_y: float, size: float = 0.2) -> Detection:
    return Detection(
        label="Chair",
        confidence=0.9,
        bbox=(center_x - size / 2.0, center_y - size / 2.0, size, size),
    )


@pytest.mark.parametrize(
    ("distance", "near"),
    [(1.0, False), (0.999, True), (0.2, True), (3.5, False)],
)
def test_near_boundary(distance: float, near: bool) -> None:
    """Near means strictly closer than one meter."""

    assert ProximityReading(distance_m=distance).near is near


def test_unavailable_is_neither_near_nor_far() -> None:
    """Unavailable readings are never near."""

    assert UNAVAILABLE.available is False
    assert UNAVAILABLE.near is False


def test_samples_depth_at_box_center() -> None:
    """Depth is sampled at the box center."""

    depth_map = np.full((480, 640), 5.0, dtype=np.float32)
    depth_map[238:243, 318:323] = 0.5
    estimator = ProximityEstimator()

    reading = estimator.estimate(_centered(0.5, 0.5), DepthFrame(depth_map=depth_map, timestamp=0.0))

    assert reading.distance_m == pytest.approx(0.5)
    assert reading.near is True


def test_pixel_indices_are_truncated() -> None:
    """Pixel indices are truncated toward zero."""

    estimator = ProximityEstimator()
    detection = Detection(label="Cup", confidence=0.9, bbox=(0.0, 0.0, 0.999, 0.999))

    assert estimator.pixel_for(detection, _depth(2.0, width=10, height=10)) == (4, 4)


def test_out_of_bounds_center_is_unavailable() -> None:
    """A center outside the grid is unavailable."""

    estimator = ProximityEstimator()
    depth = _depth(0.1)
    detection = Detection(label="Chair", confidence=0.9, bbox=(5000.5 / 640, 5000.5 / 480, 0.0, 0.0))

    assert estimator.pixel_for(detection, depth) == (5000, 5000)
    assert estimator.estimate(detection, depth) is UNAVAILABLE


def test_center_on_far_edge_is_unavailable() -> None:
    """A center on the far edge is outside the grid."""

    estimator = ProximityEstimator()
    detection = Detection(label="Wall", confidence=0.9, bbox=(1.0, 0.5, 0.0, 0.0))

    assert estimator.estimate(detection, _depth(0.1)) is UNAVAILABLE


def test_non_finite_samples_are_unavailable() -> None:
    """NaN and infinite samples are unavailable."""

    estimator = ProximityEstimator()

    assert estimator.estimate(_centered(0.5, 0.5), _depth(float("nan"))) is UNAVAILABLE
    assert estimator.estimate(_centered(0.5, 0.5), _depth(float("inf"))) is UNAVAILABLE


def test_classify_frame_keeps_other_detections_when_one_is_out_of_bounds() -> None:
    """One out-of-bounds detection does not affect the others."""

    estimator = ProximityEstimator()
    depth = _depth(0.5)
    outside = Detection(label="Ghost", confidence=0.9, bbox=(3.0, 3.0, 0.0, 0.0))
    inside = _centered(0.25, 0.25)

    readings = estimator.classify_frame([outside, inside], depth)

    assert readings[0] is UNAVAILABLE
    assert readings[1].near is True
    assert estimator.any_near([outside, inside], depth) is True


def test_classify_frame_without_depth_is_all_unavailable() -> None:
    """Without depth every reading is unavailable."""

    estimator = ProximityEstimator()

    readings = estimator.classify_frame([_centered(0.5, 0.5)], None)

    assert readings == [UNAVAILABLE]
    assert estimator.any_near([_centered(0.5, 0.5)], None) is False


def test_depth_frame_requires_two_dimensions() -> None:
    """Depth frames must be two-dimensional."""

    with pytest.raises(ValueError):
        DepthFrame(depth_map=np.zeros((2, 2, 2), dtype=np.float32), timestamp=0.0)
