"""Hardware adapter package."""

from hardware.camera_source import CameraSettings, Picamera2ColorSource
from hardware.haptic_motor import HapticMotor, HapticSettings, NullHaptics
from hardware.pca9685 import PCA9685Driver

__all__ = [
    "CameraSettings",
    "HapticMotor",
    "HapticSettings",
    "NullHaptics",
    "PCA9685Driver",
    "Picamera2ColorSource",
]
