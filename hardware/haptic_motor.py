"""Haptic feedback through a PWM-driven vibration motor."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any, Mapping, Protocol

from core.logging import logger
from hardware.pca9685 import PCA9685Driver


class HapticOutput(Protocol):
    """Fire-and-forget haptic collaborator."""

    def pulse(self, intensity: float) -> None: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class HapticSettings:
    """Settings for the vibration motor."""

    enabled: bool = False
    i2c_address: int = 0x40
    channel: int = 0
    pulse_ms: int = 120
    pwm_freq_hz: float = 200.0

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "HapticSettings":
        haptics_cfg = config.get("haptics") if isinstance(config, Mapping) else None
        if not isinstance(haptics_cfg, Mapping):
            return cls()
        return cls(
            enabled=bool(haptics_cfg.get("enabled", False)),
            i2c_address=int(haptics_cfg.get("i2c_address", 0x40)),
            channel=int(haptics_cfg.get("channel", 0)),
            pulse_ms=max(1, int(haptics_cfg.get("pulse_ms", 120))),
        )


class NullHaptics:
    """Haptic stand-in used when no motor is attached."""

    def __init__(self) -> None:
        self.pulses = 0

    def pulse(self, intensity: float) -> None:
        self.pulses += 1
        logger.debug("[HAPTIC] pulse intensity=%.2f (no motor)", intensity)

    def close(self) -> None:
        return None


class HapticMotor:
    """Vibration motor on one PCA9685 channel.

    ``pulse`` switches the motor on and returns immediately; a timer turns it
    off after ``pulse_ms``. A pulse arriving mid-vibration restarts the timer.
    """

    def __init__(self, settings: HapticSettings, driver: PCA9685Driver | None = None) -> None:
        self.settings = settings
        self._driver = driver or PCA9685Driver(address=settings.i2c_address)
        self._driver.set_pwm_freq(settings.pwm_freq_hz)
        self._driver.set_duty_cycle(settings.channel, 0.0)
        self._lock = threading.Lock()
        self._off_timer: threading.Timer | None = None
        self._pulse_id = 0
        logger.info(
            "[HAPTIC] Motor ready on channel %s (address=0x%02X pulse_ms=%s)",
            settings.channel,
            settings.i2c_address,
            settings.pulse_ms,
        )

    def pulse(self, intensity: float) -> None:
        intensity = max(0.0, min(1.0, float(intensity)))
        with self._lock:
            if self._off_timer is not None:
                self._off_timer.cancel()
            self._pulse_id += 1
            self._driver.set_duty_cycle(self.settings.channel, intensity)
            self._off_timer = threading.Timer(
                self.settings.pulse_ms / 1000.0, self._end_pulse, args=(self._pulse_id,)
            )
            self._off_timer.daemon = True
            self._off_timer.start()

    def close(self) -> None:
        with self._lock:
            if self._off_timer is not None:
                self._off_timer.cancel()
                self._off_timer = None
            self._pulse_id += 1
            self._stop_motor()

    def _end_pulse(self, pulse_id: int) -> None:
        with self._lock:
            # A timer that fired after a newer pulse started must not cut it short.
            if pulse_id != self._pulse_id:
                return
            self._off_timer = None
            self._stop_motor()

    def _stop_motor(self) -> None:
        try:
            self._driver.set_duty_cycle(self.settings.channel, 0.0)
        except Exception:
            logger.exception("[HAPTIC] Failed to stop motor")
