"""PCA9685 PWM driver used for the vibration motor."""

from __future__ import annotations

import importlib
import importlib.util
import math
import time
from typing import Any

from core.logging import logger as LOGGER


PWM_RESOLUTION = 4096


class PCA9685Driver:
    """Low-level register access for the PCA9685 16-channel PWM driver."""

    __MODE1 = 0x00
    __PRESCALE = 0xFE
    __LED0_ON_L = 0x06
    __LED0_ON_H = 0x07
    __LED0_OFF_L = 0x08
    __LED0_OFF_H = 0x09

    def __init__(self, address: int = 0x40, bus: Any = None, debug: bool = False) -> None:
        if bus is None:
            if importlib.util.find_spec("smbus") is None:
                raise RuntimeError("smbus is required for PCA9685Driver")
            smbus = importlib.import_module("smbus")
            bus = smbus.SMBus(1)

        self.bus = bus
        self.address = address
        self.debug = debug
        if self.debug:
            LOGGER.info("Resetting PCA9685 at 0x%02X", address)
        self.write(self.__MODE1, 0x00)

    def write(self, reg: int, value: int) -> None:
        """Write an 8-bit value to the specified register."""

        self.bus.write_byte_data(self.address, reg, value)
        if self.debug:
            LOGGER.info("I2C: Write 0x%02X to register 0x%02X", value, reg)

    def read(self, reg: int) -> int:
        """Read an unsigned byte from the device."""

        return self.bus.read_byte_data(self.address, reg) & 0xFF

    def set_pwm_freq(self, freq: float) -> None:
        """Set the PWM frequency shared by all channels."""

        prescaleval = 25000000.0 / float(PWM_RESOLUTION) / float(freq) - 1.0
        prescale = int(math.floor(prescaleval + 0.5))
        if self.debug:
            LOGGER.info("Setting PWM frequency to %s Hz (prescale=%s)", freq, prescale)

        oldmode = self.read(self.__MODE1)
        self.write(self.__MODE1, (oldmode & 0x7F) | 0x10)
        self.write(self.__PRESCALE, prescale)
        self.write(self.__MODE1, oldmode)
        time.sleep(0.005)
        self.write(self.__MODE1, oldmode | 0x80)

    def set_pwm(self, channel: int, on: int, off: int) -> None:
        """Set the on/off tick counts of a single channel."""

        self.write(self.__LED0_ON_L + 4 * channel, on & 0xFF)
        self.write(self.__LED0_ON_H + 4 * channel, on >> 8)
        self.write(self.__LED0_OFF_L + 4 * channel, off & 0xFF)
        self.write(self.__LED0_OFF_H + 4 * channel, off >> 8)

    def set_duty_cycle(self, channel: int, duty: float) -> None:
        """Drive ``channel`` at ``duty`` in ``[0, 1]``."""

        duty = max(0.0, min(1.0, float(duty)))
        self.set_pwm(channel, 0, int(round(duty * (PWM_RESOLUTION - 1))))
