"""Configuration controller for YAML-based settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class ConfigPaths:
    """Filesystem paths for configuration files."""

    config_dir: Path
    config_file: Path
    override_file: Path


_DEFAULTS: dict[str, Any] = {
    "logging_level": "INFO",
    "file_logging_enabled": False,
    "log_file": "logs/blindgate.log",
    "camera": {
        "enabled": True,
        "fps_cap": 15,
        "size": [640, 480],
        "depth_enabled": False,
    },
    "detection": {
        "enabled": True,
        "model": "yolov8n.pt",
        "min_confidence": 0.6,
        "max_detections": 3,
    },
    "alerts": {
        "debounce_s": 3.0,
    },
    "speech": {
        "enabled": True,
        "words_per_minute": 175,
        "voice": None,
    },
    "haptics": {
        "enabled": False,
        "i2c_address": 0x40,
        "channel": 0,
        "pulse_ms": 120,
    },
}


class ConfigController:
    """Singleton controller for loading and updating configuration."""

    _instance: "ConfigController | None" = None

    def __init__(self, config_file: str = "default.yaml", config_dir: Path | None = None) -> None:
        if ConfigController._instance is not None:
            raise RuntimeError("You cannot create another ConfigController class")

        config_dir = config_dir if config_dir is not None else Path("config")
        self.paths = ConfigPaths(
            config_dir=config_dir,
            config_file=config_dir / config_file,
            override_file=config_dir / "override.yaml",
        )
        self.config: dict[str, Any] = {}
        self.load_config()

    @classmethod
    def get_instance(cls) -> "ConfigController":
        """Return the singleton instance of the controller."""

        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def load_config(self) -> None:
        """Load configuration from default and override YAML files.

        A missing default file is not an error; built-in defaults apply.
        """

        config: dict[str, Any] = {}
        if self.paths.config_file.exists():
            with self.paths.config_file.open("r", encoding="utf-8") as file:
                config = yaml.safe_load(file) or {}

        if self.paths.override_file.exists():
            with self.paths.override_file.open("r", encoding="utf-8") as file:
                override_config = yaml.safe_load(file) or {}
            if override_config:
                config = self._deep_merge(config, override_config)

        self.config = self._normalize_config(config)

    def save_config(self, config: dict[str, Any]) -> None:
        """Persist configuration to override.yaml, archiving previous overrides."""

        if self.paths.override_file.exists():
            archive_index = 1
            archive_file = self._archive_path(archive_index)
            while archive_file.exists():
                archive_index += 1
                archive_file = self._archive_path(archive_index)
            self.paths.override_file.rename(archive_file)

        self.paths.config_dir.mkdir(parents=True, exist_ok=True)
        with self.paths.override_file.open("w", encoding="utf-8") as file:
            yaml.safe_dump(config, file)

    def get_config(self) -> dict[str, Any]:
        """Return the currently loaded configuration."""

        return dict(self.config)

    def set_config(self, config: dict[str, Any]) -> None:
        """Set and persist configuration values."""

        self.config = self._normalize_config(config)
        self.save_config(self.config)

    def _archive_path(self, index: int) -> Path:
        """Return the archive path for a given override index."""

        filename = f"override_{index:04d}.yaml"
        return self.paths.config_dir / filename

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge dictionaries, overriding base values with override values."""

        merged = dict(base)
        for key, value in override.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _normalize_config(self, config: dict[str, Any]) -> dict[str, Any]:
        """Fill in defaults and coerce section values to their expected types."""

        normalized = self._deep_merge(_DEFAULTS, config if isinstance(config, dict) else {})

        camera_cfg = dict(normalized.get("camera") or {})
        camera_cfg["enabled"] = bool(camera_cfg.get("enabled", True))
        camera_cfg["fps_cap"] = max(1, self._as_int(camera_cfg.get("fps_cap"), 15))
        size = camera_cfg.get("size")
        if not (isinstance(size, (list, tuple)) and len(size) == 2):
            size = _DEFAULTS["camera"]["size"]
        camera_cfg["size"] = [self._as_int(size[0], 640), self._as_int(size[1], 480)]
        camera_cfg["depth_enabled"] = bool(camera_cfg.get("depth_enabled", False))
        normalized["camera"] = camera_cfg

        detection_cfg = dict(normalized.get("detection") or {})
        detection_cfg["enabled"] = bool(detection_cfg.get("enabled", True))
        detection_cfg["model"] = str(detection_cfg.get("model") or "yolov8n.pt")
        detection_cfg["min_confidence"] = self._as_float(detection_cfg.get("min_confidence"), 0.6)
        detection_cfg["max_detections"] = max(
            1, self._as_int(detection_cfg.get("max_detections"), 3)
        )
        normalized["detection"] = detection_cfg

        alerts_cfg = dict(normalized.get("alerts") or {})
        alerts_cfg["debounce_s"] = self._as_float(alerts_cfg.get("debounce_s"), 3.0)
        alerts_cfg["cleanup_s"] = self._as_float(
            alerts_cfg.get("cleanup_s"), alerts_cfg["debounce_s"] * 2
        )
        # cleanup_s never drops below debounce_s.
        alerts_cfg["cleanup_s"] = max(alerts_cfg["cleanup_s"], alerts_cfg["debounce_s"])
        normalized["alerts"] = alerts_cfg

        speech_cfg = dict(normalized.get("speech") or {})
        speech_cfg["enabled"] = bool(speech_cfg.get("enabled", True))
        speech_cfg["words_per_minute"] = self._as_int(speech_cfg.get("words_per_minute"), 175)
        voice = speech_cfg.get("voice")
        speech_cfg["voice"] = str(voice) if voice else None
        normalized["speech"] = speech_cfg

        haptics_cfg = dict(normalized.get("haptics") or {})
        haptics_cfg["enabled"] = bool(haptics_cfg.get("enabled", False))
        haptics_cfg["i2c_address"] = self._as_int(haptics_cfg.get("i2c_address"), 0x40)
        haptics_cfg["channel"] = self._as_int(haptics_cfg.get("channel"), 0)
        haptics_cfg["pulse_ms"] = max(1, self._as_int(haptics_cfg.get("pulse_ms"), 120))
        normalized["haptics"] = haptics_cfg

        normalized["logging_level"] = str(normalized.get("logging_level") or "INFO")
        normalized["file_logging_enabled"] = bool(normalized.get("file_logging_enabled", False))
        normalized["log_file"] = str(normalized.get("log_file") or "logs/blindgate.log")
        return normalized

    @staticmethod
    def _as_float(value: Any, default: float) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    @staticmethod
    def _as_int(value: Any, default: int) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default
