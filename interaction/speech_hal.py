"""Thin speech HAL for offline diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


class SpeechEngineBackend(Protocol):
    """Minimal speech engine interface for offline probes."""

    def list_voices(self) -> list[str]:
        """Return available voice identifiers."""

    def open_engine(self) -> None:
        """Initialize and release a speech engine."""


@dataclass
class FakeSpeechBackend:
    """Fake speech backend for offline diagnostics."""

    voices: list[str] = field(default_factory=lambda: ["offline-voice"])
    can_open: bool = True

    def list_voices(self) -> list[str]:
        """Return configured fake voices."""

        return list(self.voices)

    def open_engine(self) -> None:
        """Simulate initializing a speech engine."""

        if not self.can_open:
            raise RuntimeError("Failed to open fake speech engine")
