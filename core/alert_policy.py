"""Alert policy: per-label speech debounce and the proximity alert gate."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import threading
import time
from typing import Iterable, Mapping

from core.logging import logger


class SpeechState(str, Enum):
    """Lifecycle of spoken output as reported by the speech collaborator."""

    IDLE = "idle"
    REQUESTED = "requested"
    SPEAKING = "speaking"


@dataclass(frozen=True)
class AlertSettings:
    """Timing settings for announcement debounce."""

    debounce_s: float = 3.0
    cleanup_s: float = 6.0

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> "AlertSettings":
        alerts_cfg = config.get("alerts") if isinstance(config, Mapping) else None
        if not isinstance(alerts_cfg, Mapping):
            return cls()
        debounce_s = float(alerts_cfg.get("debounce_s", 3.0))
        cleanup_s = float(alerts_cfg.get("cleanup_s", debounce_s * 2))
        if cleanup_s < debounce_s:
            logger.warning(
                "[ALERT] cleanup_s=%.2f is shorter than debounce_s=%.2f; using debounce_s",
                cleanup_s,
                debounce_s,
            )
            cleanup_s = debounce_s
        return cls(debounce_s=debounce_s, cleanup_s=cleanup_s)


@dataclass(frozen=True)
class AlertDecision:
    """Alerts approved for one processed frame."""

    labels_to_announce: tuple[str, ...] = ()
    haptic: bool = False
    speak_proximity: bool = False

    @property
    def any(self) -> bool:
        return bool(self.labels_to_announce) or self.haptic or self.speak_proximity


class AlertPolicyEngine:
    """Owns announcement history and speech state behind a single lock.

    The detection worker calls ``evaluate`` while the speech collaborator
    reports utterance start/finish/cancel from its own thread, so every read
    and write of the state below happens under ``self._lock``.
    """

    def __init__(self, settings: AlertSettings | None = None) -> None:
        self.settings = settings or AlertSettings()
        self._lock = threading.Lock()
        self._last_announced: dict[str, float] = {}
        self._requested: dict[str, float] = {}
        self._active: set[str] = set()
        self._state = SpeechState.IDLE
        self._proximity_suppressed = 0

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> "AlertPolicyEngine":
        return cls(AlertSettings.from_config(config))

    @property
    def speaking(self) -> bool:
        with self._lock:
            return self._state is SpeechState.SPEAKING

    @property
    def speech_state(self) -> SpeechState:
        with self._lock:
            return self._state

    def should_announce(self, label: str, now: float) -> bool:
        """Return whether ``label`` may be spoken now, recording it if so."""

        with self._lock:
            return self._should_announce_locked(label, now)

    def should_alert_proximity(self, now: float) -> bool:
        """Return whether the spoken proximity warning may fire now.

        Haptic feedback is not gated here; it fires on every near event.
        """

        with self._lock:
            return self._should_speak_proximity_locked(now)

    def purge(self, now: float) -> list[str]:
        """Drop announcement records at least ``cleanup_s`` old."""

        with self._lock:
            return self._purge_locked(now)

    def evaluate(self, labels: Iterable[str], near: bool, now: float) -> AlertDecision:
        """Decide every alert for one frame as a single batch."""

        with self._lock:
            approved: list[str] = []
            for label in labels:
                if label in approved:
                    continue
                if self._should_announce_locked(label, now):
                    approved.append(label)
            speak_proximity = near and self._should_speak_proximity_locked(now)
            self._purge_locked(now)

        return AlertDecision(
            labels_to_announce=tuple(approved),
            haptic=near,
            speak_proximity=speak_proximity,
        )

    def mark_requested(self, utterance_id: str, now: float | None = None) -> None:
        """Record that an utterance was handed to the speech collaborator."""

        with self._lock:
            self._requested[utterance_id] = now if now is not None else time.monotonic()
            self._refresh_state_locked("utterance requested")

    def on_speech_started(self, utterance_id: str) -> None:
        with self._lock:
            self._requested.pop(utterance_id, None)
            self._active.add(utterance_id)
            self._refresh_state_locked("utterance started")

    def on_speech_finished(self, utterance_id: str) -> None:
        self._release(utterance_id, "utterance finished")

    def on_speech_cancelled(self, utterance_id: str) -> None:
        self._release(utterance_id, "utterance cancelled")

    def get_runtime_status(self) -> dict[str, int | str]:
        with self._lock:
            return {
                "speech_state": self._state.value,
                "tracked_labels": len(self._last_announced),
                "pending_utterances": len(self._requested),
                "active_utterances": len(self._active),
                "proximity_speech_suppressed": self._proximity_suppressed,
            }

    def last_announced(self, label: str) -> float | None:
        with self._lock:
            return self._last_announced.get(label)

    def tracked_labels(self) -> list[str]:
        with self._lock:
            return sorted(self._last_announced)

    def _release(self, utterance_id: str, reason: str) -> None:
        with self._lock:
            known = utterance_id in self._active or utterance_id in self._requested
            self._active.discard(utterance_id)
            self._requested.pop(utterance_id, None)
            if not known:
                logger.debug("[ALERT] Ignoring report for unknown utterance %s", utterance_id)
                return
            self._refresh_state_locked(reason)

    def _should_announce_locked(self, label: str, now: float) -> bool:
        last = self._last_announced.get(label)
        if last is not None and (now - last) < self.settings.debounce_s:
            return False
        self._last_announced[label] = now
        return True

    def _should_speak_proximity_locked(self, now: float) -> bool:
        if self._state is SpeechState.SPEAKING:
            self._proximity_suppressed += 1
            logger.debug("[ALERT] Proximity speech suppressed at %.2f (already speaking)", now)
            return False
        return True

    def _purge_locked(self, now: float) -> list[str]:
        cleanup_s = self.settings.cleanup_s
        expired = [
            label
            for label, announced_at in self._last_announced.items()
            if (now - announced_at) >= cleanup_s
        ]
        for label in expired:
            del self._last_announced[label]

        # Utterances never confirmed by the collaborator must not pile up.
        stale = [
            utterance_id
            for utterance_id, requested_at in self._requested.items()
            if (now - requested_at) >= cleanup_s
        ]
        for utterance_id in stale:
            del self._requested[utterance_id]
        if stale:
            self._refresh_state_locked("unconfirmed utterances expired")
        return expired

    def _refresh_state_locked(self, reason: str) -> None:
        if self._active:
            new_state = SpeechState.SPEAKING
        elif self._requested:
            new_state = SpeechState.REQUESTED
        else:
            new_state = SpeechState.IDLE

        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.debug("[ALERT] speech %s -> %s (%s)", old_state.value, new_state.value, reason)
