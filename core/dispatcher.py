"""Route policy decisions to speech, haptic and presentation collaborators."""

from __future__ import annotations

import uuid

from core.alert_policy import AlertDecision, AlertPolicyEngine
from core.logging import log_alert, logger
from hardware.haptic_motor import HapticOutput
from interaction.speech import SpeechOutput
from vision.detections import DetectionSet
from vision.overlay import PresentationSink, format_summary, overlay_boxes


LABEL_SPEECH_RATE = 0.6
PROXIMITY_SPEECH_RATE = 0.7
SPEECH_VOLUME = 1.0
HAPTIC_INTENSITY = 1.0
PROXIMITY_PHRASE = "Close object ahead"


class OutputDispatcher:
    """Fire-and-forget fan-out of one frame's results.

    Collaborator failures are logged here and never propagate back into the
    pipeline.
    """

    def __init__(
        self,
        policy: AlertPolicyEngine,
        speech: SpeechOutput | None = None,
        haptics: HapticOutput | None = None,
        presentation: PresentationSink | None = None,
    ) -> None:
        self._policy = policy
        self._speech = speech
        self._haptics = haptics
        self._presentation = presentation
        if speech is not None:
            speech.set_listener(policy)

    def present(self, detections: DetectionSet) -> str:
        """Send the summary text and boxes for ``detections`` to the display."""

        summary = format_summary(detections)
        if self._presentation is None:
            return summary
        try:
            self._presentation.present(summary, overlay_boxes(detections))
        except Exception:
            logger.exception("[DISPATCH] Presentation update failed")
        return summary

    def dispatch(self, decision: AlertDecision, now: float) -> None:
        """Issue every alert approved in ``decision``."""

        log_alert(decision.labels_to_announce, decision.haptic, decision.speak_proximity)
        if decision.haptic:
            self._pulse()

        # Utterances are serialized by the speech collaborator; the warning is queued first.
        if decision.speak_proximity:
            self._speak(PROXIMITY_PHRASE, PROXIMITY_SPEECH_RATE, now)

        for label in decision.labels_to_announce:
            self._speak(label, LABEL_SPEECH_RATE, now)

    def close(self) -> None:
        for name, collaborator in (("speech", self._speech), ("haptics", self._haptics)):
            if collaborator is None:
                continue
            try:
                collaborator.close()
            except Exception:
                logger.exception("[DISPATCH] Failed to close %s output", name)

    def _speak(self, text: str, rate: float, now: float) -> None:
        if self._speech is None:
            return
        utterance_id = uuid.uuid4().hex
        self._policy.mark_requested(utterance_id, now)
        try:
            self._speech.speak(text, rate, SPEECH_VOLUME, utterance_id)
        except Exception:
            logger.exception("[DISPATCH] Speech request failed for %r", text)
            self._policy.on_speech_cancelled(utterance_id)

    def _pulse(self) -> None:
        if self._haptics is None:
            return
        try:
            self._haptics.pulse(HAPTIC_INTENSITY)
        except Exception:
            logger.exception("[DISPATCH] Haptic pulse failed")
