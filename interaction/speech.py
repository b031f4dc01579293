"""Spoken output for alerts."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
import queue
import threading
from typing import Any, Protocol

from core.logging import logger


# Rates are normalized so that 0.5 is the engine's configured speaking speed.
NEUTRAL_RATE = 0.5


class SpeechListener(Protocol):
    """Receives utterance lifecycle reports."""

    def on_speech_started(self, utterance_id: str) -> None: ...

    def on_speech_finished(self, utterance_id: str) -> None: ...

    def on_speech_cancelled(self, utterance_id: str) -> None: ...


class SpeechOutput(Protocol):
    """Fire-and-forget speech collaborator."""

    def set_listener(self, listener: SpeechListener | None) -> None: ...

    def speak(self, text: str, rate: float, volume: float, utterance_id: str) -> None: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class _Utterance:
    text: str
    rate: float
    volume: float
    utterance_id: str


def words_per_minute_for(rate: float, base_words_per_minute: int) -> int:
    """Scale ``base_words_per_minute`` by a normalized ``rate``."""

    rate = max(0.0, min(1.0, float(rate)))
    return max(1, int(round(base_words_per_minute * rate / NEUTRAL_RATE)))


class LoggingSpeech:
    """Speech stand-in that logs utterances and reports them as completed."""

    def __init__(self) -> None:
        self._listener: SpeechListener | None = None

    def set_listener(self, listener: SpeechListener | None) -> None:
        self._listener = listener

    def speak(self, text: str, rate: float, volume: float, utterance_id: str) -> None:
        listener = self._listener
        if listener is not None:
            listener.on_speech_started(utterance_id)
        logger.info("[SPEECH] %s", text)
        if listener is not None:
            listener.on_speech_finished(utterance_id)

    def close(self) -> None:
        return None


class Pyttsx3Speech:
    """Offline text-to-speech on a dedicated worker thread.

    Utterances are serialized by the worker. The engine is created on the
    worker thread because several pyttsx3 drivers are bound to the thread
    that initialized them.
    """

    def __init__(
        self,
        words_per_minute: int = 175,
        voice: str | None = None,
        listener: SpeechListener | None = None,
    ) -> None:
        if importlib.util.find_spec("pyttsx3") is None:
            raise RuntimeError("pyttsx3 is required for Pyttsx3Speech")

        self._pyttsx3 = importlib.import_module("pyttsx3")
        self._words_per_minute = int(words_per_minute)
        self._voice = voice
        self._listener = listener
        self._q: queue.Queue[_Utterance | None] = queue.Queue()
        self._engine: Any = None
        self._closed = threading.Event()

        self._t = threading.Thread(target=self._worker, name="speech-worker", daemon=True)
        self._t.start()

    def set_listener(self, listener: SpeechListener | None) -> None:
        self._listener = listener

    def speak(self, text: str, rate: float, volume: float, utterance_id: str) -> None:
        if self._closed.is_set():
            self._report("cancelled", utterance_id)
            return
        self._q.put(_Utterance(text=text, rate=rate, volume=volume, utterance_id=utterance_id))
        # The worker may have stopped between the check above and the put.
        if self._closed.is_set():
            self.cancel_pending()

    def cancel_pending(self) -> int:
        """Drop queued utterances that have not started; return how many."""

        cancelled = 0
        saw_sentinel = False
        while True:
            try:
                item = self._q.get_nowait()
            except queue.Empty:
                break
            if item is None:
                saw_sentinel = True
                continue
            self._report("cancelled", item.utterance_id)
            cancelled += 1
        if saw_sentinel:
            self._q.put(None)
        return cancelled

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self.cancel_pending()
        self._q.put(None)
        engine = self._engine
        if engine is not None:
            try:
                engine.stop()
            except Exception:
                logger.exception("[SPEECH] Failed to stop speech engine")
        self._t.join(timeout=2.0)
        if self._t.is_alive():
            logger.warning("[SPEECH] Worker did not stop within timeout")

    def _worker(self) -> None:
        try:
            engine = self._pyttsx3.init()
            engine.connect("started-utterance", self._on_started)
            engine.connect("finished-utterance", self._on_finished)
            if self._voice:
                engine.setProperty("voice", self._voice)
        except Exception:
            logger.exception("[SPEECH] Failed to initialize pyttsx3 engine")
            self._closed.set()
            self.cancel_pending()
            return

        self._engine = engine
        logger.info("[SPEECH] Engine ready (words_per_minute=%s)", self._words_per_minute)

        while True:
            item = self._q.get()
            if item is None:
                break
            try:
                engine.setProperty("rate", words_per_minute_for(item.rate, self._words_per_minute))
                engine.setProperty("volume", max(0.0, min(1.0, float(item.volume))))
                engine.say(item.text, item.utterance_id)
                engine.runAndWait()
            except Exception:
                logger.exception("[SPEECH] Failed to speak utterance %s", item.utterance_id)
                self._report("cancelled", item.utterance_id)

    def _on_started(self, name: str) -> None:
        self._report("started", name)

    def _on_finished(self, name: str, completed: bool) -> None:
        self._report("finished" if completed else "cancelled", name)

    def _report(self, event: str, utterance_id: str) -> None:
        listener = self._listener
        if listener is None:
            return
        try:
            if event == "started":
                listener.on_speech_started(utterance_id)
            elif event == "finished":
                listener.on_speech_finished(utterance_id)
            else:
                listener.on_speech_cancelled(utterance_id)
        except Exception:
            logger.exception("[SPEECH] Listener failed on %s for %s", event, utterance_id)
