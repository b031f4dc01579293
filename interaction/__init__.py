"""Interaction package utilities."""

from interaction.speech import LoggingSpeech, Pyttsx3Speech, SpeechListener, SpeechOutput

__all__ = ["LoggingSpeech", "Pyttsx3Speech", "SpeechListener", "SpeechOutput"]
