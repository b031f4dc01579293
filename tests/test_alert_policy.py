"""Tests for the alert policy engine."""

from __future__ import annotations

import threading

import pytest

from core.alert_policy import AlertDecision, AlertPolicyEngine, AlertSettings, SpeechState


@pytest.mark.parametrize("elapsed", [0.0, 0.5, 2.99, 2.999999])
def test_label_is_debounced_inside_interval(elapsed: float) -> None:
    """A label is not announced again inside the debounce interval."""

    policy = AlertPolicyEngine()

    assert policy.should_announce("Chair", 10.0) is True
    assert policy.should_announce("Chair", 10.0 + elapsed) is False


@pytest.mark.parametrize("elapsed", [3.0, 3.1, 5.9])
def test_label_is_announced_again_after_interval(elapsed: float) -> None:
    """A label is announced again once the debounce interval has elapsed."""

    policy = AlertPolicyEngine()

    assert policy.should_announce("Chair", 10.0) is True
    assert policy.should_announce("Chair", 10.0 + elapsed) is True


def test_rejected_announcement_does_not_refresh_timestamp() -> None:
    """Rejected announcements leave the last announced time unchanged."""

    policy = AlertPolicyEngine()

    policy.should_announce("Door", 0.0)
    assert policy.should_announce("Door", 2.0) is False
    assert policy.last_announced("Door") == 0.0
    assert policy.should_announce("Door", 3.0) is True
    assert policy.last_announced("Door") == 3.0


def test_labels_are_debounced_independently() -> None:
    """Each label keeps its own debounce window."""

    policy = AlertPolicyEngine()

    assert policy.should_announce("Chair", 0.0) is True
    assert policy.should_announce("Person", 1.0) is True
    assert policy.should_announce("Chair", 1.0) is False


def test_purge_removes_labels_older_than_cleanup_interval() -> None:
    """Purge drops labels announced at least cleanup_s ago."""

    policy = AlertPolicyEngine()
    policy.should_announce("Chair", 0.0)
    policy.should_announce("Person", 4.0)

    expired = policy.purge(6.0)

    assert expired == ["Chair"]
    assert policy.tracked_labels() == ["Person"]


def test_evaluate_runs_cleanup_on_every_batch() -> None:
    """Every evaluation batch also purges stale labels."""

    policy = AlertPolicyEngine()
    policy.evaluate(["Chair"], near=False, now=0.0)

    policy.evaluate([], near=False, now=6.5)

    assert policy.tracked_labels() == []


def test_evaluate_deduplicates_labels_within_frame() -> None:
    """Repeated labels in one frame are announced once."""

    policy = AlertPolicyEngine()

    decision = policy.evaluate(["Chair", "Chair", "Person"], near=False, now=0.0)

    assert decision.labels_to_announce == ("Chair", "Person")
    assert decision.haptic is False
    assert decision.speak_proximity is False


def test_near_event_fires_haptic_and_speech_when_idle() -> None:
    """A near object pulses and speaks when nothing is being spoken."""

    policy = AlertPolicyEngine()

    decision = policy.evaluate([], near=True, now=0.0)

    assert decision == AlertDecision(labels_to_announce=(), haptic=True, speak_proximity=True)


def test_near_event_while_speaking_only_pulses() -> None:
    """A near object only pulses while an utterance is playing."""

    policy = AlertPolicyEngine()
    policy.mark_requested("u1", now=0.0)
    policy.on_speech_started("u1")

    first = policy.evaluate([], near=True, now=0.1)
    second = policy.evaluate([], near=True, now=0.2)

    assert policy.speaking is True
    assert (first.haptic, first.speak_proximity) == (True, False)
    assert (second.haptic, second.speak_proximity) == (True, False)

    policy.on_speech_finished("u1")
    assert policy.speaking is False
    assert policy.evaluate([], near=True, now=0.3).speak_proximity is True


def test_proximity_gate_has_no_debounce() -> None:
    """Proximity speech is not rate limited by time."""

    policy = AlertPolicyEngine()

    assert policy.should_alert_proximity(0.0) is True
    assert policy.should_alert_proximity(0.01) is True


def test_speech_state_machine_transitions() -> None:
    """Speech state follows requested, started and cancelled reports."""

    policy = AlertPolicyEngine()
    assert policy.speech_state is SpeechState.IDLE

    policy.mark_requested("u1", now=0.0)
    assert policy.speech_state is SpeechState.REQUESTED
    assert policy.speaking is False

    policy.on_speech_started("u1")
    assert policy.speech_state is SpeechState.SPEAKING

    policy.on_speech_cancelled("u1")
    assert policy.speech_state is SpeechState.IDLE


def test_speaking_until_every_started_utterance_ends() -> None:
    """Speaking stays true until all started utterances finish."""

    policy = AlertPolicyEngine()
    for utterance_id in ("a", "b"):
        policy.mark_requested(utterance_id, now=0.0)
        policy.on_speech_started(utterance_id)

    policy.on_speech_finished("a")
    assert policy.speaking is True
    policy.on_speech_finished("b")
    assert policy.speaking is False


def test_unknown_completion_reports_are_ignored() -> None:
    """Reports for unknown utterance ids do not change state."""

    policy = AlertPolicyEngine()
    policy.mark_requested("u1", now=0.0)
    policy.on_speech_started("u1")

    policy.on_speech_finished("someone-else")

    assert policy.speaking is True


def test_unconfirmed_requests_fail_open_and_expire() -> None:
    """Unconfirmed requests do not block proximity speech and expire on purge."""

    policy = AlertPolicyEngine()
    policy.mark_requested("lost", now=0.0)

    assert policy.speaking is False
    assert policy.evaluate([], near=True, now=1.0).speak_proximity is True

    policy.purge(6.0)
    assert policy.speech_state is SpeechState.IDLE
    assert policy.get_runtime_status()["pending_utterances"] == 0


def test_settings_from_config() -> None:
    """Alert settings read the alerts section with derived cleanup."""

    settings = AlertSettings.from_config({"alerts": {"debounce_s": 2.0}})
    assert settings == AlertSettings(debounce_s=2.0, cleanup_s=4.0)
    assert AlertSettings.from_config({}) == AlertSettings()


def test_custom_debounce_interval() -> None:
    """Configured intervals replace the defaults."""

    policy = AlertPolicyEngine(AlertSettings(debounce_s=1.0, cleanup_s=2.0))

    assert policy.should_announce("Cup", 0.0) is True
    assert policy.should_announce("Cup", 1.0) is True
    policy.purge(3.0)
    assert policy.tracked_labels() == []


def test_concurrent_announcements_approve_label_once() -> None:
    """Concurrent callers approve a label exactly once."""

    policy = AlertPolicyEngine()
    approvals: list[bool] = []
    approvals_lock = threading.Lock()
    barrier = threading.Barrier(8)

    def _worker() -> None:
        barrier.wait()
        result = policy.should_announce("Chair", 1.0)
        with approvals_lock:
            approvals.append(result)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert approvals.count(True) == 1


def test_cleanup_shorter_than_debounce_is_raised() -> None:
    """A short cleanup interval must not let a label repeat inside the debounce window."""

    settings = AlertSettings.from_config({"alerts": {"debounce_s": 3.0, "cleanup_s": 1.0}})
    assert settings.cleanup_s == 3.0

    policy = AlertPolicyEngine(settings)
    assert policy.evaluate(["Chair"], near=False, now=0.0).labels_to_announce == ("Chair",)
    policy.evaluate([], near=False, now=1.5)
    assert policy.evaluate(["Chair"], near=False, now=2.0).labels_to_announce == ()
