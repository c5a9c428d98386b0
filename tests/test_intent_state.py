from datetime import timedelta

from analytics.intent_state import IntentState
from analytics.models import ConfidenceLevel, SignalType

from conftest import SESSION_ID, START


def merge(prior, confidence, score=0, explicit=False, now=START, top=None):
    return IntentState.merge(
        prior,
        session_id=SESSION_ID,
        score=score,
        confidence=confidence,
        explicit_detected=explicit,
        top_signals=top or [],
        now=now,
    )


def test_first_state_from_nothing():
    state = merge(None, ConfidenceLevel.MEDIUM, score=4, top=[SignalType.SIZE_CONTENT_INTERACTION])

    assert state.confidence == ConfidenceLevel.MEDIUM
    assert state.score == 4
    assert state.first_detected_at == START
    assert state.last_updated_at == START
    assert state.top_signals == [SignalType.SIZE_CONTENT_INTERACTION]


def test_state_at_none_has_no_first_detection():
    state = merge(None, ConfidenceLevel.NONE, score=1)
    assert state.first_detected_at is None


def test_confidence_never_regresses_but_score_does():
    prior = merge(None, ConfidenceLevel.STRONG, score=9)
    later = START + timedelta(minutes=11)

    state = merge(prior, ConfidenceLevel.NONE, score=1, now=later)

    assert state.confidence == ConfidenceLevel.STRONG
    assert state.score == 1
    assert state.last_updated_at == later


def test_first_detected_at_is_set_once():
    first = merge(None, ConfidenceLevel.MEDIUM, score=4)
    second = merge(first, ConfidenceLevel.VERY_STRONG, score=12, now=START + timedelta(minutes=3))

    assert second.first_detected_at == START


def test_explicit_flag_is_a_latch():
    latched = merge(None, ConfidenceLevel.MEDIUM, explicit=True)
    state = merge(latched, ConfidenceLevel.MEDIUM, explicit=False, now=START + timedelta(minutes=30))

    assert state.explicit_detected is True
