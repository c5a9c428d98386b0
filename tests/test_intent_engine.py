import pytest

from analytics.intent_config import IntentConfig
from analytics.intent_engine import IntentEngine
from analytics.models import ConfidenceLevel, SignalType

from app.repositories.memory import MemoryIntentStore

from conftest import OTHER_SESSION_ID, SESSION_ID, FrozenClock, make_event, run_event


def state_of(store, session_id=SESSION_ID):
    return store.intent_states.get(session_id)


def transitions_of(store, session_id=SESSION_ID):
    return [
        (t.from_confidence, t.to_confidence)
        for t in store.transitions
        if t.session_id == session_id
    ]


def test_event_without_signal_writes_nothing(engine, store):
    result = run_event(engine, store, make_event("click", "Add to cart"))

    assert result is None
    assert store.signals == []
    assert store.intent_states == {}
    assert store.transitions == []


def test_size_guide_click_reaches_medium(engine, store, clock):
    result = run_event(engine, store, make_event("click", "Size Guide"))

    assert result.adjusted_score == 4
    state = state_of(store)
    assert state.confidence == ConfidenceLevel.MEDIUM
    assert state.first_detected_at == clock.now
    assert state.top_signals == [SignalType.SIZE_CONTENT_INTERACTION]

    assert transitions_of(store) == [(ConfidenceLevel.NONE, ConfidenceLevel.MEDIUM)]
    transition = store.transitions[0]
    assert transition.score_at_transition == 4
    assert transition.triggering_signal == SignalType.SIZE_CONTENT_INTERACTION


def test_fit_question_in_chat_upgrades_to_strong(engine, store, clock):
    run_event(engine, store, make_event("click", "Size Guide"))
    first_detected = state_of(store).first_detected_at

    clock.advance(minutes=1)
    run_event(engine, store, make_event("chat_message", "Does this fit true to size?"))

    state = state_of(store)
    assert state.score == 9
    assert state.confidence == ConfidenceLevel.STRONG
    assert state.explicit_detected is True
    assert state.first_detected_at == first_detected
    assert transitions_of(store) == [
        (ConfidenceLevel.NONE, ConfidenceLevel.MEDIUM),
        (ConfidenceLevel.MEDIUM, ConfidenceLevel.STRONG),
    ]
    assert store.transitions[-1].triggering_signal == SignalType.EXPLICIT_QUERY


def test_variant_changes_are_capped(engine, store, clock):
    for _ in range(4):
        run_event(engine, store, make_event("variant_change", metadata={"variant_id": "v"}))
        clock.advance(seconds=20)

    state = state_of(store)
    assert state.score == 4
    assert state.confidence == ConfidenceLevel.MEDIUM
    assert state.top_signals == [SignalType.VARIANT_EXPLORATION]
    assert len(store.signals) == 4
    assert transitions_of(store) == [(ConfidenceLevel.NONE, ConfidenceLevel.MEDIUM)]


def test_confidence_holds_when_window_ages_out(engine, store, clock):
    run_event(engine, store, make_event("click", "Size Guide"))
    clock.advance(minutes=1)
    run_event(engine, store, make_event("chat_message", "what size fits me"))
    assert state_of(store).confidence == ConfidenceLevel.STRONG

    clock.advance(minutes=11)
    result = run_event(engine, store, make_event("revisit"))

    assert result.resolved_confidence == ConfidenceLevel.NONE
    state = state_of(store)
    assert state.confidence == ConfidenceLevel.STRONG
    assert state.score == 1
    assert state.last_updated_at == clock.now
    assert len(store.transitions) == 2
    assert result.transition is None


def test_combo_rule_floors_score_with_recent_primary():
    config = IntentConfig(signal_scores={"EXPLICIT_QUERY": 1})
    clock = FrozenClock()
    engine = IntentEngine(config, clock=clock)
    store = MemoryIntentStore()

    run_event(engine, store, make_event("chat_message", "how does sizing work"))
    assert state_of(store).confidence == ConfidenceLevel.NONE

    clock.advance(minutes=4)
    result = run_event(engine, store, make_event("click", "Returns"))

    # raw 1 + 2 = 3 would be none; the combo floor lifts it to strong
    assert result.aggregate.score == 3
    assert result.adjusted_score == 7
    assert state_of(store).confidence == ConfidenceLevel.STRONG
    assert store.transitions[-1].score_at_transition == 7
    assert store.transitions[-1].triggering_signal == SignalType.RETURN_RISK_CHECK


def test_latched_explicit_arms_combo_rule_after_age_out(engine, store, clock):
    run_event(engine, store, make_event("chat_message", "size?"))
    clock.advance(minutes=12)

    result = run_event(engine, store, make_event("click", "Return policy"))

    assert result.aggregate.explicit_detected is False
    assert result.aggregate.score == 2
    assert result.adjusted_score == 7
    state = state_of(store)
    assert state.explicit_detected is True
    assert state.confidence == ConfidenceLevel.STRONG


def test_no_combo_without_explicit(engine, store, clock):
    run_event(engine, store, make_event("click", "Return policy"))
    clock.advance(minutes=1)
    result = run_event(engine, store, make_event("click", "Customer reviews"))

    assert result.adjusted_score == 6
    assert state_of(store).confidence == ConfidenceLevel.MEDIUM


def test_combo_rule_helper(engine):
    assert engine.apply_combo_rule(3, explicit=True, has_recent_primary=True) == 7
    assert engine.apply_combo_rule(12, explicit=True, has_recent_primary=True) == 12
    assert engine.apply_combo_rule(3, explicit=True, has_recent_primary=False) == 3
    assert engine.apply_combo_rule(3, explicit=False, has_recent_primary=True) == 3


def test_transition_rows_match_persisted_increases(engine, store, clock):
    steps = [
        ("exit_intent", None),
        ("click", "size chart"),
        ("revisit", None),
        ("accordion_expand", "How to use"),
        ("modal_open", "reviews"),
        ("scroll", None),
    ]
    history = []
    for event_type, text in steps:
        run_event(engine, store, make_event(event_type, text))
        history.append(state_of(store).confidence)
        clock.advance(seconds=30)

    # persisted confidence is non-decreasing
    ranks = [level.rank for level in history]
    assert ranks == sorted(ranks)

    increases = [
        (before, after)
        for before, after in zip([ConfidenceLevel.NONE] + history, history)
        if after.rank > before.rank
    ]
    assert transitions_of(store) == increases


def test_sessions_are_independent(engine, store):
    run_event(engine, store, make_event("click", "Size Guide"))
    run_event(engine, store, make_event("exit_intent", session_id=OTHER_SESSION_ID))

    assert state_of(store).confidence == ConfidenceLevel.MEDIUM
    assert state_of(store, OTHER_SESSION_ID).confidence == ConfidenceLevel.NONE
    assert state_of(store, OTHER_SESSION_ID).score == 1
    assert transitions_of(store, OTHER_SESSION_ID) == []


def test_signals_carry_raw_event_reference(engine, store, clock):
    with store.unit_of_work(SESSION_ID) as uow:
        engine.process_event(make_event("click", "Size Guide"), uow, raw_event_id="raw-1")

    assert store.signals[0].raw_event_id == "raw-1"
    assert store.signals[0].detected_at == clock.now
    assert store.signals[0].metadata == {"matched_category": "fit", "element_text": "Size Guide"}


class ExplodingTransitions:
    def insert(self, transition):
        raise RuntimeError("disk full")


def test_failure_rolls_back_every_write(engine, store):
    with pytest.raises(RuntimeError):
        with store.unit_of_work(SESSION_ID) as uow:
            uow.transitions = ExplodingTransitions()
            engine.process_event(make_event("click", "Size Guide"), uow)

    assert store.signals == []
    assert store.intent_states == {}
    assert store.transitions == []
