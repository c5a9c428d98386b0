import threading
from datetime import datetime, timezone

import pytest

from analytics.models import ConfidenceLevel, NormalizedSignal, SignalType
from app.repositories.memory import MemoryIntentStore
from app.services.event_service import EventService
from schemas.events import EventPayload

from conftest import ANON_ID, OTHER_SESSION_ID, SESSION_ID, SHOP


def a_signal(session_id=SESSION_ID):
    return NormalizedSignal(
        session_id=session_id,
        signal_type=SignalType.REVISIT,
        score_value=1,
        detected_at=datetime(2026, 10, 19, tzinfo=timezone.utc),
    )


def hold_scope(store, session_id, entered, release):
    with store.unit_of_work(session_id):
        entered.set()
        release.wait(timeout=5)


def try_scope(store, session_id, entered):
    with store.unit_of_work(session_id):
        entered.set()


def test_same_session_scopes_are_serialized():
    store = MemoryIntentStore()
    a_entered, a_release, b_entered = threading.Event(), threading.Event(), threading.Event()

    a = threading.Thread(target=hold_scope, args=(store, SESSION_ID, a_entered, a_release))
    a.start()
    assert a_entered.wait(timeout=5)

    b = threading.Thread(target=try_scope, args=(store, SESSION_ID, b_entered))
    b.start()
    assert not b_entered.wait(timeout=0.2)

    a_release.set()
    a.join(timeout=5)
    b.join(timeout=5)
    assert b_entered.is_set()


def test_different_sessions_run_in_parallel():
    store = MemoryIntentStore()
    a_entered, a_release, b_entered = threading.Event(), threading.Event(), threading.Event()

    a = threading.Thread(target=hold_scope, args=(store, SESSION_ID, a_entered, a_release))
    a.start()
    assert a_entered.wait(timeout=5)

    b = threading.Thread(target=try_scope, args=(store, OTHER_SESSION_ID, b_entered))
    b.start()
    assert b_entered.wait(timeout=5)

    a_release.set()
    a.join(timeout=5)
    b.join(timeout=5)


def test_writes_are_invisible_until_commit_and_dropped_on_error():
    store = MemoryIntentStore()

    with pytest.raises(ValueError):
        with store.unit_of_work(SESSION_ID) as uow:
            uow.signals.insert(a_signal())
            assert len(uow.signals.in_window(SESSION_ID, datetime.min.replace(tzinfo=timezone.utc))) == 1
            assert store.signals == []
            raise ValueError("boom")

    assert store.signals == []

    with store.unit_of_work(SESSION_ID) as uow:
        uow.signals.insert(a_signal())
    assert len(store.signals) == 1


def test_concurrent_events_for_one_session_log_each_upgrade_once(engine):
    store = MemoryIntentStore()
    service = EventService(store, engine)

    def send():
        service.ingest(EventPayload(
            event_type="click",
            timestamp="2026-10-19T12:00:00Z",
            session_id=SESSION_ID,
            anonymous_user_id=ANON_ID,
            shop_domain=SHOP,
            is_new_user=True,
            element_text="Size Guide",
        ))

    threads = [threading.Thread(target=send) for _ in range(12)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(store.signals) == 12
    assert len(store.raw_events) == 12
    assert [(t.from_confidence, t.to_confidence) for t in store.transitions] == [
        (ConfidenceLevel.NONE, ConfidenceLevel.MEDIUM),
        (ConfidenceLevel.MEDIUM, ConfidenceLevel.STRONG),
        (ConfidenceLevel.STRONG, ConfidenceLevel.VERY_STRONG),
    ]
    assert store.intent_states[SESSION_ID].score == 48
