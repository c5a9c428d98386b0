import os

# Must be set before any app module reads settings.
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone

import pytest

from analytics.intent_config import IntentConfig
from analytics.intent_engine import IntentEngine
from analytics.models import EventType, RawEvent
from app.repositories.memory import MemoryIntentStore

SESSION_ID = "3f1c2b9e-8a47-4d2e-9f0a-6c5b4d3e2f10"
OTHER_SESSION_ID = "7d6e5f4a-3b2c-4d1e-8f9a-0b1c2d3e4f50"
ANON_ID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"
SHOP = "demo-store.myshopify.com"

START = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Injectable clock; advance() moves time forward explicitly."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_event(event_type, element_text=None, metadata=None, session_id=SESSION_ID, **kwargs):
    return RawEvent(
        event_type=EventType(event_type),
        timestamp=kwargs.pop("timestamp", START),
        session_id=session_id,
        element_text=element_text,
        metadata=metadata or {},
        **kwargs,
    )


def run_event(engine, store, event):
    with store.unit_of_work(event.session_id) as uow:
        return engine.process_event(event, uow)


@pytest.fixture
def config():
    return IntentConfig()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return MemoryIntentStore()


@pytest.fixture
def engine(config, clock):
    return IntentEngine(config, clock=clock)
