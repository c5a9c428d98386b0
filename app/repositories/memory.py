"""
In-process intent store
Location: app/repositories/memory.py

Same unit-of-work contract as PostgresIntentStore, for local runs and tests:
- one threading.Lock per session key serializes writers of that session
- writes are staged on the unit of work and applied together on commit
- any exception inside the scope discards the staged writes
"""

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from analytics.intent_state import IntentState
from analytics.models import ConfidenceLevel, ConfidenceTransition, EventType, NormalizedSignal
from schemas.events import EventPayload


def _aware(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryIntentStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._session_locks: Dict[str, threading.Lock] = {}

        self.shops: Dict[str, datetime] = {}
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.raw_events: List[Dict[str, Any]] = []
        self.signals: List[NormalizedSignal] = []
        self.intent_states: Dict[str, IntentState] = {}
        self.transitions: List[ConfidenceTransition] = []

    def _session_lock(self, key: str) -> threading.Lock:
        with self._lock:
            return self._session_locks.setdefault(key, threading.Lock())

    @contextmanager
    def unit_of_work(self, session_id: str):
        with self._session_lock(session_id):
            uow = MemoryUnitOfWork(self)
            yield uow
            uow.commit()

    @contextmanager
    def reader(self):
        with self._lock:
            yield MemoryUnitOfWork(self)

    def ping(self) -> bool:
        return True


class MemoryUnitOfWork:
    def __init__(self, store: MemoryIntentStore):
        self.store = store

        self.staged_shops: Dict[str, datetime] = {}
        self.staged_sessions: Dict[str, Dict[str, Any]] = {}
        self.staged_raw_events: List[Dict[str, Any]] = []
        self.staged_signals: List[NormalizedSignal] = []
        self.staged_states: Dict[str, IntentState] = {}
        self.staged_transitions: List[ConfidenceTransition] = []

        self.shops = _Shops(self)
        self.sessions = _Sessions(self)
        self.raw_events = _RawEvents(self)
        self.signals = _Signals(self)
        self.intent_states = _IntentStates(self)
        self.transitions = _Transitions(self)
        self.dashboard = _Dashboard(self)

    def commit(self) -> None:
        store = self.store
        with store._lock:
            for domain, created in self.staged_shops.items():
                store.shops.setdefault(domain, created)
            store.sessions.update(self.staged_sessions)
            store.raw_events.extend(self.staged_raw_events)
            store.signals.extend(self.staged_signals)
            store.intent_states.update(self.staged_states)
            store.transitions.extend(self.staged_transitions)


# ============================================================
# REPOSITORIES
# ============================================================

class _Repo:
    def __init__(self, uow: MemoryUnitOfWork):
        self.uow = uow
        self.store = uow.store


class _Shops(_Repo):
    def ensure(self, shop_domain: str) -> None:
        if shop_domain not in self.store.shops:
            self.uow.staged_shops.setdefault(shop_domain, _now())


class _Sessions(_Repo):
    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        row = self.uow.staged_sessions.get(session_id) or self.store.sessions.get(session_id)
        return dict(row) if row else None

    def upsert(self, payload: EventPayload) -> None:
        session_id = str(payload.session_id)
        now = _now()
        existing = self.get(session_id)

        if existing is None:
            row = {
                "session_id": session_id,
                "anonymous_user_id": str(payload.anonymous_user_id),
                "shop_domain": payload.shop_domain,
                "shopify_customer_id": payload.shopify_customer_id,
                "is_new_user": payload.is_new_user,
                "page_type": payload.page_type,
                "product_id": payload.product_id,
                "variant_id": payload.variant_id,
                "started_at": now,
                "last_active_at": now,
            }
        else:
            row = existing
            row["last_active_at"] = now
            for field in ("shopify_customer_id", "page_type", "product_id", "variant_id"):
                if row.get(field) is None:
                    row[field] = getattr(payload, field)

        self.uow.staged_sessions[session_id] = row


class _RawEvents(_Repo):
    def _all(self) -> List[Dict[str, Any]]:
        return list(self.store.raw_events) + self.uow.staged_raw_events

    def insert(self, payload: EventPayload, raw_event_id: str) -> bool:
        session_id = str(payload.session_id)
        if payload.event_id is not None:
            for row in self._all():
                if row["session_id"] == session_id and row["client_event_id"] == payload.event_id:
                    return False

        self.uow.staged_raw_events.append({
            "id": raw_event_id,
            "session_id": session_id,
            "client_event_id": payload.event_id,
            "shop_domain": payload.shop_domain,
            "event_type": payload.event_type.value,
            "timestamp": payload.timestamp,
            "page_type": payload.page_type,
            "product_id": payload.product_id,
            "element_text": payload.element_text,
            "element_type": payload.element_type,
            "metadata": dict(payload.metadata) if payload.metadata else None,
        })
        return True

    def recent(self, session_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        rows = [r for r in self._all() if r["session_id"] == session_id]
        rows.sort(key=lambda r: _aware(r["timestamp"]), reverse=True)
        return [
            {k: r[k] for k in (
                "event_type", "timestamp", "page_type", "product_id",
                "element_text", "element_type", "metadata",
            )}
            for r in rows[:limit]
        ]

    def latest_chat_text(self, session_id: str) -> Optional[str]:
        chats = [
            r for r in self._all()
            if r["session_id"] == session_id
            and r["event_type"] == EventType.CHAT_MESSAGE.value
            and r["element_text"] is not None
        ]
        if not chats:
            return None
        return max(chats, key=lambda r: _aware(r["timestamp"]))["element_text"]


class _Signals(_Repo):
    def _for_session(self, session_id: str) -> List[NormalizedSignal]:
        return [
            s for s in list(self.store.signals) + self.uow.staged_signals
            if s.session_id == session_id
        ]

    def insert(self, signal: NormalizedSignal) -> None:
        self.uow.staged_signals.append(signal)

    def in_window(self, session_id: str, since: datetime) -> List[NormalizedSignal]:
        rows = [s for s in self._for_session(session_id) if s.detected_at > since]
        # Stable: signals sharing a detected_at keep insertion order.
        rows.sort(key=lambda s: s.detected_at)
        return rows

    def breakdown(self, session_id: str) -> List[Dict[str, Any]]:
        groups: Dict[str, Dict[str, Any]] = {}
        for s in self._for_session(session_id):
            g = groups.setdefault(s.signal_type.value, {
                "signal_type": s.signal_type.value,
                "event_count": 0,
                "total_score_contribution": 0,
                "any_explicit": False,
                "first_seen_at": s.detected_at,
                "last_seen_at": s.detected_at,
            })
            g["event_count"] += 1
            g["total_score_contribution"] += s.score_value
            g["any_explicit"] = g["any_explicit"] or s.is_explicit
            g["first_seen_at"] = min(g["first_seen_at"], s.detected_at)
            g["last_seen_at"] = max(g["last_seen_at"], s.detected_at)

        return sorted(
            groups.values(),
            key=lambda g: (g["total_score_contribution"], g["event_count"]),
            reverse=True,
        )


class _IntentStates(_Repo):
    def get(self, session_id: str) -> Optional[IntentState]:
        return self.uow.staged_states.get(session_id) or self.store.intent_states.get(session_id)

    def upsert(self, state: IntentState) -> None:
        self.uow.staged_states[state.session_id] = state


class _Transitions(_Repo):
    def insert(self, transition: ConfidenceTransition) -> None:
        self.uow.staged_transitions.append(transition)

    def history(self, session_id: str) -> List[Dict[str, Any]]:
        rows = [
            t for t in list(self.store.transitions) + self.uow.staged_transitions
            if t.session_id == session_id
        ]
        rows.sort(key=lambda t: t.transitioned_at)
        return [
            {
                "from_confidence": t.from_confidence.value,
                "to_confidence": t.to_confidence.value,
                "score_at_transition": t.score_at_transition,
                "triggering_signal": t.triggering_signal.value,
                "transitioned_at": t.transitioned_at,
            }
            for t in rows
        ]


class _Dashboard(_Repo):
    def _shop_sessions(self, shop_domain: str) -> List[Dict[str, Any]]:
        return [s for s in self.store.sessions.values() if s["shop_domain"] == shop_domain]

    def metrics(self, shop_domain: str) -> Dict[str, int]:
        sessions = self._shop_sessions(shop_domain)
        states = self.store.intent_states

        def confidence_of(s):
            state = states.get(s["session_id"])
            return state.confidence if state else None

        strong_plus = (ConfidenceLevel.STRONG, ConfidenceLevel.VERY_STRONG)
        return {
            "total_pdp_sessions": sum(1 for s in sessions if s["page_type"] == "product"),
            "medium_fit_sessions": sum(1 for s in sessions if confidence_of(s) == ConfidenceLevel.MEDIUM),
            "strong_plus_fit_sessions": sum(1 for s in sessions if confidence_of(s) in strong_plus),
            "new_user_sessions": sum(1 for s in sessions if s["is_new_user"] is True),
            "returning_user_sessions": sum(1 for s in sessions if s["is_new_user"] is False),
        }

    def feed(
        self,
        shop_domain: str,
        confidence: Optional[str],
        limit: int,
        offset: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        matched = []
        for s in self._shop_sessions(shop_domain):
            state = self.store.intent_states.get(s["session_id"])
            if state is None or state.confidence == ConfidenceLevel.NONE:
                continue
            if confidence is not None and state.confidence.value != confidence:
                continue
            matched.append((s, state))

        matched.sort(key=lambda pair: _aware(pair[1].last_updated_at), reverse=True)

        rows = [
            {
                "session_id": s["session_id"],
                "product_id": s["product_id"],
                "is_new_user": s["is_new_user"],
                "confidence": state.confidence.value,
                "score": state.score,
                "top_signals": [t.value for t in state.top_signals],
                "explicit_detected": state.explicit_detected,
                "first_detected_at": state.first_detected_at,
                "last_updated_at": state.last_updated_at,
                "chat_snippet": self.uow.raw_events.latest_chat_text(s["session_id"]),
            }
            for s, state in matched[offset:offset + limit]
        ]
        return rows, len(matched)
