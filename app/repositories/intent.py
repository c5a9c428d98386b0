"""
PostgreSQL repositories for the intent pipeline
Location: app/repositories/intent.py

Every repository shares the connection of one unit of work. Commit and
rollback belong to db.connection.transaction(), never to a repository.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from psycopg2.extras import Json

from analytics.intent_state import IntentState
from analytics.models import (
    ConfidenceLevel,
    ConfidenceTransition,
    NormalizedSignal,
    SignalType,
)
from app.repositories.base import BaseRepository
from db.connection import get_db, transaction
from schemas.events import EventPayload


# ============================================================
# WRITE SIDE
# ============================================================

class ShopRepository(BaseRepository):
    def ensure(self, shop_domain: str) -> None:
        self.run(
            """
            INSERT INTO shops (shop_domain)
            VALUES (%s)
            ON CONFLICT (shop_domain) DO NOTHING
            """,
            (shop_domain,),
        )


class SessionRepository(BaseRepository):
    def upsert(self, payload: EventPayload) -> None:
        # First non-null page context wins.
        self.run(
            """
            INSERT INTO sessions
                (session_id, anonymous_user_id, shop_domain, shopify_customer_id,
                 is_new_user, page_type, product_id, variant_id,
                 started_at, last_active_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, NOW(), NOW())
            ON CONFLICT (session_id) DO UPDATE SET
                last_active_at      = NOW(),
                shopify_customer_id = COALESCE(sessions.shopify_customer_id, EXCLUDED.shopify_customer_id),
                page_type           = COALESCE(sessions.page_type, EXCLUDED.page_type),
                product_id          = COALESCE(sessions.product_id, EXCLUDED.product_id),
                variant_id          = COALESCE(sessions.variant_id, EXCLUDED.variant_id)
            """,
            (
                str(payload.session_id),
                str(payload.anonymous_user_id),
                payload.shop_domain,
                payload.shopify_customer_id,
                payload.is_new_user,
                payload.page_type,
                payload.product_id,
                payload.variant_id,
            ),
        )

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self.fetchone(
            """
            SELECT session_id::text, anonymous_user_id::text, shop_domain,
                   shopify_customer_id, is_new_user, page_type, product_id,
                   variant_id, started_at, last_active_at
            FROM sessions
            WHERE session_id = %s
            """,
            (session_id,),
        )


class RawEventRepository(BaseRepository):
    def insert(self, payload: EventPayload, raw_event_id: str) -> bool:
        """
        Store the event as received. Returns False when the producer's
        event_id was already recorded for this session (duplicate delivery).
        """
        row = self.fetchone(
            """
            INSERT INTO raw_events
                (id, session_id, client_event_id, anonymous_user_id, shop_domain,
                 event_type, timestamp, page_url, page_type, product_id,
                 element_text, element_type, metadata)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (session_id, client_event_id) DO NOTHING
            RETURNING id
            """,
            (
                raw_event_id,
                str(payload.session_id),
                payload.event_id,
                str(payload.anonymous_user_id),
                payload.shop_domain,
                payload.event_type.value,
                payload.timestamp,
                payload.page_url,
                payload.page_type,
                payload.product_id,
                payload.element_text,
                payload.element_type,
                Json(payload.metadata) if payload.metadata else None,
            ),
        )
        return row is not None

    def recent(self, session_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        return self.fetchall(
            """
            SELECT event_type, timestamp, page_type, product_id,
                   element_text, element_type, metadata
            FROM raw_events
            WHERE session_id = %s
            ORDER BY timestamp DESC
            LIMIT %s
            """,
            (session_id, limit),
        )


class SignalRepository(BaseRepository):
    def insert(self, signal: NormalizedSignal) -> None:
        self.run(
            """
            INSERT INTO normalized_signals
                (session_id, raw_event_id, signal_type, intent_category,
                 score_value, is_explicit, detected_at, metadata)
            VALUES (%s, %s, %s, 'fit_usage', %s, %s, %s, %s)
            """,
            (
                signal.session_id,
                signal.raw_event_id,
                signal.signal_type.value,
                signal.score_value,
                signal.is_explicit,
                signal.detected_at,
                Json(signal.metadata) if signal.metadata else None,
            ),
        )

    def in_window(self, session_id: str, since: datetime) -> List[NormalizedSignal]:
        rows = self.fetchall(
            """
            SELECT session_id::text, raw_event_id::text, signal_type,
                   score_value, is_explicit, detected_at, metadata
            FROM normalized_signals
            WHERE session_id = %s
              AND detected_at > %s
            ORDER BY detected_at ASC, id ASC
            """,
            (session_id, since),
        )
        return [
            NormalizedSignal(
                session_id=row["session_id"],
                raw_event_id=row["raw_event_id"],
                signal_type=SignalType(row["signal_type"]),
                score_value=row["score_value"],
                is_explicit=row["is_explicit"],
                detected_at=row["detected_at"],
                metadata=row["metadata"] or {},
            )
            for row in rows
        ]

    def breakdown(self, session_id: str) -> List[Dict[str, Any]]:
        # All time, not the rolling window.
        return self.fetchall(
            """
            SELECT signal_type,
                   COUNT(*)::INT         AS event_count,
                   SUM(score_value)::INT AS total_score_contribution,
                   BOOL_OR(is_explicit)  AS any_explicit,
                   MIN(detected_at)      AS first_seen_at,
                   MAX(detected_at)      AS last_seen_at
            FROM normalized_signals
            WHERE session_id = %s
            GROUP BY signal_type
            ORDER BY total_score_contribution DESC, event_count DESC
            """,
            (session_id,),
        )


class IntentStateRepository(BaseRepository):
    def get(self, session_id: str) -> Optional[IntentState]:
        row = self.fetchone(
            """
            SELECT session_id::text, intent, score, confidence, explicit_detected,
                   first_detected_at, last_updated_at, top_signals
            FROM intent_states
            WHERE session_id = %s
            """,
            (session_id,),
        )
        if not row:
            return None

        return IntentState(
            session_id=row["session_id"],
            intent=row["intent"],
            score=row["score"],
            confidence=ConfidenceLevel(row["confidence"]),
            explicit_detected=row["explicit_detected"],
            first_detected_at=row["first_detected_at"],
            last_updated_at=row["last_updated_at"],
            top_signals=[SignalType(s) for s in (row["top_signals"] or [])],
        )

    def upsert(self, state: IntentState) -> None:
        # The latch and set-once rules are repeated in SQL so the row
        # cannot regress even if written outside IntentState.merge().
        self.run(
            """
            INSERT INTO intent_states
                (session_id, intent, score, confidence, explicit_detected,
                 first_detected_at, last_updated_at, top_signals)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (session_id) DO UPDATE SET
                score             = EXCLUDED.score,
                confidence        = EXCLUDED.confidence,
                explicit_detected = intent_states.explicit_detected OR EXCLUDED.explicit_detected,
                first_detected_at = COALESCE(intent_states.first_detected_at, EXCLUDED.first_detected_at),
                last_updated_at   = EXCLUDED.last_updated_at,
                top_signals       = EXCLUDED.top_signals
            """,
            (
                state.session_id,
                state.intent,
                state.score,
                state.confidence.value,
                state.explicit_detected,
                state.first_detected_at,
                state.last_updated_at,
                Json([s.value for s in state.top_signals]),
            ),
        )


class TransitionRepository(BaseRepository):
    def insert(self, transition: ConfidenceTransition) -> None:
        self.run(
            """
            INSERT INTO intent_transitions
                (session_id, intent, from_confidence, to_confidence,
                 score_at_transition, triggering_signal, transitioned_at)
            VALUES (%s, 'fit_usage', %s, %s, %s, %s, %s)
            """,
            (
                transition.session_id,
                transition.from_confidence.value,
                transition.to_confidence.value,
                transition.score_at_transition,
                transition.triggering_signal.value,
                transition.transitioned_at,
            ),
        )

    def history(self, session_id: str) -> List[Dict[str, Any]]:
        return self.fetchall(
            """
            SELECT from_confidence, to_confidence, score_at_transition,
                   triggering_signal, transitioned_at
            FROM intent_transitions
            WHERE session_id = %s
            ORDER BY transitioned_at ASC, id ASC
            """,
            (session_id,),
        )


# ============================================================
# READ SIDE (DASHBOARD)
# ============================================================

class DashboardRepository(BaseRepository):
    def metrics(self, shop_domain: str) -> Dict[str, int]:
        # LEFT JOIN keeps sessions that have not been scored yet.
        row = self.fetchone(
            """
            SELECT
                COUNT(DISTINCT s.session_id) FILTER (WHERE s.page_type = 'product')
                    AS total_pdp_sessions,
                COUNT(DISTINCT s.session_id) FILTER (WHERE i.confidence = 'medium')
                    AS medium_fit_sessions,
                COUNT(DISTINCT s.session_id) FILTER (WHERE i.confidence IN ('strong', 'very_strong'))
                    AS strong_plus_fit_sessions,
                COUNT(DISTINCT s.session_id) FILTER (WHERE s.is_new_user = TRUE)
                    AS new_user_sessions,
                COUNT(DISTINCT s.session_id) FILTER (WHERE s.is_new_user = FALSE)
                    AS returning_user_sessions
            FROM sessions s
            LEFT JOIN intent_states i ON s.session_id = i.session_id
            WHERE s.shop_domain = %s
            """,
            (shop_domain,),
        )
        return {k: int(v or 0) for k, v in (row or {}).items()}

    def feed(
        self,
        shop_domain: str,
        confidence: Optional[str],
        limit: int,
        offset: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        total_row = self.fetchone(
            """
            SELECT COUNT(*) AS total
            FROM sessions s
            INNER JOIN intent_states i ON s.session_id = i.session_id
            WHERE s.shop_domain = %s
              AND i.confidence != 'none'
              AND (%s::TEXT IS NULL OR i.confidence = %s)
            """,
            (shop_domain, confidence, confidence),
        )

        rows = self.fetchall(
            """
            SELECT
                s.session_id::text AS session_id,
                s.product_id,
                s.is_new_user,
                i.confidence,
                i.score,
                i.top_signals,
                i.explicit_detected,
                i.first_detected_at,
                i.last_updated_at,
                chat.element_text AS chat_snippet
            FROM sessions s
            INNER JOIN intent_states i ON s.session_id = i.session_id
            LEFT JOIN LATERAL (
                SELECT element_text
                FROM raw_events
                WHERE session_id = s.session_id
                  AND event_type = 'chat_message'
                  AND element_text IS NOT NULL
                ORDER BY timestamp DESC
                LIMIT 1
            ) chat ON TRUE
            WHERE s.shop_domain = %s
              AND i.confidence != 'none'
              AND (%s::TEXT IS NULL OR i.confidence = %s)
            ORDER BY i.last_updated_at DESC
            LIMIT %s
            OFFSET %s
            """,
            (shop_domain, confidence, confidence, limit, offset),
        )
        return rows, int(total_row["total"]) if total_row else 0


# ============================================================
# UNIT OF WORK
# ============================================================

class PostgresUnitOfWork:
    """All repositories bound to one connection / one transaction."""

    def __init__(self, conn):
        self.conn = conn
        self.shops = ShopRepository(conn)
        self.sessions = SessionRepository(conn)
        self.raw_events = RawEventRepository(conn)
        self.signals = SignalRepository(conn)
        self.intent_states = IntentStateRepository(conn)
        self.transitions = TransitionRepository(conn)
        self.dashboard = DashboardRepository(conn)


class PostgresIntentStore:
    @contextmanager
    def unit_of_work(self, session_id: str):
        """
        Atomic, per-session exclusive scope. The advisory lock serializes
        read-window -> write-state for one session; other sessions proceed
        in parallel.
        """
        with get_db() as conn:
            with transaction(conn, lock_key=session_id):
                yield PostgresUnitOfWork(conn)

    @contextmanager
    def reader(self):
        with get_db() as conn:
            with transaction(conn):
                yield PostgresUnitOfWork(conn)

    def ping(self) -> bool:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
            conn.rollback()
        return True
