from typing import Optional

from app.services.cache import CacheService
from schemas.intent import (
    DashboardMetrics,
    FeedItem,
    FeedPage,
    IntentStateView,
    Pagination,
    RecentEvent,
    SessionDetail,
    SessionInfo,
    SignalBreakdown,
    TransitionView,
)

FEED_DEFAULT_LIMIT = 20
FEED_MAX_LIMIT = 100
FEED_CONFIDENCE_FILTERS = {"medium", "strong", "very_strong"}


class IntentQueryService:
    """Read-only views over intent state for the dashboard."""

    def __init__(self, store, cache: CacheService):
        self.store = store
        self.cache = cache

    def session_detail(self, session_id: str) -> Optional[SessionDetail]:
        with self.store.reader() as uow:
            session = uow.sessions.get(session_id)
            if session is None:
                return None

            state = uow.intent_states.get(session_id)
            breakdown = uow.signals.breakdown(session_id)
            history = uow.transitions.history(session_id)
            recent = uow.raw_events.recent(session_id, limit=20)

        intent_state = None
        if state is not None:
            intent_state = IntentStateView(
                intent=state.intent,
                score=state.score,
                confidence=state.confidence.value,
                explicit_detected=state.explicit_detected,
                first_detected_at=state.first_detected_at,
                last_updated_at=state.last_updated_at,
                top_signals=[s.value for s in state.top_signals],
            )

        return SessionDetail(
            session=SessionInfo(**session),
            intent_state=intent_state,
            signal_breakdown=[SignalBreakdown(**row) for row in breakdown],
            transition_history=[TransitionView(**row) for row in history],
            recent_events=[RecentEvent(**row) for row in recent],
        )

    def metrics(self, shop_domain: str) -> DashboardMetrics:
        cache_key = f"dashboard:metrics:{shop_domain}"
        cached = self.cache.get(cache_key)
        if cached:
            return DashboardMetrics(**cached)

        with self.store.reader() as uow:
            row = uow.dashboard.metrics(shop_domain)

        metrics = DashboardMetrics(**row)
        self.cache.set(cache_key, metrics.model_dump())
        return metrics

    def feed(
        self,
        shop_domain: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        confidence: Optional[str] = None,
    ) -> FeedPage:
        page = max(1, page or 1)
        limit = min(FEED_MAX_LIMIT, max(1, limit or FEED_DEFAULT_LIMIT))
        offset = (page - 1) * limit

        # Unknown filter values are ignored rather than rejected.
        confidence_filter = confidence if confidence in FEED_CONFIDENCE_FILTERS else None

        with self.store.reader() as uow:
            rows, total = uow.dashboard.feed(shop_domain, confidence_filter, limit, offset)

        total_pages = (total + limit - 1) // limit
        return FeedPage(
            sessions=[
                FeedItem(**{**row, "top_signals": row.get("top_signals") or []})
                for row in rows
            ],
            pagination=Pagination(page=page, limit=limit, total=total, total_pages=total_pages),
        )
