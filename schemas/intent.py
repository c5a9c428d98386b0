from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime


class SessionInfo(BaseModel):
    session_id: str
    anonymous_user_id: str
    shop_domain: str
    shopify_customer_id: Optional[str] = None
    is_new_user: bool
    page_type: Optional[str] = None
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    started_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None


class IntentStateView(BaseModel):
    intent: str
    score: int
    confidence: str
    explicit_detected: bool
    first_detected_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None
    top_signals: List[str] = []


class SignalBreakdown(BaseModel):
    signal_type: str
    event_count: int
    total_score_contribution: int
    any_explicit: bool
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None


class TransitionView(BaseModel):
    from_confidence: str
    to_confidence: str
    score_at_transition: int
    triggering_signal: str
    transitioned_at: datetime


class RecentEvent(BaseModel):
    event_type: str
    timestamp: datetime
    page_type: Optional[str] = None
    product_id: Optional[str] = None
    element_text: Optional[str] = None
    element_type: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class SessionDetail(BaseModel):
    session: SessionInfo
    intent_state: Optional[IntentStateView] = None
    signal_breakdown: List[SignalBreakdown] = []
    transition_history: List[TransitionView] = []
    recent_events: List[RecentEvent] = []


class DashboardMetrics(BaseModel):
    total_pdp_sessions: int = 0
    medium_fit_sessions: int = 0
    strong_plus_fit_sessions: int = 0
    new_user_sessions: int = 0
    returning_user_sessions: int = 0


class FeedItem(BaseModel):
    session_id: str
    product_id: Optional[str] = None
    is_new_user: bool
    confidence: str
    score: int
    top_signals: List[str] = []
    explicit_detected: bool
    first_detected_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None
    chat_snippet: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class FeedPage(BaseModel):
    sessions: List[FeedItem]
    pagination: Pagination
