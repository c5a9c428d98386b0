"""
Intent Domain Types - events, signals, confidence levels, transitions
Location: analytics/models.py
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    CLICK = "click"
    MODAL_OPEN = "modal_open"
    ACCORDION_EXPAND = "accordion_expand"
    VARIANT_CHANGE = "variant_change"
    SCROLL = "scroll"
    REVISIT = "revisit"
    EXIT_INTENT = "exit_intent"
    CHAT_OPEN = "chat_open"
    CHAT_MESSAGE = "chat_message"


INTERACTION_EVENTS = frozenset({
    EventType.CLICK,
    EventType.MODAL_OPEN,
    EventType.ACCORDION_EXPAND,
})


class SignalType(str, Enum):
    # Primary signals
    SIZE_CONTENT_INTERACTION = "SIZE_CONTENT_INTERACTION"
    USAGE_CONTENT_INTERACTION = "USAGE_CONTENT_INTERACTION"
    REVIEW_FIT_INTERACTION = "REVIEW_FIT_INTERACTION"
    RETURN_RISK_CHECK = "RETURN_RISK_CHECK"
    VARIANT_EXPLORATION = "VARIANT_EXPLORATION"

    # Supporting signals
    HIGH_ENGAGEMENT = "HIGH_ENGAGEMENT"
    REVISIT = "REVISIT"
    EXIT_HESITATION = "EXIT_HESITATION"

    # Chat signals
    EXPLICIT_QUERY = "EXPLICIT_QUERY"
    QUESTION_INDICATOR = "QUESTION_INDICATOR"


# Used by the combo rule. VARIANT_EXPLORATION is deliberately not a member.
PRIMARY_SIGNALS = frozenset({
    SignalType.SIZE_CONTENT_INTERACTION,
    SignalType.USAGE_CONTENT_INTERACTION,
    SignalType.REVIEW_FIT_INTERACTION,
    SignalType.RETURN_RISK_CHECK,
})


class ConfidenceLevel(str, Enum):
    NONE = "none"
    MEDIUM = "medium"
    STRONG = "strong"
    VERY_STRONG = "very_strong"

    @property
    def rank(self) -> int:
        return CONFIDENCE_ORDER.index(self)


CONFIDENCE_ORDER = [
    ConfidenceLevel.NONE,
    ConfidenceLevel.MEDIUM,
    ConfidenceLevel.STRONG,
    ConfidenceLevel.VERY_STRONG,
]


# ============================================================
# EVENTS + SIGNALS
# ============================================================

class RawEvent(BaseModel):
    """
    A validated behavioral event, as handed over by the ingestion layer.
    Never mutated after creation.
    """

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    timestamp: datetime
    session_id: str
    element_text: Optional[str] = None
    element_type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    event_id: Optional[str] = None


class SignalCandidate(BaseModel):
    """Mapper output: a scored classification not yet written to the store."""

    model_config = ConfigDict(frozen=True)

    signal_type: SignalType
    score_value: int
    is_explicit: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class NormalizedSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    raw_event_id: Optional[str] = None
    signal_type: SignalType
    score_value: int
    is_explicit: bool = False
    detected_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_candidate(
        cls,
        candidate: SignalCandidate,
        session_id: str,
        raw_event_id: Optional[str],
        detected_at: datetime,
    ) -> "NormalizedSignal":
        return cls(
            session_id=session_id,
            raw_event_id=raw_event_id,
            signal_type=candidate.signal_type,
            score_value=candidate.score_value,
            is_explicit=candidate.is_explicit,
            detected_at=detected_at,
            metadata=dict(candidate.metadata),
        )


class ConfidenceTransition(BaseModel):
    """Append-only audit record of an upward confidence move."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    from_confidence: ConfidenceLevel
    to_confidence: ConfidenceLevel
    score_at_transition: int
    triggering_signal: SignalType
    transitioned_at: datetime
