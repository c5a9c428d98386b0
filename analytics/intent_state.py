"""
Intent State - per-session confidence record and its merge rule
Location: analytics/intent_state.py
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from analytics.models import ConfidenceLevel, SignalType

FIT_USAGE_INTENT = "fit_usage"


class IntentState(BaseModel):
    """
    One row per session.

    Invariants, all enforced by merge():
    - confidence never decreases
    - explicit_detected is a latch (false -> true only)
    - first_detected_at is written once, on the first level above none
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    intent: str = FIT_USAGE_INTENT
    score: int = 0
    confidence: ConfidenceLevel = ConfidenceLevel.NONE
    explicit_detected: bool = False
    first_detected_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None
    top_signals: List[SignalType] = []

    @classmethod
    def merge(
        cls,
        prior: Optional["IntentState"],
        *,
        session_id: str,
        score: int,
        confidence: ConfidenceLevel,
        explicit_detected: bool,
        top_signals: List[SignalType],
        now: datetime,
    ) -> "IntentState":
        """
        Build the next state from the persisted one and a fresh evaluation.

        `score` is stored as computed, so it can go down as signals age out.
        The persisted confidence cannot.
        """
        prior_confidence = prior.confidence if prior else ConfidenceLevel.NONE
        prior_explicit = prior.explicit_detected if prior else False
        prior_first = prior.first_detected_at if prior else None

        next_confidence = confidence if confidence.rank > prior_confidence.rank else prior_confidence

        first_detected_at = prior_first
        if first_detected_at is None and next_confidence != ConfidenceLevel.NONE:
            first_detected_at = now

        return cls(
            session_id=session_id,
            score=score,
            confidence=next_confidence,
            explicit_detected=prior_explicit or explicit_detected,
            first_detected_at=first_detected_at,
            last_updated_at=now,
            top_signals=list(top_signals),
        )
