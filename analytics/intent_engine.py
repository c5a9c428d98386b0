"""
Fit Intent Engine - runs the full intent pipeline for a single raw event
Location: analytics/intent_engine.py

Pipeline:
    raw event
      -> SignalMapper.map_to_signals()       [pure]
      -> insert normalized signals           [write]
      -> ScoreAggregator.aggregate()         [read, rolling window]
      -> load prior IntentState              [read]
      -> explicit latch + combo rule         [pure]
      -> ConfidenceResolver                  [pure]
      -> IntentState.merge() + upsert        [write]
      -> transition insert, upward only      [write, conditional]

The engine never opens or commits a transaction. It is handed a unit of
work already scoped (and locked) to the event's session, and every write
goes through it, so the caller's commit or rollback covers all of them.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from analytics.confidence import ConfidenceResolver
from analytics.intent_config import IntentConfig
from analytics.intent_state import IntentState
from analytics.models import (
    ConfidenceLevel,
    ConfidenceTransition,
    NormalizedSignal,
    RawEvent,
)
from analytics.score_aggregator import AggregateScore, ScoreAggregator
from analytics.signal_mapper import SignalMapper

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PipelineResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    signals: List[NormalizedSignal]
    aggregate: AggregateScore
    adjusted_score: int
    resolved_confidence: ConfidenceLevel
    state: IntentState
    transition: Optional[ConfidenceTransition] = None


class IntentEngine:
    def __init__(
        self,
        config: IntentConfig,
        mapper: Optional[SignalMapper] = None,
        aggregator: Optional[ScoreAggregator] = None,
        resolver: Optional[ConfidenceResolver] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.mapper = mapper or SignalMapper(config)
        self.aggregator = aggregator or ScoreAggregator(config)
        self.resolver = resolver or ConfidenceResolver(config)
        self.clock = clock

    def apply_combo_rule(self, score: int, explicit: bool, has_recent_primary: bool) -> int:
        """Explicit query + a primary signal in the combo window floors the score."""
        if explicit and has_recent_primary:
            return max(score, self.config.combo_minimum_score)
        return score

    def process_event(
        self,
        event: RawEvent,
        uow,
        raw_event_id: Optional[str] = None,
    ) -> Optional[PipelineResult]:
        """
        Evaluate one event inside `uow`.

        Returns None when the event carries no signal; nothing is written
        in that case.
        """
        candidates = self.mapper.map_to_signals(event)
        if not candidates:
            logger.debug(
                "No signal for %s event (session_id=%s)",
                event.event_type.value, event.session_id,
            )
            return None

        session_id = event.session_id
        now = self.clock()

        signals = [
            NormalizedSignal.from_candidate(c, session_id, raw_event_id, now)
            for c in candidates
        ]
        for signal in signals:
            uow.signals.insert(signal)

        aggregate = self.aggregator.aggregate(uow.signals, session_id, now)

        prior = uow.intent_states.get(session_id)
        prior_confidence = prior.confidence if prior else ConfidenceLevel.NONE
        prior_explicit = prior.explicit_detected if prior else False

        effective_explicit = aggregate.explicit_detected or prior_explicit
        adjusted_score = self.apply_combo_rule(
            aggregate.score,
            effective_explicit,
            aggregate.has_recent_primary_signal,
        )
        resolved = self.resolver.score_to_confidence(adjusted_score)

        state = IntentState.merge(
            prior,
            session_id=session_id,
            score=adjusted_score,
            confidence=resolved,
            explicit_detected=effective_explicit,
            top_signals=aggregate.top_signal_types,
            now=now,
        )
        uow.intent_states.upsert(state)

        transition = None
        if self.resolver.is_upgrade(prior_confidence, resolved):
            # Attributed to the last signal of this event, not the causal one.
            transition = ConfidenceTransition(
                session_id=session_id,
                from_confidence=prior_confidence,
                to_confidence=resolved,
                score_at_transition=adjusted_score,
                triggering_signal=signals[-1].signal_type,
                transitioned_at=now,
            )
            uow.transitions.insert(transition)
            logger.info(
                "Intent upgraded %s -> %s (session_id=%s, score=%s, trigger=%s)",
                prior_confidence.value, resolved.value, session_id,
                adjusted_score, transition.triggering_signal.value,
            )

        return PipelineResult(
            signals=signals,
            aggregate=aggregate,
            adjusted_score=adjusted_score,
            resolved_confidence=resolved,
            state=state,
            transition=transition,
        )
