"""
Signal Mapper - classifies one raw event into zero or more scored signals
Location: analytics/signal_mapper.py

Pure: no store access, no side effects. Scoring caps are applied later by
the aggregator, never here. Unknown or unclassifiable input yields [].
"""

from typing import Any, Dict, List, Optional

from analytics.intent_config import IntentConfig
from analytics.keywords import contains_any
from analytics.models import (
    INTERACTION_EVENTS,
    EventType,
    RawEvent,
    SignalCandidate,
    SignalType,
)


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class SignalMapper:
    def __init__(self, config: IntentConfig):
        self.config = config

        # Interaction priority: fit outranks usage, usage outranks returns,
        # returns outrank reviews. First match wins.
        keywords = config.keywords
        self._interaction_rules = [
            ("fit", keywords.fit, SignalType.SIZE_CONTENT_INTERACTION),
            ("usage", keywords.usage, SignalType.USAGE_CONTENT_INTERACTION),
            ("return", keywords.return_, SignalType.RETURN_RISK_CHECK),
            ("review", keywords.review, SignalType.REVIEW_FIT_INTERACTION),
        ]

    def _signal(
        self,
        signal_type: SignalType,
        is_explicit: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SignalCandidate:
        return SignalCandidate(
            signal_type=signal_type,
            score_value=self.config.score_for(signal_type),
            is_explicit=is_explicit,
            metadata=metadata or {},
        )

    def map_to_signals(self, event: RawEvent) -> List[SignalCandidate]:
        event_type = event.event_type
        text = event.element_text
        metadata = event.metadata or {}

        if event_type == EventType.CHAT_MESSAGE:
            return self._map_chat(text)

        if event_type in INTERACTION_EVENTS:
            for category, keywords, signal_type in self._interaction_rules:
                if contains_any(text, keywords):
                    return [self._signal(
                        signal_type,
                        metadata={"matched_category": category, "element_text": text},
                    )]
            return []

        if event_type == EventType.VARIANT_CHANGE:
            return [self._signal(
                SignalType.VARIANT_EXPLORATION,
                metadata={
                    "variant_id": metadata.get("variant_id"),
                    "from_variant": metadata.get("from_variant"),
                },
            )]

        if event_type == EventType.SCROLL:
            scroll_pct = _as_number(metadata.get("scroll_pct"))
            time_on_page = _as_number(metadata.get("time_on_page"))

            # Both thresholds, not either: filters out fast scrollers.
            if (
                scroll_pct >= self.config.scroll_depth_pct
                and time_on_page >= self.config.time_on_page_seconds
            ):
                return [self._signal(
                    SignalType.HIGH_ENGAGEMENT,
                    metadata={"scroll_pct": scroll_pct, "time_on_page": time_on_page},
                )]
            return []

        if event_type == EventType.REVISIT:
            return [self._signal(SignalType.REVISIT)]

        if event_type == EventType.EXIT_INTENT:
            return [self._signal(SignalType.EXIT_HESITATION)]

        return []

    def _map_chat(self, text: Optional[str]) -> List[SignalCandidate]:
        if contains_any(text, self.config.keywords.fit):
            return [self._signal(
                SignalType.EXPLICIT_QUERY,
                is_explicit=True,
                metadata={"matched_category": "fit", "element_text": text},
            )]

        if contains_any(text, self.config.keywords.question):
            return [self._signal(
                SignalType.QUESTION_INDICATOR,
                metadata={"matched_category": "question", "element_text": text},
            )]

        return []
