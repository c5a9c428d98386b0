"""
Rolling Window Score Aggregator
Location: analytics/score_aggregator.py

Reads the session's signals from the trailing window, applies per-type caps
and returns the current score plus the facts the merge step needs.

Reads only. Given the same stored signals and the same `now`, repeated calls
return identical results.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, List, Sequence

from pydantic import BaseModel, ConfigDict

from analytics.intent_config import IntentConfig
from analytics.models import PRIMARY_SIGNALS, NormalizedSignal, SignalType

TOP_SIGNAL_COUNT = 3


class SignalFold(BaseModel):
    """
    Result of folding one window of signals.

    `score` is the capped sum; `frequencies` counts every signal, capped or
    not. They are kept apart so the cap is visible rather than implied.
    """

    model_config = ConfigDict(frozen=True)

    score: int = 0
    frequencies: dict = {}
    capped_count: int = 0
    explicit_detected: bool = False
    has_recent_primary_signal: bool = False


class AggregateScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = 0
    top_signal_types: List[SignalType] = []
    explicit_detected: bool = False
    has_recent_primary_signal: bool = False


class ScoreAggregator:
    def __init__(self, config: IntentConfig):
        self.config = config

    @property
    def rolling_window(self) -> timedelta:
        return timedelta(seconds=self.config.rolling_window_seconds)

    @property
    def combo_window(self) -> timedelta:
        return timedelta(seconds=self.config.combo_window_seconds)

    def window_start(self, now: datetime) -> datetime:
        return now - self.rolling_window

    def fold(self, signals: Iterable[NormalizedSignal], now: datetime) -> SignalFold:
        """Fold chronologically ordered signals into a capped score."""
        combo_start = now - self.combo_window
        cap = self.config.variant_exploration_cap

        score = 0
        variant_count = 0
        capped = 0
        explicit = False
        recent_primary = False
        frequencies: Counter = Counter()

        for signal in signals:
            if signal.is_explicit:
                explicit = True

            if signal.signal_type == SignalType.VARIANT_EXPLORATION:
                if variant_count < cap:
                    score += signal.score_value
                    variant_count += 1
                else:
                    capped += 1
            else:
                score += signal.score_value

            # Counter keeps first-seen order, which breaks frequency ties.
            frequencies[signal.signal_type] += 1

            if signal.signal_type in PRIMARY_SIGNALS and signal.detected_at > combo_start:
                recent_primary = True

        return SignalFold(
            score=score,
            frequencies=dict(frequencies),
            capped_count=capped,
            explicit_detected=explicit,
            has_recent_primary_signal=recent_primary,
        )

    @staticmethod
    def top_signal_types(frequencies: dict, limit: int = TOP_SIGNAL_COUNT) -> List[SignalType]:
        # sorted() is stable: equal counts stay in first-appearance order.
        ranked = sorted(frequencies.items(), key=lambda item: item[1], reverse=True)
        return [signal_type for signal_type, _ in ranked[:limit]]

    def summarize(self, signals: Sequence[NormalizedSignal], now: datetime) -> AggregateScore:
        folded = self.fold(signals, now)
        return AggregateScore(
            score=folded.score,
            top_signal_types=self.top_signal_types(folded.frequencies),
            explicit_detected=folded.explicit_detected,
            has_recent_primary_signal=folded.has_recent_primary_signal,
        )

    def aggregate(self, signal_repo, session_id: str, now: datetime) -> AggregateScore:
        """
        Score the session's window ending at `now`.

        `signal_repo` is any reader exposing
        `in_window(session_id, since) -> chronological list of NormalizedSignal`.
        """
        signals = signal_repo.in_window(session_id, self.window_start(now))
        return self.summarize(signals, now)
