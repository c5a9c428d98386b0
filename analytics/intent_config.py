"""
Intent Policy Configuration - every tunable constant of the scoring pipeline
Location: analytics/intent_config.py

Scores, caps, windows, thresholds and keyword lists are policy data. They are
passed to each component at construction so that environments can tune them
(and tests can isolate them) without touching the algorithms.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from analytics.errors import PolicyConfigError
from analytics.keywords import DEFAULT_KEYWORDS
from analytics.models import SignalType


DEFAULT_SIGNAL_SCORES: Dict[SignalType, int] = {
    SignalType.SIZE_CONTENT_INTERACTION: 4,
    SignalType.USAGE_CONTENT_INTERACTION: 3,
    SignalType.REVIEW_FIT_INTERACTION: 4,
    SignalType.RETURN_RISK_CHECK: 2,
    SignalType.VARIANT_EXPLORATION: 2,   # per signal, capped by the aggregator
    SignalType.HIGH_ENGAGEMENT: 1,
    SignalType.REVISIT: 1,
    SignalType.EXIT_HESITATION: 1,
    SignalType.EXPLICIT_QUERY: 5,
    SignalType.QUESTION_INDICATOR: 1,
}


class ConfidenceThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    medium: int = 4
    strong: int = 7
    very_strong: int = 10

    @model_validator(mode="after")
    def _ascending(self):
        if not (self.medium < self.strong < self.very_strong):
            raise ValueError("confidence thresholds must be strictly ascending")
        return self


class KeywordLists(BaseModel):
    fit: List[str] = Field(default_factory=lambda: list(DEFAULT_KEYWORDS["fit"]))
    usage: List[str] = Field(default_factory=lambda: list(DEFAULT_KEYWORDS["usage"]))
    return_: List[str] = Field(
        default_factory=lambda: list(DEFAULT_KEYWORDS["return"]),
        alias="return",
    )
    review: List[str] = Field(default_factory=lambda: list(DEFAULT_KEYWORDS["review"]))
    question: List[str] = Field(default_factory=lambda: list(DEFAULT_KEYWORDS["question"]))

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("fit", "usage", "return_", "review", "question")
    @classmethod
    def _lowercase(cls, value: List[str]) -> List[str]:
        return [kw.strip().lower() for kw in value if kw and kw.strip()]


class IntentConfig(BaseModel):
    """
    Scoring policy. Defaults:

        window 10 min, combo window 5 min
        thresholds medium=4 / strong=7 / very_strong=10
        combo floor 7, variant cap 2
        high engagement: scroll >= 80% AND time on page >= 120 s
    """

    model_config = ConfigDict(frozen=True)

    signal_scores: Dict[SignalType, int] = Field(
        default_factory=lambda: dict(DEFAULT_SIGNAL_SCORES)
    )
    variant_exploration_cap: int = Field(default=2, ge=0)
    rolling_window_seconds: int = Field(default=10 * 60, gt=0)
    combo_window_seconds: int = Field(default=5 * 60, gt=0)
    thresholds: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)
    combo_minimum_score: int = 7
    scroll_depth_pct: float = 80
    time_on_page_seconds: float = 120
    keywords: KeywordLists = Field(default_factory=KeywordLists)

    @field_validator("signal_scores")
    @classmethod
    def _fill_missing_scores(cls, value: Dict[SignalType, int]) -> Dict[SignalType, int]:
        # Partial score tables override only the types they name.
        merged = dict(DEFAULT_SIGNAL_SCORES)
        merged.update(value)
        return merged

    @model_validator(mode="after")
    def _combo_inside_window(self):
        if self.combo_window_seconds > self.rolling_window_seconds:
            raise ValueError("combo window cannot be longer than the rolling window")
        return self

    def score_for(self, signal_type: SignalType) -> int:
        return self.signal_scores[signal_type]


def load_intent_config(path: Optional[str] = None) -> IntentConfig:
    """
    Build the policy from an optional JSON file.

    Keys missing from the file keep their defaults. Raises PolicyConfigError
    when the file cannot be read or does not validate.
    """
    if not path:
        return IntentConfig()

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return IntentConfig.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise PolicyConfigError(f"Invalid intent policy file {path}: {e}") from e
