"""
Confidence Resolver
Location: analytics/confidence.py

Rules:
- Score ranges use inclusive lower bounds; the highest matching band wins
- Only upward movement counts as a transition
- Unknown labels never count as an upgrade
"""

from typing import Optional, Union

from analytics.intent_config import IntentConfig
from analytics.models import ConfidenceLevel

LevelLike = Union[ConfidenceLevel, str, None]


def parse_level(value: LevelLike) -> Optional[ConfidenceLevel]:
    if isinstance(value, ConfidenceLevel):
        return value
    try:
        return ConfidenceLevel(value)
    except ValueError:
        return None


class ConfidenceResolver:
    def __init__(self, config: IntentConfig):
        self.thresholds = config.thresholds

    def score_to_confidence(self, score: float) -> ConfidenceLevel:
        if score >= self.thresholds.very_strong:
            return ConfidenceLevel.VERY_STRONG
        if score >= self.thresholds.strong:
            return ConfidenceLevel.STRONG
        if score >= self.thresholds.medium:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.NONE

    @staticmethod
    def is_upgrade(from_level: LevelLike, to_level: LevelLike) -> bool:
        """
        True only if `to_level` ranks strictly above `from_level`.

        Sole gate for writing a transition record. Downward moves caused by
        window decay are never logged.
        """
        start = parse_level(from_level)
        end = parse_level(to_level)
        if start is None or end is None:
            return False
        return end.rank > start.rank
