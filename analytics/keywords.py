"""
Keyword vocabulary for signal classification.

Purpose:
- Centralize the default keyword lists per intent category
- Provide the single matching primitive used by the signal mapper

All matching is case-insensitive substring matching. The lists here are
defaults only; the active lists live on IntentConfig and can be replaced
per environment.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional


FIT_KEYWORDS: List[str] = [
    "size",
    "fit",
    "fits",
    "fitting",
    "measurement",
    "measurements",
    "dimension",
    "dimensions",
    "sizing",
    "size guide",
    "size chart",
    "how it fits",
    "true to size",
]

USAGE_KEYWORDS: List[str] = [
    "how to use",
    "how to wear",
    "instructions",
    "usage",
    "care",
    "maintain",
    "maintenance",
    "works with",
    "compatible",
    "suitable for",
    "recommended for",
    "best for",
]

RETURN_KEYWORDS: List[str] = [
    "return",
    "returns",
    "exchange",
    "refund",
    "send back",
    "return policy",
    "free return",
    "easy return",
]

REVIEW_KEYWORDS: List[str] = [
    "review",
    "reviews",
    "rating",
    "ratings",
    "runs small",
    "runs large",
    "true to size",
    "fits large",
    "fits small",
    "customer review",
]

QUESTION_WORDS: List[str] = [
    "?",
    "which",
    "what size",
    "how do i know",
    "should i",
    "will this fit",
    "does this",
    "not sure",
    "unsure",
    "help me choose",
]


DEFAULT_KEYWORDS: Dict[str, List[str]] = {
    "fit": FIT_KEYWORDS,
    "usage": USAGE_KEYWORDS,
    "return": RETURN_KEYWORDS,
    "review": REVIEW_KEYWORDS,
    "question": QUESTION_WORDS,
}


def normalize_text(text: Optional[str]) -> str:
    if not isinstance(text, str):
        return ""
    return text.strip().lower()


def contains_any(text: Optional[str], keywords: Iterable[str]) -> bool:
    """
    True if any keyword occurs in text.

    Examples:
        contains_any("Size Guide", FIT_KEYWORDS) -> True
        contains_any(None, FIT_KEYWORDS)         -> False
    """
    lowered = normalize_text(text)
    if not lowered:
        return False
    return any(kw.lower() in lowered for kw in keywords)
