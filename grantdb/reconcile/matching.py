"""
Fuzzy matching helpers shared by the deduplicator.

Two records from different grantmakers describe the same underlying grant
when their recipients normalize to the same key, their amounts are within a
fixed ratio and their dates are close.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Optional

from grantdb.core.time_utils import days_apart


# Words that carry no identity in organization names
DEFAULT_STOPWORDS = frozenset({
    "inc", "llc", "ltd", "corporation", "corp", "foundation", "fund",
    "the", "of", "for", "and", "university", "institute", "project",
})


@dataclass(frozen=True)
class MatchPolicy:
    """Thresholds for cross-source duplicate detection."""
    max_amount_ratio: float = 1.10
    max_days_apart: int = 90
    stopwords: FrozenSet[str] = DEFAULT_STOPWORDS


DEFAULT_MATCH_POLICY = MatchPolicy()


def normalize_recipient(name: Optional[str], stopwords: FrozenSet[str] = DEFAULT_STOPWORDS) -> str:
    """
    Reduce an organization name to a comparison key.

    Examples:
        "The Malaria Foundation Inc" → "malaria"
        "Malaria Foundation" → "malaria"
        "Center for A.I. Safety" → "center ai safety"
    """
    if not name:
        return ""
    text = name.lower()
    text = re.sub(r"[^a-z0-9\s]", "", text)
    words = [w for w in text.split() if w not in stopwords]
    return " ".join(words)


def amounts_match(a: float, b: float, max_ratio: float = DEFAULT_MATCH_POLICY.max_amount_ratio) -> bool:
    """True if max(a, b) / min(a, b) is within ``max_ratio``; zero/negative never match."""
    if a is None or b is None or a <= 0 or b <= 0:
        return False
    return max(a, b) / min(a, b) <= max_ratio


def dates_close(a: str, b: str, max_days: int = DEFAULT_MATCH_POLICY.max_days_apart) -> bool:
    """True if two normalized dates are at most ``max_days`` apart."""
    diff = days_apart(a, b)
    if diff is None:
        return False
    return diff <= max_days


def is_fuzzy_duplicate(a, b, policy: MatchPolicy = DEFAULT_MATCH_POLICY) -> bool:
    """
    Pairwise rule for Layer 2.

    Callers are expected to have grouped by recipient key already; this only
    checks grantmaker, amount and date.
    """
    if a.grantmaker == b.grantmaker:
        return False
    return (
        amounts_match(a.amount, b.amount, policy.max_amount_ratio)
        and dates_close(a.date, b.date, policy.max_days_apart)
    )
