"""
Money parsing utilities for USD grant amounts.

Handles various formats:
- "$1,234,567" → 1234567
- "1234567" → 1234567
- "$1.5M" → 1500000
- "$1,535,000 +$500,000‡" → 1535000 (matching pledge, base amount only)
"""

import re
from typing import Optional


# Magnitude multipliers
_MAGNITUDE_MAP = {
    # Long forms first so "million" isn't read as "m"
    "thousand": 1_000,
    "million": 1_000_000,
    "billion": 1_000_000_000,
    "bn": 1_000_000_000,
    "k": 1_000,
    "m": 1_000_000,
    "b": 1_000_000_000,
}

_AMOUNT_PATTERN = re.compile(
    r"^\s*(?:USD\s*)?\$?\s*(-?[\d,]*\.?\d+)\s*(thousand|million|billion|bn|[kmb])?\b",
    re.IGNORECASE,
)


def parse_usd_amount(text) -> Optional[float]:
    """
    Parse a USD amount from raw feed text.

    Only the leading amount counts: trailing matching pledges, footnote
    markers and notes are ignored.

    Examples:
        "$1,234,567" → 1234567.0
        "$1.5M" → 1500000.0
        "$1,535,000 +$500,000‡" → 1535000.0
        "not disclosed" → None

    Args:
        text: Raw amount cell (str, int or float)

    Returns:
        Amount in USD, or None if nothing parses. Sign is preserved so the
        caller can reject negative values with a proper reason.
    """
    if text is None:
        return None
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return float(text)

    text = re.sub(r"\s+", " ", str(text)).strip()
    if not text:
        return None

    match = _AMOUNT_PATTERN.match(text)
    if not match:
        return None

    number_str = match.group(1).replace(",", "")
    try:
        base_amount = float(number_str)
    except ValueError:
        return None

    magnitude = (match.group(2) or "").lower()
    multiplier = _MAGNITUDE_MAP.get(magnitude, 1)

    return base_amount * multiplier


def format_usd_millions(amount: Optional[float]) -> str:
    """
    Format a USD amount in millions for notes and reports.

    Examples:
        3_000_000 → "$3.0M"
        10_450_000 → "$10.4M"
    """
    if amount is None:
        return "-"
    return f"${amount / 1e6:.1f}M"
