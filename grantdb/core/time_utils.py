"""
Date utilities for grant records.

Sources publish dates at very different granularity (exact day, month,
quarter, half-year round, bare year). Everything is coerced to a single
representative ISO date string (YYYY-MM-DD) so records sort and compare
consistently.
"""

import re
from datetime import date, datetime
from typing import Optional

from dateutil import parser as dateparser


_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_QUARTER = re.compile(r"(\d{4})\s*Q([1-4])", re.IGNORECASE)
_HALF = re.compile(r"(\d{4})\D*H([12])\b", re.IGNORECASE)
_MONTH_YEAR = re.compile(r"^([A-Za-z]+)\.?\s+(\d{4})$")
_YEAR_ONLY = re.compile(r"^(\d{4})$")
_HAS_YEAR = re.compile(r"(?<!\d)\d{4}(?!\d)")

# Two unrelated defaults: a field dateutil filled in differs between them
_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

_MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4,
    "may": 5, "june": 6, "july": 7, "august": 8,
    "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7,
    "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}


def year_midpoint(year) -> str:
    """Representative date for a record only known to its year (July 1)."""
    return f"{int(year):04d}-07-01"


def quarter_start(year, quarter: int) -> str:
    """First day of a calendar quarter: (2025, 3) → "2025-07-01"."""
    month = (int(quarter) - 1) * 3 + 1
    return f"{int(year):04d}-{month:02d}-01"


def half_year_date(year, half: int) -> str:
    """Representative date for a half-year round: H1 → March 1, H2 → Sept 1."""
    return f"{int(year):04d}-03-01" if int(half) == 1 else f"{int(year):04d}-09-01"


def normalize_date(text) -> Optional[str]:
    """
    Coerce a raw date to YYYY-MM-DD.

    Examples:
        "2024-03-01T00:00:00Z" → "2024-03-01"
        "2025 Q3" → "2025-07-01"
        "SFF-2024-H2" → "2024-09-01"
        "October 2024" → "2024-10-01"
        "2024" → "2024-07-01"
        "15 April 2024" → "2024-04-15"
        "soon" → None

    Returns:
        Normalized date string, or None if the input cannot be parsed.
    """
    if text is None:
        return None
    if isinstance(text, date):
        return text.strftime("%Y-%m-%d")

    text = str(text).strip()
    if not text:
        return None

    iso = _ISO_PREFIX.match(text)
    if iso:
        return _valid_or_none(*(int(g) for g in iso.groups()))

    quarter = _QUARTER.search(text)
    if quarter:
        return quarter_start(quarter.group(1), int(quarter.group(2)))

    half = _HALF.search(text)
    if half:
        return half_year_date(half.group(1), int(half.group(2)))

    month_year = _MONTH_YEAR.match(text)
    if month_year:
        month = _MONTHS.get(month_year.group(1).lower())
        if month:
            return f"{month_year.group(2)}-{month:02d}-01"

    year_only = _YEAR_ONLY.match(text)
    if year_only:
        return year_midpoint(year_only.group(1))

    # Without an explicit year dateutil would borrow today's
    if not _HAS_YEAR.search(text):
        return None

    try:
        first, second = (dateparser.parse(text, default=d) for d in _DEFAULTS)
    except (ValueError, TypeError, OverflowError):
        return None
    if first.year != second.year:
        return None
    if first.month != second.month:
        return year_midpoint(first.year)
    if first.day != second.day:
        return f"{first.year:04d}-{first.month:02d}-01"
    return first.strftime("%Y-%m-%d")


def parse_iso_date(value: str) -> Optional[date]:
    """Parse a normalized YYYY-MM-DD string, returning None on failure."""
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return None


def days_apart(a: str, b: str) -> Optional[int]:
    """
    Absolute number of days between two normalized dates.

    Returns None if either date is unparseable.
    """
    da = parse_iso_date(a)
    db = parse_iso_date(b)
    if da is None or db is None:
        return None
    return abs((da - db).days)


def _valid_or_none(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).strftime("%Y-%m-%d")
    except ValueError:
        return None
