"""
Shared utility functions for ID generation and text cleanup.
"""

import re
from typing import Optional


def slugify(text: str) -> str:
    """Convert text to a URL-safe slug."""
    text = text.strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def row_id(prefix: str, index: int, extra: Optional[str] = None) -> str:
    """
    Positional grant id for a source row: ("eaf", 12) → "eaf-00012".

    Optional ``extra`` is appended after stripping non-alphanumerics.
    """
    suffix = ""
    if extra:
        suffix = "-" + re.sub(r"[^a-z0-9]", "", extra, flags=re.IGNORECASE)[:30]
    return f"{prefix}-{index:05d}{suffix}"


def residual_id(grantmaker: str, year: str) -> str:
    """
    Deterministic id for a residual record.

    Examples:
        >>> residual_id("Founders Pledge", "2023")
        'residual-founders-pledge-2023'
    """
    key = re.sub(r"\s+", "-", grantmaker.strip().lower())
    return f"residual-{key}-{year}"


def clean_text(text: Optional[str]) -> Optional[str]:
    """
    Trim text and collapse runs of spaces, keeping paragraph breaks.

    Returns None for empty input.
    """
    if text is None:
        return None
    text = str(text)
    text = re.sub(r"[ \t\r\f\v]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n\n+", "\n\n", text)
    text = text.strip()
    return text or None


def clean_line(text: Optional[str]) -> Optional[str]:
    """Single-line variant of clean_text: all whitespace collapses to one space."""
    if text is None:
        return None
    text = re.sub(r"\s+", " ", str(text)).strip()
    return text or None


def split_list(value: Optional[str], sep: str = ",") -> list:
    """Split a delimited cell into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in str(value).split(sep) if item.strip()]


def dedupe_preserving_order(items) -> list:
    """Remove duplicates while keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
