"""
Canonical domain models for the unified grants database.

These models represent the final, normalized data structures that every
pipeline stage (ingest, normalize, dedup, residuals, storage) exchanges.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any


class Category(str, Enum):
    """
    Closed sector taxonomy.

    Values are the short codes persisted in artifacts; ``label`` is the
    display name shown in reports and the UI.
    """
    LTXR = "LTXR"
    GH = "GH"
    AW = "AW"
    META = "Meta"
    OTHER = "Other"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]

    @classmethod
    def coerce(cls, value: Optional[str]) -> "Category":
        """
        Map a code or display label (any casing) onto the taxonomy.

        Unknown or empty values fall back to OTHER.
        """
        if isinstance(value, Category):
            return value
        if not value:
            return cls.OTHER

        key = value.strip().lower()
        for category in cls:
            if key == category.value.lower() or key == category.label.lower():
                return category
        return cls.OTHER


CATEGORY_LABELS = {
    Category.LTXR: "Long-Term & X-Risk",
    Category.GH: "Global Health",
    Category.AW: "Animal Welfare",
    Category.META: "Meta/Infrastructure",
    Category.OTHER: "Other",
}

# Descriptive fields dropped from the lean artifact consumed by the UI
HEAVY_FIELDS = ("description", "residual_note")


@dataclass
class Grant:
    """
    Canonical grant record.

    One philanthropic disbursement, either itemized (backed by a source
    record) or residual (a computed, clearly-labelled gap estimate).
    All source adapters produce this shape.
    """
    # Required fields
    id: str
    title: str
    recipient: str
    amount: float  # USD
    date: str  # YYYY-MM-DD
    grantmaker: str
    currency: str = "USD"

    # Descriptive
    description: Optional[str] = None
    url: Optional[str] = None

    # Classification
    category: Optional[str] = None  # Category code
    focus_area: Optional[str] = None
    fund: Optional[str] = None

    # Provenance / flags
    is_residual: bool = False
    residual_note: Optional[str] = None
    source_id: Optional[str] = None
    funders: List[str] = field(default_factory=list)
    country: Optional[str] = None
    topics: List[str] = field(default_factory=list)
    exclude_from_total: bool = False

    @property
    def year(self) -> str:
        return self.date[:4]

    @property
    def counts_toward_total(self) -> bool:
        return not self.exclude_from_total

    def to_dict(self, lean: bool = False) -> Dict[str, Any]:
        """
        Serialize to a JSON-ready dict.

        Optional fields that are unknown are omitted rather than written as
        null/empty. Boolean flags are only written when true.
        """
        data: Dict[str, Any] = {}
        for f in fields(self):
            if lean and f.name in HEAVY_FIELDS:
                continue
            value = getattr(self, f.name)
            if value is None or value == [] or value is False or value == "":
                continue
            data[f.name] = list(value) if isinstance(value, list) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Grant":
        """Build a Grant from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for list_field in ("funders", "topics"):
            if kwargs.get(list_field) is None:
                kwargs.pop(list_field, None)
            else:
                kwargs[list_field] = list(kwargs[list_field])
        return cls(**kwargs)


@dataclass
class ScrapeResult:
    """
    Output of a single source adapter run.

    ``errors`` holds one human-readable message per dropped row, or a single
    transport error when the whole source failed.
    """
    source: str
    grants: List[Grant] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    scraped_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def total_amount(self) -> float:
        return sum(g.amount for g in self.grants)

    def summary(self) -> str:
        """One-line summary: count, $M total, year range, error count."""
        years = sorted({int(g.year) for g in self.grants if g.year.isdigit()})
        year_range = f"{years[0]}-{years[-1]}" if years else "none"
        text = (
            f"{self.source}: {len(self.grants)} grants, "
            f"${self.total_amount / 1e6:.1f}M total, years {year_range}"
        )
        if self.errors:
            text += f", {len(self.errors)} errors"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "grants": [g.to_dict() for g in self.grants],
            "errors": list(self.errors),
            "scrapedAt": self.scraped_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScrapeResult":
        return cls(
            source=data["source"],
            grants=[Grant.from_dict(g) for g in data.get("grants", [])],
            errors=list(data.get("errors", [])),
            scraped_at=data.get("scrapedAt") or datetime.now(timezone.utc).isoformat(),
        )
