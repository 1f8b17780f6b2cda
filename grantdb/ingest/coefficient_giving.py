"""
Coefficient Giving adapter (formerly Open Philanthropy).

Source: official grants archive CSV.
Columns: Grant, Organization Name, Focus Area, Amount, Date, Details

Grants whose focus area marks them as GiveWell-recommended are flagged
``exclude_from_total``: GiveWell reports the same money itself.
"""

import logging
from typing import Dict, Optional

from grantdb.core import config
from grantdb.core.domain_models import Grant, Category, ScrapeResult
from grantdb.core.time_utils import normalize_date
from grantdb.core.utils import row_id
from grantdb.ingest.base import SourceAdapter
from grantdb.reconcile.reference import load_json_object


logger = logging.getLogger(__name__)

CSV_URL = "https://coefficientgiving.org/wp-content/uploads/Coefficient-Giving-Grants-Archive.csv"

_KEYWORD_CATEGORIES = [
    (Category.LTXR, ("artificial intelligence", "ai ", " ai", "biosecurity", "pandemic",
                     "catastrophic", "nuclear", "x-risk", "transformative")),
    (Category.GH, ("health", "malaria", "givewell", "development", "economic growth",
                   "air quality", "lead")),
    (Category.AW, ("animal", "welfare", "cage", "farm", "chicken", "fish")),
    (Category.META, ("effective altruism", "ea ", "career", "giving", "forecasting")),
]


def map_focus_area(raw: str, mapping: Dict[str, str]) -> str:
    """
    Focus area → category code.

    Exact mapping first, then any mapping key contained in the focus area,
    then a keyword fallback.
    """
    if not raw:
        return Category.OTHER.value

    direct = mapping.get(raw)
    if direct:
        return Category.coerce(direct).value

    lower = raw.lower()
    for key, value in mapping.items():
        if key.lower() in lower:
            return Category.coerce(value).value

    padded = f" {lower} "
    for category, keywords in _KEYWORD_CATEGORIES:
        if any(k in padded for k in keywords):
            return category.value

    return Category.OTHER.value


def is_givewell_recommended(focus_area: str) -> bool:
    return "givewell" in (focus_area or "").lower()


class CoefficientGivingAdapter(SourceAdapter):
    name = "coefficient-giving"
    grantmaker = "Coefficient Giving"
    raw_suffix = "csv"

    def __init__(self, fetcher=None, snapshots=None, focus_areas: Optional[Dict[str, str]] = None):
        super().__init__(fetcher, snapshots)
        if focus_areas is None:
            focus_areas = load_json_object(config.CG_FOCUS_AREAS_PATH)
        self.focus_areas = focus_areas

    def fetch_raw(self) -> str:
        return self.fetcher.fetch_text(CSV_URL)

    def parse(self, raw: str) -> ScrapeResult:
        result = self.new_result()
        records = self.read_csv(raw)
        logger.info(f"[{self.name}] Parsed {len(records)} records")

        for i, r in enumerate(records):
            org = r.get("Organization Name", "")
            amount = self.positive_amount(r.get("Amount"))
            if amount is None:
                result.errors.append(f'Row {i}: invalid amount "{r.get("Amount", "")}" for {org}')
                continue

            date = normalize_date(r.get("Date", ""))
            if not date:
                result.errors.append(f'Row {i}: invalid date "{r.get("Date", "")}" for {org}')
                continue

            focus_area = r.get("Focus Area", "")
            title = r.get("Grant", "")

            desc_parts = [p for p in (title, f"Focus area: {focus_area}" if focus_area else "") if p]
            description = ". ".join(desc_parts) if len(desc_parts) > 1 else None

            result.grants.append(Grant(
                id=row_id("cg", i),
                title=title or f"Grant to {org}",
                recipient=org or "Unknown",
                amount=amount,
                date=date,
                grantmaker=self.grantmaker,
                description=description,
                category=map_focus_area(focus_area, self.focus_areas),
                focus_area=focus_area or None,
                source_id=f"cg-row-{i}",
                exclude_from_total=is_givewell_recommended(focus_area),
            ))

        flagged = sum(1 for g in result.grants if g.exclude_from_total)
        if flagged:
            logger.info(f"[{self.name}] {flagged} GiveWell-recommended grants flagged for dedup")
        return result
