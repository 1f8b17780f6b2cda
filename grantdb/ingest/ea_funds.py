"""
EA Funds adapter.

Source: https://funds.effectivealtruism.org/api/grants (CSV)
Funds: Long-Term Future Fund, EA Infrastructure Fund, Animal Welfare Fund,
Global Health and Development Fund.

Columns: id, fund, description, grantee, amount, round, published, year, highlighted
"""

import logging
from typing import Dict, Optional

from grantdb.core import config
from grantdb.core.domain_models import Grant, Category, ScrapeResult
from grantdb.core.time_utils import normalize_date, year_midpoint
from grantdb.core.utils import row_id
from grantdb.ingest.base import SourceAdapter
from grantdb.reconcile.reference import load_json_object


logger = logging.getLogger(__name__)

API_URL = "https://funds.effectivealtruism.org/api/grants"


def parse_round(round_text: str) -> Optional[str]:
    """"2025 Q3" → "2025-07-01"; other formats go through normalize_date."""
    if not round_text:
        return None
    return normalize_date(round_text)


class EAFundsAdapter(SourceAdapter):
    name = "ea-funds"
    grantmaker = "EA Funds"
    raw_suffix = "csv"

    def __init__(self, fetcher=None, snapshots=None, fund_categories: Optional[Dict[str, str]] = None):
        super().__init__(fetcher, snapshots)
        if fund_categories is None:
            fund_categories = load_json_object(config.EAF_FUNDS_PATH)
        self.fund_categories = fund_categories

    def fetch_raw(self) -> str:
        return self.fetcher.fetch_text(API_URL)

    def category_for(self, fund: str) -> str:
        return Category.coerce(self.fund_categories.get(fund)).value

    def parse(self, raw: str) -> ScrapeResult:
        result = self.new_result()
        records = self.read_csv(raw)
        logger.info(f"[{self.name}] Parsed {len(records)} records")

        for i, r in enumerate(records):
            grantee = r.get("grantee", "")
            amount = self.positive_amount(r.get("amount"))
            if amount is None:
                result.errors.append(f'Row {i}: invalid amount "{r.get("amount", "")}" for {grantee}')
                continue

            date = parse_round(r.get("round", ""))
            if not date:
                year = r.get("year", "")
                if not year.isdigit():
                    result.errors.append(f"Row {i}: no date for {grantee}")
                    continue
                date = year_midpoint(year)

            fund = r.get("fund") or None
            description = r.get("description") or None
            title = (
                f"{grantee} — {fund or 'EA Funds'}" if grantee
                else (description or "")[:200] or "EA Funds Grant"
            )

            result.grants.append(Grant(
                id=row_id("eaf", i),
                title=title,
                recipient=grantee or "Anonymous",
                amount=amount,
                date=date,
                grantmaker=self.grantmaker,
                description=description,
                category=self.category_for(fund or ""),
                fund=fund,
                source_id=r.get("id") or None,
            ))

        return result
