"""
Survival and Flourishing Fund (SFF) adapter.

Source: https://survivalandflourishing.fund/recommendations (HTML tables)
Row layout: Round, Source, Organization, Amount, [Receiving Charity], [Purpose]

All SFF grants are Long-Term & X-Risk.
"""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from grantdb.core.domain_models import Grant, Category, ScrapeResult
from grantdb.core.time_utils import half_year_date, year_midpoint
from grantdb.core.utils import row_id, slugify
from grantdb.ingest.base import SourceAdapter


logger = logging.getLogger(__name__)

RECOMMENDATIONS_URL = "https://survivalandflourishing.fund/recommendations"


def round_to_date(round_text: str) -> Optional[str]:
    """
    "SFF-2025" → "2025-07-01", "SFF-2024-H1" → "2024-03-01", "SFF-2024-H2" → "2024-09-01".

    Q1/Q2 count as the first half, Q3/Q4 as the second.
    """
    match = re.search(r"(\d{4})", round_text or "")
    if not match:
        return None
    year = match.group(1)
    upper = round_text.upper()

    if any(tag in upper for tag in ("H1", "Q1", "Q2")):
        return half_year_date(year, 1)
    if any(tag in upper for tag in ("H2", "Q3", "Q4")):
        return half_year_date(year, 2)
    return year_midpoint(year)


class SFFAdapter(SourceAdapter):
    name = "sff"
    grantmaker = "SFF"
    raw_suffix = "html"

    def fetch_raw(self) -> str:
        return self.fetcher.fetch_text(RECOMMENDATIONS_URL)

    def parse(self, raw: str) -> ScrapeResult:
        result = self.new_result()
        soup = BeautifulSoup(raw, "lxml")
        tables = soup.find_all("table")
        logger.info(f"[{self.name}] Found {len(tables)} tables")

        for table in tables:
            for ri, row in enumerate(table.find_all("tr")):
                cells = [td.get_text(" ", strip=True) for td in row.find_all("td")]
                if len(cells) < 4:
                    # Header rows use <th> or have too few cells
                    continue
                self._parse_row(ri, cells, result)

        return result

    def _parse_row(self, ri: int, cells: list, result: ScrapeResult) -> None:
        round_text, source, org, amount_text = cells[:4]
        receiving_charity = cells[4] if len(cells) > 4 else ""
        purpose = cells[5] if len(cells) > 5 else ""

        amount = self.positive_amount(amount_text)
        if amount is None:
            result.errors.append(f'Row {ri}: invalid amount "{amount_text}" for {org}')
            return

        date = round_to_date(round_text)
        if not date:
            result.errors.append(f'Row {ri}: can\'t parse date from round "{round_text}" for {org}')
            return

        title = f"{org} — {purpose or round_text}" if org else purpose or f"SFF Grant ({round_text})"

        desc_parts = []
        if purpose:
            desc_parts.append(purpose)
        if receiving_charity and receiving_charity != org:
            desc_parts.append(f"Receiving charity: {receiving_charity}")
        desc_parts.append(f"Round: {round_text}")
        if source:
            desc_parts.append(f"Source: {source}")

        result.grants.append(Grant(
            id=row_id("sff", len(result.grants)),
            title=title,
            recipient=org or receiving_charity or "Unknown",
            amount=amount,
            date=date,
            grantmaker=self.grantmaker,
            description=". ".join(desc_parts),
            category=Category.LTXR.value,
            focus_area=Category.LTXR.label,
            fund=source or "SFF",
            source_id=f"sff-{round_text}-{slugify(org)[:40]}",
        ))
