"""
GiveWell adapter.

Source: Airtable CSV export, downloaded by hand (GiveWell publishes no API).
Columns: Grant, Recipient, Amount, Date, Link to grant description, Topics,
Funders, Countries

To refresh:
  1. Open GiveWell's "All Grants" Airtable view
  2. View menu → Download CSV
  3. Save to the path in GRANTDB_GIVEWELL_CSV (default data/raw/givewell-grants.csv)
"""

import logging
from pathlib import Path
from typing import Optional, Union

from grantdb.core import config
from grantdb.core.domain_models import Grant, Category, ScrapeResult
from grantdb.core.time_utils import normalize_date
from grantdb.core.utils import row_id, split_list
from grantdb.ingest.base import SourceAdapter


logger = logging.getLogger(__name__)

# Coefficient Giving money disbursed via GiveWell is labelled distinctly
FUNDER_RENAMES = {
    "Open Philanthropy": "Coefficient Giving (via GiveWell)",
}


class GiveWellAdapter(SourceAdapter):
    name = "givewell"
    grantmaker = "GiveWell"
    raw_suffix = "csv"

    def __init__(self, fetcher=None, snapshots=None, csv_path: Optional[Union[str, Path]] = None):
        super().__init__(fetcher, snapshots)
        self.csv_path = Path(csv_path or config.GIVEWELL_CSV)

    def fetch_raw(self) -> str:
        if not self.csv_path.exists():
            raise FileNotFoundError(
                f"No GiveWell CSV file found at {self.csv_path}. "
                "Manual download from Airtable required."
            )
        logger.info(f"[{self.name}] Reading local CSV {self.csv_path}")
        return self.csv_path.read_text(encoding="utf-8-sig")

    def run(self) -> ScrapeResult:
        # The export is already on disk; don't snapshot it again
        snapshots, self.snapshots = self.snapshots, None
        try:
            return super().run()
        finally:
            self.snapshots = snapshots

    def parse(self, raw: str) -> ScrapeResult:
        result = self.new_result()
        records = self.read_csv(raw)
        logger.info(f"[{self.name}] Parsed {len(records)} records")

        for i, r in enumerate(records):
            recipient = r.get("Recipient", "")
            amount = self.positive_amount(r.get("Amount"))
            if amount is None:
                result.errors.append(f'Row {i}: invalid amount "{r.get("Amount", "")}" for {recipient or "unknown"}')
                continue

            date = normalize_date(r.get("Date", ""))
            if not date:
                result.errors.append(f'Row {i}: invalid date "{r.get("Date", "")}" for {recipient or "unknown"}')
                continue

            funders = [FUNDER_RENAMES.get(f, f) for f in split_list(r.get("Funders"))]
            topics = split_list(r.get("Topics"))
            countries = r.get("Countries", "")

            desc_parts = [r.get("Grant", "")]
            if countries:
                desc_parts.append(f"Country: {countries}")
            if r.get("Topics"):
                desc_parts.append(f"Topics: {r['Topics']}")
            if r.get("Funders"):
                desc_parts.append(f"Funded by: {r['Funders']}")
            desc_parts = [p for p in desc_parts if p]

            result.grants.append(Grant(
                id=row_id("gw", i),
                title=r.get("Grant") or f"Grant to {recipient}",
                recipient=recipient or "Unknown",
                amount=amount,
                date=date,
                grantmaker=self.grantmaker,
                description=". ".join(desc_parts) if len(desc_parts) > 1 else None,
                category=Category.GH.value,
                focus_area="Global Health & Development",
                fund=funders[0] if funders else None,
                source_id=f"gw-row-{i}",
                funders=funders,
                country=countries or None,
                topics=topics,
                url=r.get("Link to grant description") or None,
            ))

        return result
