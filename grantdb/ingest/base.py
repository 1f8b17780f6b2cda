"""
Base class for source adapters.

An adapter turns one grantmaker's raw feed into canonical Grant records.
Bad rows are dropped with a recorded reason; a source that cannot be reached
at all yields an empty result with one error instead of raising, so a
single failing source never stops the build.
"""

import logging
from io import StringIO
from typing import List, Optional

import pandas as pd

from grantdb.core.domain_models import ScrapeResult
from grantdb.core.errors import PersistenceError, SourceFetchError
from grantdb.core.money import parse_usd_amount


logger = logging.getLogger(__name__)


class SourceAdapter:
    """
    Fetch + parse for one source.

    Subclasses set ``name`` / ``grantmaker`` / ``raw_suffix`` and implement
    ``fetch_raw`` and ``parse``.
    """
    name: str = ""
    grantmaker: str = ""
    raw_suffix: str = "txt"

    def __init__(self, fetcher=None, snapshots=None):
        self.fetcher = fetcher
        self.snapshots = snapshots

    def fetch_raw(self) -> str:
        raise NotImplementedError

    def parse(self, raw: str) -> ScrapeResult:
        raise NotImplementedError

    def run(self) -> ScrapeResult:
        """
        Fetch and parse, degrading to an empty result on transport failure.

        Returns:
            ScrapeResult for this source (never raises for fetch/IO errors)
        """
        logger.info(f"[{self.name}] Fetching...")
        try:
            raw = self.fetch_raw()
        except (SourceFetchError, OSError) as e:
            logger.error(f"[{self.name}] Source failed: {e}")
            return ScrapeResult(source=self.name, errors=[str(e)])

        if self.snapshots is not None:
            try:
                self.snapshots.save_raw(self.name, raw, self.raw_suffix)
            except (PersistenceError, OSError) as e:
                logger.warning(f"[{self.name}] Could not snapshot raw data: {e}")

        result = self.parse(raw)
        logger.info(f"[{self.name}] Processed {len(result.grants)} grants ({len(result.errors)} errors)")
        return result

    # Helpers shared by the CSV sources

    @staticmethod
    def read_csv(raw: str) -> List[dict]:
        """Parse CSV text into row dicts with every cell as a trimmed string."""
        if not raw or not raw.strip():
            return []
        df = pd.read_csv(
            StringIO(raw.lstrip("\ufeff")),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="warn",
        )
        df.columns = [str(c).strip() for c in df.columns]
        return [
            {k: (v.strip() if isinstance(v, str) else v) for k, v in row.items()}
            for row in df.to_dict(orient="records")
        ]

    @staticmethod
    def positive_amount(raw) -> Optional[float]:
        """Parsed amount if strictly positive, else None."""
        amount = parse_usd_amount(raw)
        if amount is None or amount <= 0:
            return None
        return amount

    def new_result(self) -> ScrapeResult:
        return ScrapeResult(source=self.name)
