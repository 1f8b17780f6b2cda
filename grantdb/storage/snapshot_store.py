"""
On-disk snapshots of raw source payloads and per-source scrape results.

Raw payloads are kept for debugging; saved results let a run be rebuilt
offline from the last successful scrape of each source.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional, Union

from grantdb.core.domain_models import ScrapeResult
from grantdb.storage.grant_store import atomic_write


logger = logging.getLogger(__name__)


class SnapshotStore:
    """Raw payload and ScrapeResult files under one directory."""

    def __init__(self, raw_dir: Union[str, Path]):
        self.raw_dir = Path(raw_dir)

    def save_raw(self, source: str, payload: str, suffix: str = "txt") -> Path:
        """Save a raw payload as ``<source>-<YYYY-MM-DD>.<suffix>``."""
        path = self.raw_dir / f"{source}-{date.today().isoformat()}.{suffix}"

        def write(tmp: str) -> None:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)

        atomic_write(path, write)
        logger.info(f"Saved raw data to {path}")
        return path

    def result_path(self, source: str) -> Path:
        return self.raw_dir / f"{source}-result.json"

    def save_result(self, result: ScrapeResult) -> Path:
        path = self.result_path(result.source)

        def write(tmp: str) -> None:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)

        atomic_write(path, write)
        return path

    def load_result(self, source: str) -> Optional[ScrapeResult]:
        """Load a previously saved result, or None if there is none."""
        path = self.result_path(source)
        if not path.exists():
            return None
        with path.open(encoding="utf-8") as f:
            return ScrapeResult.from_dict(json.load(f))
