"""
Storage layer for the canonical grant set.

Handles:
- Writing the full canonical JSON artifact
- Writing the lean JSON artifact consumed by the UI build
- Flattened CSV export / import
- Loading a previously written artifact

Every artifact is written to a temporary file and moved into place, so a
failed run never leaves a partially written dataset behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import pandas as pd

from grantdb.core.domain_models import Grant
from grantdb.core.errors import PersistenceError
from grantdb.core.utils import split_list


logger = logging.getLogger(__name__)

FULL_JSON = "all-grants.json"
LEAN_JSON = "grants-lean.json"
CSV_FILE = "grants.csv"

CSV_COLUMNS = [
    "id",
    "title",
    "recipient",
    "amount_usd",
    "date",
    "grantmaker",
    "category",
    "focus_area",
    "fund",
    "is_residual",
    "country",
    "topics",
    "funders",
    "url",
    "description",
]

LIST_SEPARATOR = "; "
MAX_CSV_DESCRIPTION = 500


def atomic_write(path: Union[str, Path], write: Callable[[str], None]) -> None:
    """
    Write via ``write(tmp_path)`` then atomically replace ``path``.

    Raises:
        PersistenceError: on any filesystem failure
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        os.close(fd)
        try:
            write(tmp_path)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
    except OSError as e:
        raise PersistenceError(f"Cannot write {path}: {e}") from e


def grant_to_csv_row(grant: Grant) -> dict:
    """Flatten a Grant into the CSV export shape."""
    return {
        "id": grant.id,
        "title": grant.title or "",
        "recipient": grant.recipient or "",
        "amount_usd": grant.amount,
        "date": grant.date,
        "grantmaker": grant.grantmaker,
        "category": grant.category or "",
        "focus_area": grant.focus_area or "",
        "fund": grant.fund or "",
        "is_residual": "TRUE" if grant.is_residual else "",
        "country": grant.country or "",
        "topics": LIST_SEPARATOR.join(grant.topics or []),
        "funders": LIST_SEPARATOR.join(grant.funders or []),
        "url": grant.url or "",
        "description": (grant.description or "")[:MAX_CSV_DESCRIPTION],
    }


def export_csv(grants: Sequence[Grant], path: Union[str, Path]) -> Path:
    """Write grants to a flattened CSV file."""
    df = pd.DataFrame([grant_to_csv_row(g) for g in grants], columns=CSV_COLUMNS)
    atomic_write(path, lambda tmp: df.to_csv(tmp, index=False, encoding="utf-8"))
    logger.info(f"Exported {len(grants)} grants to {path}")
    return Path(path)


def import_csv(path: Union[str, Path]) -> List[Grant]:
    """
    Read grants back from a CSV export.

    Rows missing any required field are skipped with a warning.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    grants = []

    for row in df.to_dict(orient="records"):
        try:
            amount = float(row.get("amount_usd") or 0)
        except ValueError:
            amount = 0
        required = [row.get("id"), row.get("title"), row.get("recipient"), row.get("date"), row.get("grantmaker")]
        if not all(required) or amount <= 0:
            logger.warning(f"Skipping invalid grant row: {row.get('id') or 'unknown'}")
            continue

        grants.append(Grant(
            id=row["id"],
            title=row["title"],
            recipient=row["recipient"],
            amount=amount,
            date=row["date"],
            grantmaker=row["grantmaker"],
            category=row.get("category") or None,
            focus_area=row.get("focus_area") or None,
            fund=row.get("fund") or None,
            is_residual=str(row.get("is_residual", "")).strip().lower() in ("true", "1"),
            country=row.get("country") or None,
            topics=split_list(row.get("topics"), ";"),
            funders=split_list(row.get("funders"), ";"),
            url=row.get("url") or None,
            description=row.get("description") or None,
        ))

    logger.info(f"Imported {len(grants)} grants from {path}")
    return grants


def load_grants(path: Union[str, Path]) -> List[Grant]:
    """Read a JSON artifact (full or lean) back into Grant objects."""
    with open(path, encoding="utf-8") as f:
        return [Grant.from_dict(d) for d in json.load(f)]

class GrantStore:
    """
    File-based persistence for the canonical grant set.

    Usage:
        store = GrantStore("data/output")
        store.save(grants)
        grants = store.load()
    """

    def __init__(self, output_dir: Union[str, Path]):
        """
        Initialize grant store.

        Args:
            output_dir: Directory receiving the artifacts
        """
        self.output_dir = Path(output_dir)

    @property
    def full_path(self) -> Path:
        return self.output_dir / FULL_JSON

    @property
    def lean_path(self) -> Path:
        return self.output_dir / LEAN_JSON

    @property
    def csv_path(self) -> Path:
        return self.output_dir / CSV_FILE

    def save(self, grants: Sequence[Grant]) -> None:
        """
        Write the full JSON, lean JSON and CSV artifacts.

        Raises:
            PersistenceError: if any artifact cannot be written
        """
        full = [g.to_dict() for g in grants]
        lean = [g.to_dict(lean=True) for g in grants]

        self._write_json(self.full_path, full, indent=2)
        self._write_json(self.lean_path, lean, indent=None)
        export_csv(grants, self.csv_path)

        logger.info(f"Saved {len(grants)} grants to {self.output_dir}")

    def load(self, lean: bool = False) -> List[Grant]:
        """
        Load grants from the full (or lean) JSON artifact.

        Returns:
            List of Grant objects; empty if the artifact does not exist
        """
        path = self.lean_path if lean else self.full_path
        if not path.exists():
            logger.warning(f"No artifact at {path}")
            return []
        return load_grants(path)

    def _write_json(self, path: Path, data, indent: Optional[int]) -> None:
        def write(tmp: str) -> None:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=indent, ensure_ascii=False)

        atomic_write(path, write)
        logger.debug(f"Wrote {path}")
