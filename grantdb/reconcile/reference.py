"""
Static reference tables used by the residual computation and the report.

Both tables are plain JSON objects:

    annual_totals.json        {"GiveWell": {"2023": 355000000, ...}, "_comment": "..."}
    residual_categories.json  {"GiveWell": "GH", ...}

Keys starting with "_" are comments. Values that are not numbers are
placeholders ("pending", null) and are skipped wherever totals are read.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Tuple, Union

from grantdb.core import config
from grantdb.core.errors import ReferenceDataError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType({
        k: _frozen(v) if isinstance(v, dict) else v
        for k, v in mapping.items()
    })


@dataclass(frozen=True)
class ReferenceTables:
    """Read-only published totals and residual category hints."""
    published_totals: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    category_hints: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_dicts(cls, published_totals: Mapping, category_hints: Optional[Mapping] = None) -> "ReferenceTables":
        return cls(
            published_totals=_frozen(dict(published_totals)),
            category_hints=_frozen(dict(category_hints or {})),
        )


def load_json_object(path: PathLike) -> dict:
    """
    Read a JSON file whose top level must be an object.

    Raises:
        ReferenceDataError: file missing, unreadable, invalid JSON, or not
            an object at the top level
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ReferenceDataError(f"Cannot read reference table {path}: {e}") from e

    if not isinstance(data, dict):
        raise ReferenceDataError(f"Reference table {path} must be a JSON object")
    return data


def load_reference_tables(
    totals_path: Optional[PathLike] = None,
    hints_path: Optional[PathLike] = None,
) -> ReferenceTables:
    """Load published totals and category hints (package data by default)."""
    totals = load_json_object(totals_path or config.ANNUAL_TOTALS_PATH)
    hints = load_json_object(hints_path or config.RESIDUAL_CATEGORIES_PATH)

    tables = ReferenceTables.from_dicts(
        totals,
        {k: v for k, v in hints.items() if not k.startswith("_") and isinstance(v, str)},
    )
    logger.info(f"Loaded published totals for {len(list(iter_grantmakers(tables)))} grantmakers")
    return tables


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def iter_grantmakers(tables: ReferenceTables) -> Iterator[Tuple[str, Mapping]]:
    """Yield (grantmaker, year→total mapping), skipping comments and non-objects."""
    for grantmaker, years in tables.published_totals.items():
        if grantmaker.startswith("_"):
            continue
        if not isinstance(years, Mapping):
            continue
        yield grantmaker, years


def iter_published_totals(years: Mapping) -> Iterator[Tuple[str, float]]:
    """Yield (year, total) for numeric entries keyed by a plain year only."""
    for year, total in years.items():
        if not str(year).isdigit():
            continue
        if not _is_number(total):
            continue
        yield str(year), total


def published_total(tables: ReferenceTables, grantmaker: str, year: str) -> Optional[float]:
    """Numeric published total for one grantmaker/year, or None."""
    years = tables.published_totals.get(grantmaker)
    if not isinstance(years, Mapping):
        return None
    value = years.get(str(year))
    return value if _is_number(value) else None
