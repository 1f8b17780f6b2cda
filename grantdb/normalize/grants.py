"""
Normalizer for adapter output.

Converts near-canonical Grant records from every source adapter into the
single canonical form the rest of the pipeline relies on: trimmed strings,
ISO dates, positive USD amounts and taxonomy category codes.

Normalization is pure and per-record. It never deduplicates or reclassifies
beyond coercing the category onto the closed taxonomy, and running it twice
gives the same result as running it once.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Tuple

from grantdb.core.domain_models import Grant, Category
from grantdb.core.errors import GrantValidationError
from grantdb.core.money import parse_usd_amount
from grantdb.core.time_utils import normalize_date
from grantdb.core.utils import clean_line, clean_text, dedupe_preserving_order


logger = logging.getLogger(__name__)


@dataclass
class NormalizationResult:
    """Normalized grants plus (grant_id, reason) for every rejected record."""
    grants: List[Grant] = field(default_factory=list)
    rejected: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


def normalize_grant(grant: Grant) -> Grant:
    """
    Return a cleaned copy of ``grant``.

    Args:
        grant: Record as produced by a source adapter

    Returns:
        New Grant; the input object is left untouched

    Raises:
        GrantValidationError: amount is missing, non-numeric or not positive;
            date is missing or unparseable; grantmaker or recipient is empty
    """
    grant_id = clean_line(grant.id)

    amount = _coerce_amount(grant.amount, grant_id)

    raw_date = grant.date
    date = normalize_date(raw_date)
    if not date:
        raise GrantValidationError(f'invalid date "{raw_date or ""}"', grant_id)

    grantmaker = clean_line(grant.grantmaker)
    if not grantmaker:
        raise GrantValidationError("missing grantmaker", grant_id)

    recipient = clean_line(grant.recipient)
    if not recipient:
        raise GrantValidationError("missing recipient", grant_id)

    if not grant_id:
        raise GrantValidationError("missing id", grant_id)

    category = Category.coerce(grant.category).value if grant.category else None

    return replace(
        grant,
        id=grant_id,
        title=clean_line(grant.title) or f"Grant to {recipient}",
        recipient=recipient,
        amount=amount,
        currency=(clean_line(grant.currency) or "USD").upper(),
        date=date,
        grantmaker=grantmaker,
        description=clean_text(grant.description),
        url=clean_line(grant.url),
        category=category,
        focus_area=clean_line(grant.focus_area),
        fund=clean_line(grant.fund),
        residual_note=clean_line(grant.residual_note),
        source_id=None if grant.is_residual else clean_line(grant.source_id),
        funders=_clean_list(grant.funders),
        country=clean_line(grant.country),
        topics=_clean_list(grant.topics),
        is_residual=bool(grant.is_residual),
        exclude_from_total=bool(grant.exclude_from_total),
    )


def normalize_grants(grants: Iterable[Grant]) -> NormalizationResult:
    """
    Normalize a sequence of grants, dropping (and recording) invalid ones.

    Rejections never abort the run; they are logged and returned so the
    orchestrator can attribute them to the owning source.
    """
    result = NormalizationResult()

    for grant in grants:
        try:
            result.grants.append(normalize_grant(grant))
        except GrantValidationError as e:
            logger.warning(f"Rejected grant {e.grant_id or 'unknown'}: {e.reason}")
            result.rejected.append((e.grant_id or "unknown", e.reason))

    if result.rejected:
        logger.info(
            f"Normalized {len(result.grants)} grants, rejected {result.rejected_count}"
        )
    return result


def _coerce_amount(value, grant_id) -> float:
    amount = parse_usd_amount(value)
    if amount is None or math.isnan(amount) or math.isinf(amount):
        raise GrantValidationError(f'invalid amount "{value}"', grant_id)
    if amount <= 0:
        raise GrantValidationError(f'non-positive amount "{value}"', grant_id)
    return amount


def _clean_list(items) -> list:
    if not items:
        return []
    cleaned = (clean_line(item) for item in items)
    return dedupe_preserving_order(item for item in cleaned if item)
