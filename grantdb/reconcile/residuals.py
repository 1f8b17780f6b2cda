"""
Residual grant computation.

For grantmakers with published annual totals but incomplete individual grant
data, creates synthetic "residual" grants representing the gap:

    residual = published total - sum(itemized grants for that grantmaker/year)

A residual is only emitted when the gap is material: larger than $100K
*and* larger than 5% of the published total. Residuals are computed in a
single pass and never feed back into the itemized sums.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from grantdb.core.domain_models import Grant, Category
from grantdb.core.money import format_usd_millions
from grantdb.core.time_utils import year_midpoint
from grantdb.core.utils import residual_id
from grantdb.reconcile.reference import (
    ReferenceTables,
    iter_grantmakers,
    iter_published_totals,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResidualPolicy:
    """Materiality threshold; both conditions must hold."""
    min_amount: float = 100_000
    min_fraction: float = 0.05

    def is_material(self, residual: float, published: float) -> bool:
        if published <= 0:
            return False
        return residual > self.min_amount and residual / published > self.min_fraction


DEFAULT_RESIDUAL_POLICY = ResidualPolicy()


@dataclass
class GrantmakerResidual:
    years: int = 0
    total_residual: float = 0.0


@dataclass
class ResidualStats:
    generated: int = 0
    by_grantmaker: Dict[str, GrantmakerResidual] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "generated": self.generated,
            "byGrantmaker": {
                gm: {"years": s.years, "totalResidual": s.total_residual}
                for gm, s in self.by_grantmaker.items()
            },
        }


@dataclass
class ResidualResult:
    residuals: List[Grant] = field(default_factory=list)
    stats: ResidualStats = field(default_factory=ResidualStats)


def itemized_totals(grants: Sequence[Grant]) -> Dict[str, Dict[str, float]]:
    """Sum grantmaker → year → amount over itemized, counted grants."""
    totals: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for g in grants:
        if g.is_residual or not g.counts_toward_total:
            continue
        totals[g.grantmaker][g.year] += g.amount
    return totals


def compute_residuals(
    grants: Sequence[Grant],
    reference: ReferenceTables,
    policy: Optional[ResidualPolicy] = None,
) -> ResidualResult:
    """
    Build residual grants for every material gap.

    Args:
        grants: Deduplicated grants
        reference: Published totals and residual category hints
        policy: Materiality threshold (defaults: $100K and 5%)

    Returns:
        ResidualResult with residuals ordered by reference table order,
        then year order, and per-grantmaker stats
    """
    policy = policy or DEFAULT_RESIDUAL_POLICY
    logger.info("[Residuals] Computing residual grants...")

    known = itemized_totals(grants)
    result = ResidualResult()

    for grantmaker, years in iter_grantmakers(reference):
        known_by_year = known.get(grantmaker, {})
        summary = GrantmakerResidual()

        for year, published in iter_published_totals(years):
            known_total = known_by_year.get(year, 0.0)
            residual_amount = published - known_total

            if not policy.is_material(residual_amount, published):
                continue

            result.residuals.append(
                build_residual(grantmaker, year, published, residual_amount, reference)
            )
            summary.years += 1
            summary.total_residual += residual_amount

        if summary.years:
            result.stats.by_grantmaker[grantmaker] = summary
            logger.info(
                f"[Residuals] {grantmaker}: {summary.years} years with residuals, "
                f"{format_usd_millions(summary.total_residual)} total"
            )

    result.stats.generated = len(result.residuals)
    logger.info(f"[Residuals] Generated {len(result.residuals)} residual grants")
    return result


def build_residual(
    grantmaker: str,
    year: str,
    published: float,
    residual_amount: float,
    reference: ReferenceTables,
) -> Grant:
    """Synthesize the residual record for one grantmaker/year."""
    category = Category.coerce(reference.category_hints.get(grantmaker)).value
    pct = f"{residual_amount / published * 100:.0f}"

    return Grant(
        id=residual_id(grantmaker, year),
        title=f"Unitemized {year} Grants",
        recipient="Various recipients",
        amount=residual_amount,
        currency="USD",
        date=year_midpoint(year),
        grantmaker=grantmaker,
        description=(
            f"{pct}% of {grantmaker}'s {year} grantmaking "
            f"({format_usd_millions(published)} published total) is not available "
            f"as individual grant records."
        ),
        category=category,
        fund=f"{grantmaker} (Unitemized)",
        is_residual=True,
        residual_note=(
            f"Published total: {format_usd_millions(published)}, "
            f"Itemized: {format_usd_millions(published - residual_amount)}, "
            f"Unitemized: {format_usd_millions(residual_amount)} ({pct}%)"
        ),
    )
