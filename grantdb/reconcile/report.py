"""
Validation report: scraped vs published totals per grantmaker per year.

Used by an operator to judge coverage before trusting a build. Nothing
downstream consumes it programmatically.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from grantdb.core import config
from grantdb.core.domain_models import Grant, ScrapeResult
from grantdb.core.money import format_usd_millions
from grantdb.reconcile.reference import (
    ReferenceTables,
    iter_grantmakers,
    published_total,
)


@dataclass
class CoverageCell:
    scraped: float = 0.0
    published: Optional[float] = None

    @property
    def coverage(self) -> Optional[float]:
        """Scraped as a percentage of published, or None when nothing is published."""
        if not self.published:
            return None
        return self.scraped / self.published * 100


@dataclass
class CoverageReport:
    years: List[str]
    rows: Dict[str, Dict[str, CoverageCell]] = field(default_factory=dict)

    def scraped_total(self, year: str) -> float:
        return sum(row[year].scraped for row in self.rows.values())

    def published_total(self, year: str) -> float:
        return sum(row[year].published or 0 for row in self.rows.values())

    def coverage(self, year: str) -> Optional[float]:
        published = self.published_total(year)
        if not published:
            return None
        return self.scraped_total(year) / published * 100


def build_coverage_report(
    grants: Sequence[Grant],
    reference: ReferenceTables,
    years: Optional[Sequence[str]] = None,
) -> CoverageReport:
    """
    Tabulate counted totals (residuals included, excluded records skipped)
    for every grantmaker that has published totals.
    """
    years = [str(y) for y in (years or config.REPORT_YEARS)]

    scraped: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for g in grants:
        if not g.counts_toward_total:
            continue
        scraped[g.grantmaker][g.year] += g.amount

    report = CoverageReport(years=years)
    for grantmaker, _ in iter_grantmakers(reference):
        report.rows[grantmaker] = {
            year: CoverageCell(
                scraped=scraped.get(grantmaker, {}).get(year, 0.0),
                published=published_total(reference, grantmaker, year),
            )
            for year in years
        }
    return report


def _pad_right(s: str, n: int) -> str:
    return s.ljust(n)


def _pad_left(s: str, n: int) -> str:
    return s.rjust(n)


def _pct(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.0f}%"


def format_coverage_table(report: CoverageReport, label_width: int = 20, cell_width: int = 10) -> List[str]:
    """Render the coverage table as fixed-width lines."""
    lines = [
        _pad_right("Grantmaker", label_width)
        + "".join(_pad_left(y, cell_width) for y in report.years)
    ]
    rule = "-" * (label_width + cell_width * len(report.years))
    lines.append(rule)

    for grantmaker, cells in report.rows.items():
        row = []
        for year in report.years:
            cell = cells[year]
            if not cell.published and not cell.scraped:
                row.append(_pad_left("-", cell_width))
            else:
                row.append(_pad_left(format_usd_millions(cell.scraped), cell_width))
        lines.append(_pad_right(grantmaker, label_width) + "".join(row))

    lines.append(rule)
    lines.append(
        _pad_right("TOTAL (scraped)", label_width)
        + "".join(_pad_left(format_usd_millions(report.scraped_total(y)), cell_width) for y in report.years)
    )
    lines.append(
        _pad_right("TOTAL (published)", label_width)
        + "".join(_pad_left(format_usd_millions(report.published_total(y)), cell_width) for y in report.years)
    )
    lines.append(
        _pad_right("Coverage", label_width)
        + "".join(_pad_left(_pct(report.coverage(y)), cell_width) for y in report.years)
    )
    return lines


def format_report(
    report: CoverageReport,
    grants: Sequence[Grant],
    source_results: Sequence[ScrapeResult] = (),
    dedup_stats=None,
    residual_stats=None,
) -> str:
    """Full validation report: per-source errors, coverage table, summary."""
    lines: List[str] = []

    if source_results:
        lines.append("── Sources ──")
        for result in source_results:
            lines.append(f"  {result.summary()}")
            for error in result.errors[:5]:
                lines.append(f"    ! {error}")
            if len(result.errors) > 5:
                lines.append(f"    ! ... {len(result.errors) - 5} more")
        lines.append("")

    lines.append("── Validation Report ──")
    lines.extend(format_coverage_table(report))
    lines.append("")

    residual_count = sum(1 for g in grants if g.is_residual)
    flagged_count = sum(1 for g in grants if g.exclude_from_total)
    counted = sum(g.amount for g in grants if g.counts_toward_total)

    lines.append("── Summary ──")
    lines.append(f"Total grants: {len(grants)}")
    lines.append(f"  Itemized: {len(grants) - residual_count - flagged_count}")
    lines.append(f"  Residual: {residual_count}")
    lines.append(f"  Flagged (kept, not counted): {flagged_count}")
    if dedup_stats is not None:
        lines.append(f"  Excluded (dedup): {dedup_stats.excluded + dedup_stats.fuzzy_merged}")
        lines.append(
            f"    flagged: {dedup_stats.excluded}, fuzzy merged: {dedup_stats.fuzzy_merged}"
        )
    if residual_stats is not None:
        for grantmaker, s in residual_stats.by_grantmaker.items():
            lines.append(
                f"  Residual {grantmaker}: {s.years} years, {format_usd_millions(s.total_residual)}"
            )
    lines.append(f"Total amount: {format_usd_millions(counted)}")
    return "\n".join(lines)
