"""
Pipeline orchestrator.

Sequence:
  1. Run all source adapters (concurrently; they share no state)
  2. Normalize each source's records, attributing rejections to the source
  3. Deduplicate the combined set
  4. Compute residual grants for coverage gaps
  5. Sort by date descending (flagged records included, uncounted) and persist
  6. Build the validation report

A failing source contributes zero records and an error; only persistence
failures abort the run.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from tqdm import tqdm

from grantdb.core import config
from grantdb.core.domain_models import Grant, ScrapeResult
from grantdb.core.errors import PersistenceError
from grantdb.normalize.grants import NormalizationResult, normalize_grants
from grantdb.reconcile.dedup import DedupResult, deduplicate_grants
from grantdb.reconcile.matching import MatchPolicy
from grantdb.reconcile.reference import ReferenceTables
from grantdb.reconcile.report import build_coverage_report, format_report
from grantdb.reconcile.residuals import ResidualPolicy, ResidualResult, compute_residuals


logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    grants: List[Grant]
    source_results: List[ScrapeResult]
    normalization: NormalizationResult
    dedup: DedupResult
    residuals: ResidualResult
    report: str = ""
    scraped_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def error_count(self) -> int:
        return sum(len(r.errors) for r in self.source_results)


class SavedResultAdapter:
    """Stand-in adapter that replays a source's last saved ScrapeResult."""

    def __init__(self, name: str, snapshots):
        self.name = name
        self.snapshots = snapshots

    def run(self) -> ScrapeResult:
        result = self.snapshots.load_result(self.name)
        if result is None:
            return ScrapeResult(source=self.name, errors=[f"No saved result for {self.name}"])
        logger.info(f"[{self.name}] Loaded {len(result.grants)} saved grants")
        return result


def sort_by_date_desc(grants: Sequence[Grant]) -> List[Grant]:
    """Newest first; records sharing a date keep their relative order."""
    return sorted(grants, key=lambda g: g.date, reverse=True)


def run_adapters(
    adapters: Sequence,
    max_workers: int = config.MAX_WORKERS,
    progress: bool = False,
) -> List[ScrapeResult]:
    """
    Run adapters concurrently, returning results in adapter order.

    An adapter that raises is recorded as an empty, errored result.
    """
    if not adapters:
        return []

    def safe_run(adapter) -> ScrapeResult:
        try:
            return adapter.run()
        except Exception as e:
            logger.exception(f"[{adapter.name}] Adapter crashed")
            return ScrapeResult(source=adapter.name, errors=[f"{type(e).__name__}: {e}"])

    results: List[Optional[ScrapeResult]] = [None] * len(adapters)
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(adapters)))) as pool:
        futures = {pool.submit(safe_run, adapter): i for i, adapter in enumerate(adapters)}
        for future in tqdm(as_completed(futures), total=len(futures), desc="Sources", disable=not progress):
            results[futures[future]] = future.result()
    return results


def normalize_results(results: Sequence[ScrapeResult]) -> NormalizationResult:
    """
    Normalize every source's grants in order.

    Rejected records are appended to the owning source's error list so the
    report shows them per source.
    """
    combined = NormalizationResult()
    for result in results:
        normalized = normalize_grants(result.grants)
        for grant_id, reason in normalized.rejected:
            result.errors.append(f"{grant_id}: {reason}")
        result.grants = normalized.grants
        combined.grants.extend(normalized.grants)
        combined.rejected.extend(normalized.rejected)
    return combined


def run_pipeline(
    adapters: Sequence,
    reference: ReferenceTables,
    store=None,
    snapshots=None,
    match_policy: Optional[MatchPolicy] = None,
    residual_policy: Optional[ResidualPolicy] = None,
    max_workers: int = config.MAX_WORKERS,
    report_years: Optional[Sequence[str]] = None,
    progress: bool = False,
) -> PipelineResult:
    """
    Run the full batch build.

    Args:
        adapters: Objects with ``name`` and ``run() -> ScrapeResult``
        reference: Published totals and residual category hints
        store: GrantStore to persist to (None for a dry run)
        snapshots: SnapshotStore to save per-source results to
        match_policy: Dedup thresholds
        residual_policy: Residual materiality threshold
        max_workers: Adapter concurrency
        report_years: Years shown in the validation report
        progress: Show a tqdm progress bar while sources run

    Returns:
        PipelineResult

    Raises:
        PersistenceError: if artifacts cannot be written
    """
    logger.info("=" * 60)
    logger.info("Grants Database - Build Pipeline")
    logger.info("=" * 60)

    logger.info("── Phase 1: Sources ──")
    results = run_adapters(adapters, max_workers=max_workers, progress=progress)

    normalization = normalize_results(results)
    for result in results:
        logger.info(f"  {result.summary()}")
        if snapshots is not None and result.grants:
            try:
                snapshots.save_result(result)
            except PersistenceError as e:
                logger.warning(f"[{result.source}] Could not save result snapshot: {e}")

    logger.info("── Phase 2: Deduplication ──")
    logger.info(f"Combined: {len(normalization.grants)} grants from {len(results)} sources")
    dedup = deduplicate_grants(normalization.grants, match_policy)

    logger.info("── Phase 3: Residual Computation ──")
    residuals = compute_residuals(dedup.grants, reference, residual_policy)

    # Flagged records stay in the artifact for auditability; they never count
    final = sort_by_date_desc(dedup.grants + dedup.excluded + residuals.residuals)

    if store is not None:
        store.save(final)
    else:
        logger.info("Dry run: nothing persisted")

    coverage = build_coverage_report(final, reference, report_years)
    report = format_report(coverage, final, results, dedup.stats, residuals.stats)

    return PipelineResult(
        grants=final,
        source_results=list(results),
        normalization=normalization,
        dedup=dedup,
        residuals=residuals,
        report=report,
    )
