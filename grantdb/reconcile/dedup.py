"""
Deduplication of cross-source grant data.

Three layers:
1. Source-level flags: records an adapter marked ``exclude_from_total``
   (e.g. Coefficient Giving grants to GiveWell-recommended charities that
   GiveWell already reports) are removed.
2. Cross-source fuzzy matching: same normalized recipient, amounts within
   10%, dates within 90 days, different grantmakers.
3. Co-funding: the surviving record's ``funders`` lists every source that
   reported the grant, so no dollar is counted twice.

Keeper selection is by stable input order: the earliest record wins, the
later one is folded into it. Input records are never mutated; merged
keepers are emitted as new Grant objects.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from grantdb.core.domain_models import Grant
from grantdb.core.utils import dedupe_preserving_order
from grantdb.reconcile.matching import (
    MatchPolicy,
    DEFAULT_MATCH_POLICY,
    normalize_recipient,
    is_fuzzy_duplicate,
)


logger = logging.getLogger(__name__)


@dataclass
class DedupStats:
    total_before: int = 0
    excluded: int = 0
    fuzzy_merged: int = 0
    total_after: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalBefore": self.total_before,
            "excluded": self.excluded,
            "fuzzyMerged": self.fuzzy_merged,
            "totalAfter": self.total_after,
        }


@dataclass
class DedupResult:
    """
    Deduplicated grants plus an audit trail.

    ``excluded`` holds the Layer 1 records, ``merged`` holds
    (duplicate, keeper_id) pairs from Layer 2.
    """
    grants: List[Grant] = field(default_factory=list)
    excluded: List[Grant] = field(default_factory=list)
    merged: List[Tuple[Grant, str]] = field(default_factory=list)
    stats: DedupStats = field(default_factory=DedupStats)

    @property
    def removed_amount(self) -> float:
        return sum(dup.amount for dup, _ in self.merged)


def deduplicate_grants(
    grants: Sequence[Grant],
    policy: Optional[MatchPolicy] = None,
) -> DedupResult:
    """
    Remove flagged and fuzzy-duplicate grants.

    Args:
        grants: Normalized grants from all sources, in a stable order
        policy: Matching thresholds (defaults: 10% amount, 90 days)

    Returns:
        DedupResult; ``grants`` is ordered by recipient group (in order of
        first appearance) and by input order within each group
    """
    policy = policy or DEFAULT_MATCH_POLICY
    logger.info(f"[Dedup] Starting with {len(grants)} grants")

    # Layer 1: source flags are authoritative
    layer1 = [g for g in grants if not g.exclude_from_total]
    excluded = [g for g in grants if g.exclude_from_total]
    if excluded:
        logger.info(f"[Dedup] Layer 1: Excluded {len(excluded)} flagged grants")

    # Layer 2: group by normalized recipient, compare across grantmakers
    groups: "OrderedDict[str, List[Grant]]" = OrderedDict()
    for g in layer1:
        groups.setdefault(normalize_recipient(g.recipient, policy.stopwords), []).append(g)

    result = DedupResult(excluded=excluded)

    for group in groups.values():
        if len(group) == 1:
            result.grants.append(group[0])
            continue
        survivors, merged = _merge_group(group, policy)
        result.grants.extend(survivors)
        result.merged.extend(merged)

    if result.merged:
        logger.info(f"[Dedup] Layer 2: Merged {len(result.merged)} fuzzy duplicates")

    result.stats = DedupStats(
        total_before=len(grants),
        excluded=len(excluded),
        fuzzy_merged=len(result.merged),
        total_after=len(result.grants),
    )
    logger.info(f"[Dedup] Result: {len(result.grants)} unique grants")
    return result


def _merge_group(
    group: List[Grant],
    policy: MatchPolicy,
) -> Tuple[List[Grant], List[Tuple[Grant, str]]]:
    """
    Pairwise merge within one recipient group.

    Each record is compared only against earlier records that are still
    keepers; the first match absorbs it. A record that has been absorbed is
    never compared again, so it can only merge into one keeper.
    """
    keepers: List[Grant] = []
    merged: List[Tuple[Grant, str]] = []

    for candidate in group:
        match_index = None
        for i, keeper in enumerate(keepers):
            if is_fuzzy_duplicate(keeper, candidate, policy):
                match_index = i
                break

        if match_index is None:
            keepers.append(candidate)
            continue

        keeper = keepers[match_index]
        funders = list(keeper.funders) or [keeper.grantmaker]
        funders = dedupe_preserving_order(funders + [keeper.grantmaker, candidate.grantmaker])
        keepers[match_index] = replace(keeper, funders=funders)

        logger.debug(
            f"[Dedup] {candidate.id} ({candidate.grantmaker}) merged into "
            f"{keeper.id} ({keeper.grantmaker})"
        )
        merged.append((candidate, keeper.id))

    return keepers, merged
