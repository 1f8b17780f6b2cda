#!/usr/bin/env python3
"""
Grants Database - Build Pipeline

Fetches every source, deduplicates cross-source grants, fills publication
gaps with residual grants, writes the canonical artifacts and prints a
validation report against published annual totals.

Usage:
    python run_pipeline.py                          # Full build
    python run_pipeline.py --sources sff,ea-funds   # Only some sources
    python run_pipeline.py --offline                # Rebuild from saved source results
    python run_pipeline.py --dry-run                # Build but don't write artifacts
"""

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path

from grantdb.core import config
from grantdb.core.errors import GrantDBError
from grantdb.ingest import ADAPTER_CLASSES, default_adapters
from grantdb.ingest.fetcher import SourceFetcher
from grantdb.pipeline import SavedResultAdapter, run_pipeline
from grantdb.reconcile.reference import load_reference_tables
from grantdb.storage.fetch_cache import FetchCache
from grantdb.storage.grant_store import GrantStore
from grantdb.storage.snapshot_store import SnapshotStore


logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> Path:
    config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = config.LOG_DIR / f"pipeline_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
    return log_file


def build_adapters(names, offline: bool, snapshots: SnapshotStore):
    if offline:
        wanted = names or [cls.name for cls in ADAPTER_CLASSES]
        return [SavedResultAdapter(name, snapshots) for name in wanted]

    cache = None
    if config.FETCH_CACHE_TTL_HOURS > 0:
        cache = FetchCache(config.FETCH_CACHE_PATH, ttl_hours=config.FETCH_CACHE_TTL_HOURS)
        cache.cleanup_expired()
    fetcher = SourceFetcher(cache=cache)
    return default_adapters(fetcher=fetcher, snapshots=snapshots, names=names)


def main():
    parser = argparse.ArgumentParser(description='Grants Database build pipeline')
    parser.add_argument('--sources', help='Comma-separated source names (default: all)')
    parser.add_argument('--offline', action='store_true', help='Use saved source results instead of fetching')
    parser.add_argument('--dry-run', action='store_true', help="Build but don't write artifacts")
    parser.add_argument('--output-dir', default=str(config.OUTPUT_DIR), help='Artifact directory')
    parser.add_argument('--log-level', default='INFO', help='Logging level')

    args = parser.parse_args()
    log_file = setup_logging(args.log_level)

    names = [n.strip() for n in args.sources.split(',') if n.strip()] if args.sources else None
    start = time.time()

    try:
        snapshots = SnapshotStore(config.RAW_DIR)
        adapters = build_adapters(names, args.offline, snapshots)
        reference = load_reference_tables()
        store = None if args.dry_run else GrantStore(args.output_dir)

        result = run_pipeline(
            adapters,
            reference,
            store=store,
            snapshots=None if args.offline else snapshots,
            progress=True,
        )
    except (GrantDBError, ValueError) as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)

    print()
    print(result.report)
    print()
    if store is not None:
        print(f"Output: {store.full_path}")
        print(f"Lean output: {store.lean_path}")
        print(f"CSV: {store.csv_path}")
    print(f"Log: {log_file}")
    print(f"\nCompleted in {time.time() - start:.1f}s")


if __name__ == '__main__':
    main()
