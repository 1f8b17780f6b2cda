#!/usr/bin/env python3
"""
Print the scraped-vs-published coverage table for an existing artifact.

Residual grants are included by default, which shows the coverage the UI
presents. Pass --itemized-only to see how much the sources themselves cover.

Usage:
    python scripts/compare_totals.py [--input PATH] [--years 2021,2022,2023] [--itemized-only]
"""

import sys
import argparse
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from grantdb.core import config
from grantdb.core.errors import ReferenceDataError
from grantdb.reconcile.reference import load_reference_tables
from grantdb.reconcile.report import build_coverage_report, format_coverage_table
from grantdb.storage.grant_store import FULL_JSON, load_grants

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description='Compare scraped totals against published totals')
    parser.add_argument('--input', type=str, default=str(config.OUTPUT_DIR / FULL_JSON),
                        help='Path to all-grants.json')
    parser.add_argument('--years', type=str, default=None,
                        help='Comma-separated years (default: GRANTDB_REPORT_YEARS)')
    parser.add_argument('--itemized-only', action='store_true',
                        help='Leave residual grants out of the scraped totals')
    args = parser.parse_args()

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Artifact not found: {input_path}")
        sys.exit(1)

    try:
        reference = load_reference_tables()
    except ReferenceDataError as e:
        logger.error(str(e))
        sys.exit(1)

    grants = load_grants(input_path)
    if args.itemized_only:
        grants = [g for g in grants if not g.is_residual]

    years = [y.strip() for y in args.years.split(',') if y.strip()] if args.years else None
    report = build_coverage_report(grants, reference, years)

    print("=" * 60)
    print(f"Coverage: {input_path}" + (" (itemized only)" if args.itemized_only else ""))
    print("=" * 60)
    print("\n".join(format_coverage_table(report)))


if __name__ == '__main__':
    main()
