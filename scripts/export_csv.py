#!/usr/bin/env python3
"""
Regenerate the flattened CSV export from an existing all-grants.json.

Usage:
    python scripts/export_csv.py [--input PATH] [--output PATH]

Examples:
    python scripts/export_csv.py                              # data/output/grants.csv
    python scripts/export_csv.py --output /tmp/grants.csv     # Custom output file
"""

import sys
import argparse
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from grantdb.core import config
from grantdb.core.errors import PersistenceError
from grantdb.storage.grant_store import FULL_JSON, CSV_FILE, export_csv, load_grants

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description='Export the canonical grant set to CSV')
    parser.add_argument('--input', type=str, default=str(config.OUTPUT_DIR / FULL_JSON),
                        help='Path to all-grants.json')
    parser.add_argument('--output', type=str, default=None,
                        help=f'Output CSV path (default: {CSV_FILE} next to the input)')
    args = parser.parse_args()

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Artifact not found: {input_path}")
        sys.exit(1)

    grants = load_grants(input_path)
    output = Path(args.output) if args.output else input_path.parent / CSV_FILE

    try:
        export_csv(grants, output)
    except PersistenceError as e:
        logger.error(str(e))
        sys.exit(1)

    residuals = sum(1 for g in grants if g.is_residual)
    print(f"Exported {len(grants)} grants ({residuals} residual) to {output}")


if __name__ == '__main__':
    main()
