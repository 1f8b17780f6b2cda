"""Shared fixtures for grantdb tests.

Nothing here touches the network: adapters are fed raw text directly and
the fetcher is exercised against a fake session.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path so tests can import grantdb without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from grantdb.core.domain_models import Grant
from grantdb.reconcile.reference import ReferenceTables


def make_grant(**overrides) -> Grant:
    """Build a Grant with sensible defaults, override any field."""
    defaults = dict(
        id="g-1",
        title="Test Grant",
        recipient="Test Org",
        amount=100_000.0,
        date="2023-06-01",
        grantmaker="GiveWell",
    )
    defaults.update(overrides)
    return Grant(**defaults)


@pytest.fixture
def grant_factory():
    return make_grant


@pytest.fixture
def reference_tables():
    """Small published-totals table with a comment key and a placeholder."""
    return ReferenceTables.from_dicts(
        {
            "_comment": "Annual totals in USD",
            "GiveWell": {"2022": 10_000_000, "2023": 10_000_000},
            "Founders Pledge": {"2023": 3_000_000, "2024": "pending"},
        },
        {"GiveWell": "GH", "Founders Pledge": "Other"},
    )
