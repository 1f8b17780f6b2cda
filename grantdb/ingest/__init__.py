"""
Source adapters, one per grantmaker.
"""

from .base import SourceAdapter
from .coefficient_giving import CoefficientGivingAdapter
from .ea_funds import EAFundsAdapter
from .givewell import GiveWellAdapter
from .sff import SFFAdapter

ADAPTER_CLASSES = [EAFundsAdapter, CoefficientGivingAdapter, SFFAdapter, GiveWellAdapter]


def default_adapters(fetcher=None, snapshots=None, names=None):
    """Instantiate every adapter (or only those whose ``name`` is in ``names``)."""
    classes = ADAPTER_CLASSES
    if names:
        wanted = set(names)
        unknown = wanted - {cls.name for cls in classes}
        if unknown:
            raise ValueError(f"Unknown sources: {', '.join(sorted(unknown))}")
        classes = [cls for cls in classes if cls.name in wanted]
    return [cls(fetcher=fetcher, snapshots=snapshots) for cls in classes]


__all__ = [
    'SourceAdapter',
    'EAFundsAdapter',
    'CoefficientGivingAdapter',
    'SFFAdapter',
    'GiveWellAdapter',
    'ADAPTER_CLASSES',
    'default_adapters',
]
