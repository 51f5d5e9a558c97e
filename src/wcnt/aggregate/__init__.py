from .aggregator import AggregateCount, AggregateKey, WarningAggregator
from .warnings import RawWarning, WarningIdentity

__all__ = [
    "AggregateCount",
    "AggregateKey",
    "RawWarning",
    "WarningAggregator",
    "WarningIdentity",
]
