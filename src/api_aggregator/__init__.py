"""API aggregator package: provider fan-out, statistics and anomaly monitoring."""

from .core.aggregator import AggregationService
from .core.container import DIContainer

__all__ = [
    "AggregationService",
    "DIContainer",
    "domain",
    "core",
    "providers",
    "analytics",
    "caching",
    "monitoring",
    "utils",
]
