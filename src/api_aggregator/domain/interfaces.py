"""Domain-level interfaces defining contracts for aggregation collaborators."""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional, Protocol, Set

from pydantic import JsonValue

from .models import (
    AggregationRequest,
    ApiResponse,
    ProviderPerformanceSnapshot,
    ProviderStatistics,
)


class IProvider(Protocol):
    """Contract every provider adapter must satisfy."""

    @property
    def name(self) -> str:
        """Stable provider name used in responses and statistics."""

    def can_handle(self, request: AggregationRequest) -> bool:
        """Pure applicability check; must not perform I/O."""

    async def fetch(self, request: AggregationRequest) -> ApiResponse:
        """Fetch provider data, mapping ordinary failures to a failed response."""


class ICacheService(Protocol):
    """Key/value store with per-entry time to live."""

    async def get(self, key: str) -> Optional[JsonValue]:
        """Return the cached value or None when absent or expired."""

    async def set(self, key: str, value: JsonValue, ttl: timedelta) -> None:
        """Store a value that expires after ``ttl``."""

    async def remove(self, key: str) -> None:
        """Drop a cached value if present."""


class IStatisticsCollector(Protocol):
    """Thread-safe sink and query surface for per-provider latency records."""

    def record_request(
        self, provider_name: str, elapsed: timedelta | float, success: bool
    ) -> None:
        """Append one observation to the provider's log."""

    def get_statistics(self) -> List[ProviderStatistics]:
        """Aggregate statistics for each provider with at least one record."""

    def get_provider_snapshot(
        self, provider_name: str, recent_window: timedelta
    ) -> ProviderPerformanceSnapshot:
        """Overall versus trailing-window latency figures for one provider."""

    def get_provider_names(self) -> Set[str]:
        """Names of every provider with at least one record."""

    def reset(self) -> None:
        """Clear every provider log."""
