"""Dependency injection container for building fully-wired aggregator parts."""

from __future__ import annotations

from typing import Optional, Sequence

import httpx

from api_aggregator.analytics.collector import StatisticsCollector
from api_aggregator.caching.memory_cache import InMemoryCacheService
from api_aggregator.core.aggregator import AggregationService
from api_aggregator.core.config import AggregatorConfig, MonitorConfig
from api_aggregator.domain.interfaces import (
    ICacheService,
    IProvider,
    IStatisticsCollector,
)
from api_aggregator.monitoring.monitor import PerformanceMonitor
from api_aggregator.providers.factory import ProviderFactory


class DIContainer:
    """Factory helpers that assemble the service and monitor with default wiring."""

    @staticmethod
    def create_service(
        *,
        config: Optional[AggregatorConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        cache: Optional[ICacheService] = None,
        statistics: Optional[IStatisticsCollector] = None,
    ) -> AggregationService:
        cfg = config or AggregatorConfig.from_env()
        owned_client = http_client is None
        client = http_client or DIContainer._build_http_client(cfg)

        factory = ProviderFactory(client, cache or InMemoryCacheService())
        providers = factory.create_all(cfg.providers)

        return AggregationService(
            providers,
            statistics or StatisticsCollector(),
            http_client=client if owned_client else None,
        )

    @staticmethod
    def create_custom_service(
        *,
        providers: Sequence[IProvider],
        statistics: Optional[IStatisticsCollector] = None,
    ) -> AggregationService:
        return AggregationService(providers, statistics or StatisticsCollector())

    @staticmethod
    def create_monitor(
        statistics: IStatisticsCollector,
        config: Optional[MonitorConfig] = None,
    ) -> PerformanceMonitor:
        return PerformanceMonitor(statistics, config or MonitorConfig.from_env())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_http_client(config: AggregatorConfig) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=config.timeout_seconds)
