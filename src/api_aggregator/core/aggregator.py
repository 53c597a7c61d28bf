"""Aggregation service fanning a request out to every applicable provider."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import List, Optional, Sequence

import httpx

from api_aggregator.domain.interfaces import IProvider, IStatisticsCollector
from api_aggregator.domain.models import (
    AggregationRequest,
    AggregationResponse,
    ApiResponse,
)


class AggregationService:
    """High-level API running providers concurrently with failure isolation."""

    def __init__(
        self,
        providers: Sequence[IProvider],
        statistics: IStatisticsCollector,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._providers = list(providers)
        self._statistics = statistics
        self._http_client = http_client
        self._logger = logger or logging.getLogger(__name__)

    @property
    def providers(self) -> List[IProvider]:
        return list(self._providers)

    @property
    def statistics(self) -> IStatisticsCollector:
        return self._statistics

    async def aggregate(self, request: AggregationRequest) -> AggregationResponse:
        """Query every provider whose ``can_handle`` accepts the request.

        Cancelling the awaiting task cancels every in-flight provider call and
        re-raises ``asyncio.CancelledError``; nothing is recorded for them.
        """

        started = time.perf_counter()
        applicable = [p for p in self._providers if p.can_handle(request)]

        self._logger.info(
            "aggregation_started",
            extra={
                "providers": [provider.name for provider in applicable],
                "parameters": sorted(request.parameters),
            },
        )

        if not applicable:
            self._logger.warning("aggregation_no_applicable_providers")
            return AggregationResponse(
                total_response_time=self._elapsed(started),
                providers_queried=0,
                successful_responses=0,
            )

        results = await asyncio.gather(
            *(self._fetch_from_provider(provider, request) for provider in applicable)
        )
        total = self._elapsed(started)

        response = AggregationResponse(
            total_response_time=total,
            providers_queried=len(applicable),
            successful_responses=sum(1 for result in results if result.is_success),
            results=list(results),
        )
        self._logger.info(
            "aggregation_completed",
            extra={
                "elapsed_ms": round(total.total_seconds() * 1000, 2),
                "successful": response.successful_responses,
                "queried": response.providers_queried,
            },
        )
        return response

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()

    async def __aenter__(self) -> "AggregationService":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _fetch_from_provider(
        self, provider: IProvider, request: AggregationRequest
    ) -> ApiResponse:
        started = time.perf_counter()
        try:
            self._logger.debug("provider_call", extra={"provider": provider.name})
            result = await provider.fetch(request)
        except Exception as exc:
            self._logger.error(
                "provider_call_failed",
                exc_info=exc,
                extra={"provider": provider.name},
            )
            result = ApiResponse.failure(
                provider.name,
                f"provider error: {exc}",
                self._elapsed(started),
            )

        self._statistics.record_request(
            provider.name, result.response_time, result.is_success
        )
        return result

    @staticmethod
    def _elapsed(started: float) -> timedelta:
        return timedelta(seconds=time.perf_counter() - started)
