"""Pure business-logic helpers for provider statistics and anomaly evaluation."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from api_aggregator.analytics.interfaces import ProviderRecord
from api_aggregator.domain.models import (
    PerformanceBuckets,
    PerformanceStatus,
    ProviderPerformanceSnapshot,
    ProviderPerformanceStatus,
    ProviderStatistics,
)

FAST_THRESHOLD_MS = 100.0
AVERAGE_THRESHOLD_MS = 200.0

MIN_OVERALL_REQUESTS = 5
MIN_RECENT_REQUESTS = 2


class StatisticsCalculator:
    """Performs read-only calculations on copied-out record snapshots."""

    def build_statistics(
        self, provider_name: str, records: Sequence[ProviderRecord]
    ) -> ProviderStatistics:
        successful = sum(1 for record in records if record.is_success)
        return ProviderStatistics(
            provider_name=provider_name,
            total_requests=len(records),
            successful_requests=successful,
            failed_requests=len(records) - successful,
            average_response_time_ms=self.average_ms(records) or 0.0,
            performance_buckets=self.bucketize(records),
        )

    def build_snapshot(
        self,
        provider_name: str,
        records: Sequence[ProviderRecord],
        cutoff: datetime,
    ) -> ProviderPerformanceSnapshot:
        if not records:
            return ProviderPerformanceSnapshot(provider_name=provider_name)
        recent = [record for record in records if record.timestamp >= cutoff]
        return ProviderPerformanceSnapshot(
            provider_name=provider_name,
            overall_average_ms=self.average_ms(records) or 0.0,
            overall_request_count=len(records),
            recent_average_ms=self.average_ms(recent),
            recent_request_count=len(recent),
        )

    def bucketize(self, records: Sequence[ProviderRecord]) -> PerformanceBuckets:
        fast = average = slow = 0
        for record in records:
            bucket = self.classify(record.response_time_ms)
            if bucket == "fast":
                fast += 1
            elif bucket == "average":
                average += 1
            else:
                slow += 1
        return PerformanceBuckets(fast=fast, average=average, slow=slow)

    @staticmethod
    def classify(response_time_ms: float) -> str:
        if response_time_ms < FAST_THRESHOLD_MS:
            return "fast"
        if response_time_ms < AVERAGE_THRESHOLD_MS:
            return "average"
        return "slow"

    @staticmethod
    def average_ms(records: Sequence[ProviderRecord]) -> Optional[float]:
        if not records:
            return None
        total = sum(record.response_time_ms for record in records)
        return round(total / len(records), 2)


def degradation_percent(recent_average_ms: float, overall_average_ms: float) -> float:
    if overall_average_ms <= 0:
        return 0.0
    return (recent_average_ms - overall_average_ms) / overall_average_ms * 100


def evaluate_snapshot(
    snapshot: ProviderPerformanceSnapshot, anomaly_threshold_percent: float
) -> ProviderPerformanceStatus:
    """Classify a snapshot as Normal, Anomaly, Insufficient or No Recent Data."""

    fields = dict(
        provider_name=snapshot.provider_name,
        overall_average_ms=snapshot.overall_average_ms,
        overall_request_count=snapshot.overall_request_count,
        recent_average_ms=snapshot.recent_average_ms,
        recent_request_count=snapshot.recent_request_count,
    )
    if snapshot.overall_request_count < MIN_OVERALL_REQUESTS:
        return ProviderPerformanceStatus(
            **fields, status=PerformanceStatus.INSUFFICIENT_DATA
        )
    if snapshot.recent_average_ms is None:
        return ProviderPerformanceStatus(
            **fields, status=PerformanceStatus.NO_RECENT_DATA
        )
    if snapshot.recent_request_count < MIN_RECENT_REQUESTS:
        return ProviderPerformanceStatus(
            **fields, status=PerformanceStatus.INSUFFICIENT_DATA
        )

    degradation = degradation_percent(
        snapshot.recent_average_ms, snapshot.overall_average_ms
    )
    is_anomaly = degradation > anomaly_threshold_percent
    return ProviderPerformanceStatus(
        **fields,
        degradation_percent=round(degradation, 2),
        is_anomaly=is_anomaly,
        status=PerformanceStatus.ANOMALY if is_anomaly else PerformanceStatus.NORMAL,
    )
