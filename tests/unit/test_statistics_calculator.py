from datetime import datetime, timedelta, timezone

import pytest

from api_aggregator.analytics.calculator import (
    StatisticsCalculator,
    degradation_percent,
    evaluate_snapshot,
)
from api_aggregator.analytics.interfaces import ProviderRecord
from api_aggregator.domain.models import (
    PerformanceStatus,
    ProviderPerformanceSnapshot,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _record(ms: float, success: bool = True, minutes_ago: float = 0) -> ProviderRecord:
    return ProviderRecord(
        response_time_ms=ms,
        is_success=success,
        timestamp=NOW - timedelta(minutes=minutes_ago),
    )


def _snapshot(
    overall_avg: float, overall_count: int, recent_avg, recent_count: int
) -> ProviderPerformanceSnapshot:
    return ProviderPerformanceSnapshot(
        provider_name="News",
        overall_average_ms=overall_avg,
        overall_request_count=overall_count,
        recent_average_ms=recent_avg,
        recent_request_count=recent_count,
    )


@pytest.mark.parametrize(
    "ms, expected",
    [(0, "fast"), (99.99, "fast"), (100, "average"), (199.9, "average"), (200, "slow")],
)
def test_classify_bucket_boundaries(ms, expected):
    assert StatisticsCalculator.classify(ms) == expected


def test_build_statistics_counts_and_buckets():
    calc = StatisticsCalculator()
    records = [_record(50), _record(150, success=False), _record(250), _record(10)]

    stats = calc.build_statistics("Books", records)

    assert stats.total_requests == 4
    assert stats.successful_requests == 3
    assert stats.failed_requests == 1
    assert stats.average_response_time_ms == 115.0
    assert (
        stats.performance_buckets.fast,
        stats.performance_buckets.average,
        stats.performance_buckets.slow,
    ) == (2, 1, 1)


def test_average_rounds_to_two_decimals():
    records = [_record(10), _record(10), _record(11)]
    assert StatisticsCalculator.average_ms(records) == 10.33
    assert StatisticsCalculator.average_ms([]) is None


def test_build_snapshot_splits_recent_window():
    calc = StatisticsCalculator()
    records = [_record(100, minutes_ago=30), _record(200, minutes_ago=1), _record(300)]

    snapshot = calc.build_snapshot("Weather", records, NOW - timedelta(minutes=5))

    assert snapshot.overall_request_count == 3
    assert snapshot.overall_average_ms == 200.0
    assert snapshot.recent_request_count == 2
    assert snapshot.recent_average_ms == 250.0


def test_build_snapshot_without_records():
    snapshot = StatisticsCalculator().build_snapshot("Weather", [], NOW)

    assert snapshot.overall_request_count == 0
    assert snapshot.overall_average_ms == 0.0
    assert snapshot.recent_average_ms is None


def test_degradation_percent_handles_zero_baseline():
    assert degradation_percent(50.0, 0.0) == 0.0
    assert degradation_percent(150.0, 100.0) == pytest.approx(50.0)


def test_evaluate_snapshot_detects_anomaly():
    status = evaluate_snapshot(_snapshot(100.0, 10, 200.0, 5), 50)

    assert status.status is PerformanceStatus.ANOMALY
    assert status.is_anomaly is True
    assert status.degradation_percent == pytest.approx(100.0)


def test_evaluate_snapshot_normal_at_threshold():
    status = evaluate_snapshot(_snapshot(100.0, 10, 150.0, 5), 50)

    assert status.status is PerformanceStatus.NORMAL
    assert status.is_anomaly is False
    assert status.degradation_percent == pytest.approx(50.0)


def test_evaluate_snapshot_improvement_is_normal():
    status = evaluate_snapshot(_snapshot(100.0, 10, 40.0, 3), 50)

    assert status.status is PerformanceStatus.NORMAL
    assert status.degradation_percent == pytest.approx(-60.0)


def test_evaluate_snapshot_requires_overall_history():
    status = evaluate_snapshot(_snapshot(100.0, 4, 900.0, 4), 50)

    assert status.status is PerformanceStatus.INSUFFICIENT_DATA
    assert status.is_anomaly is False


def test_evaluate_snapshot_without_recent_records():
    status = evaluate_snapshot(_snapshot(100.0, 10, None, 0), 50)

    assert status.status is PerformanceStatus.NO_RECENT_DATA


def test_evaluate_snapshot_requires_two_recent_records():
    status = evaluate_snapshot(_snapshot(100.0, 10, 500.0, 1), 50)

    assert status.status is PerformanceStatus.INSUFFICIENT_DATA
    assert status.is_anomaly is False


def test_evaluate_snapshot_zero_overall_average_is_normal():
    status = evaluate_snapshot(_snapshot(0.0, 10, 0.0, 3), 0)

    assert status.status is PerformanceStatus.NORMAL
    assert status.degradation_percent == 0.0
