"""Thread-safe per-provider statistics collector."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Set

from api_aggregator.analytics.calculator import StatisticsCalculator
from api_aggregator.analytics.interfaces import ProviderRecord
from api_aggregator.domain.interfaces import IStatisticsCollector
from api_aggregator.domain.models import (
    ProviderPerformanceSnapshot,
    ProviderStatistics,
    StatisticsReport,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _ProviderLog:
    """Append-only record list guarded by its own lock."""

    __slots__ = ("_lock", "_items")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: List[ProviderRecord] = []

    def append(self, record: ProviderRecord) -> None:
        with self._lock:
            self._items.append(record)

    def snapshot(self) -> List[ProviderRecord]:
        with self._lock:
            return list(self._items)


class StatisticsCollector(IStatisticsCollector):
    """Accumulates provider records and answers aggregate/windowed queries.

    Each provider owns an independently locked log so heavy traffic on one
    provider never blocks another. The registry lock is held only to look up
    or create a log and to swap the registry on reset. All reads copy a log
    out under its lock before computing derived values.
    """

    def __init__(
        self,
        calculator: StatisticsCalculator | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._calculator = calculator or StatisticsCalculator()
        self._clock = clock
        self._registry_lock = threading.Lock()
        self._logs: Dict[str, _ProviderLog] = {}

    def record_request(
        self, provider_name: str, elapsed: timedelta | float, success: bool
    ) -> None:
        """Append one observation; ``elapsed`` is a timedelta or milliseconds."""

        response_time_ms = (
            elapsed.total_seconds() * 1000
            if isinstance(elapsed, timedelta)
            else float(elapsed)
        )
        record = ProviderRecord(
            response_time_ms=max(response_time_ms, 0.0),
            is_success=success,
            timestamp=self._clock(),
        )
        self._log_for(provider_name).append(record)

    def get_statistics(self) -> List[ProviderStatistics]:
        statistics = []
        for provider_name, log in self._logs_snapshot().items():
            records = log.snapshot()
            if not records:
                continue
            statistics.append(
                self._calculator.build_statistics(provider_name, records)
            )
        return statistics

    def get_report(self) -> StatisticsReport:
        return StatisticsReport(timestamp=self._clock(), providers=self.get_statistics())

    def get_provider_snapshot(
        self, provider_name: str, recent_window: timedelta
    ) -> ProviderPerformanceSnapshot:
        with self._registry_lock:
            log = self._logs.get(provider_name)
        records = log.snapshot() if log is not None else []
        cutoff = self._clock() - recent_window
        return self._calculator.build_snapshot(provider_name, records, cutoff)

    def get_provider_names(self) -> Set[str]:
        return {
            name for name, log in self._logs_snapshot().items() if log.snapshot()
        }

    def reset(self) -> None:
        with self._registry_lock:
            self._logs = {}

    def to_dataframe(self) -> Any:
        """Export every record, one row per observation, as a pandas DataFrame."""

        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pandas is required for dataframe export") from exc

        rows = [
            {"provider": provider_name, **record.model_dump()}
            for provider_name, log in self._logs_snapshot().items()
            for record in log.snapshot()
        ]
        return pd.DataFrame(rows)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _log_for(self, provider_name: str) -> _ProviderLog:
        with self._registry_lock:
            log = self._logs.get(provider_name)
            if log is None:
                log = _ProviderLog()
                self._logs[provider_name] = log
            return log

    def _logs_snapshot(self) -> Dict[str, _ProviderLog]:
        with self._registry_lock:
            return dict(self._logs)
