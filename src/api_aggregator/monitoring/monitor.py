"""Background control loop flagging provider latency degradation."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from api_aggregator.analytics.calculator import evaluate_snapshot
from api_aggregator.core.config import MonitorConfig
from api_aggregator.domain.interfaces import IStatisticsCollector
from api_aggregator.domain.models import (
    PerformanceAnomalyReport,
    PerformanceStatus,
    ProviderPerformanceStatus,
)


class PerformanceMonitor:
    """Periodically compares recent and overall latency for every provider.

    ``run`` is the loop body; ``start``/``stop`` manage it as a background
    task. The wait between ticks is interruptible by ``stop`` and by task
    cancellation, and a failing tick is logged without ending the loop.
    """

    def __init__(
        self,
        statistics: IStatisticsCollector,
        config: MonitorConfig | None = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._statistics = statistics
        self._config = config or MonitorConfig()
        self._logger = logger or logging.getLogger(__name__)
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        if self.running:
            raise RuntimeError("Performance monitor is already running")
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run(), name="performance-monitor")
        return self._task

    async def stop(self) -> None:
        """Request shutdown and wait for the loop; safe after task cancellation."""

        self._stop_event.set()
        task, self._task = self._task, None
        if task is None:
            return
        if task.done():
            if not task.cancelled():
                task.result()
            return
        await task

    async def run(self) -> None:
        config = self._config
        if not config.enabled:
            self._logger.info("performance_monitor_disabled")
            return

        self._logger.info(
            "performance_monitor_started",
            extra={
                "interval_seconds": config.check_interval_seconds,
                "window_minutes": config.recent_window_minutes,
                "threshold_percent": config.anomaly_threshold_percent,
            },
        )
        try:
            while not self._stop_event.is_set():
                if await self._wait_for_stop(config.check_interval.total_seconds()):
                    break
                try:
                    self.analyze()
                except Exception:
                    self._logger.exception("performance_analysis_failed")
        finally:
            self._logger.info("performance_monitor_stopped")

    def analyze(self) -> List[ProviderPerformanceStatus]:
        """Run one tick: evaluate every provider and emit the reported states."""

        statuses = self._evaluate_all()
        for status in statuses:
            if status.status is PerformanceStatus.ANOMALY:
                self._logger.warning(
                    "performance_anomaly_detected",
                    extra={
                        "provider": status.provider_name,
                        "recent_average_ms": status.recent_average_ms,
                        "recent_request_count": status.recent_request_count,
                        "overall_average_ms": status.overall_average_ms,
                        "overall_request_count": status.overall_request_count,
                        "degradation_percent": status.degradation_percent,
                        "threshold_percent": self._config.anomaly_threshold_percent,
                    },
                )
            elif status.status is PerformanceStatus.NORMAL:
                self._logger.debug(
                    "performance_normal",
                    extra={
                        "provider": status.provider_name,
                        "recent_average_ms": status.recent_average_ms,
                        "overall_average_ms": status.overall_average_ms,
                    },
                )
        return statuses

    def get_anomaly_report(self) -> PerformanceAnomalyReport:
        """Synchronous view of every provider, including the silent states."""

        return PerformanceAnomalyReport(
            timestamp=datetime.now(timezone.utc),
            recent_window_minutes=self._config.recent_window_minutes,
            anomaly_threshold_percent=self._config.anomaly_threshold_percent,
            providers=self._evaluate_all(),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _evaluate_all(self) -> List[ProviderPerformanceStatus]:
        window = self._config.recent_window
        return [
            evaluate_snapshot(
                self._statistics.get_provider_snapshot(name, window),
                self._config.anomaly_threshold_percent,
            )
            for name in sorted(self._statistics.get_provider_names())
        ]

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to ``timeout``; True when a stop was requested meanwhile."""

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
