"""Domain value objects representing aggregation and statistics concepts."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    field_serializer,
    field_validator,
    model_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SortOption(str, Enum):
    """Unified sort options; each provider maps these to its native parameter."""

    RELEVANCE = "Relevance"
    NEWEST = "Newest"
    OLDEST = "Oldest"
    POPULARITY = "Popularity"


class AggregationRequest(BaseModel):
    """Immutable query dispatched to every applicable provider."""

    model_config = ConfigDict(frozen=True)

    sort: SortOption = SortOption.RELEVANCE
    query: Optional[str] = None
    country: Optional[str] = None
    language: Optional[str] = None
    parameters: Mapping[str, str] = Field(default_factory=dict)

    @field_validator("query", "country", "language", mode="before")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("country")
    @classmethod
    def normalize_country(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value

    @field_validator("language")
    @classmethod
    def normalize_language(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value else value

    @field_validator("parameters")
    @classmethod
    def freeze_parameters(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("parameters")
    def serialize_parameters(self, value: Mapping[str, str]) -> Dict[str, str]:
        return dict(value)


class ApiResponse(BaseModel):
    """Outcome of a single provider call; never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    provider: str
    is_success: bool
    data: JsonValue = None
    error_message: Optional[str] = None
    response_time: timedelta = Field(default=timedelta(0))

    @model_validator(mode="after")
    def validate_error_message(self) -> "ApiResponse":
        if self.is_success and self.error_message is not None:
            raise ValueError("successful responses cannot carry an error_message")
        if not self.is_success and not self.error_message:
            raise ValueError("failed responses must carry an error_message")
        return self

    @classmethod
    def success(
        cls, provider: str, data: JsonValue, response_time: timedelta
    ) -> "ApiResponse":
        return cls(
            provider=provider,
            is_success=True,
            data=data,
            response_time=response_time,
        )

    @classmethod
    def failure(
        cls, provider: str, error_message: str, response_time: timedelta
    ) -> "ApiResponse":
        return cls(
            provider=provider,
            is_success=False,
            error_message=error_message or "Unknown error",
            response_time=response_time,
        )


class AggregationResponse(BaseModel):
    """Combined outcome of a fan-out across all applicable providers."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)
    total_response_time: timedelta
    providers_queried: int = Field(..., ge=0)
    successful_responses: int = Field(..., ge=0)
    results: List[ApiResponse] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_counts(self) -> "AggregationResponse":
        if self.providers_queried != len(self.results):
            raise ValueError("providers_queried must equal the number of results")
        if self.successful_responses > self.providers_queried:
            raise ValueError("successful_responses cannot exceed providers_queried")
        actual = sum(1 for result in self.results if result.is_success)
        if self.successful_responses != actual:
            raise ValueError("successful_responses must match successful results")
        return self


class PerformanceBuckets(BaseModel):
    """Latency classification counts that partition a provider's total."""

    model_config = ConfigDict(frozen=True)

    fast: int = 0
    average: int = 0
    slow: int = 0


class ProviderStatistics(BaseModel):
    """Aggregate counters derived from a provider's record log."""

    model_config = ConfigDict(frozen=True)

    provider_name: str
    total_requests: int
    successful_requests: int
    failed_requests: int
    average_response_time_ms: float
    performance_buckets: PerformanceBuckets = Field(default_factory=PerformanceBuckets)


class StatisticsReport(BaseModel):
    """Point-in-time statistics for all providers."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)
    providers: List[ProviderStatistics] = Field(default_factory=list)


class ProviderPerformanceSnapshot(BaseModel):
    """Overall versus recent latency figures used for anomaly detection."""

    model_config = ConfigDict(frozen=True)

    provider_name: str
    overall_average_ms: float = 0.0
    overall_request_count: int = 0
    recent_average_ms: Optional[float] = None
    recent_request_count: int = 0


class PerformanceStatus(str, Enum):
    """Per-provider outcome of one anomaly evaluation."""

    NORMAL = "Normal"
    ANOMALY = "Anomaly"
    INSUFFICIENT_DATA = "Insufficient Data"
    NO_RECENT_DATA = "No Recent Data"


class ProviderPerformanceStatus(BaseModel):
    """Snapshot enriched with degradation and a status verdict."""

    model_config = ConfigDict(frozen=True)

    provider_name: str
    overall_average_ms: float
    overall_request_count: int
    recent_average_ms: Optional[float] = None
    recent_request_count: int
    degradation_percent: Optional[float] = None
    is_anomaly: bool = False
    status: PerformanceStatus = PerformanceStatus.NORMAL


class PerformanceAnomalyReport(BaseModel):
    """Evaluation of every known provider, including the silent states."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)
    recent_window_minutes: float
    anomaly_threshold_percent: float
    providers: List[ProviderPerformanceStatus] = Field(default_factory=list)
