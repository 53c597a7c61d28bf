"""Analytics contracts shared by the collector and the calculator."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProviderRecord(BaseModel):
    """Immutable observation of one completed provider call."""

    response_time_ms: float = Field(..., ge=0)
    is_success: bool
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)
