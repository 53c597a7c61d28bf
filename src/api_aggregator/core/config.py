"""Aggregator configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

from api_aggregator.domain.models import AggregationRequest, SortOption

FILTER_NAMES = frozenset({"query", "country", "language"})

ENV_PREFIX = "AGGREGATOR_"


def _str_to_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _str_to_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def _read_mapping(path: str) -> Dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    raw = file_path.read_text()
    suffix = file_path.suffix.lower()
    if suffix == ".json":
        return json.loads(raw)
    if suffix in {".yaml", ".yml"}:
        return _load_yaml(raw)
    raise ValueError("Unsupported config format. Use JSON or YAML.")


def _load_yaml(raw: str) -> Dict[str, Any]:
    try:
        import yaml  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("PyYAML is required to parse YAML config files") from exc
    return yaml.safe_load(raw) or {}


def filter_value(request: AggregationRequest, filter_name: str) -> Optional[str]:
    """Resolve a filter name to the corresponding request field."""

    return {
        "query": request.query,
        "country": request.country,
        "language": request.language,
    }.get(filter_name.lower())


class ProviderSettings(BaseModel):
    """Validated, declarative configuration for a single provider."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    geocoding_url: Optional[str] = None
    api_key: Optional[SecretStr] = None
    credential_parameter: Optional[str] = None
    required: List[str] = Field(default_factory=list)
    filters: Dict[str, str] = Field(default_factory=dict)
    parameters: List[str] = Field(default_factory=list)
    sort_parameter: Optional[str] = None
    sort_mappings: Dict[str, Optional[str]] = Field(default_factory=dict)
    cache_minutes: float = Field(default=10.0, gt=0)
    cache_geo_days: float = Field(default=30.0, gt=0)
    model: Optional[str] = None
    max_tokens: int = Field(default=500, gt=0)
    temperature: float = Field(default=0.7, ge=0, le=2)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    user_agent: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("url must be provided")
        return value.strip()

    @field_validator("filters")
    @classmethod
    def validate_filters(cls, value: Dict[str, str]) -> Dict[str, str]:
        normalized: Dict[str, str] = {}
        for name, target in value.items():
            if name.lower() not in FILTER_NAMES:
                raise ValueError(
                    f"Unknown filter '{name}'. Allowed: {sorted(FILTER_NAMES)}"
                )
            if not target or not target.strip():
                raise ValueError(f"Filter '{name}' must map to an upstream parameter")
            normalized[name.lower()] = target.strip()
        return normalized

    @field_validator("sort_mappings")
    @classmethod
    def validate_sort_mappings(
        cls, value: Dict[str, Optional[str]]
    ) -> Dict[str, Optional[str]]:
        allowed = {option.value.lower(): option.value for option in SortOption}
        normalized: Dict[str, Optional[str]] = {}
        for name, target in value.items():
            canonical = allowed.get(name.lower())
            if canonical is None:
                raise ValueError(
                    f"Unknown sort option '{name}'. Allowed: {sorted(allowed.values())}"
                )
            normalized[canonical] = target or None
        return normalized

    @model_validator(mode="after")
    def validate_credential_placement(self) -> "ProviderSettings":
        if self.credential_parameter:
            lowered = self.credential_parameter.lower()
            upstream = [*self.parameters, *self.filters.values()]
            if any(name.lower() == lowered for name in upstream):
                raise ValueError(
                    "credential_parameter must not be listed as an upstream parameter"
                )
        if self.sort_mappings and not self.sort_parameter:
            raise ValueError("sort_mappings require a sort_parameter")
        return self

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(minutes=self.cache_minutes)

    @property
    def geocoding_ttl(self) -> timedelta:
        return timedelta(days=self.cache_geo_days)

    def secret(self) -> Optional[str]:
        """Raw credential, for outgoing requests only."""

        if self.api_key is None:
            return None
        return self.api_key.get_secret_value() or None

    def merged(self, overrides: Mapping[str, Any]) -> "ProviderSettings":
        """Return new settings with ``overrides`` layered over these values."""

        data = self.model_dump()
        if self.api_key is not None:
            data["api_key"] = self.api_key.get_secret_value()
        data.update(overrides)
        return ProviderSettings(**data)


@dataclass(frozen=True)
class MonitorConfig:
    """Immutable anomaly monitor configuration loaded from env or files."""

    enabled: bool = True
    check_interval_seconds: float = 30
    recent_window_minutes: float = 5
    anomaly_threshold_percent: float = 50

    def __post_init__(self) -> None:
        self.validate()

    @property
    def check_interval(self) -> timedelta:
        return timedelta(seconds=self.check_interval_seconds)

    @property
    def recent_window(self) -> timedelta:
        return timedelta(minutes=self.recent_window_minutes)

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        defaults = cls()
        prefix = f"{ENV_PREFIX}MONITOR_"
        return cls(
            enabled=_str_to_bool(os.getenv(f"{prefix}ENABLED"), defaults.enabled),
            check_interval_seconds=_str_to_float(
                os.getenv(f"{prefix}CHECK_INTERVAL_SECONDS"),
                defaults.check_interval_seconds,
            ),
            recent_window_minutes=_str_to_float(
                os.getenv(f"{prefix}RECENT_WINDOW_MINUTES"),
                defaults.recent_window_minutes,
            ),
            anomaly_threshold_percent=_str_to_float(
                os.getenv(f"{prefix}ANOMALY_THRESHOLD_PERCENT"),
                defaults.anomaly_threshold_percent,
            ),
        )

    @classmethod
    def from_file(cls, path: str) -> "MonitorConfig":
        data = _read_mapping(path)
        return cls.from_mapping(data.get("monitor", data))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MonitorConfig":
        defaults = cls()
        return cls(
            enabled=data.get("enabled", defaults.enabled),
            check_interval_seconds=data.get(
                "check_interval_seconds", defaults.check_interval_seconds
            ),
            recent_window_minutes=data.get(
                "recent_window_minutes", defaults.recent_window_minutes
            ),
            anomaly_threshold_percent=data.get(
                "anomaly_threshold_percent", defaults.anomaly_threshold_percent
            ),
        )

    def validate(self) -> None:
        if self.check_interval_seconds <= 0:
            raise ValueError("check_interval_seconds must be greater than zero")
        if self.recent_window_minutes <= 0:
            raise ValueError("recent_window_minutes must be greater than zero")
        if self.anomaly_threshold_percent < 0:
            raise ValueError("anomaly_threshold_percent must be non-negative")


@dataclass(frozen=True)
class AggregatorConfig:
    """Top-level configuration: provider sections plus the monitor."""

    providers: Dict[str, ProviderSettings] = field(default_factory=dict)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")

    @classmethod
    def from_env(cls) -> "AggregatorConfig":
        return cls(
            providers=cls._resolve_providers({}),
            monitor=MonitorConfig.from_env(),
        )

    @classmethod
    def from_file(cls, path: str) -> "AggregatorConfig":
        data = _read_mapping(path)
        monitor_data = data.get("monitor")
        return cls(
            providers=cls._resolve_providers(data.get("providers") or {}),
            monitor=(
                MonitorConfig.from_mapping(monitor_data)
                if monitor_data is not None
                else MonitorConfig.from_env()
            ),
            timeout_seconds=data.get("timeout_seconds", 30.0),
        )

    @staticmethod
    def _resolve_providers(
        sections: Mapping[str, Mapping[str, Any]]
    ) -> Dict[str, ProviderSettings]:
        # Imported lazily: provider modules depend on this module.
        from api_aggregator.providers.factory import ProviderFactory

        defaults = ProviderFactory.default_settings()
        resolved: Dict[str, ProviderSettings] = {}
        for key in [*defaults, *(k for k in sections if k not in defaults)]:
            overrides = dict(sections.get(key) or {})
            if not overrides.get("api_key"):
                env_key = os.getenv(f"{ENV_PREFIX}{key.upper()}_API_KEY")
                if env_key:
                    overrides["api_key"] = env_key
            base = defaults.get(key)
            resolved[key] = (
                base.merged(overrides) if base else ProviderSettings(**overrides)
            )
        return resolved
