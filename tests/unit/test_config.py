import json
from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from api_aggregator.core.config import (
    AggregatorConfig,
    MonitorConfig,
    ProviderSettings,
)


def test_monitor_config_defaults():
    config = MonitorConfig()
    assert config.enabled is True
    assert config.check_interval == timedelta(seconds=30)
    assert config.recent_window == timedelta(minutes=5)
    assert config.anomaly_threshold_percent == 50


def test_monitor_config_from_env(monkeypatch):
    monkeypatch.setenv("AGGREGATOR_MONITOR_ENABLED", "false")
    monkeypatch.setenv("AGGREGATOR_MONITOR_CHECK_INTERVAL_SECONDS", "10")
    monkeypatch.setenv("AGGREGATOR_MONITOR_RECENT_WINDOW_MINUTES", "2")
    monkeypatch.setenv("AGGREGATOR_MONITOR_ANOMALY_THRESHOLD_PERCENT", "75")

    config = MonitorConfig.from_env()

    assert config.enabled is False
    assert config.check_interval_seconds == 10
    assert config.recent_window_minutes == 2
    assert config.anomaly_threshold_percent == 75


def test_monitor_config_rejects_invalid_values():
    with pytest.raises(ValueError):
        MonitorConfig(check_interval_seconds=0)
    with pytest.raises(ValueError):
        MonitorConfig(anomaly_threshold_percent=-1)


def test_monitor_config_from_file_yaml(tmp_path: Path):
    yaml = pytest.importorskip("yaml")
    path = tmp_path / "monitor.yaml"
    path.write_text(yaml.safe_dump({"monitor": {"enabled": False, "recent_window_minutes": 1}}))

    config = MonitorConfig.from_file(str(path))

    assert config.enabled is False
    assert config.recent_window_minutes == 1
    assert config.check_interval_seconds == 30


def test_provider_settings_rejects_unknown_filter():
    with pytest.raises(ValidationError):
        ProviderSettings(url="https://x.test", filters={"author": "author"})


def test_provider_settings_rejects_empty_filter_target():
    with pytest.raises(ValidationError):
        ProviderSettings(url="https://x.test", filters={"query": " "})


def test_provider_settings_rejects_unknown_sort_option():
    with pytest.raises(ValidationError):
        ProviderSettings(
            url="https://x.test", sort_parameter="sort", sort_mappings={"Random": "r"}
        )


def test_provider_settings_rejects_credential_as_upstream_parameter():
    with pytest.raises(ValidationError):
        ProviderSettings(
            url="https://x.test", credential_parameter="apiKey", parameters=["apikey"]
        )


def test_provider_settings_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        ProviderSettings(url="https://x.test", requried=["q"])


def test_provider_settings_masks_secret():
    settings = ProviderSettings(url="https://x.test", api_key="super-secret")

    assert "super-secret" not in repr(settings)
    assert settings.secret() == "super-secret"


def test_provider_settings_normalizes_mapping_keys():
    settings = ProviderSettings(
        url="https://x.test",
        filters={"Query": "q"},
        sort_parameter="sort",
        sort_mappings={"newest": "new", "Relevance": ""},
    )

    assert settings.filters == {"query": "q"}
    assert settings.sort_mappings == {"Newest": "new", "Relevance": None}


def test_aggregator_config_from_file_merges_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("AGGREGATOR_WEATHER_API_KEY", "weather-key")
    data = {
        "providers": {"news": {"api_key": "news-key", "cache_minutes": 3}},
        "monitor": {"check_interval_seconds": 5},
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))

    config = AggregatorConfig.from_file(str(path))

    assert set(config.providers) == {"weather", "news", "books", "prompt"}
    assert config.providers["news"].secret() == "news-key"
    assert config.providers["news"].cache_ttl == timedelta(minutes=3)
    assert config.providers["news"].sort_parameter == "sortBy"
    assert config.providers["weather"].secret() == "weather-key"
    assert config.providers["books"].secret() is None
    assert config.monitor.check_interval_seconds == 5


def test_aggregator_config_rejects_unknown_extension(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text("")

    with pytest.raises(ValueError):
        AggregatorConfig.from_file(str(path))
