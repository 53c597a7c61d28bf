"""Provider factory that wires the shared HTTP client and cache to adapters."""

from __future__ import annotations

from typing import Dict, List, Mapping, Type

import httpx

from api_aggregator.core.config import ProviderSettings
from api_aggregator.domain.exceptions import ConfigurationError
from api_aggregator.domain.interfaces import ICacheService, IProvider

from .base import BaseProvider
from .books_provider import BooksProvider
from .news_provider import NewsProvider
from .prompt_provider import PromptProvider
from .weather_provider import WeatherProvider


class ProviderFactory:
    """Builds the static provider list from configuration sections at startup."""

    _DEFAULT_REGISTRY: Mapping[str, Type[BaseProvider]] = {
        "weather": WeatherProvider,
        "news": NewsProvider,
        "books": BooksProvider,
        "prompt": PromptProvider,
    }

    def __init__(self, http_client: httpx.AsyncClient, cache: ICacheService) -> None:
        self._http_client = http_client
        self._cache = cache
        self._registry: Dict[str, Type[BaseProvider]] = dict(self._DEFAULT_REGISTRY)

    def register_provider(self, key: str, provider_class: Type[BaseProvider]) -> None:
        self._registry[key.lower()] = provider_class

    def create(self, key: str, settings: ProviderSettings | None = None) -> IProvider:
        provider_cls = self._registry.get(key.lower())
        if provider_cls is None:
            raise ConfigurationError(
                f"No provider registered for '{key}'",
                context={"available": sorted(self._registry)},
            )
        return provider_cls(self._http_client, self._cache, settings)

    def create_all(self, sections: Mapping[str, ProviderSettings]) -> List[IProvider]:
        providers = [self.create(key, settings) for key, settings in sections.items()]
        names = [provider.name for provider in providers]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(
                "Provider names must be unique", context={"duplicates": duplicates}
            )
        return providers

    @classmethod
    def default_settings(cls) -> Dict[str, ProviderSettings]:
        return {
            key: provider_cls.DEFAULT_SETTINGS
            for key, provider_cls in cls._DEFAULT_REGISTRY.items()
            if provider_cls.DEFAULT_SETTINGS is not None
        }
