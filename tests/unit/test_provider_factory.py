import httpx
import pytest

from api_aggregator.caching.memory_cache import InMemoryCacheService
from api_aggregator.core.config import ProviderSettings
from api_aggregator.domain.exceptions import ConfigurationError
from api_aggregator.providers.base import BaseProvider
from api_aggregator.providers.books_provider import BooksProvider
from api_aggregator.providers.factory import ProviderFactory
from api_aggregator.providers.news_provider import NewsProvider
from api_aggregator.providers.prompt_provider import PromptProvider
from api_aggregator.providers.weather_provider import WeatherProvider


class _EchoProvider(BaseProvider):
    NAME = "Echo"
    CACHE_PREFIX = "echo"

    async def _fetch_data(self, request, params):
        return dict(params)


@pytest.fixture
def factory() -> ProviderFactory:
    return ProviderFactory(httpx.AsyncClient(), InMemoryCacheService())


def test_create_known_providers(factory):
    assert isinstance(factory.create("weather"), WeatherProvider)
    assert isinstance(factory.create("NEWS"), NewsProvider)
    assert isinstance(factory.create("books"), BooksProvider)
    assert isinstance(factory.create("prompt"), PromptProvider)


def test_create_unknown_provider_raises(factory):
    with pytest.raises(ConfigurationError) as excinfo:
        factory.create("stocks")

    assert "stocks" in excinfo.value.message
    assert "weather" in excinfo.value.context["available"]


def test_create_uses_supplied_settings(factory):
    settings = ProviderSettings(url="https://news.test", required=["q"], cache_minutes=1)

    provider = factory.create("news", settings)

    assert provider.settings is settings


def test_register_custom_provider(factory):
    factory.register_provider("Echo", _EchoProvider)

    provider = factory.create("echo", ProviderSettings(url="https://echo.test"))

    assert provider.name == "Echo"


def test_create_all_rejects_duplicate_names(factory):
    factory.register_provider("news2", NewsProvider)
    defaults = ProviderFactory.default_settings()

    with pytest.raises(ConfigurationError):
        factory.create_all({"news": defaults["news"], "news2": defaults["news"]})


def test_default_settings_cover_builtin_providers():
    defaults = ProviderFactory.default_settings()

    assert set(defaults) == {"weather", "news", "books", "prompt"}
    assert defaults["weather"].credential_parameter == "appid"
    assert defaults["news"].sort_mappings["Oldest"] is None
    assert defaults["books"].credential_parameter is None
