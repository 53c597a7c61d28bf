"""NewsAPI provider adapter built on top of ``BaseProvider``."""

from __future__ import annotations

from typing import Dict

from pydantic import JsonValue

from api_aggregator.core.config import ProviderSettings
from api_aggregator.domain.models import AggregationRequest

from .base import BaseProvider


DEFAULT_NEWS_SETTINGS = ProviderSettings(
    url="https://newsapi.org/v2/everything",
    credential_parameter="apiKey",
    required=["q"],
    filters={"query": "q", "language": "language"},
    parameters=["from", "to", "domains", "sources", "pageSize"],
    sort_parameter="sortBy",
    sort_mappings={
        "Relevance": "relevancy",
        "Newest": "publishedAt",
        "Oldest": None,
        "Popularity": "popularity",
    },
    cache_minutes=10,
    user_agent="api-aggregator/1.0",
)


class NewsProvider(BaseProvider):
    """Searches NewsAPI articles for the request query."""

    NAME = "News"
    CACHE_PREFIX = "news"
    DEFAULT_SETTINGS = DEFAULT_NEWS_SETTINGS

    async def _fetch_data(
        self, request: AggregationRequest, params: Dict[str, str]
    ) -> JsonValue:
        query = self.build_query_string(params)
        return await self._cached_get_json(
            self.cache_key(query), self.settings.url, query, self.settings.cache_ttl
        )

    def _ensure_results(self, data: JsonValue) -> None:
        if isinstance(data, dict) and not data.get("articles"):
            raise self._empty_result()
