"""Open Library search provider adapter."""

from __future__ import annotations

from typing import Dict

from pydantic import JsonValue

from api_aggregator.core.config import ProviderSettings
from api_aggregator.domain.models import AggregationRequest

from .base import BaseProvider


DEFAULT_BOOKS_SETTINGS = ProviderSettings(
    url="https://openlibrary.org/search.json",
    required=["q", "title", "author"],
    filters={"query": "q", "language": "language"},
    parameters=["title", "author", "subject", "limit"],
    sort_parameter="sort",
    sort_mappings={
        "Relevance": None,
        "Newest": "new",
        "Oldest": "old",
        "Popularity": "rating",
    },
    cache_minutes=30,
)


class BooksProvider(BaseProvider):
    """Queries Open Library; the upstream needs no credential."""

    NAME = "Books"
    CACHE_PREFIX = "books"
    DEFAULT_SETTINGS = DEFAULT_BOOKS_SETTINGS

    async def _fetch_data(
        self, request: AggregationRequest, params: Dict[str, str]
    ) -> JsonValue:
        query = self.build_query_string(params)
        return await self._cached_get_json(
            self.cache_key(query), self.settings.url, query, self.settings.cache_ttl
        )

    def _ensure_results(self, data: JsonValue) -> None:
        if isinstance(data, dict) and not data.get("docs"):
            raise self._empty_result()
