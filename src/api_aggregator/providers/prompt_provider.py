"""OpenAI-backed provider that generates an analysis prompt for the request."""

from __future__ import annotations

from typing import Any, Dict

import httpx
from pydantic import JsonValue

from api_aggregator.core.config import ProviderSettings
from api_aggregator.domain.exceptions import EmptyResultError, UpstreamError
from api_aggregator.domain.models import AggregationRequest, SortOption
from api_aggregator.utils.query import is_secret_parameter

from .base import BaseProvider


SYSTEM_PROMPT = (
    "You are a data analysis assistant. Based on the user's search context and "
    "parameters, generate a helpful prompt they can use to analyze the aggregated "
    "data they will receive. The prompt should guide them to find insights, trends, "
    "and correlations in the data. Keep the prompt concise but comprehensive. "
    "Return only the prompt text, no additional explanation."
)


DEFAULT_PROMPT_SETTINGS = ProviderSettings(
    url="https://api.openai.com/v1/chat/completions",
    model="gpt-4o-mini",
    max_tokens=500,
    temperature=0.7,
    cache_minutes=60,
)


class PromptProvider(BaseProvider):
    """Applicable to every request once its credential is configured."""

    NAME = "AIPrompt"
    CACHE_PREFIX = "openai"
    DEFAULT_SETTINGS = DEFAULT_PROMPT_SETTINGS

    def can_handle(self, request: AggregationRequest) -> bool:
        return self.settings.secret() is not None

    async def _fetch_data(
        self, request: AggregationRequest, params: Dict[str, str]
    ) -> JsonValue:
        cache_key = self.build_prompt_cache_key(request)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            self.logger.debug(
                "provider_cache_hit",
                extra={"provider": self.name, "cache_key": cache_key},
            )
            return cached

        prompt = await self._complete(self.build_user_message(request))
        data: JsonValue = {"prompt": prompt, "model": self.settings.model}
        await self._cache.set(cache_key, data, self.settings.cache_ttl)
        return data

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def build_user_message(request: AggregationRequest) -> str:
        lines = ["Search Context:"]
        if request.query:
            lines.append(f"- Query: {request.query}")
        if request.language:
            lines.append(f"- Language: {request.language}")
        if request.country:
            lines.append(f"- Country: {request.country}")
        if request.sort is not SortOption.RELEVANCE:
            lines.append(f"- Sort: {request.sort.value}")
        visible = {
            key: value
            for key, value in request.parameters.items()
            if not is_secret_parameter(key)
        }
        if visible:
            lines.append("- Parameters:")
            lines.extend(f"  - {key}: {value}" for key, value in visible.items())
        return "\n".join(lines) + "\n"

    def build_prompt_cache_key(self, request: AggregationRequest) -> str:
        parts = []
        if request.query:
            parts.append(f"q={request.query}")
        if request.language:
            parts.append(f"lang={request.language}")
        if request.country:
            parts.append(f"country={request.country}")
        if request.sort is not SortOption.RELEVANCE:
            parts.append(f"sort={request.sort.value}")
        for key in sorted(request.parameters):
            if is_secret_parameter(key, self.settings.credential_parameter):
                continue
            parts.append(f"{key}={request.parameters[key]}")
        return self.cache_key(":".join(parts))

    def _build_payload(self, user_message: str) -> Dict[str, Any]:
        return {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
        }

    async def _complete(self, user_message: str) -> str:
        headers = {
            "Authorization": f"Bearer {self.settings.secret()}",
            "Content-Type": "application/json",
        }
        http_response = await self._http.post(
            self.settings.url,
            json=self._build_payload(user_message),
            headers=headers,
            **self._request_options(),
        )
        return self._map_response(http_response)

    def _map_response(self, http_response: httpx.Response) -> str:
        data = self._decode(http_response)
        try:
            content = data["choices"][0]["message"]["content"]  # type: ignore[index]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamError(
                "Malformed OpenAI response", status_code=http_response.status_code
            ) from exc
        if not content or not str(content).strip():
            raise EmptyResultError("OpenAI returned empty response")
        return str(content)
