"""Provider abstractions and shared configuration-driven behavior."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import ClassVar, Dict, List, Mapping, Optional

import httpx
from pydantic import JsonValue

from api_aggregator.core.config import ProviderSettings, filter_value
from api_aggregator.domain.exceptions import (
    EmptyResultError,
    LocationResolutionError,
    ProviderError,
    UpstreamError,
)
from api_aggregator.domain.interfaces import ICacheService
from api_aggregator.domain.models import AggregationRequest, ApiResponse, SortOption
from api_aggregator.utils.query import (
    append_credential,
    build_cache_key,
    build_query_string,
)


class BaseProvider(ABC):
    """Template-method base class implementing the shared fetch algorithm.

    Subclasses declare ``NAME``, ``CACHE_PREFIX`` and ``DEFAULT_SETTINGS`` and
    implement ``_fetch_data``. Everything else is driven by the provider's
    ``ProviderSettings``: applicability from ``required``/``filters``, the
    upstream query from ``filters``/``parameters``/``sort_mappings``, and
    cache lifetimes from the TTL fields.
    """

    NAME: ClassVar[str] = "Custom"
    CACHE_PREFIX: ClassVar[str] = "custom"
    DEFAULT_SETTINGS: ClassVar[Optional[ProviderSettings]] = None

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: ICacheService,
        settings: Optional[ProviderSettings] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        resolved = settings or self.DEFAULT_SETTINGS
        if resolved is None:
            raise ValueError(f"{self.__class__.__name__} requires provider settings")
        self.settings = resolved
        self._http = http_client
        self._cache = cache
        self.logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )

    @property
    def name(self) -> str:
        return self.NAME

    def can_handle(self, request: AggregationRequest) -> bool:
        """True when any required name is satisfied by a filter or a parameter."""

        parameters = {key.lower(): value for key, value in request.parameters.items()}
        for required in self.settings.required:
            lowered = required.lower()
            for filter_name, target in self.settings.filters.items():
                if target.lower() == lowered and filter_value(request, filter_name):
                    return True
            if parameters.get(lowered):
                return True
        return False

    async def fetch(self, request: AggregationRequest) -> ApiResponse:
        """Run the provider call, mapping ordinary failures to a failed response."""

        started = time.perf_counter()
        try:
            params = self.prepare_parameters(request)
            data = await self._fetch_data(request, params)
        except LocationResolutionError as exc:
            self.logger.warning(
                "provider_location_unresolved",
                extra={"provider": self.name, "detail": exc.message},
            )
            return self._failure(exc.message, started)
        except UpstreamError as exc:
            status = f" ({exc.status_code})" if exc.status_code is not None else ""
            self.logger.warning(
                "provider_upstream_error",
                extra={"provider": self.name, "status_code": exc.status_code},
            )
            return self._failure(f"HTTP error{status}: {exc.message}", started)
        except httpx.RequestError as exc:
            self.logger.warning(
                "provider_transport_error",
                extra={"provider": self.name, "error": exc.__class__.__name__},
            )
            detail = str(exc) or exc.__class__.__name__
            return self._failure(f"HTTP error: {detail}", started)
        except ProviderError as exc:
            self.logger.warning(
                "provider_error", extra={"provider": self.name, "detail": exc.message}
            )
            return self._failure(exc.message, started)
        except Exception as exc:
            self.logger.exception(
                "provider_unexpected_failure", extra={"provider": self.name}
            )
            return self._failure(str(exc) or exc.__class__.__name__, started)

        return ApiResponse.success(self.name, data, self._elapsed(started))

    @abstractmethod
    async def _fetch_data(
        self, request: AggregationRequest, params: Dict[str, str]
    ) -> JsonValue:
        """Provider-specific upstream interaction implemented by subclasses."""

    # ------------------------------------------------------------------
    # Shared configuration-driven helpers
    # ------------------------------------------------------------------
    def prepare_parameters(self, request: AggregationRequest) -> Dict[str, str]:
        """Merge request parameters with filter values and the sort mapping.

        Keys are lower-cased; filter values win over raw parameters.
        """

        params = {key.lower(): value for key, value in request.parameters.items()}
        for filter_name, target in self.settings.filters.items():
            value = filter_value(request, filter_name)
            if value:
                params[target.lower()] = value
        self.apply_sort_mapping(params, request.sort)
        return params

    def apply_sort_mapping(self, params: Dict[str, str], sort: SortOption) -> None:
        sort_parameter = self.settings.sort_parameter
        if not sort_parameter or not self.settings.sort_mappings:
            return
        upstream_value = self.settings.sort_mappings.get(sort.value)
        if upstream_value:
            params[sort_parameter.lower()] = upstream_value
            self.logger.debug(
                "provider_sort_applied",
                extra={
                    "provider": self.name,
                    "sort": sort.value,
                    "parameter": sort_parameter,
                },
            )

    def upstream_parameter_names(self) -> List[str]:
        names = [*self.settings.filters.values(), *self.settings.parameters]
        if self.settings.sort_parameter:
            names.append(self.settings.sort_parameter)
        return names

    def build_query_string(
        self, params: Mapping[str, str], names: Optional[List[str]] = None
    ) -> str:
        return build_query_string(
            names if names is not None else self.upstream_parameter_names(),
            params,
            credential_parameter=self.settings.credential_parameter,
        )

    def cache_key(self, fingerprint: str, prefix: Optional[str] = None) -> str:
        return build_cache_key(prefix or self.CACHE_PREFIX, fingerprint)

    async def _cached_get_json(
        self, cache_key: str, url: str, query: str, ttl: timedelta
    ) -> JsonValue:
        cached = await self._cache.get(cache_key)
        if cached is not None:
            self.logger.debug(
                "provider_cache_hit",
                extra={"provider": self.name, "cache_key": cache_key},
            )
            return cached

        data = await self._get_json(url, query)
        self._ensure_results(data)
        await self._cache.set(cache_key, data, ttl)
        self.logger.debug(
            "provider_cache_store",
            extra={"provider": self.name, "cache_key": cache_key},
        )
        return data

    async def _get_json(self, url: str, query: str) -> JsonValue:
        outgoing = append_credential(
            url,
            query,
            self.settings.credential_parameter or "",
            self.settings.secret() if self.settings.credential_parameter else None,
        )
        headers = {}
        if self.settings.user_agent:
            headers["User-Agent"] = self.settings.user_agent
        response = await self._http.get(
            outgoing, headers=headers, **self._request_options()
        )
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> JsonValue:
        if response.is_error:
            raise UpstreamError(
                self._error_detail(response), status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"Malformed {self.name} response body",
                status_code=response.status_code,
            ) from exc

    def _request_options(self) -> Dict[str, float]:
        """Per-call httpx options; the client timeout applies when none is set."""

        if self.settings.timeout_seconds is None:
            return {}
        return {"timeout": self.settings.timeout_seconds}

    def _ensure_results(self, data: JsonValue) -> None:
        """Hook for subclasses to reject empty result sets before caching."""

    def _empty_result(self) -> EmptyResultError:
        return EmptyResultError(f"No results returned by {self.name}")

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message")
            error = body.get("error")
            if isinstance(error, dict):
                message = message or error.get("message")
            elif isinstance(error, str):
                message = message or error
            if message:
                return str(message)
        return response.reason_phrase or "Upstream request failed"

    def _failure(self, message: str, started: float) -> ApiResponse:
        return ApiResponse.failure(self.name, message, self._elapsed(started))

    @staticmethod
    def _elapsed(started: float) -> timedelta:
        return timedelta(seconds=time.perf_counter() - started)
