"""OpenWeatherMap provider with cached city-to-coordinates geocoding."""

from __future__ import annotations

from typing import Dict, Tuple
from urllib.parse import quote

from pydantic import JsonValue

from api_aggregator.core.config import ProviderSettings
from api_aggregator.domain.exceptions import LocationResolutionError, UpstreamError
from api_aggregator.domain.models import AggregationRequest

from .base import BaseProvider

GEOCODING_CACHE_PREFIX = "geo"

# Consumed by geocoding only; never forwarded to the weather endpoint.
LOCATION_PARAMETERS = ("city", "state", "country")


DEFAULT_WEATHER_SETTINGS = ProviderSettings(
    url="https://api.openweathermap.org/data/2.5/weather",
    geocoding_url="https://api.openweathermap.org/geo/1.0/direct",
    credential_parameter="appid",
    required=["city", "lat"],
    filters={"country": "country", "language": "lang"},
    parameters=["units"],
    cache_minutes=10,
    cache_geo_days=30,
)


class WeatherProvider(BaseProvider):
    """Current weather by coordinates, or by city resolved through geocoding."""

    NAME = "Weather"
    CACHE_PREFIX = "weather"
    DEFAULT_SETTINGS = DEFAULT_WEATHER_SETTINGS

    async def _fetch_data(
        self, request: AggregationRequest, params: Dict[str, str]
    ) -> JsonValue:
        lat, lon = await self._resolve_coordinates(params)
        values = {**params, "lat": lat, "lon": lon}
        names = ["lat", "lon"] + [
            name
            for name in self.upstream_parameter_names()
            if name.lower() not in LOCATION_PARAMETERS
        ]
        query = self.build_query_string(values, names)
        return await self._cached_get_json(
            self.cache_key(query), self.settings.url, query, self.settings.cache_ttl
        )

    async def _resolve_coordinates(self, params: Dict[str, str]) -> Tuple[str, str]:
        lat, lon = params.get("lat"), params.get("lon")
        if lat and lon:
            return lat, lon
        if params.get("city"):
            return await self._geocode(params)
        raise LocationResolutionError()

    async def _geocode(self, params: Dict[str, str]) -> Tuple[str, str]:
        query = self.build_geocoding_query(params)
        cache_key = self.cache_key(query, GEOCODING_CACHE_PREFIX)

        cached = await self._cache.get(cache_key)
        if isinstance(cached, dict) and cached.get("lat") and cached.get("lon"):
            self.logger.debug(
                "geocoding_cache_hit", extra={"provider": self.name, "cache_key": cache_key}
            )
            return str(cached["lat"]), str(cached["lon"])

        if not self.settings.geocoding_url:
            raise LocationResolutionError(
                "Geocoding is not configured for this provider"
            )
        results = await self._get_json(self.settings.geocoding_url, query)
        if not isinstance(results, list):
            raise UpstreamError("Malformed geocoding response body")
        if not results or not isinstance(results[0], dict):
            raise LocationResolutionError()

        first = results[0]
        if first.get("lat") is None or first.get("lon") is None:
            raise LocationResolutionError()
        resolved = {"lat": str(first["lat"]), "lon": str(first["lon"])}
        await self._cache.set(cache_key, resolved, self.settings.geocoding_ttl)
        self.logger.debug(
            "geocoding_cache_store", extra={"provider": self.name, "cache_key": cache_key}
        )
        return resolved["lat"], resolved["lon"]

    @staticmethod
    def build_geocoding_query(params: Dict[str, str]) -> str:
        """``q=city[,state][,country]&limit=1``, keeping the state slot when absent."""

        location = quote(params["city"], safe="")
        state = params.get("state")
        country = params.get("country")
        if state:
            location += f",{quote(state, safe='')}"
        if country:
            if not state:
                location += ","
            location += f",{quote(country, safe='')}"
        return f"q={location}&limit=1"
