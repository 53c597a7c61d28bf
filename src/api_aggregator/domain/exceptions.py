"""Exception hierarchy for aggregation and provider failures."""

from __future__ import annotations

from typing import Any, Mapping


class AggregatorError(Exception):
    """Base class for all domain-level errors in the aggregator."""

    default_message = "Aggregator error occurred"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ConfigurationError(AggregatorError):
    """Invalid or incomplete provider/monitor configuration detected at startup."""

    default_message = "Invalid aggregator configuration"


class ProviderError(AggregatorError):
    """Generic provider-related issues surfaced as failed ApiResponses."""

    default_message = "Provider error"


class UpstreamError(ProviderError):
    """Upstream answered with a non-success status or an unusable body."""

    default_message = "Upstream request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        context: Mapping[str, Any] | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, context=context)


class LocationResolutionError(ProviderError):
    """A human location name could not be resolved to coordinates."""

    default_message = "Could not resolve coordinates for the provided location"


class EmptyResultError(ProviderError):
    """Upstream succeeded but returned an empty result set."""

    default_message = "No results returned by upstream"
