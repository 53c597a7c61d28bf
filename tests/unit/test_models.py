from datetime import timedelta

import pytest
from pydantic import ValidationError

from api_aggregator.domain.models import (
    AggregationRequest,
    AggregationResponse,
    ApiResponse,
    PerformanceBuckets,
    SortOption,
)


def test_aggregation_request_defaults():
    request = AggregationRequest()

    assert request.sort is SortOption.RELEVANCE
    assert request.query is None
    assert request.parameters == {}


def test_aggregation_request_is_immutable():
    request = AggregationRequest(query="rust")

    with pytest.raises(ValidationError):
        request.query = "python"  # type: ignore[misc]


def test_aggregation_request_parameters_are_read_only():
    request = AggregationRequest(parameters={"city": "London"})

    with pytest.raises(TypeError):
        request.parameters["city"] = "Paris"  # type: ignore[index]

    assert request.parameters["city"] == "London"
    assert request.model_dump()["parameters"] == {"city": "London"}
    assert request.model_dump(mode="json")["parameters"] == {"city": "London"}


def test_aggregation_request_normalizes_codes_and_blanks():
    request = AggregationRequest(query="  ", country="gb", language="EN", sort="Newest")

    assert request.query is None
    assert request.country == "GB"
    assert request.language == "en"
    assert request.sort is SortOption.NEWEST


def test_aggregation_request_copies_parameters():
    source = {"city": "London"}
    request = AggregationRequest(parameters=source)
    source["city"] = "Paris"

    assert request.parameters["city"] == "London"


def test_api_response_success_factory():
    response = ApiResponse.success("News", {"articles": [1]}, timedelta(milliseconds=5))

    assert response.is_success is True
    assert response.error_message is None
    assert response.data == {"articles": [1]}


def test_api_response_failure_requires_message():
    with pytest.raises(ValidationError):
        ApiResponse(provider="News", is_success=False)


def test_api_response_success_rejects_error_message():
    with pytest.raises(ValidationError):
        ApiResponse(provider="News", is_success=True, error_message="boom")


def test_api_response_data_accepts_nested_json():
    payload = {"a": [1, 2.5, None, True, {"b": "c"}]}
    response = ApiResponse.success("Books", payload, timedelta(0))

    assert response.model_dump(mode="json")["data"] == payload


def test_aggregation_response_counts_must_match_results():
    ok = ApiResponse.success("News", None, timedelta(0))
    failed = ApiResponse.failure("Books", "down", timedelta(0))

    response = AggregationResponse(
        total_response_time=timedelta(milliseconds=3),
        providers_queried=2,
        successful_responses=1,
        results=[ok, failed],
    )
    assert response.successful_responses <= response.providers_queried

    with pytest.raises(ValidationError):
        AggregationResponse(
            total_response_time=timedelta(0),
            providers_queried=3,
            successful_responses=1,
            results=[ok, failed],
        )
    with pytest.raises(ValidationError):
        AggregationResponse(
            total_response_time=timedelta(0),
            providers_queried=2,
            successful_responses=2,
            results=[ok, failed],
        )


def test_performance_buckets_default_to_zero():
    buckets = PerformanceBuckets()
    assert (buckets.fast, buckets.average, buckets.slow) == (0, 0, 0)
