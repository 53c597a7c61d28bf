"""Basic aggregation example using the built-in DI container."""

import asyncio
import logging

from api_aggregator.core.container import DIContainer
from api_aggregator.domain.models import AggregationRequest, SortOption


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    service = DIContainer.create_service()
    monitor = DIContainer.create_monitor(service.statistics)
    monitor.start()

    try:
        async with service:
            response = await service.aggregate(
                AggregationRequest(
                    query="climate",
                    language="en",
                    sort=SortOption.NEWEST,
                    parameters={"city": "London"},
                )
            )
            print("Queried:", response.providers_queried)
            print("Succeeded:", response.successful_responses)
            for result in response.results:
                status = "ok" if result.is_success else result.error_message
                print(f"  {result.provider}: {status}")

            for stats in service.statistics.get_statistics():
                print(stats.model_dump_json())
    finally:
        await monitor.stop()


if __name__ == "__main__":
    asyncio.run(main())
