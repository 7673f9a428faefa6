"""
Cost-of-living source — scraped page content through the provider orchestrator.

Unlike the cache-direct sources, caching, credits and provider fallback are
handled entirely by ProviderOrchestrator.
"""
from typing import Optional

from aggregation.coordinator import SourceTask
from providers.base import FetchOutcome, ScrapeRequest
from providers.orchestrator import ProviderOrchestrator
from sources.base import DestinationQuery


class ScraperSource:
    """Scrapes the cost-of-living page for the destination city."""

    namespace = "cost_of_living"
    TARGET_URL = "https://www.numbeo.com/cost-of-living/in/{city}"

    def __init__(self, orchestrator: ProviderOrchestrator,
                 output_format: str = "markdown",
                 preferred_provider: Optional[str] = None):
        self._orchestrator = orchestrator
        self._output_format = output_format
        self._preferred = preferred_provider

    @property
    def name(self) -> str:
        return self.namespace

    def is_available(self) -> bool:
        return self._orchestrator.is_available()

    def target_url(self, query: DestinationQuery) -> str:
        # Numbeo city slugs: "Sao Paulo" -> "Sao-Paulo"
        slug = "-".join(query.city.strip().split())
        return self.TARGET_URL.format(city=slug)

    def request(self, query: DestinationQuery) -> ScrapeRequest:
        return ScrapeRequest(
            url=self.target_url(query),
            output_format=self._output_format,
            provider=self._preferred,
        )

    async def run(self, query: DestinationQuery) -> FetchOutcome:
        return await self._orchestrator.execute(self.request(query))

    def task(self, query: DestinationQuery, timeout: Optional[float] = None) -> SourceTask:
        return SourceTask(name=self.name, run=lambda: self.run(query), timeout=timeout)
