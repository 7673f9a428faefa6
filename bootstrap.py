"""
Process bootstrap for the acquisition layer.

Builds exactly one CacheStore and one ProviderCreditLedger per process and
hands them by reference to the orchestrator, the coordinator and every
source. Owns the periodic maintenance task (expired-entry sweep and credit
period rollover) so none of the components run timers themselves.

Usage:
    runtime = build_runtime()
    stop = asyncio.Event()
    maintenance = start_maintenance(runtime, stop)

    result = await runtime.gather(DestinationQuery(city="Lisbon", country="Portugal"))
    print(result.summary())

    stop.set()
    await maintenance
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger

from aggregation.coordinator import AggregationCoordinator, PartialResult, SourceTask
from config.acquisition_config import CONFIG, AcquisitionConfig
from config.settings import Settings, get_settings
from providers.base import BaseScrapeProvider
from providers.cache import CacheStore
from providers.credits import ProviderCreditLedger
from providers.orchestrator import ProviderOrchestrator
from providers.scrapers import get_scrape_providers
from sources.base import DestinationQuery
from sources.community import CommunitySource
from sources.currency import CurrencySource
from sources.news import NewsSource
from sources.scraper import ScraperSource
from sources.video import VideoSource
from utils.error_handler import log_exception
from utils.platform import now_in, period_key


@dataclass
class AcquisitionRuntime:
    """Process-lifetime container for the shared acquisition components."""
    config: AcquisitionConfig
    cache: CacheStore
    ledger: ProviderCreditLedger
    orchestrator: ProviderOrchestrator
    coordinator: AggregationCoordinator
    sources: List = field(default_factory=list)

    def tasks(self, query: DestinationQuery) -> List[SourceTask]:
        """One task per source for this query."""
        timeout = self.config.providers.source_timeout
        return [source.task(query, timeout=timeout) for source in self.sources]

    async def gather(self, query: DestinationQuery) -> PartialResult:
        """Run every source for the query and return the partial result."""
        logger.info(f"Gathering destination data for {query.place}")
        return await self.coordinator.aggregate(self.tasks(query))

    def health_report(self) -> str:
        parts = [self.ledger.format_health_report(), self.cache.format_stats_report()]
        return "\n".join(p for p in parts if p)


def _default_scrape_providers(config: AcquisitionConfig,
                              settings: Settings) -> List[BaseScrapeProvider]:
    """Scraping providers in configured order, with credentials from settings."""
    return get_scrape_providers(
        config.providers.scraper_providers,
        timeouts=config.providers.timeouts(),
        api_keys={
            "firecrawl": settings.firecrawl_api_key,
            "scraperapi": settings.scraperapi_key,
        },
    )


def build_runtime(
    config: Optional[AcquisitionConfig] = None,
    settings: Optional[Settings] = None,
    scrape_providers: Optional[Sequence[BaseScrapeProvider]] = None,
) -> AcquisitionRuntime:
    """Construct the shared cache, ledger, orchestrator, coordinator and sources."""
    config = config or CONFIG
    settings = settings or get_settings()

    cache = CacheStore(
        capacity=config.cache.capacity,
        default_ttl_seconds=config.cache.default_ttl,
    )
    ledger = ProviderCreditLedger(quota_alert_pct=config.providers.quota_alert_pct)

    if scrape_providers is None:
        scrape_providers = _default_scrape_providers(config, settings)
    for provider in scrape_providers:
        ledger.register(provider.name, config.providers.credits_for(provider.name))

    orchestrator = ProviderOrchestrator(
        cache=cache,
        ledger=ledger,
        providers=scrape_providers,
        ttl_seconds=config.cache.ttl_for(ProviderOrchestrator.NAMESPACE),
        timeouts=config.providers.timeouts(),
        default_timeout=config.providers.default_timeout,
    )

    timeout = config.providers.default_timeout
    sources = [
        CurrencySource(cache, api_key=settings.openexchangerates_api_key,
                       ttl_seconds=config.cache.ttl_for("currency"), timeout=timeout),
        NewsSource(cache, api_key=settings.news_api_key,
                   ttl_seconds=config.cache.ttl_for("news"), timeout=timeout),
        VideoSource(cache, api_key=settings.youtube_api_key,
                    ttl_seconds=config.cache.ttl_for("video"), timeout=timeout),
        CommunitySource(cache, user_agent=settings.reddit_user_agent,
                        ttl_seconds=config.cache.ttl_for("community"), timeout=timeout),
        ScraperSource(orchestrator),
    ]

    logger.info(
        f"Acquisition runtime ready: cache capacity {cache.capacity}, "
        f"scrapers [{', '.join(orchestrator.provider_names)}], "
        f"{len(sources)} sources"
    )
    return AcquisitionRuntime(
        config=config,
        cache=cache,
        ledger=ledger,
        orchestrator=orchestrator,
        coordinator=AggregationCoordinator(),
        sources=sources,
    )


# ============================================
# MAINTENANCE
# ============================================

class CreditRollover:
    """Resets the ledger when the provider credit period changes."""

    def __init__(self, ledger: ProviderCreditLedger, period: str = "monthly",
                 tz_name: str = "UTC"):
        self._ledger = ledger
        self._period = period
        self._tz_name = tz_name
        # Fail fast on a bad period name
        self._current = period_key(now_in(tz_name), period)

    @property
    def current_period(self) -> str:
        return self._current

    def check(self, moment: Optional[datetime] = None) -> bool:
        """Reset credits if `moment` (default: now) is in a new period."""
        key = period_key(moment or now_in(self._tz_name), self._period)
        if key == self._current:
            return False
        logger.info(f"Credit period rolled over: {self._current} -> {key}")
        self._current = key
        self._ledger.reset_all()
        return True


async def run_maintenance(runtime: AcquisitionRuntime,
                          stop_event: Optional[asyncio.Event] = None,
                          interval: Optional[float] = None) -> None:
    """Periodic sweep: drop expired cache entries, roll credit periods over.

    Runs until stop_event is set (forever if none is given).
    """
    stop_event = stop_event or asyncio.Event()
    interval = interval if interval is not None else runtime.config.cache.cleanup_interval
    rollover = CreditRollover(
        runtime.ledger,
        period=runtime.config.providers.credit_reset_period,
        tz_name=runtime.config.providers.credit_reset_tz,
    )

    while not stop_event.is_set():
        try:
            removed = runtime.cache.cleanup_expired()
            if removed:
                logger.debug(f"Maintenance: {removed} expired cache entries removed")
            rollover.check()
        except Exception as e:
            log_exception(e, "Maintenance sweep")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue
    logger.info("Maintenance task stopped")


def start_maintenance(runtime: AcquisitionRuntime,
                      stop_event: Optional[asyncio.Event] = None,
                      interval: Optional[float] = None) -> "asyncio.Task[None]":
    """Schedule run_maintenance on the running event loop."""
    return asyncio.get_running_loop().create_task(
        run_maintenance(runtime, stop_event, interval),
        name="acquisition-maintenance",
    )
