"""
Provider package — caching, credit accounting and provider failover.

Components are constructed once per process by bootstrap.build_runtime()
and passed by reference; there are no module-level singletons:
    from providers import CacheStore, ProviderCreditLedger, ProviderOrchestrator
    from providers.scrapers import get_scrape_providers
"""
from providers.base import (
    BaseScrapeProvider,
    Failure,
    FetchOutcome,
    Provenance,
    ScrapePayload,
    ScrapeRequest,
    Success,
)
from providers.cache import CacheEntry, CacheStore, make_cache_key
from providers.credits import ProviderCredit, ProviderCreditLedger
from providers.orchestrator import ProviderOrchestrator

__all__ = [
    "BaseScrapeProvider",
    "CacheEntry",
    "CacheStore",
    "Failure",
    "FetchOutcome",
    "Provenance",
    "ProviderCredit",
    "ProviderCreditLedger",
    "ProviderOrchestrator",
    "ScrapePayload",
    "ScrapeRequest",
    "Success",
    "make_cache_key",
]
