"""
Scraping provider plugins.

Builds the available scraping providers in priority order.
Priority order is configurable via the SCRAPER_PROVIDERS env var.
"""
from typing import Dict, List, Optional, Sequence

from loguru import logger

from providers.base import BaseScrapeProvider


def get_scrape_providers(order: Sequence[str],
                         timeouts: Optional[Dict[str, float]] = None,
                         api_keys: Optional[Dict[str, Optional[str]]] = None) -> List[BaseScrapeProvider]:
    """Instantiate scraping providers in the given priority order.

    Unknown names are skipped with a warning. Providers without credentials
    are still returned (the orchestrator skips them) so the credit report
    lists every configured provider. Names missing from `api_keys` read
    their key from settings.
    """
    from providers.scrapers.firecrawl import FirecrawlProvider
    from providers.scrapers.scraperapi import ScraperAPIProvider

    # Registry: name -> class
    registry = {
        "firecrawl": FirecrawlProvider,
        "scraperapi": ScraperAPIProvider,
    }
    timeouts = timeouts or {}
    api_keys = api_keys or {}

    providers = []
    for name in order:
        cls = registry.get(name)
        if cls is None:
            logger.warning(f"Unknown scraping provider '{name}', skipping")
            continue
        kwargs = {"timeout": timeouts[name]} if name in timeouts else {}
        if name in api_keys:
            kwargs["api_key"] = api_keys[name] or ""
        provider = cls(**kwargs)
        if provider.is_available():
            logger.info(f"Scraping provider '{name}' registered (available)")
        else:
            logger.info(f"Scraping provider '{name}' registered without credentials")
        providers.append(provider)

    if not any(p.is_available() for p in providers):
        logger.warning("No scraping providers available! Check API keys.")

    return providers
