"""
Acquisition Configuration - Single source of truth.

Cache sizes, TTLs, provider credit budgets, priority order and timeouts are
configured here, read from .env with defaults. Every other module receives
these values from here (via bootstrap) - no hardcoded limits anywhere else.

Usage:
    from config.acquisition_config import CONFIG
    print(CONFIG.cache.capacity)
    print(CONFIG.providers.credits_for("firecrawl"))
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

# Load .env
load_dotenv(Path(__file__).parent.parent / ".env")


def _env(key: str, default: str) -> str:
    """Get env var with default."""
    return os.getenv(key, default)


def _env_float(key: str, default: float) -> float:
    """Get float env var."""
    return float(os.getenv(key, str(default)))


def _env_int(key: str, default: int) -> int:
    """Get int env var."""
    return int(os.getenv(key, str(default)))


def _env_list(key: str, default: str) -> List[str]:
    """Get comma-separated env var as a lowercase list, order preserved."""
    return [s.strip().lower() for s in _env(key, default).split(",") if s.strip()]


# ============================================
# CACHE
# ============================================

@dataclass
class CacheConfig:
    """In-memory response cache limits and per-namespace TTLs (seconds)."""
    capacity: int = field(
        default_factory=lambda: _env_int("CACHE_CAPACITY", 100)
    )
    default_ttl: int = field(
        default_factory=lambda: _env_int("CACHE_DEFAULT_TTL", 21600)   # 6 hours
    )
    cleanup_interval: int = field(
        default_factory=lambda: _env_int("CACHE_CLEANUP_INTERVAL", 3600)  # hourly
    )
    scraper_ttl: int = field(
        default_factory=lambda: _env_int("SCRAPER_CACHE_TTL", 3600)
    )
    currency_ttl: int = field(
        default_factory=lambda: _env_int("CURRENCY_CACHE_TTL", 3600)
    )
    news_ttl: int = field(
        default_factory=lambda: _env_int("NEWS_CACHE_TTL", 21600)
    )
    video_ttl: int = field(
        default_factory=lambda: _env_int("VIDEO_CACHE_TTL", 21600)
    )
    community_ttl: int = field(
        default_factory=lambda: _env_int("COMMUNITY_CACHE_TTL", 21600)
    )

    def ttl_for(self, namespace: str) -> int:
        """TTL for a cache namespace, default TTL when not configured."""
        return {
            "scraper": self.scraper_ttl,
            "currency": self.currency_ttl,
            "news": self.news_ttl,
            "video": self.video_ttl,
            "community": self.community_ttl,
        }.get(namespace, self.default_ttl)


# ============================================
# PROVIDERS
# ============================================

@dataclass
class ProviderConfig:
    """Scraping provider budgets, priority order and timeouts."""
    # Scraping providers (comma-separated, order = priority)
    scraper_providers: List[str] = field(
        default_factory=lambda: _env_list("SCRAPER_PROVIDERS", "firecrawl,scraperapi")
    )
    # Per-provider total credits for one period
    firecrawl_credits: int = field(
        default_factory=lambda: _env_int("FIRECRAWL_CREDITS", 400)
    )
    scraperapi_credits: int = field(
        default_factory=lambda: _env_int("SCRAPERAPI_CREDITS", 5000)
    )
    # Per-attempt timeouts (seconds)
    default_timeout: float = field(
        default_factory=lambda: _env_float("PROVIDER_TIMEOUT", 30.0)
    )
    firecrawl_timeout: float = field(
        default_factory=lambda: _env_float("FIRECRAWL_TIMEOUT", 30.0)
    )
    scraperapi_timeout: float = field(
        default_factory=lambda: _env_float("SCRAPERAPI_TIMEOUT", 60.0)
    )
    # Bound on one whole source task (covers every fallback attempt)
    source_timeout: float = field(
        default_factory=lambda: _env_float("SOURCE_TIMEOUT", 90.0)
    )
    quota_alert_pct: float = field(
        default_factory=lambda: _env_float("QUOTA_ALERT_PCT", 0.80)
    )
    # Credit period rollover: daily | monthly | none
    credit_reset_period: str = field(
        default_factory=lambda: _env("CREDIT_RESET_PERIOD", "monthly").strip().lower()
    )
    credit_reset_tz: str = field(
        default_factory=lambda: _env("CREDIT_RESET_TZ", "UTC")
    )

    def credits_for(self, provider: str) -> int:
        return {
            "firecrawl": self.firecrawl_credits,
            "scraperapi": self.scraperapi_credits,
        }.get(provider, 0)

    def timeout_for(self, provider: str) -> float:
        return {
            "firecrawl": self.firecrawl_timeout,
            "scraperapi": self.scraperapi_timeout,
        }.get(provider, self.default_timeout)

    def timeouts(self) -> Dict[str, float]:
        return {name: self.timeout_for(name) for name in self.scraper_providers}


# ============================================
# MASTER CONFIG (import this)
# ============================================

@dataclass
class AcquisitionConfig:
    """Master config - single import for everything."""
    cache: CacheConfig = field(default_factory=CacheConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)


CONFIG = AcquisitionConfig()
