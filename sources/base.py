"""
Base classes for destination data sources.

A source produces one named slice of the destination report (currency,
news, videos, ...). Cache-direct sources subclass CachedSource: they check
the shared cache, call a single external API in a worker thread under a
timeout, and cache what they get. Each source exposes task(query) so the
aggregation coordinator can run it alongside the others.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from loguru import logger

from aggregation.coordinator import SourceTask
from providers.base import Failure, FetchOutcome, Provenance, Success
from providers.cache import CacheStore, make_cache_key
from utils.error_handler import FailureKind, classify_exception, is_transient


@dataclass(frozen=True)
class DestinationQuery:
    """Structured destination query (already parsed from natural language)."""
    city: str
    country: str
    origin_country: str = ""
    origin_city: str = ""
    budget: float = 0.0
    currency: str = "USD"               # currency the budget is expressed in
    local_currency: str = ""            # currency used at the destination
    interests: Tuple[str, ...] = field(default_factory=tuple)
    duration_months: int = 1

    @property
    def place(self) -> str:
        return f"{self.city}, {self.country}" if self.country else self.city

    def cache_params(self) -> tuple:
        """Normalized identity of the whole query, for report-level caching."""
        return (
            self.city, self.country, self.origin_city, self.origin_country,
            round(self.budget), self.currency, list(self.interests),
            self.duration_months,
        )


class CachedSource(ABC):
    """
    A source backed by one external API and the shared cache.

    Subclasses set `namespace` (cache namespace and task name) and
    `provider` (API name reported as the outcome source), and implement
    is_available(), cache_params() and the blocking fetch().
    """

    namespace: str = ""
    provider: str = ""
    cache_empty: bool = False           # an empty answer is meaningful for this source

    def __init__(self, cache: CacheStore, ttl_seconds: Optional[float] = None,
                 timeout: float = 30.0):
        self._cache = cache
        self._ttl = ttl_seconds
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self.namespace

    @abstractmethod
    def is_available(self) -> bool:
        """True if the API is configured (credentials present)."""
        ...

    @abstractmethod
    def cache_params(self, query: DestinationQuery) -> tuple:
        """Query fields that identify this source's answer."""
        ...

    @abstractmethod
    def fetch(self, query: DestinationQuery) -> Any:
        """Call the API. Blocking; raises on HTTP/network errors."""
        ...

    def is_empty(self, data: Any) -> bool:
        return not data

    def present(self, query: DestinationQuery, data: Any) -> Any:
        """Shape cached or fresh data for this query. Runs after the cache lookup."""
        return data

    def cache_key(self, query: DestinationQuery) -> str:
        return make_cache_key(self.namespace, *self.cache_params(query))

    async def run(self, query: DestinationQuery) -> FetchOutcome:
        """Cache first, then the API. Never raises."""
        key = self.cache_key(query)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"{self.namespace} cache hit for {query.place}")
            return Success(
                data=self.present(query, cached),
                source="cache",
                provenance=Provenance(namespace=self.namespace, cache_key=key, cached=True),
            )

        if not self.is_available():
            logger.info(f"{self.provider} not configured, skipping {self.namespace}")
            return Failure(
                kind=FailureKind.UNSUPPORTED_PROVIDER,
                retryable=False,
                provider=self.provider,
                message=f"{self.provider} is not configured",
            )

        try:
            data = await asyncio.wait_for(
                asyncio.to_thread(self.fetch, query), timeout=self._timeout
            )
        except Exception as e:
            kind = classify_exception(e)
            if kind == FailureKind.AUTH_ERROR:
                logger.error(f"{self.provider}: credentials rejected: {e}")
            else:
                logger.warning(f"{self.provider}: {self.namespace} fetch failed [{kind.value}]: {e}")
            return Failure(
                kind=kind,
                retryable=is_transient(kind),
                provider=self.provider,
                message=str(e) or kind.value,
            )

        if self.is_empty(data):
            if self.cache_empty:
                self._cache.set(key, data, self._ttl)
            return Failure(
                kind=FailureKind.EMPTY_RESULT,
                retryable=False,
                provider=self.provider,
                message=f"{self.provider} returned no {self.namespace} data for {query.place}",
            )

        self._cache.set(key, data, self._ttl)
        logger.info(f"{self.provider}: fetched {self.namespace} for {query.place}")
        return Success(
            data=self.present(query, data),
            source=self.provider,
            provenance=Provenance(
                namespace=self.namespace,
                cache_key=key,
                attempts=(self.provider,),
            ),
        )

    def task(self, query: DestinationQuery, timeout: Optional[float] = None) -> SourceTask:
        return SourceTask(name=self.name, run=lambda: self.run(query), timeout=timeout)
