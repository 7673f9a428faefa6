"""
Provider orchestrator — one logical fetch across interchangeable providers.

Serves a ScrapeRequest by:
1. Returning a live cache entry if one exists (no provider call, no charge)
2. Ordering providers: preferred first if affordable, then configured order
3. Attempting them strictly one at a time, each under its own timeout
4. Charging credits only for attempts that consumed real quota
5. Falling through to the next provider on any failure

It never raises: every path ends in a Success or Failure value.

    orchestrator = ProviderOrchestrator(cache, ledger, providers, ttl_seconds=3600)
    outcome = await orchestrator.execute(ScrapeRequest(url="https://..."))
"""
import asyncio
from typing import Dict, List, Optional, Sequence

from loguru import logger

from providers.base import (
    BaseScrapeProvider,
    Failure,
    FetchOutcome,
    Provenance,
    ScrapeRequest,
    Success,
)
from providers.cache import CacheStore, make_cache_key
from providers.credits import ProviderCreditLedger
from utils.error_handler import FailureKind, classify_exception, is_transient


class ProviderOrchestrator:
    """
    Cache-first, credit-aware fallback across scraping providers.

    The cache and ledger are shared process-wide instances handed in by the
    caller. Provider order in the constructor is the static default priority
    and also the tie-break between equally eligible providers.
    """

    NAMESPACE = "scraper"

    def __init__(
        self,
        cache: CacheStore,
        ledger: ProviderCreditLedger,
        providers: Sequence[BaseScrapeProvider],
        ttl_seconds: Optional[float] = None,
        timeouts: Optional[Dict[str, float]] = None,
        default_timeout: float = 30.0,
    ):
        self._cache = cache
        self._ledger = ledger
        self._providers: Dict[str, BaseScrapeProvider] = {}
        for provider in providers:
            if provider.name in self._providers:
                raise ValueError(f"Duplicate provider '{provider.name}'")
            self._providers[provider.name] = provider
        self._order: List[str] = list(self._providers)
        self._ttl = ttl_seconds
        self._timeouts = dict(timeouts or {})
        self._default_timeout = default_timeout

        # Providers whose credentials were rejected, with the reason
        self._disabled: Dict[str, str] = {}

    @property
    def provider_names(self) -> List[str]:
        return list(self._order)

    def cache_key(self, request: ScrapeRequest) -> str:
        # Rendering and stripped elements change the page content
        return make_cache_key(
            self.NAMESPACE,
            request.url,
            request.output_format,
            request.wait_for_selector,
            list(request.remove_elements),
        )

    def timeout_for(self, provider: str) -> float:
        return self._timeouts.get(provider, self._default_timeout)

    def _is_eligible(self, name: str) -> bool:
        return (
            name not in self._disabled and
            self._providers[name].is_available() and
            self._ledger.can_afford(name)
        )

    def priority(self, preferred: Optional[str] = None) -> List[str]:
        """Providers to attempt, in order. Ineligible providers are left out."""
        order = [name for name in self._order if self._is_eligible(name)]
        if preferred in order:
            order.remove(preferred)
            order.insert(0, preferred)
        return order

    def is_available(self) -> bool:
        """True if at least one provider could be attempted right now."""
        return bool(self.priority())

    def enable(self, provider: str) -> None:
        """Re-enable a provider disabled after an auth failure (e.g. key rotated)."""
        if self._disabled.pop(provider, None) is not None:
            logger.info(f"Provider '{provider}' re-enabled")

    def credits(self) -> Dict[str, Dict]:
        """Credit usage for this orchestrator's providers."""
        usage = self._ledger.get_usage()
        return {name: usage[name] for name in self._order if name in usage}

    async def execute(self, request: ScrapeRequest) -> FetchOutcome:
        """Satisfy one scrape request. Never raises."""
        key = self.cache_key(request)

        # 1. Cache
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Scraper cache hit for {request.url}")
            return Success(
                data=cached,
                source="cache",
                provenance=Provenance(namespace=self.NAMESPACE, cache_key=key, cached=True),
            )

        if request.provider is not None and request.provider not in self._providers:
            logger.warning(f"Preferred provider '{request.provider}' is not configured")
            return Failure(
                kind=FailureKind.UNSUPPORTED_PROVIDER,
                retryable=False,
                provider=request.provider,
                message=f"Unknown provider '{request.provider}'",
            )

        # 2. Priority
        order = self.priority(request.provider)
        if not order:
            return self._no_eligible_provider(request)

        # 3. Attempt sequentially
        attempts: List[str] = []
        rate_limited = set()
        last_kind: Optional[FailureKind] = None
        last_provider: Optional[str] = None
        last_message = ""
        saw_transient = False

        for name in order:
            if name in rate_limited:
                continue
            # Credits may have been spent by a concurrent request since priority()
            if not self._ledger.can_afford(name):
                logger.debug(f"Skipping {name}: no credits remaining")
                continue

            attempts.append(name)
            provider = self._providers[name]
            logger.debug(f"Attempting scrape with {name}: {request.url}")

            try:
                payload = await asyncio.wait_for(
                    asyncio.to_thread(provider.scrape, request),
                    timeout=self.timeout_for(name),
                )
            except Exception as e:
                kind = classify_exception(e)
                last_kind, last_provider = kind, name
                last_message = str(e) or kind.value
                saw_transient = saw_transient or is_transient(kind)

                if kind == FailureKind.RATE_LIMITED:
                    rate_limited.add(name)
                    logger.warning(f"{name}: rate limited, rotating")
                elif kind == FailureKind.QUOTA_EXHAUSTED:
                    self._ledger.exhaust(name)
                elif kind == FailureKind.AUTH_ERROR:
                    self._charge(name, 1)
                    self._disabled[name] = last_message
                    logger.error(f"{name}: credentials rejected, provider disabled: {e}")
                else:
                    self._charge(name, 1)
                    logger.warning(f"{name}: scrape failed [{kind.value}]: {last_message}")
                continue

            self._charge(name, payload.cost)

            if payload.is_empty:
                last_kind, last_provider = FailureKind.EMPTY_RESULT, name
                last_message = f"{name} returned no content for {request.url}"
                if request.cache_empty:
                    self._cache.set(key, payload, self._ttl)
                logger.warning(f"{name}: empty result, rotating")
                continue

            self._cache.set(key, payload, self._ttl)
            logger.info(f"{name}: scraped {request.url}")
            return Success(
                data=payload,
                source=name,
                provenance=Provenance(
                    namespace=self.NAMESPACE,
                    cache_key=key,
                    attempts=tuple(attempts),
                ),
            )

        # 4. Everything failed
        if last_kind is None:
            return self._no_eligible_provider(request)

        logger.warning(
            f"All scraping providers failed for {request.url} "
            f"(tried: {', '.join(attempts)})"
        )
        return Failure(
            kind=last_kind,
            retryable=saw_transient,
            provider=last_provider,
            message=last_message,
        )

    def _charge(self, name: str, cost: int) -> None:
        """Charge an attempt, capped at what the provider has left. A cost of 0 is free."""
        cost = max(0, int(cost))
        remaining = self._ledger.remaining(name)
        if cost > remaining:
            logger.warning(
                f"{name}: declared cost {cost} exceeds remaining {remaining} credits"
            )
            cost = remaining
        if cost > 0:
            self._ledger.charge(name, cost)

    def _no_eligible_provider(self, request: ScrapeRequest) -> Failure:
        """Explain why nothing could be attempted."""
        configured = [n for n in self._order if self._providers[n].is_available()]
        out_of_credits = [
            n for n in configured
            if n not in self._disabled and not self._ledger.can_afford(n)
        ]
        if out_of_credits:
            logger.warning(
                f"No scraping credits left for {request.url} "
                f"({', '.join(out_of_credits)} exhausted)"
            )
            return Failure(
                kind=FailureKind.QUOTA_EXHAUSTED,
                retryable=False,
                provider=out_of_credits[-1],
                message="All scraping providers are out of credits",
            )
        if configured:
            return Failure(
                kind=FailureKind.AUTH_ERROR,
                retryable=False,
                provider=configured[-1],
                message="All scraping providers are disabled after auth failures",
            )
        logger.warning("No scraping provider is configured")
        return Failure(
            kind=FailureKind.UNSUPPORTED_PROVIDER,
            retryable=False,
            message="No scraping provider is configured",
        )
