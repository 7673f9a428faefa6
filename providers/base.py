"""
Outcome types and abstract base classes for data providers.

Every fetch in the system ends in a FetchOutcome: either Success or Failure.
Exceptions stay inside provider and source boundaries; callers above them
only ever branch on outcome values.

Scraping providers implement BaseScrapeProvider. Register one in the
configured order and the orchestrator handles caching, credit accounting
and failover automatically.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from utils.error_handler import FailureKind
from utils.platform import utc_now


OUTPUT_FORMATS = ("markdown", "html", "text", "structured")


# ============================================================
# Fetch outcomes
# ============================================================

@dataclass(frozen=True)
class Provenance:
    """Where a piece of data came from."""
    namespace: str
    cache_key: str
    cached: bool = False
    attempts: Tuple[str, ...] = ()      # providers tried, in order
    fetched_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class Success:
    """A fetch that produced data."""
    data: Any
    source: str                         # provider name, or "cache"
    provenance: Optional[Provenance] = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """A fetch that produced no data, with the reason."""
    kind: FailureKind
    retryable: bool
    provider: Optional[str] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return False


FetchOutcome = Union[Success, Failure]


# ============================================================
# Scraping
# ============================================================

@dataclass(frozen=True)
class ScrapeRequest:
    """One page to fetch through the scraping providers."""
    url: str
    output_format: str = "markdown"
    provider: Optional[str] = None      # preferred provider, tried first if affordable
    wait_for_selector: Optional[str] = None
    remove_elements: Tuple[str, ...] = ()
    cache_empty: bool = False           # an empty page is a meaningful, cacheable answer

    def __post_init__(self):
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unknown output format '{self.output_format}', expected one of {OUTPUT_FORMATS}"
            )


@dataclass
class ScrapePayload:
    """Normalized page content from any scraping provider."""
    url: str
    data: Union[str, Dict[str, Any]]
    output_format: str
    provider: str
    cost: int = 1                       # credits this call consumed
    processing_time: float = 0.0        # seconds
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        if isinstance(self.data, str):
            return not self.data.strip()
        return not self.data


class BaseScrapeProvider(ABC):
    """Plugin interface for page-scraping services.

    Implement this to add a new scraping API. The orchestrator will:
    - Serve repeat requests from the cache
    - Skip the provider when it has no credits left
    - Charge credits for attempts that consumed quota
    - Fall through to the next provider on failure
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider identifier (e.g., 'firecrawl', 'scraperapi')."""
        ...

    @abstractmethod
    def scrape(self, request: ScrapeRequest) -> ScrapePayload:
        """Fetch one page. Blocking; the orchestrator runs it in a worker thread.

        Should NOT handle caching, credits or fallback.
        Should raise RateLimitError / AuthError / QuotaExhaustedError for those
        responses, and let network errors and timeouts propagate.
        """
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """True if provider has credentials and is configured."""
        ...
