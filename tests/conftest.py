"""
Shared test fixtures for the acquisition layer.

Provides FakeClock (deterministic cache time), StubScrapeProvider (scripted
results, no network), fresh cache/ledger instances and JSON response mocks.
"""
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from unittest.mock import MagicMock

import pytest
import requests

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Patch env BEFORE importing project modules so CONFIG/Settings ignore any local .env
os.environ["CACHE_CAPACITY"] = "100"
os.environ["SCRAPER_PROVIDERS"] = "firecrawl,scraperapi"
os.environ["FIRECRAWL_CREDITS"] = "400"
os.environ["SCRAPERAPI_CREDITS"] = "5000"
os.environ["CREDIT_RESET_PERIOD"] = "monthly"

from providers.base import BaseScrapeProvider, ScrapePayload, ScrapeRequest
from providers.cache import CacheStore
from providers.credits import ProviderCreditLedger


# ============================================
# FAKE CLOCK
# ============================================

class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================
# STUB SCRAPE PROVIDER (no network, fully scripted)
# ============================================

class StubScrapeProvider(BaseScrapeProvider):
    """
    Scriptable scraping provider for unit tests.

    `results` is consumed one item per call: a string becomes the page
    content, an exception instance is raised. When the script runs out the
    last item repeats.
    """

    def __init__(self, name: str, results: Optional[List[Union[str, BaseException]]] = None,
                 cost: int = 1, available: bool = True, delay: float = 0.0):
        self._name = name
        self._results = list(results) if results is not None else [f"<content from {name}>"]
        self._cost = cost
        self._available = available
        self._delay = delay
        self.calls: List[ScrapeRequest] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def is_available(self) -> bool:
        return self._available

    def scrape(self, request: ScrapeRequest) -> ScrapePayload:
        index = min(len(self.calls), len(self._results) - 1)
        self.calls.append(request)
        if self._delay:
            import time
            time.sleep(self._delay)

        result = self._results[index]
        if isinstance(result, BaseException):
            raise result
        return ScrapePayload(
            url=request.url,
            data=result,
            output_format=request.output_format,
            provider=self._name,
            cost=self._cost,
        )


def mock_response(status: int = 200, json_data: Any = None, text: str = "",
                  headers: Optional[Dict[str, str]] = None) -> MagicMock:
    """requests.Response stand-in with a working raise_for_status()."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.headers = headers or {}
    response.text = text
    response.json.return_value = json_data if json_data is not None else {}

    def _raise_for_status():
        if status >= 400:
            raise requests.exceptions.HTTPError(f"{status} Error", response=response)

    response.raise_for_status.side_effect = _raise_for_status
    return response


# ============================================
# FIXTURES
# ============================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Fresh cache on the fake clock."""
    return CacheStore(capacity=100, default_ttl_seconds=60, clock=clock)


@pytest.fixture
def ledger():
    """Fresh ledger with no providers registered."""
    return ProviderCreditLedger()
