"""
Firecrawl scraping provider plugin.

LLM-ready page content (main content only, markdown by default).
Endpoint: https://api.firecrawl.dev/v1/scrape
"""
import time
from typing import Optional

import requests
from loguru import logger

from providers.base import BaseScrapeProvider, ScrapePayload, ScrapeRequest
from utils.error_handler import AcquisitionError, FailureKind, raise_for_provider_status


class FirecrawlProvider(BaseScrapeProvider):
    """Firecrawl.dev — scrapes a page and returns cleaned markdown/html."""

    ENDPOINT = "https://api.firecrawl.dev/v1/scrape"

    # Our output format -> Firecrawl format name
    FORMATS = {
        "markdown": "markdown",
        "text": "markdown",
        "html": "html",
        "structured": "json",
    }

    def __init__(self, api_key: Optional[str] = None, timeout: float = 30.0):
        if api_key is None:
            from config.settings import get_settings
            api_key = get_settings().firecrawl_api_key
        self._api_key = api_key or ""
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "firecrawl"

    def is_available(self) -> bool:
        return bool(self._api_key)

    def scrape(self, request: ScrapeRequest) -> ScrapePayload:
        """Scrape one page through Firecrawl."""
        started = time.monotonic()
        fc_format = self.FORMATS[request.output_format]
        payload = {
            "url": request.url,
            "formats": [fc_format],
            "onlyMainContent": True,
            "removeBase64Images": True,
            "waitFor": 5000 if request.wait_for_selector else 0,
            "timeout": int(self._timeout * 1000),
        }
        if request.remove_elements:
            payload["excludeTags"] = list(request.remove_elements)

        response = requests.post(
            self.ENDPOINT,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=self._timeout,
        )
        raise_for_provider_status(response, self.name)

        body = response.json()
        if not body.get("success", False):
            raise AcquisitionError(
                f"firecrawl: scrape failed: {body.get('error', 'unknown error')}",
                FailureKind.NETWORK_ERROR, self.name,
            )

        data = body.get("data") or {}
        content = data.get(fc_format)
        if content is None:
            content = data.get("markdown") or data.get("html") or ""

        logger.debug(f"firecrawl: scraped {request.url}")
        return ScrapePayload(
            url=request.url,
            data=content,
            output_format=request.output_format,
            provider=self.name,
            cost=1,
            processing_time=time.monotonic() - started,
            metadata=data.get("metadata") or {},
        )
