"""
News source — recent articles about the destination (safety, housing, events).

Endpoint: https://newsapi.org/v2/everything
"""
from datetime import timedelta
from typing import Dict, List, Optional

import requests
from loguru import logger

from providers.cache import CacheStore
from sources.base import CachedSource, DestinationQuery
from utils.error_handler import raise_for_provider_status
from utils.platform import utc_now


class NewsSource(CachedSource):
    """NewsAPI.org search for the destination city."""

    namespace = "news"
    provider = "newsapi"
    ENDPOINT = "https://newsapi.org/v2/everything"
    LOOKBACK_DAYS = 30
    MAX_ARTICLES = 15

    def __init__(self, cache: CacheStore, api_key: Optional[str] = None,
                 ttl_seconds: Optional[float] = None, timeout: float = 30.0):
        super().__init__(cache, ttl_seconds=ttl_seconds, timeout=timeout)
        if api_key is None:
            from config.settings import get_settings
            api_key = get_settings().news_api_key
        self._api_key = api_key or ""

    def is_available(self) -> bool:
        return bool(self._api_key)

    def cache_params(self, query: DestinationQuery) -> tuple:
        return (query.city, query.country)

    def fetch(self, query: DestinationQuery) -> List[Dict[str, str]]:
        """Fetch and deduplicate articles about the destination."""
        now = utc_now()
        params = {
            "q": f'"{query.city}" AND ({query.country} OR student OR safety OR housing)',
            "from": (now - timedelta(days=self.LOOKBACK_DAYS)).strftime("%Y-%m-%d"),
            "language": "en",
            "sortBy": "relevancy",
            "pageSize": 50,
            "apiKey": self._api_key,
        }

        response = requests.get(self.ENDPOINT, params=params, timeout=self._timeout)
        raise_for_provider_status(response, self.provider)

        data = response.json()
        if data.get("status") != "ok":
            raise ValueError(f"NewsAPI error: {data.get('message', 'unknown')}")

        articles = []
        seen_urls = set()
        for item in data.get("articles", []):
            url = item.get("url") or ""
            if not url or url in seen_urls:
                continue
            seen_urls.add(url)
            articles.append({
                "title": item.get("title") or "",
                "description": item.get("description") or "",
                "url": url,
                "source": (item.get("source") or {}).get("name", "Unknown"),
                "published_at": item.get("publishedAt") or "",
            })
            if len(articles) >= self.MAX_ARTICLES:
                break

        logger.debug(f"NewsAPI: {len(articles)} unique articles for {query.place}")
        return articles
