"""
Community source — Reddit posts from students and locals about the destination.

Uses Reddit's public search listing (no OAuth); needs only a descriptive
User-Agent. Reddit throttles anonymous clients hard, so 429s are common and
reported as RATE_LIMITED.
Endpoint: https://www.reddit.com/search.json
"""
from typing import Any, Dict, List, Optional

import requests

from providers.cache import CacheStore
from sources.base import CachedSource, DestinationQuery
from utils.error_handler import raise_for_provider_status


class CommunitySource(CachedSource):
    """Top Reddit posts of the past year about the destination."""

    namespace = "community"
    provider = "reddit"
    ENDPOINT = "https://www.reddit.com/search.json"
    LIMIT = 25

    def __init__(self, cache: CacheStore, user_agent: Optional[str] = None,
                 ttl_seconds: Optional[float] = None, timeout: float = 30.0):
        super().__init__(cache, ttl_seconds=ttl_seconds, timeout=timeout)
        if user_agent is None:
            from config.settings import get_settings
            user_agent = get_settings().reddit_user_agent
        self._user_agent = user_agent or ""

    def is_available(self) -> bool:
        return bool(self._user_agent)

    def cache_params(self, query: DestinationQuery) -> tuple:
        return (query.city, query.country)

    def fetch(self, query: DestinationQuery) -> List[Dict[str, Any]]:
        params = {
            "q": f"{query.city} (student OR \"study abroad\" OR \"cost of living\" OR housing)",
            "sort": "top",
            "t": "year",
            "limit": self.LIMIT,
            "type": "link",
        }
        response = requests.get(
            self.ENDPOINT,
            params=params,
            headers={"User-Agent": self._user_agent},
            timeout=self._timeout,
        )
        raise_for_provider_status(response, self.provider)

        children = (response.json().get("data") or {}).get("children", [])
        posts = []
        for child in children:
            post = child.get("data") or {}
            posts.append({
                "title": post.get("title", ""),
                "subreddit": post.get("subreddit", ""),
                "score": int(post.get("score") or 0),
                "num_comments": int(post.get("num_comments") or 0),
                "url": f"https://www.reddit.com{post.get('permalink', '')}",
                "created_utc": post.get("created_utc"),
            })
        posts.sort(key=lambda p: p["score"], reverse=True)
        return posts
