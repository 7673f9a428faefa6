"""
Video source — YouTube videos about living and studying at the destination.

One search call per topic (cost of living, student life, each interest).
A failing topic is skipped as long as another topic returned videos.
Endpoint: https://www.googleapis.com/youtube/v3/search
"""
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from providers.cache import CacheStore
from sources.base import CachedSource, DestinationQuery
from utils.error_handler import raise_for_provider_status


class VideoSource(CachedSource):
    """YouTube Data API search across destination topics."""

    namespace = "video"
    provider = "youtube"
    ENDPOINT = "https://www.googleapis.com/youtube/v3/search"
    PER_TOPIC = 5
    MAX_VIDEOS = 10

    def __init__(self, cache: CacheStore, api_key: Optional[str] = None,
                 ttl_seconds: Optional[float] = None, timeout: float = 30.0):
        super().__init__(cache, ttl_seconds=ttl_seconds, timeout=timeout)
        if api_key is None:
            from config.settings import get_settings
            api_key = get_settings().youtube_api_key
        self._api_key = api_key or ""

    def is_available(self) -> bool:
        return bool(self._api_key)

    def cache_params(self, query: DestinationQuery) -> tuple:
        return (query.city, query.country, list(query.interests))

    def topics(self, query: DestinationQuery) -> List[str]:
        return [
            f"cost of living {query.city} {query.country}",
            f"student life {query.city}",
        ] + [f"{interest} {query.city}" for interest in sorted(query.interests)]

    def fetch(self, query: DestinationQuery) -> List[Dict[str, Any]]:
        videos: List[Dict[str, Any]] = []
        seen_ids = set()
        last_error: Optional[Exception] = None

        for topic in self.topics(query):
            try:
                items = self._search(topic)
            except requests.exceptions.RequestException as e:
                logger.warning(f"YouTube: search '{topic}' failed: {e}")
                last_error = e
                continue

            for item in items:
                video_id = (item.get("id") or {}).get("videoId")
                if not video_id or video_id in seen_ids:
                    continue
                seen_ids.add(video_id)
                snippet = item.get("snippet") or {}
                videos.append({
                    "video_id": video_id,
                    "title": snippet.get("title", ""),
                    "channel": snippet.get("channelTitle", ""),
                    "published_at": snippet.get("publishedAt", ""),
                    "url": f"https://www.youtube.com/watch?v={video_id}",
                    "topic": topic,
                })

        if not videos and last_error is not None:
            raise last_error
        return videos[:self.MAX_VIDEOS]

    def _search(self, topic: str) -> List[Dict[str, Any]]:
        params = {
            "part": "snippet",
            "q": topic,
            "type": "video",
            "maxResults": self.PER_TOPIC,
            "relevanceLanguage": "en",
            "key": self._api_key,
        }
        response = requests.get(self.ENDPOINT, params=params, timeout=self._timeout)
        raise_for_provider_status(response, self.provider)
        return response.json().get("items", [])
