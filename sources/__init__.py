"""
Destination data sources.

Each source yields one named slice of the destination report and exposes
task(query) for the aggregation coordinator.
"""
from sources.base import CachedSource, DestinationQuery
from sources.community import CommunitySource
from sources.currency import CurrencySource
from sources.news import NewsSource
from sources.scraper import ScraperSource
from sources.video import VideoSource

__all__ = [
    "CachedSource",
    "CommunitySource",
    "CurrencySource",
    "DestinationQuery",
    "NewsSource",
    "ScraperSource",
    "VideoSource",
]
