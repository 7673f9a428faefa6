"""
Credentials for external providers.
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """API keys loaded from environment variables (or .env)."""

    # Scraping providers
    firecrawl_api_key: str = Field(default="", alias="FIRECRAWL_API_KEY")
    scraperapi_key: str = Field(default="", alias="SCRAPERAPI_KEY")

    # Cache-direct sources
    openexchangerates_api_key: str = Field(default="", alias="OPENEXCHANGERATES_API_KEY")
    news_api_key: str = Field(default="", alias="NEWS_API_KEY")
    youtube_api_key: str = Field(default="", alias="YOUTUBE_API_KEY")
    reddit_user_agent: str = Field(
        default="destination-intel/0.1 (community insights)",
        alias="REDDIT_USER_AGENT",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
