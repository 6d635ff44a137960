# cityhub/core/config.py
# Application settings: upstream endpoints, history store and live search tuning.

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "City Hub"
    VERSION: str = "0.2.0"
    BRIEF_DESCRIPTION: str = "Explore a city: place suggestions, weather, photos, news and a short viewing history."

    ENV: str = Field("development", description="Application environment (e.g., production, development)")

    # --- History store ---
    REDIS_URL: Optional[str] = Field(None, description="Redis URL for the viewing history")
    ENABLE_REDIS: bool = Field(False, description="Feature flag for Redis-backed history")
    HISTORY_KEY: str = Field("cityhub:history", description="Redis list holding history entries")
    HISTORY_MAX_ITEMS: int = Field(100, description="Entries kept in the history list")
    HISTORY_PAGE_SIZE: int = Field(10, description="Entries returned by GET /api/history")

    # --- Upstream APIs ---
    UNSPLASH_ACCESS_KEY: Optional[str] = Field(None, description="Unsplash access key; anonymous requests when unset")
    GEOCODING_URL: str = "https://geocoding-api.open-meteo.com/v1/search"
    FORECAST_URL: str = "https://api.open-meteo.com/v1/forecast"
    UNSPLASH_URL: str = "https://api.unsplash.com/search/photos"
    NEWS_RSS_URL: str = "https://news.google.com/rss/search"

    # Timeout for every upstream call
    UPSTREAM_TIMEOUT: float = 8.0 # seconds

    # og:image hydration for news items
    NEWS_OG_TIMEOUT: float = 2.5 # seconds per batch
    NEWS_OG_MAX_CONCURRENCY: int = 3

    # --- Live search ---
    SUGGEST_DEBOUNCE_SECONDS: float = 0.25
    SUGGEST_BLUR_GRACE_SECONDS: float = 0.1
    SUGGEST_MIN_CHARS: int = 2
    SUGGEST_COUNT: int = 5

    # Pydantic configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()

def use_redis_history() -> bool:
    """History goes to Redis only when the flag is on and a URL is configured."""
    return settings.ENABLE_REDIS and bool(settings.REDIS_URL)
