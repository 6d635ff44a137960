# cityhub/services/redis_client.py
"""Builds the history store at startup: Redis when enabled, in-memory otherwise."""
import logging
from typing import Optional
from redis.asyncio import Redis
from cityhub.core.config import settings, use_redis_history
from cityhub.services.history_repository import (
    HistoryStore,
    InMemoryHistoryRepository,
    RedisHistoryRepository,
)

logger = logging.getLogger(__name__)

def connect_redis(url: Optional[str] = None) -> Redis:
    url = url or settings.REDIS_URL
    if not url:
        raise ValueError("REDIS_URL is not set in the environment")
    # decode_responses so list entries come back as str
    return Redis.from_url(url, decode_responses=True)

def build_history_store(redis_client: Optional[Redis] = None) -> HistoryStore:
    if redis_client is None and use_redis_history():
        redis_client = connect_redis()
    if redis_client is not None:
        logger.info("History store: Redis list %s", settings.HISTORY_KEY)
        return RedisHistoryRepository(
            redis_client,
            key=settings.HISTORY_KEY,
            max_items=settings.HISTORY_MAX_ITEMS,
        )
    logger.warning("History store: in-memory (ENABLE_REDIS is off or REDIS_URL unset); entries are lost on restart.")
    return InMemoryHistoryRepository(max_items=settings.HISTORY_MAX_ITEMS)
