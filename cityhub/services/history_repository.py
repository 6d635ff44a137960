import json
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Optional, Protocol

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from cityhub.models.dto import HistoryItem

logger = structlog.get_logger(__name__)


class HistoryUnavailable(RuntimeError):
    """The backing store could not be read or written."""


class HistoryStore(Protocol):
    """What the routes need from a history backend."""
    backend: str
    async def add(self, city: str, region: Optional[str], country: str) -> HistoryItem: ...
    async def recent(self, limit: int) -> List[HistoryItem]: ...


def new_item(city: str, region: Optional[str], country: str) -> HistoryItem:
    return HistoryItem(
        id=uuid.uuid4().hex,
        city=city,
        region=region,
        country=country,
        viewed_at=datetime.now(timezone.utc),
    )


class RedisHistoryRepository:
    """
    Newest-first Redis list of JSON documents, capped at `max_items`.
    Fails closed: any Redis error becomes HistoryUnavailable.
    """
    backend = "redis"

    def __init__(self, redis_client: Redis, key: str, max_items: int = 100):
        self.redis_client = redis_client
        self.key = key
        self.max_items = max_items

    async def add(self, city: str, region: Optional[str], country: str) -> HistoryItem:
        item = new_item(city, region, country)
        try:
            await self.redis_client.lpush(self.key, item.model_dump_json())
            await self.redis_client.ltrim(self.key, 0, self.max_items - 1)
        except RedisError as e:
            logger.error("history_write_error", error=str(e), key=self.key)
            raise HistoryUnavailable("redis_unavailable") from e
        logger.info("history_added", city=city, country=country)
        return item

    async def recent(self, limit: int) -> List[HistoryItem]:
        try:
            raw_items = await self.redis_client.lrange(self.key, 0, limit - 1)
        except RedisError as e:
            logger.error("history_read_error", error=str(e), key=self.key)
            raise HistoryUnavailable("redis_unavailable") from e

        items: List[HistoryItem] = []
        for raw in raw_items:
            try:
                items.append(HistoryItem.model_validate(json.loads(raw)))
            except ValueError:
                # One corrupt entry should not hide the rest of the list
                logger.error("history_parse_error", raw_value=str(raw)[:200])
        return items


class InMemoryHistoryRepository:
    """Process-local store used when Redis is disabled (development, tests)."""
    backend = "memory"

    def __init__(self, max_items: int = 100):
        self._items: Deque[HistoryItem] = deque(maxlen=max_items)

    async def add(self, city: str, region: Optional[str], country: str) -> HistoryItem:
        item = new_item(city, region, country)
        self._items.appendleft(item)
        return item

    async def recent(self, limit: int) -> List[HistoryItem]:
        return list(self._items)[:limit]
