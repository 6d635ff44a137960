import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cityhub.core.config import settings
from cityhub.services.history_repository import (
    HistoryUnavailable,
    InMemoryHistoryRepository,
    RedisHistoryRepository,
)

from conftest import no_upstream


class FakeRedis:
    """The three list commands the repository uses, kept in a dict."""

    def __init__(self):
        self.lists = {}

    async def lpush(self, key, value):
        self.lists.setdefault(key, []).insert(0, value)
        return len(self.lists[key])

    async def ltrim(self, key, start, stop):
        self.lists[key] = self.lists.get(key, [])[start:stop + 1]
        return True

    async def lrange(self, key, start, stop):
        return self.lists.get(key, [])[start:stop + 1]


class DownRedis:
    async def lpush(self, *args):
        raise RedisConnectionError("connection refused")

    async def ltrim(self, *args):
        raise RedisConnectionError("connection refused")

    async def lrange(self, *args):
        raise RedisConnectionError("connection refused")


@pytest.mark.asyncio
async def test_redis_repository_newest_first_and_capped():
    redis = FakeRedis()
    repo = RedisHistoryRepository(redis, key="h", max_items=3)

    for city in ["Paris", "Lyon", "Nice", "Lille"]:
        await repo.add(city, None, "France")

    assert len(redis.lists["h"]) == 3
    recent = await repo.recent(10)
    assert [item.city for item in recent] == ["Lille", "Nice", "Lyon"]
    assert json.loads(redis.lists["h"][0])["city"] == "Lille"


@pytest.mark.asyncio
async def test_redis_repository_skips_corrupt_entries():
    redis = FakeRedis()
    repo = RedisHistoryRepository(redis, key="h")
    await repo.add("Paris", "Île-de-France", "France")
    redis.lists["h"].insert(0, "{not json")

    recent = await repo.recent(10)

    assert [item.city for item in recent] == ["Paris"]
    assert recent[0].region == "Île-de-France"


@pytest.mark.asyncio
async def test_redis_repository_fails_closed():
    repo = RedisHistoryRepository(DownRedis(), key="h")

    with pytest.raises(HistoryUnavailable):
        await repo.add("Paris", None, "France")
    with pytest.raises(HistoryUnavailable):
        await repo.recent(10)


@pytest.mark.asyncio
async def test_memory_repository_limits():
    repo = InMemoryHistoryRepository(max_items=2)
    for city in ["Paris", "Lyon", "Nice"]:
        await repo.add(city, None, "France")

    assert [item.city for item in await repo.recent(1)] == ["Nice"]
    assert [item.city for item in await repo.recent(10)] == ["Nice", "Lyon"]


def test_post_history_trims_and_returns_item(api):
    client = api(no_upstream)

    response = client.post("/api/history", json={"city": "  Paris ", "region": "  ", "country": "France "})

    assert response.status_code == 201
    body = response.json()
    assert body["city"] == "Paris"
    assert body["region"] is None
    assert body["country"] == "France"
    assert body["id"]
    assert body["viewed_at"]


@pytest.mark.parametrize("payload", [{"city": "Paris"}, {"country": "France"}, {"city": " ", "country": "France"}, {}])
def test_post_history_requires_city_and_country(api, payload):
    response = api(no_upstream).post("/api/history", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"]["detail"] == "city and country are required"


def test_get_history_newest_first_page(api, monkeypatch):
    monkeypatch.setattr(settings, "HISTORY_PAGE_SIZE", 3)
    client = api(no_upstream)
    for city in ["Paris", "Lyon", "Nice", "Lille"]:
        client.post("/api/history", json={"city": city, "country": "France"})

    response = client.get("/api/history")

    assert response.status_code == 200
    assert [item["city"] for item in response.json()["items"]] == ["Lille", "Nice", "Lyon"]


def test_history_unavailable_is_service_unavailable(api, history_store):
    from cityhub.api.routes import get_history_store
    from cityhub.main import app

    client = api(no_upstream)
    down = RedisHistoryRepository(DownRedis(), key="h")
    app.dependency_overrides[get_history_store] = lambda: down

    assert client.get("/api/history").status_code == 503
    response = client.post("/api/history", json={"city": "Paris", "country": "France"})
    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "HISTORY_UNAVAILABLE"
