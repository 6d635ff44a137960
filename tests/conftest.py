import asyncio
from typing import Callable, Dict, List, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from cityhub.api.routes import get_history_store, get_http_client
from cityhub.main import app
from cityhub.models.dto import Place
from cityhub.models.suggestions import SuggestionOutcome
from cityhub.services.history_repository import InMemoryHistoryRepository


PARIS = Place(
    city="Paris",
    region="Île-de-France",
    country="France",
    latitude=48.8566,
    longitude=2.3522,
    timezone="Europe/Paris",
)
PARIS_TX = Place(
    city="Paris (TX)",
    region="Texas",
    country="United States",
    latitude=33.6609,
    longitude=-95.5555,
    timezone="America/Chicago",
)


class FakeSource:
    """
    Suggestion source driven by the test.

    Each lookup records (query, count) and waits on a future the test resolves
    through `resolve()`. With `stubborn=True` the lookup ignores cancellation and
    still returns once resolved, like a transport that can't abort in time.
    """

    def __init__(self, stubborn: bool = False):
        self.stubborn = stubborn
        self.calls: List[Tuple[str, int]] = []
        self.futures: Dict[str, "asyncio.Future[SuggestionOutcome]"] = {}
        self.cancelled: List[str] = []

    async def lookup(self, query: str, count: int) -> SuggestionOutcome:
        self.calls.append((query, count))
        future = self.futures.setdefault(query, asyncio.get_running_loop().create_future())
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            self.cancelled.append(query)
            if not self.stubborn:
                raise
            return await future

    def resolve(self, query: str, outcome: SuggestionOutcome) -> None:
        future = self.futures.setdefault(query, asyncio.get_running_loop().create_future())
        future.set_result(outcome)


async def settle(rounds: int = 5) -> None:
    """Let pending callbacks and task steps run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def history_store():
    return InMemoryHistoryRepository(max_items=100)


@pytest.fixture
def api(history_store):
    """
    Builds a TestClient whose upstream calls go to `handler`.
    Usage: client = api(handler)
    """
    def build(handler: Callable[[httpx.Request], httpx.Response]) -> TestClient:
        http_client = mock_client(handler)
        app.state.http_client = http_client
        app.state.history_store = history_store
        app.dependency_overrides[get_http_client] = lambda: http_client
        app.dependency_overrides[get_history_store] = lambda: history_store
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


def no_upstream(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected upstream call: {request.url}")
