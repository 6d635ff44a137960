# cityhub/search/sources.py
# Suggestion sources: where a live search session gets its candidate places.

import httpx
import logging
from typing import List, Optional, Protocol
from fastapi import HTTPException
from pydantic import TypeAdapter, ValidationError
from cityhub.models.dto import Place
from cityhub.models.suggestions import SuggestionOutcome
from cityhub.services.geocoding import geocode_places

logger = logging.getLogger(__name__)

_places_adapter = TypeAdapter(List[Place])


class SuggestionSource(Protocol):
    async def lookup(self, query: str, count: int) -> SuggestionOutcome: ...


def outcome_from_status(status_code: int, payload: Optional[object] = None) -> SuggestionOutcome:
    """
    400 means the query was rejected, 404 means a valid query with no matches,
    any other 2xx carries places, everything else is an upstream failure.
    """
    if status_code == 400:
        return SuggestionOutcome.rejected_input()
    if status_code == 404:
        return SuggestionOutcome.not_found()
    if 200 <= status_code < 300:
        return SuggestionOutcome.results(_places_adapter.validate_python(payload or []))
    return SuggestionOutcome.upstream_failed(status_code)


class HttpSuggestionSource:
    """Calls GET <url>?q=...&count=... (the /api/geocode contract)."""

    def __init__(self, client: httpx.AsyncClient, url: str = "/api/geocode"):
        self.client = client
        self.url = url

    async def lookup(self, query: str, count: int) -> SuggestionOutcome:
        try:
            response = await self.client.get(
                self.url,
                params={"q": query, "count": count},
                headers={"Cache-Control": "no-store"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Suggestion lookup for {query!r} failed in transport: {e}")
            return SuggestionOutcome.transport_failed()

        if not response.is_success:
            return outcome_from_status(response.status_code)

        try:
            return outcome_from_status(response.status_code, response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Suggestion lookup for {query!r} returned an unreadable body: {e}")
            return SuggestionOutcome.transport_failed()


class GeocoderSuggestionSource:
    """Runs the geocoding service in-process; its HTTP errors map like the endpoint's statuses."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def lookup(self, query: str, count: int) -> SuggestionOutcome:
        try:
            places = await geocode_places(self.client, query, count=count)
        except HTTPException as e:
            return outcome_from_status(e.status_code)
        return SuggestionOutcome.results(places)
