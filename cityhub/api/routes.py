# cityhub/api/routes.py
# Dashboard panel endpoints: geocode, weather, photos, news, history, ping.

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query, Request, status
import httpx
import logging
from typing import List, Optional

from cityhub.core.config import settings
from cityhub.models.dto import (
    ErrorResponse,
    HistoryCreate,
    HistoryItem,
    HistoryResponse,
    NewsResponse,
    PhotosResponse,
    Place,
    WeatherResponse,
)
from cityhub.services.geocoding import geocode_places
from cityhub.services.history_repository import HistoryStore, HistoryUnavailable
from cityhub.services.news import search_news
from cityhub.services.photos import search_photos
from cityhub.services.weather import fetch_forecast
from cityhub.utils.params import api_error, clamp_int, parse_float

router = APIRouter()
logger = logging.getLogger(__name__)

UPSTREAM_ERRORS = {
    400: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}

# ----------------------------------------------------------------------
# Dependencies (overridable in tests)
# ----------------------------------------------------------------------
def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client

def get_history_store(request: Request) -> HistoryStore:
    return request.app.state.history_store

def require_query(q: Optional[str], hint: str) -> str:
    text = (q or "").strip()
    if len(text) < 2:
        raise api_error(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", f"Missing ?q={hint} (min 2 chars).")
    return text

# ----------------------------------------------------------------------
# Geocode (suggestion lookup)
# ----------------------------------------------------------------------
@router.get(
    "/geocode",
    response_model=List[Place],
    responses={**UPSTREAM_ERRORS, 404: {"model": ErrorResponse}},
)
async def geocode(
    q: Optional[str] = None,
    count: Optional[str] = None,
    country_code: Optional[str] = Query(None, alias="countryCode"),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Places matching `q`; 404 (not an empty list) when nothing matches."""
    return await geocode_places(
        client,
        q,
        count=clamp_int(count, 1, 10, 5),
        country_code=(country_code or "").strip() or None,
    )

# ----------------------------------------------------------------------
# Weather
# ----------------------------------------------------------------------
@router.get("/weather", response_model=WeatherResponse, responses=UPSTREAM_ERRORS)
async def weather(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    tz: Optional[str] = None,
    days: Optional[str] = None,
    unit: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    latitude, longitude = parse_float(lat), parse_float(lon)
    if latitude is None or longitude is None:
        raise api_error(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", "Missing or invalid lat/lon.")
    return await fetch_forecast(
        client,
        latitude,
        longitude,
        tz=(tz or "").strip() or "UTC",
        days=clamp_int(days, 1, 16, 7),
        unit=(unit or "si"),
    )

# ----------------------------------------------------------------------
# Photos
# ----------------------------------------------------------------------
@router.get(
    "/photos",
    response_model=PhotosResponse,
    responses={**UPSTREAM_ERRORS, 500: {"model": ErrorResponse}},
)
async def photos(
    q: Optional[str] = None,
    n: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    query = require_query(q, "<City, Country>")
    return await search_photos(client, query, per_page=clamp_int(n, 1, 24, 12))

# ----------------------------------------------------------------------
# News
# ----------------------------------------------------------------------
@router.get("/news", response_model=NewsResponse, responses=UPSTREAM_ERRORS)
async def news(
    q: Optional[str] = None,
    hl: Optional[str] = None,
    gl: Optional[str] = None,
    n: Optional[str] = None,
    og: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    query = require_query(q, "<search>")
    items = await search_news(
        client,
        query,
        hl=(hl or "").strip() or "en-US",
        gl=(gl or "").strip() or "US",
        limit=clamp_int(n, 1, 20, 12),
        og=(og or "").strip() == "1",
    )
    return NewsResponse(items=items)

# ----------------------------------------------------------------------
# History
# ----------------------------------------------------------------------
@router.post(
    "/history",
    response_model=HistoryItem,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def add_history(
    body: HistoryCreate,
    store: HistoryStore = Depends(get_history_store),
):
    city = (body.city or "").strip()
    country = (body.country or "").strip()
    if not city or not country:
        raise api_error(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", "city and country are required")
    region = (body.region or "").strip() or None
    try:
        return await store.add(city, region, country)
    except HistoryUnavailable:
        raise api_error(status.HTTP_503_SERVICE_UNAVAILABLE, "HISTORY_UNAVAILABLE", "History is temporarily unavailable.")

@router.get("/history", response_model=HistoryResponse, responses={503: {"model": ErrorResponse}})
async def list_history(store: HistoryStore = Depends(get_history_store)):
    """Most recently viewed places, newest first."""
    try:
        items = await store.recent(settings.HISTORY_PAGE_SIZE)
    except HistoryUnavailable:
        raise api_error(status.HTTP_503_SERVICE_UNAVAILABLE, "HISTORY_UNAVAILABLE", "History is temporarily unavailable.")
    return HistoryResponse(items=items)

# ----------------------------------------------------------------------
# Ping
# ----------------------------------------------------------------------
@router.get("/ping")
async def ping():
    """End-to-end check for clients: proves the API answers."""
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}
