# cityhub/services/geocoding.py
# City-name lookup against the Open-Meteo geocoding API.
# Feeds both GET /api/geocode and the live search sessions.

import httpx
import logging
from typing import List, Optional
from fastapi import status
from cityhub.core.config import settings
from cityhub.models.dto import Place
from cityhub.utils.params import api_error

logger = logging.getLogger(__name__)

MIN_QUERY_CHARS = 2
MAX_COUNT = 10

def normalize_result(raw: dict) -> Place:
    """Open-Meteo result -> Place. Region prefers admin1, then admin2."""
    return Place(
        city=raw["name"],
        region=raw.get("admin1") or raw.get("admin2") or None,
        country=raw.get("country") or "",
        latitude=raw["latitude"],
        longitude=raw["longitude"],
        timezone=raw.get("timezone") or "UTC",
    )

async def geocode_places(
    client: httpx.AsyncClient,
    query: Optional[str],
    count: int = 5,
    country_code: Optional[str] = None,
) -> List[Place]:
    """
    Looks up places whose name matches `query`.

    Returns:
        At least one Place, in the upstream's ranking order.

    Raises:
        HTTPException: 400 for a missing/short query, 404 when nothing matches,
        502 when Open-Meteo is unreachable or answers with an error.
    """
    q = (query or "").strip()
    if len(q) < MIN_QUERY_CHARS:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "BAD_REQUEST",
            f"Missing ?q=<place> or must be at least {MIN_QUERY_CHARS} characters.",
        )

    params = {
        "name": q,
        "count": max(1, min(MAX_COUNT, count)),
        "language": "en",
        "format": "json",
    }
    if country_code:
        params["countryCode"] = country_code.upper()

    try:
        response = await client.get(settings.GEOCODING_URL, params=params)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Geocoding upstream returned status {e.response.status_code} for {q!r}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            f"Geocoding failed: {e.response.status_code}",
        )
    except httpx.HTTPError as e:
        logger.error(f"Geocoding upstream unreachable for {q!r}: {e}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            "Failed to reach the geocoding provider.",
        )
    except ValueError:
        logger.error(f"Geocoding upstream sent a non-JSON body for {q!r}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            "Geocoding provider sent an unreadable response.",
        )

    raw_results = data.get("results") if isinstance(data, dict) else None
    places = [normalize_result(r) for r in raw_results] if isinstance(raw_results, list) else []

    if not places:
        raise api_error(
            status.HTTP_404_NOT_FOUND,
            "NOT_FOUND",
            f'No places for "{q}"',
        )

    logger.info(f"Geocoded {q!r} to {len(places)} place(s).")
    return places
