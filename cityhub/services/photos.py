# cityhub/services/photos.py
# Unsplash photo search. Uses the access key when configured, otherwise tries
# an anonymous request (Unsplash usually refuses those; we explain why).

import httpx
import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import status
from cityhub.core.config import settings
from cityhub.models.dto import Photo, PhotosResponse
from cityhub.utils.params import api_error

logger = logging.getLogger(__name__)


def to_iso(value: Optional[str]) -> str:
    """ISO-8601 in UTC, or "" when the timestamp can't be parsed."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_photo(raw: dict) -> Photo:
    urls = raw.get("urls") or {}
    description = (raw.get("description") or "").strip()
    alt = (raw.get("alt_description") or "").strip()
    return Photo(
        title=f"{description or alt or 'Untitled'} (Unsplash)",
        link=(raw.get("links") or {}).get("html") or f"https://unsplash.com/photos/{raw.get('id', '')}",
        author=(raw.get("user") or {}).get("name") or "Unknown",
        thumb=urls.get("small") or urls.get("regular") or urls.get("full") or "",
        full=urls.get("regular") or urls.get("full") or urls.get("small") or "",
        published_at_iso=to_iso(raw.get("created_at")),
    )


async def search_photos(client: httpx.AsyncClient, query: str, per_page: int = 12) -> PhotosResponse:
    """
    Latest safe-content photos for `query`.

    Raises:
        HTTPException: 500 when an anonymous request is refused (the fix is
        configuration), 502 for any other network or upstream failure.
    """
    key = (settings.UNSPLASH_ACCESS_KEY or "").strip()
    headers = {"Authorization": f"Client-ID {key}"} if key else None
    params = {
        "query": query,
        "per_page": per_page,
        "order_by": "latest",
        "content_filter": "high",
    }

    try:
        response = await client.get(settings.UNSPLASH_URL, params=params, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"Unsplash unreachable: {e}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "NETWORK_ERROR",
            "Failed to reach Unsplash.",
        )

    if response.is_error:
        if not key and response.status_code in (401, 403):
            logger.warning("Unsplash refused an anonymous request; UNSPLASH_ACCESS_KEY is not set.")
            raise api_error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "ANONYMOUS_REJECTED",
                "Unsplash refused anonymous requests. Set UNSPLASH_ACCESS_KEY in .env.",
            )
        logger.error(f"Unsplash returned status {response.status_code}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            f"Unsplash failed: {response.status_code}",
        )

    try:
        data = response.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        logger.error("Unsplash sent an unreadable response")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            "Unsplash sent an unreadable response.",
        )

    results = data.get("results")
    items = [normalize_photo(r) for r in results] if isinstance(results, list) else []
    return PhotosResponse(items=items, mode="key" if key else "anonymous")
