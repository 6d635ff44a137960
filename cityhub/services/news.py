# cityhub/services/news.py
# Google News RSS search (no key required), parsed into NewsItem records.
# Optional og:image hydration for items whose feed entry carries no picture.

import asyncio
import html
import httpx
import logging
import xml.etree.ElementTree as ET
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional
from urllib.parse import parse_qs, urlparse
from bs4 import BeautifulSoup
from fastapi import status
from cityhub.core.config import settings
from cityhub.models.dto import NewsItem
from cityhub.utils.params import api_error

logger = logging.getLogger(__name__)

MEDIA_NS = "{http://search.yahoo.com/mrss/}"
CONTENT_NS = "{http://purl.org/rss/1.0/modules/content/}"

def build_feed_params(query: str, hl: str = "en-US", gl: str = "US") -> dict:
    """Search params biased to the last seven days; ceid looks like "US:en"."""
    lang = hl.split("-")[0] or "en"
    return {
        "q": f"{query} when:7d",
        "hl": hl,
        "gl": gl,
        "ceid": f"{gl}:{lang}",
    }


def _text(element: Optional[ET.Element]) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _https(url: str) -> str:
    return "https:" + url if url.startswith("//") else url


def first_image(fragment: str) -> str:
    if not fragment:
        return ""
    img = BeautifulSoup(fragment, "html.parser").find("img")
    src = img.get("src") if img is not None else None
    return src.strip() if isinstance(src, str) else ""


def strip_tags(fragment: str) -> str:
    """Visible text of an HTML fragment, entities decoded."""
    if not fragment:
        return ""
    return BeautifulSoup(fragment, "html.parser").get_text(" ", strip=True)


def og_image(page: str) -> str:
    meta = BeautifulSoup(page, "html.parser").find("meta", attrs={"property": "og:image"})
    content = meta.get("content") if meta is not None else None
    return content.strip() if isinstance(content, str) else ""


def unwrap_link(link: str) -> str:
    """Google redirect links carry the publisher URL in `url=`."""
    try:
        real = parse_qs(urlparse(link).query).get("url")
    except ValueError:
        return link
    return real[0] if real else link


def hostname(link: str) -> str:
    try:
        host = urlparse(link).hostname or ""
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def rfc822_to_iso(value: str) -> str:
    if not value:
        return ""
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return ""
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_item(item: ET.Element) -> NewsItem:
    description = _text(item.find("description"))
    encoded = _text(item.find(f"{CONTENT_NS}encoded"))

    title = strip_tags(_text(item.find("title")))
    if not title:
        # Some feeds only carry text in the description
        title = strip_tags(description)[:160]

    link = unwrap_link(_text(item.find("link")))
    source = html.unescape(_text(item.find("source"))) or hostname(link) or "Unknown"

    media = item.find(f"{MEDIA_NS}content")
    enclosure = item.find("enclosure")
    image_url = (
        (media.get("url", "") if media is not None else "")
        or (enclosure.get("url", "") if enclosure is not None else "")
        or first_image(description)
        or first_image(encoded)
    )

    return NewsItem(
        title=title,
        link=link,
        source=source,
        published_at_iso=rfc822_to_iso(_text(item.find("pubDate"))),
        image_url=_https(image_url.strip()),
    )


def parse_feed(xml_text: str, limit: int) -> List[NewsItem]:
    """Items of an RSS 2.0 document, in feed order, at most `limit`."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.error(f"News feed is not valid XML: {e}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            "News feed could not be parsed.",
        )
    return [normalize_item(item) for item in root.iter("item")][:limit]


async def fetch_og_image(client: httpx.AsyncClient, url: str) -> str:
    """og:image of an article page, or "" on any failure."""
    try:
        response = await client.get(url, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL):
        return ""
    if response.is_error:
        return ""
    return _https(og_image(response.text))


async def hydrate_og_images(client: httpx.AsyncClient, items: List[NewsItem]) -> List[NewsItem]:
    """
    Fill missing image_url from each article's og:image, a few pages at a time.
    A batch that outlives NEWS_OG_TIMEOUT leaves its slow items without an image.
    """
    out: List[NewsItem] = []
    step = settings.NEWS_OG_MAX_CONCURRENCY
    for start in range(0, len(items), step):
        batch = items[start:start + step]
        tasks = {
            i: asyncio.create_task(fetch_og_image(client, item.link))
            for i, item in enumerate(batch)
            if not item.image_url and item.link
        }
        if tasks:
            _, pending = await asyncio.wait(tasks.values(), timeout=settings.NEWS_OG_TIMEOUT)
            for task in pending:
                task.cancel()
        for i, item in enumerate(batch):
            task = tasks.get(i)
            if task is not None and task.done() and not task.cancelled() and task.exception() is None:
                item = item.model_copy(update={"image_url": task.result()})
            out.append(item)
    return out


async def search_news(
    client: httpx.AsyncClient,
    query: str,
    hl: str = "en-US",
    gl: str = "US",
    limit: int = 12,
    og: bool = False,
) -> List[NewsItem]:
    """
    Recent headlines for `query`.

    Raises:
        HTTPException: 502 when the feed can't be fetched or parsed.
    """
    try:
        response = await client.get(settings.NEWS_RSS_URL, params=build_feed_params(query, hl, gl))
    except httpx.HTTPError as e:
        logger.error(f"Google News unreachable: {e}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "NETWORK_ERROR",
            "Failed to reach Google News.",
        )

    if response.is_error:
        logger.error(f"Google News returned status {response.status_code}")
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "UPSTREAM_FAILED",
            f"RSS fetch failed: {response.status_code}",
        )

    items = parse_feed(response.text, limit)
    if og:
        items = await hydrate_og_images(client, items)
    return items
