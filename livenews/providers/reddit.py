"""Reddit JSON API client: live listing and discussion threads."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from livenews.core.summarizer import summarize
from livenews.providers.content_types import Article, FeedFormatError, FeedHTTPError

logger = logging.getLogger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"
LIVE_NEWS_URL = f"{REDDIT_BASE_URL}/r/worldnews/new.json?limit=25"

# Discussion thread query used by the preview fallback
DISCUSSION_LIMIT = 8
DISCUSSION_SORT = "top"
MAX_COMMENT_BODIES = 3


def parse_listing(payload: Any) -> list[Article]:
    """Map a subreddit listing payload to Articles.

    Raises:
        FeedFormatError: If the payload is not a listing.
    """
    try:
        children = payload["data"]["children"]
    except (KeyError, TypeError) as e:
        raise FeedFormatError(f"Unexpected listing shape: {e!r}") from e
    if not isinstance(children, list):
        raise FeedFormatError("Listing children is not a list")

    articles: list[Article] = []
    for child in children:
        data = child.get("data") if isinstance(child, dict) else None
        if not isinstance(data, dict) or not data.get("id") or not data.get("title"):
            logger.debug(f"Skipping malformed listing entry: {child!r:.120}")
            continue

        title = str(data["title"])
        body = (data.get("selftext") or "").strip()
        articles.append(
            Article(
                id=str(data["id"]),
                title=title,
                body=body,
                summary=summarize(title, body),
                url=str(data.get("url") or ""),
                source=str(data.get("subreddit_name_prefixed") or "reddit"),
                published_at=int(data.get("created_utc") or 0),
            )
        )
    return articles


def discussion_url(article_id: str, base_url: str = REDDIT_BASE_URL) -> str:
    """Top-ranked comments endpoint for a submission."""
    query = urlencode({"limit": DISCUSSION_LIMIT, "sort": DISCUSSION_SORT})
    return f"{base_url}/comments/{article_id}.json?{query}"


def extract_comment_bodies(payload: Any, limit: int = MAX_COMMENT_BODIES) -> list[str] | None:
    """Pull up to ``limit`` non-blank comment bodies from a thread payload.

    The payload is a two-element array: the submission listing, then the
    comment listing. Returns None when the shape is not recognisable.
    """
    if not isinstance(payload, list) or len(payload) < 2:
        return None
    comments = payload[1]
    try:
        children = comments["data"]["children"]
    except (KeyError, TypeError):
        return None
    if not isinstance(children, list):
        return None

    bodies: list[str] = []
    for child in children:
        data = child.get("data") if isinstance(child, dict) else None
        body = data.get("body") if isinstance(data, dict) else None
        if isinstance(body, str) and body.strip():
            bodies.append(body)
        if len(bodies) >= limit:
            break
    return bodies


class RedditClient:
    """Async client for the public subreddit listing."""

    def __init__(self, client: httpx.AsyncClient, listing_url: str = LIVE_NEWS_URL) -> None:
        self._client = client
        self._listing_url = listing_url

    async def fetch_articles(self) -> list[Article]:
        """Fetch the newest submissions.

        Raises:
            FeedHTTPError: On a non-success status.
            FeedFormatError: On a malformed payload.
            httpx.HTTPError: On transport failures.
        """
        resp = await self._client.get(self._listing_url, headers={"Accept": "application/json"})
        if not resp.is_success:
            raise FeedHTTPError(self._listing_url, resp.status_code)
        try:
            payload = resp.json()
        except ValueError as e:
            raise FeedFormatError(f"Listing is not JSON: {e}") from e
        return parse_listing(payload)
