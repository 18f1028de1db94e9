"""JSONPlaceholder posts, used when the live feed is unreachable."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from livenews.core.summarizer import summarize
from livenews.providers.content_types import Article, FeedFormatError, FeedHTTPError

logger = logging.getLogger(__name__)

PLACEHOLDER_POSTS_URL = "https://jsonplaceholder.typicode.com/posts"
PLACEHOLDER_SOURCE = "JSONPlaceholder"


def parse_posts(payload: Any, base_url: str = PLACEHOLDER_POSTS_URL, now: int | None = None) -> list[Article]:
    """Map a list of placeholder posts to Articles.

    Post ids are numeric upstream; they are normalized to strings here.
    """
    if not isinstance(payload, list):
        raise FeedFormatError("Placeholder payload is not a list")

    published_at = int(time.time()) if now is None else now
    articles: list[Article] = []
    for post in payload:
        if not isinstance(post, dict) or post.get("id") is None or not post.get("title"):
            continue
        post_id = str(post["id"])
        title = str(post["title"])
        body = str(post.get("body") or "").strip()
        articles.append(
            Article(
                id=post_id,
                title=title,
                body=body,
                summary=summarize(title, body),
                url=f"{base_url.rstrip('/')}/{post_id}",
                source=PLACEHOLDER_SOURCE,
                published_at=published_at,
            )
        )
    return articles


class PlaceholderClient:
    def __init__(self, client: httpx.AsyncClient, posts_url: str = PLACEHOLDER_POSTS_URL) -> None:
        self._client = client
        self._posts_url = posts_url

    async def fetch_articles(self) -> list[Article]:
        resp = await self._client.get(self._posts_url, headers={"Accept": "application/json"})
        if not resp.is_success:
            raise FeedHTTPError(self._posts_url, resp.status_code)
        try:
            payload = resp.json()
        except ValueError as e:
            raise FeedFormatError(f"Placeholder posts are not JSON: {e}") from e
        articles = parse_posts(payload, base_url=self._posts_url)
        logger.info(f"Loaded {len(articles)} placeholder articles")
        return articles
