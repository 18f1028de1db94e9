"""Feed snapshot with live source and placeholder fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Protocol

import httpx

from livenews.providers.content_types import Article, FeedError

logger = logging.getLogger(__name__)

FEED_FAILED_MESSAGE = "Failed to load live news"


class ArticleSource(Protocol):
    async def fetch_articles(self) -> list[Article]: ...


class FeedUnavailableError(Exception):
    """Neither the live feed nor the fallback produced articles."""


@dataclass
class FeedSnapshot:
    articles: list[Article] = field(default_factory=list)
    source: str = "none"  # "live", "fallback" or "none"
    updated_at: datetime | None = None

    def get(self, article_id: str) -> Article | None:
        for article in self.articles:
            if article.id == article_id:
                return article
        return None


def to_relative_time(published_at: int, now: float | None = None) -> str:
    """Compact age label such as ``45s ago``, ``12m ago``, ``3h ago``, ``2d ago``."""
    current = time.time() if now is None else now
    seconds = max(1, int(current) - published_at)
    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


class FeedService:
    """Holds the current feed snapshot and refreshes it when stale."""

    def __init__(
        self,
        live: ArticleSource,
        fallback: ArticleSource | None = None,
        *,
        refresh_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._live = live
        self._fallback = fallback
        self._refresh_seconds = refresh_seconds
        self._clock = clock
        self._snapshot = FeedSnapshot()
        self._loaded_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> FeedSnapshot:
        return self._snapshot

    def is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at >= self._refresh_seconds

    async def get_snapshot(self, force: bool = False) -> FeedSnapshot:
        """Current snapshot, refreshed first when stale or forced."""
        if force or self.is_stale():
            return await self.refresh(force=force)
        return self._snapshot

    async def refresh(self, force: bool = True) -> FeedSnapshot:
        """Reload from the live source, falling back to the placeholder source.

        Without ``force`` a snapshot loaded while waiting for the lock is reused.

        Raises:
            FeedUnavailableError: If every source failed.
        """
        async with self._lock:
            if not force and not self.is_stale():
                return self._snapshot
            try:
                articles = await self._live.fetch_articles()
                source = "live"
            except (FeedError, httpx.HTTPError) as e:
                if self._fallback is None:
                    logger.error(f"Live feed failed with no fallback: {e}")
                    raise FeedUnavailableError(FEED_FAILED_MESSAGE) from e
                logger.warning(f"Live feed failed, using fallback: {e}")
                try:
                    articles = await self._fallback.fetch_articles()
                    source = "fallback"
                except (FeedError, httpx.HTTPError) as fallback_error:
                    logger.error(f"Fallback feed failed: {fallback_error}")
                    raise FeedUnavailableError(FEED_FAILED_MESSAGE) from fallback_error

            self._snapshot = FeedSnapshot(
                articles=articles,
                source=source,
                updated_at=datetime.now(timezone.utc),
            )
            self._loaded_at = self._clock()
            logger.info(f"Feed refreshed from {source}: {len(articles)} articles")
            return self._snapshot
