"""Tests for feed.py"""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from livenews.core.feed import FeedService, FeedUnavailableError, to_relative_time
from livenews.providers.content_types import Article, FeedFormatError, FeedHTTPError

LIVE = [Article(id="a", title="Live", url="https://x.test/a")]
FALLBACK = [Article(id="1", title="Placeholder", url="https://p.test/posts/1", body="b")]


def source(result=None, error=None):
    mock = MagicMock()
    mock.fetch_articles = AsyncMock(return_value=result, side_effect=error)
    return mock


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRelativeTime:
    @pytest.mark.parametrize(
        "age,label",
        [(0, "1s ago"), (45, "45s ago"), (60, "1m ago"), (3599, "59m ago"), (7200, "2h ago"), (86400 * 3, "3d ago")],
    )
    def test_labels(self, age, label):
        assert to_relative_time(1_700_000_000 - age, now=1_700_000_000) == label

    def test_future_timestamp_clamps(self):
        assert to_relative_time(1_700_000_100, now=1_700_000_000) == "1s ago"


@pytest.mark.asyncio
class TestFeedService:
    async def test_live_feed(self):
        service = FeedService(source(LIVE), source(FALLBACK))
        snapshot = await service.refresh()

        assert snapshot.source == "live"
        assert snapshot.articles == LIVE
        assert snapshot.updated_at is not None
        assert snapshot.get("a") is LIVE[0]
        assert snapshot.get("missing") is None

    @pytest.mark.parametrize(
        "error",
        [FeedHTTPError("u", 503), FeedFormatError("bad"), httpx.ConnectError("down")],
    )
    async def test_falls_back_on_live_failure(self, error):
        fallback = source(FALLBACK)
        service = FeedService(source(error=error), fallback)
        snapshot = await service.refresh()

        assert snapshot.source == "fallback"
        assert snapshot.articles == FALLBACK
        fallback.fetch_articles.assert_awaited_once()

    async def test_both_sources_fail(self):
        service = FeedService(source(error=FeedHTTPError("u", 500)), source(error=httpx.ReadTimeout("slow")))
        with pytest.raises(FeedUnavailableError, match="Failed to load live news"):
            await service.refresh()

    async def test_no_fallback_configured(self):
        service = FeedService(source(error=FeedFormatError("bad")))
        with pytest.raises(FeedUnavailableError):
            await service.refresh()

    async def test_snapshot_reused_until_stale(self):
        clock = FakeClock()
        live = source(LIVE)
        service = FeedService(live, refresh_seconds=60, clock=clock)

        await service.get_snapshot()
        clock.now += 30
        await service.get_snapshot()
        assert live.fetch_articles.await_count == 1

        clock.now += 30
        await service.get_snapshot()
        assert live.fetch_articles.await_count == 2

    async def test_concurrent_stale_requests_fetch_once(self):
        async def slow_fetch():
            await asyncio.sleep(0.01)
            return LIVE

        live = MagicMock()
        live.fetch_articles = AsyncMock(side_effect=slow_fetch)
        service = FeedService(live, clock=FakeClock())

        snapshots = await asyncio.gather(*(service.get_snapshot() for _ in range(5)))

        assert live.fetch_articles.await_count == 1
        assert all(s is snapshots[0] for s in snapshots)

    async def test_forced_refresh(self):
        live = source(LIVE)
        service = FeedService(live, clock=FakeClock())
        await service.get_snapshot()
        await service.get_snapshot(force=True)
        assert live.fetch_articles.await_count == 2
