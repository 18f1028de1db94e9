from __future__ import annotations

import logging

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request

from livenews.core.favorites import FavoritesStore
from livenews.core.feed import FeedService, FeedUnavailableError, to_relative_time
from livenews.core.preview import PreviewResolver, resolve_detail
from livenews.core.settings import Settings
from livenews.providers.content_types import Article
from livenews.providers.placeholder import PlaceholderClient
from livenews.providers.reddit import RedditClient

logger = logging.getLogger(__name__)

app = FastAPI(title="livenews")


@app.on_event("startup")
def _startup() -> None:
    s = Settings.from_env()
    logging.basicConfig(
        level=s.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    client = httpx.AsyncClient(
        timeout=httpx.Timeout(s.preview_deadline_ms / 1000),
        follow_redirects=True,
        headers={"User-Agent": s.user_agent},
    )
    app.state.http = client
    app.state.feed = FeedService(
        RedditClient(client, s.feed_url),
        PlaceholderClient(client, s.feed_fallback_url),
        refresh_seconds=s.feed_refresh_seconds,
    )
    app.state.resolver = PreviewResolver(
        client,
        proxy_host=s.preview_proxy_host,
        discussion_base_url=s.discussion_base_url,
        deadline_ms=s.preview_deadline_ms,
    )
    app.state.favorites = FavoritesStore()
    logger.info(f"livenews started (env={s.app_env})")


@app.on_event("shutdown")
async def _shutdown() -> None:
    client: httpx.AsyncClient | None = getattr(app.state, "http", None)
    if client is not None:
        await client.aclose()


def get_feed(request: Request) -> FeedService:
    return request.app.state.feed


def get_resolver(request: Request) -> PreviewResolver:
    return request.app.state.resolver


def get_favorites(request: Request) -> FavoritesStore:
    return request.app.state.favorites


def _article_row(article: Article, favorites: FavoritesStore) -> dict:
    return {
        **article.to_dict(),
        "relative_time": to_relative_time(article.published_at),
        "favorite": favorites.is_favorite(article.id),
    }


async def _find_article(feed: FeedService, article_id: str) -> Article:
    article = feed.snapshot.get(article_id)
    if article is None:
        # Nothing loaded yet, or the id comes from a newer listing
        try:
            snapshot = await feed.get_snapshot()
        except FeedUnavailableError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e
        article = snapshot.get(article_id)
    if article is None:
        raise HTTPException(status_code=404, detail=f"Article {article_id} not found")
    return article


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/articles")
async def list_articles(
    refresh: bool = False,
    feed: FeedService = Depends(get_feed),
    favorites: FavoritesStore = Depends(get_favorites),
):
    """Current feed snapshot; reloaded when stale or when ``refresh`` is set."""
    try:
        snapshot = await feed.get_snapshot(force=refresh)
    except FeedUnavailableError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    return {
        "articles": [_article_row(a, favorites) for a in snapshot.articles],
        "source": snapshot.source,
        "updated_at": snapshot.updated_at.isoformat() if snapshot.updated_at else None,
        "favorites_count": favorites.count,
    }


@app.get("/api/articles/{article_id}")
async def article_detail(
    article_id: str,
    feed: FeedService = Depends(get_feed),
    resolver: PreviewResolver = Depends(get_resolver),
    favorites: FavoritesStore = Depends(get_favorites),
):
    """Article with detail text: its body, or a preview when it has none."""
    article = await _find_article(feed, article_id)
    detail = await resolve_detail(article, resolver)
    return {
        "article": _article_row(article, favorites),
        **detail.to_dict(),
    }


@app.post("/api/articles/{article_id}/preview")
async def refresh_preview(
    article_id: str,
    feed: FeedService = Depends(get_feed),
    resolver: PreviewResolver = Depends(get_resolver),
):
    """Re-run preview resolution from scratch."""
    article = await _find_article(feed, article_id)
    if article.has_body:
        raise HTTPException(status_code=409, detail="Article has a body; no preview needed")
    result = await resolver.resolve(article)
    return result.to_dict()


@app.post("/api/favorites/{article_id}")
def toggle_favorite(article_id: str, favorites: FavoritesStore = Depends(get_favorites)):
    return {"id": article_id, "favorite": favorites.toggle(article_id), "count": favorites.count}


@app.get("/api/favorites")
def list_favorites(favorites: FavoritesStore = Depends(get_favorites)):
    return {"ids": favorites.ids(), "count": favorites.count}
