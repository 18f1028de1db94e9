"""Tests for reddit.py and placeholder.py"""

import httpx
import pytest

from livenews.providers.content_types import FeedFormatError, FeedHTTPError
from livenews.providers.placeholder import PLACEHOLDER_SOURCE, PlaceholderClient, parse_posts
from livenews.providers.reddit import (
    RedditClient,
    discussion_url,
    extract_comment_bodies,
    parse_listing,
)

LISTING = {
    "data": {
        "children": [
            {
                "data": {
                    "id": "1abc",
                    "title": "Storm hits coast",
                    "selftext": "  Winds reached 120 mph. Several towns lost power. Crews respond.  ",
                    "url": "https://news.example.com/storm",
                    "subreddit_name_prefixed": "r/worldnews",
                    "created_utc": 1700000000.0,
                }
            },
            {
                "data": {
                    "id": "2def",
                    "title": "Link only",
                    "selftext": "",
                    "url": "https://news.example.com/link",
                    "subreddit_name_prefixed": "r/worldnews",
                    "created_utc": 1700000100,
                }
            },
            {"kind": "t3"},
        ]
    }
}


class TestParseListing:
    def test_maps_children_to_articles(self):
        articles = parse_listing(LISTING)

        assert [a.id for a in articles] == ["1abc", "2def"]
        storm = articles[0]
        assert storm.body == "Winds reached 120 mph. Several towns lost power. Crews respond."
        assert storm.summary == "Winds reached 120 mph. Several towns lost power."
        assert storm.source == "r/worldnews"
        assert storm.published_at == 1700000000

    def test_empty_selftext_keeps_body_empty(self):
        link = parse_listing(LISTING)[1]
        assert link.body == ""
        assert link.has_body is False
        assert link.summary == "Link only. Read full details in the source link."

    @pytest.mark.parametrize("payload", [None, [], {"data": None}, {"data": {"children": {}}}])
    def test_malformed_listing(self, payload):
        with pytest.raises(FeedFormatError):
            parse_listing(payload)


class TestDiscussion:
    def test_discussion_url(self):
        assert discussion_url("abc") == "https://www.reddit.com/comments/abc.json?limit=8&sort=top"

    def test_extract_skips_blank_bodies(self):
        payload = [
            None,
            {"data": {"children": [{"data": {"body": "  "}}, {"data": {"body": "Great report, thanks"}}]}},
        ]
        assert extract_comment_bodies(payload) == ["Great report, thanks"]

    def test_extract_unrecognised_shape(self):
        assert extract_comment_bodies({"data": {}}) is None


class TestParsePosts:
    def test_numeric_ids_become_strings(self):
        posts = [{"userId": 1, "id": 7, "title": "sunt aut", "body": "quia et suscipit\nsuscipit recusandae"}]
        articles = parse_posts(posts, now=1700000000)

        assert articles[0].id == "7"
        assert articles[0].url == "https://jsonplaceholder.typicode.com/posts/7"
        assert articles[0].source == PLACEHOLDER_SOURCE
        assert articles[0].published_at == 1700000000
        assert articles[0].summary == "quia et suscipit suscipit recusandae"

    def test_rejects_non_list(self):
        with pytest.raises(FeedFormatError):
            parse_posts({"posts": []})


@pytest.mark.asyncio
class TestClients:
    async def test_reddit_client_fetches_listing(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=LISTING)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            articles = await RedditClient(client).fetch_articles()

        assert len(articles) == 2
        assert seen[0].headers["Accept"] == "application/json"

    async def test_reddit_client_http_error(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(429))) as client:
            with pytest.raises(FeedHTTPError) as exc_info:
                await RedditClient(client).fetch_articles()
        assert exc_info.value.status_code == 429

    async def test_reddit_client_invalid_json(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="<html></html>"))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(FeedFormatError):
                await RedditClient(client).fetch_articles()

    async def test_placeholder_client(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json=[{"id": 1, "title": "t", "body": "b."}]))
        async with httpx.AsyncClient(transport=transport) as client:
            articles = await PlaceholderClient(client).fetch_articles()
        assert [a.id for a in articles] == ["1"]
