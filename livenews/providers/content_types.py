"""Provider-agnostic content types for feed articles."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Article:
    """A news item from any feed provider."""

    id: str
    title: str
    url: str
    body: str = ""  # Empty means no body; detail text comes from a preview
    summary: str = ""
    source: str = "unknown"
    published_at: int = 0  # Unix seconds

    @property
    def has_body(self) -> bool:
        return bool(self.body.strip())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "body": self.body,
            "summary": self.summary,
            "source": self.source,
            "published_at": self.published_at,
        }


class FeedError(Exception):
    """Base exception for feed provider errors."""


class FeedHTTPError(FeedError):
    """Feed endpoint answered with a non-success status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"{url} returned HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class FeedFormatError(FeedError):
    """Feed payload did not have the expected shape."""
