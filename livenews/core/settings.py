from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    app_env: str
    log_level: str
    feed_url: str
    feed_fallback_url: str
    feed_refresh_seconds: int
    preview_proxy_host: str
    discussion_base_url: str
    preview_deadline_ms: int
    user_agent: str

    @staticmethod
    def from_env() -> "Settings":
        def _s(name: str, default: str) -> str:
            return os.getenv(name, default).strip()

        def _i(name: str, default: str) -> int:
            return int(os.getenv(name, default).strip())

        return Settings(
            app_env=_s("APP_ENV", "dev"),
            log_level=_s("LOG_LEVEL", "INFO").upper(),
            feed_url=_s("FEED_URL", "https://www.reddit.com/r/worldnews/new.json?limit=25"),
            feed_fallback_url=_s("FEED_FALLBACK_URL", "https://jsonplaceholder.typicode.com/posts"),
            feed_refresh_seconds=_i("FEED_REFRESH_SECONDS", "60"),
            preview_proxy_host=_s("PREVIEW_PROXY_HOST", "r.jina.ai"),
            discussion_base_url=_s("DISCUSSION_BASE_URL", "https://www.reddit.com").rstrip("/"),
            preview_deadline_ms=_i("PREVIEW_DEADLINE_MS", "6000"),
            user_agent=_s("HTTP_USER_AGENT", "livenews/1.0"),
        )
