"""Session-scoped favorites."""

from __future__ import annotations

import threading


class FavoritesStore:
    """In-memory set of favorite article ids.

    Owned by whoever creates it and handed to the components that need it.
    Nothing is persisted.
    """

    def __init__(self) -> None:
        self._ids: dict[str, None] = {}  # dict keeps insertion order
        self._lock = threading.Lock()

    def toggle(self, article_id: str) -> bool:
        """Add or remove ``article_id``. Returns True if it is now a favorite."""
        with self._lock:
            if article_id in self._ids:
                del self._ids[article_id]
                return False
            self._ids[article_id] = None
            return True

    def is_favorite(self, article_id: str) -> bool:
        with self._lock:
            return article_id in self._ids

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._ids)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._ids)
