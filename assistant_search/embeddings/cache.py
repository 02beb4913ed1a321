"""Embedding caches.

Two caches with different lifetimes:

- ``QueryEmbeddingCache`` holds query vectors for a bounded time.
- ``ContentHashCache`` maps normalized content to a vector for the life of
  the process. It is a pure function cache, so it never goes stale.
"""

import hashlib
import time
from collections.abc import Callable
from dataclasses import dataclass

from assistant_search.observability.metrics import track_cache_eviction, track_cache_size


def content_hash(text: str) -> str:
    """SHA-256 of the lowercased, trimmed text."""
    normalized = text.strip().lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


@dataclass
class QueryCacheEntry:
    embedding: list[float]
    created_at: float


@dataclass
class ContentCacheEntry:
    embedding: list[float]
    origin_id: str | None = None


class QueryEmbeddingCache:
    """TTL cache of query embeddings keyed by content hash."""

    CACHE_NAME = "query_embedding"

    def __init__(self, ttl: float, clock: Callable[[], float] = time.time) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, QueryCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> list[float] | None:
        """Return the cached vector unless it is missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at > self._ttl:
            del self._entries[key]
            return None
        return entry.embedding

    def set(self, key: str, embedding: list[float]) -> None:
        self._entries[key] = QueryCacheEntry(embedding=embedding, created_at=self._clock())
        track_cache_size(self.CACHE_NAME, len(self._entries))

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.created_at > self._ttl
        ]
        for key in expired:
            del self._entries[key]
        track_cache_eviction(self.CACHE_NAME, "expired", len(expired))
        track_cache_size(self.CACHE_NAME, len(self._entries))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        track_cache_size(self.CACHE_NAME, 0)


class ContentHashCache:
    """Process-lifetime map of content hash to embedding."""

    CACHE_NAME = "content_hash"

    def __init__(self) -> None:
        self._entries: dict[str, ContentCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __getitem__(self, key: str) -> ContentCacheEntry:
        return self._entries[key]

    def get(self, key: str) -> ContentCacheEntry | None:
        return self._entries.get(key)

    def set(self, key: str, embedding: list[float], origin_id: str | None = None) -> None:
        self._entries[key] = ContentCacheEntry(embedding=embedding, origin_id=origin_id)
        track_cache_size(self.CACHE_NAME, len(self._entries))

    def clear(self) -> None:
        self._entries.clear()
        track_cache_size(self.CACHE_NAME, 0)
