"""Semantic response cache.

Caches final answers keyed by query embedding. A new query is served
from the cache when its embedding is close enough (cosine similarity) to
the embedding of a previously answered query.
"""

import hashlib
import json
import math
import time
from collections.abc import Callable
from typing import NamedTuple

import numpy as np
from pydantic import BaseModel, Field

from assistant_search.cache.similarity import cosine_similarities
from assistant_search.cache.sweeper import PeriodicSweeper
from assistant_search.config import CacheSettings, get_settings
from assistant_search.logging_config import get_logger
from assistant_search.observability.metrics import (
    track_cache_eviction,
    track_cache_lookup,
    track_cache_size,
)

logger = get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
EVICTION_FRACTION = 0.1
MIN_AGE_DAYS = 0.1
KEY_DIMENSIONS = 100


class CachedSource(BaseModel):
    """A grounding source attached to a cached answer."""

    document_name: str = Field(description="Display name of the source")
    document_type: str = Field(description="Source type tag")
    relevance_score: float = Field(description="Score at answer time")
    url: str | None = Field(default=None, description="Source URL if web-based")


class AnswerPayload(BaseModel):
    """The part of a chat answer that gets cached."""

    answer: str = Field(description="Generated answer")
    confidence: float = Field(default=0.0, description="Answer confidence")
    sources: list[CachedSource] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)
    tokens_used: int = Field(default=0, description="Tokens spent on the answer")


class CachedResponse(AnswerPayload):
    """A cache entry.

    Attributes:
        query: The query the answer was generated for.
        query_embedding: Embedding of that query.
        created_at: Unix timestamp of insertion.
        hit_count: Times the entry has been served.
    """

    query: str = Field(description="Original query")
    query_embedding: list[float] = Field(description="Query embedding")
    created_at: float = Field(description="Insertion timestamp")
    hit_count: int = Field(default=0, description="Times served")


class SemanticCacheStats(BaseModel):
    """Semantic cache counters."""

    size: int
    max_size: int
    hits: int
    misses: int
    hit_rate: float
    total_queries: int


def embedding_key(embedding: list[float]) -> str:
    """Cache key derived from the leading dimensions of an embedding."""
    head = json.dumps(embedding[:KEY_DIMENSIONS])
    return hashlib.md5(head.encode("utf-8")).hexdigest()


class _VectorIndex(NamedTuple):
    """Stacked embeddings of one dimension, in entry order."""

    keys: list[str]
    matrix: np.ndarray
    created_at: np.ndarray


class SemanticResponseCache:
    """Similarity-keyed answer cache with popularity/age eviction.

    Lookups score every entry with one matrix-vector product over the
    stacked embeddings. When the cache grows past ``max_size`` the
    lowest-scoring tenth is evicted, where the score is
    ``hit_count / max(age_in_days, 0.1)``.
    """

    CACHE_NAME = "semantic"

    def __init__(
        self,
        settings: CacheSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            settings: Cache configuration. Uses defaults if not provided.
            clock: Time source returning seconds (for testing).
        """
        self._settings = settings or get_settings().cache
        self._clock = clock
        self._entries: dict[str, CachedResponse] = {}
        self._vectors: dict[str, np.ndarray] = {}
        self._indexes: dict[int, _VectorIndex] = {}
        self._hits = 0
        self._misses = 0
        self._sweeper = PeriodicSweeper(
            self.CACHE_NAME,
            self.clean_expired,
            self._settings.sweep_interval,
        )

    @property
    def max_size(self) -> int:
        return self._settings.semantic_max_size

    @property
    def ttl(self) -> float:
        return self._settings.semantic_ttl

    @property
    def similarity_threshold(self) -> float:
        return self._settings.semantic_similarity_threshold

    def __len__(self) -> int:
        return len(self._entries)

    def start(self) -> None:
        """Start the background expiry sweep."""
        self._sweeper.start()

    async def shutdown(self) -> None:
        """Stop the background expiry sweep."""
        await self._sweeper.shutdown()

    def _is_expired(self, entry: CachedResponse, now: float) -> bool:
        return now - entry.created_at > self.ttl

    def _remove(self, key: str) -> None:
        del self._entries[key]
        del self._vectors[key]
        self._indexes.clear()

    def _index_for(self, dimensions: int) -> _VectorIndex | None:
        """Stacked matrix of every entry with the given dimension.

        Built on first lookup and dropped whenever the entries change.
        """
        index = self._indexes.get(dimensions)
        if index is not None:
            return index

        keys = [key for key, vector in self._vectors.items() if vector.shape[0] == dimensions]
        if not keys:
            return None

        index = _VectorIndex(
            keys=keys,
            matrix=np.vstack([self._vectors[key] for key in keys]),
            created_at=np.array([self._entries[key].created_at for key in keys]),
        )
        self._indexes[dimensions] = index
        return index

    def find_similar(
        self,
        query_embedding: list[float],
        original_query: str = "",
    ) -> CachedResponse | None:
        """Find the most similar live entry at or above the threshold.

        On equal similarity the earliest inserted entry wins.

        Args:
            query_embedding: Embedding of the incoming query.
            original_query: Incoming query text, for logging only.

        Returns:
            The matching entry (with its hit count incremented) or None.
        """
        now = self._clock()
        query = np.asarray(query_embedding, dtype=np.float64)
        best: CachedResponse | None = None
        best_similarity = 0.0

        index = self._index_for(query.shape[0])
        if index is not None:
            similarities = cosine_similarities(index.matrix, query)
            live = (now - index.created_at) <= self.ttl
            candidates = np.where(
                live & (similarities >= self.similarity_threshold),
                similarities,
                -np.inf,
            )
            # argmax returns the first maximum
            position = int(np.argmax(candidates))
            if np.isfinite(candidates[position]):
                best = self._entries[index.keys[position]]
                best_similarity = float(candidates[position])

        if best is None:
            self._misses += 1
            track_cache_lookup(self.CACHE_NAME, hit=False)
            return None

        self._hits += 1
        best.hit_count += 1
        track_cache_lookup(self.CACHE_NAME, hit=True)
        logger.info(
            "Semantic cache hit",
            extra={
                "similarity": round(best_similarity, 4),
                "cached_query": best.query[:100],
                "incoming_query": original_query[:100],
                "hit_count": best.hit_count,
            },
        )
        return best

    def set(
        self,
        query: str,
        query_embedding: list[float],
        response: AnswerPayload,
    ) -> CachedResponse:
        """Store an answer, evicting if the cache grew past its bound."""
        entry = CachedResponse(
            query=query,
            query_embedding=query_embedding,
            created_at=self._clock(),
            hit_count=0,
            **response.model_dump(),
        )
        key = embedding_key(query_embedding)
        self._entries[key] = entry
        self._vectors[key] = np.asarray(query_embedding, dtype=np.float64)
        self._indexes.clear()

        if len(self._entries) > self.max_size:
            self._evict()

        track_cache_size(self.CACHE_NAME, len(self._entries))
        logger.debug(
            "Cached semantic query",
            extra={"size": len(self._entries), "max_size": self.max_size},
        )
        return entry

    def _evict(self) -> None:
        now = self._clock()
        scored = []
        for key, entry in self._entries.items():
            age_days = (now - entry.created_at) / SECONDS_PER_DAY
            score = entry.hit_count / max(age_days, MIN_AGE_DAYS)
            scored.append((score, entry.created_at, key))

        scored.sort()
        to_remove = math.ceil(len(self._entries) * EVICTION_FRACTION)
        for _, _, key in scored[:to_remove]:
            self._remove(key)

        track_cache_eviction(self.CACHE_NAME, "evicted", to_remove)
        logger.info(
            f"Evicted {to_remove} semantic cache entries",
            extra={"size": len(self._entries)},
        )

    def clean_expired(self) -> int:
        """Remove entries older than the TTL.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items() if self._is_expired(entry, now)
        ]
        for key in expired:
            self._remove(key)

        track_cache_eviction(self.CACHE_NAME, "expired", len(expired))
        track_cache_size(self.CACHE_NAME, len(self._entries))
        return len(expired)

    def stats(self) -> SemanticCacheStats:
        """Snapshot of the cache counters."""
        total = self._hits + self._misses
        return SemanticCacheStats(
            size=len(self._entries),
            max_size=self.max_size,
            hits=self._hits,
            misses=self._misses,
            hit_rate=self._hits / total if total else 0.0,
            total_queries=total,
        )

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        self._entries.clear()
        self._vectors.clear()
        self._indexes.clear()
        self._hits = 0
        self._misses = 0
        track_cache_size(self.CACHE_NAME, 0)
        logger.info("Semantic cache cleared")
