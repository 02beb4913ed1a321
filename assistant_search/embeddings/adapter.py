"""Embedding adapter with model fallback, caching and batch deduplication.

The adapter is the only entry point for turning text into vectors. It
folds over an ordered list of providers, one per model, and stops at the
first success. What happens after every provider failed depends on the
call path:

- ``embed()`` is best effort and returns an all-zero vector, which
  callers treat as "embeddings unavailable".
- ``embed_batch()`` raises, because silently indexing a corpus with zero
  vectors is worse than rejecting it.
"""

import time
from collections.abc import Callable, Sequence

import httpx

from assistant_search.cache.sweeper import PeriodicSweeper
from assistant_search.config import CacheSettings, EmbeddingSettings, get_settings
from assistant_search.embeddings.cache import ContentHashCache, QueryEmbeddingCache, content_hash
from assistant_search.embeddings.models import (
    AttemptFailed,
    AttemptSucceeded,
    CostEstimate,
    EmbeddingKind,
    EmbeddingStats,
    ProviderAttempt,
)
from assistant_search.embeddings.provider import EmbeddingProvider, HTTPEmbeddingProvider
from assistant_search.exceptions import EmbeddingError, ErrorCode, ValidationError
from assistant_search.logging_config import get_logger
from assistant_search.observability.metrics import track_cache_lookup, track_embedding_degraded

logger = get_logger(__name__)

# USD per 1K tokens
COST_PER_1K_TOKENS = {
    "text-embedding-3-small": 0.00002,
    "text-embedding-ada-002": 0.0001,
    "text-embedding-3-large": 0.00013,
}
AVG_TOKENS_PER_TEXT = 100


def estimate_cost_savings(
    total_texts: int,
    api_calls: int,
    cache_hits: int,
    model: str = "text-embedding-3-small",
) -> CostEstimate:
    """Estimate embedding spend and what deduplication saved.

    Args:
        total_texts: Texts requested by callers.
        api_calls: Texts actually sent to a provider.
        cache_hits: Texts served from a cache.
        model: Model whose price is used.

    Returns:
        CostEstimate assuming 100 tokens per text.
    """
    price = COST_PER_1K_TOKENS.get(model, COST_PER_1K_TOKENS["text-embedding-3-small"])
    estimated_cost = api_calls * AVG_TOKENS_PER_TEXT / 1000 * price
    would_have_cost = total_texts * AVG_TOKENS_PER_TEXT / 1000 * price
    return CostEstimate(
        total_texts=total_texts,
        api_calls=api_calls,
        saved=total_texts - api_calls,
        cache_hit_rate=cache_hits / total_texts if total_texts > 0 else 0.0,
        estimated_cost=estimated_cost,
        estimated_savings=would_have_cost - estimated_cost,
    )


class EmbeddingAdapter:
    """Turns text into vectors through a chain of fallback providers."""

    def __init__(
        self,
        providers: Sequence[EmbeddingProvider],
        settings: EmbeddingSettings | None = None,
        cache_settings: CacheSettings | None = None,
        clock: Callable[[], float] = time.time,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            providers: Providers in fallback order. Must not be empty.
            settings: Embedding configuration. Uses defaults if not provided.
            cache_settings: Cache configuration. Uses defaults if not provided.
            clock: Time source for the query cache (for testing).
            client: Shared HTTP client to close on ``close()``, if the
                adapter created it.
        """
        if not providers:
            raise ValidationError("At least one embedding provider is required")

        self._providers = list(providers)
        self._settings = settings or get_settings().embedding
        cache_settings = cache_settings or get_settings().cache
        self._query_cache = QueryEmbeddingCache(cache_settings.query_embedding_ttl, clock)
        self._content_cache = ContentHashCache()
        self._sweeper = PeriodicSweeper(
            QueryEmbeddingCache.CACHE_NAME,
            self._query_cache.purge_expired,
            cache_settings.sweep_interval,
        )
        self._client = client

        self._provider_calls = 0
        self._texts_embedded = 0
        self._duplicates_reused = 0
        self._query_cache_hits = 0
        self._degraded = 0

    @classmethod
    def from_settings(
        cls,
        settings: EmbeddingSettings | None = None,
        cache_settings: CacheSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> "EmbeddingAdapter":
        """Build an adapter with one HTTP provider per configured model.

        All providers share one HTTP client. If none is given the adapter
        creates it and closes it on ``close()``.
        """
        settings = settings or get_settings().embedding
        owned_client = None
        if client is None:
            owned_client = client = httpx.AsyncClient(timeout=settings.timeout)

        providers = [
            HTTPEmbeddingProvider(model, settings=settings, client=client)
            for model in settings.models
        ]
        return cls(providers, settings=settings, cache_settings=cache_settings, client=owned_client)

    @property
    def dimensions(self) -> int:
        return self._settings.dimensions

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    def zero_vector(self) -> list[float]:
        """The "embeddings unavailable" sentinel."""
        return [0.0] * self._settings.dimensions

    def start(self) -> None:
        """Start the query-cache expiry sweep."""
        self._sweeper.start()

    async def shutdown(self) -> None:
        await self._sweeper.shutdown()

    async def close(self) -> None:
        """Stop background work and release HTTP resources."""
        await self.shutdown()
        for provider in self._providers:
            await provider.close()
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _truncate(self, text: str) -> str:
        return text[: self._settings.max_input_chars]

    async def _attempt(self, provider: EmbeddingProvider, texts: list[str]) -> ProviderAttempt:
        try:
            vectors = await provider.embed_texts(texts)
        except Exception as e:
            logger.warning(
                f"Embedding provider {provider.name} failed: {e}",
                extra={"provider": provider.name, "inputs": len(texts)},
            )
            return AttemptFailed(provider=provider.name, error=str(e))

        if len(vectors) != len(texts):
            logger.warning(
                f"Embedding provider {provider.name} returned {len(vectors)} vectors "
                f"for {len(texts)} inputs",
                extra={"provider": provider.name, "inputs": len(texts)},
            )
            return AttemptFailed(
                provider=provider.name,
                error=f"expected {len(texts)} vectors, got {len(vectors)}",
            )

        wrong =[len(v) for v in vectors if len(v) != self._settings.dimensions]
        if wrong:
            logger.warning(
                f"Embedding provider {provider.name} returned {wrong[0]} dimensions",
                extra={"provider": provider.name, "expected": self._settings.dimensions},
            )
            return AttemptFailed(
                provider=provider.name,
                error=f"{ErrorCode.EMBEDDING_DIMENSION_MISMATCH.value}: got {wrong[0]}",
            )

        return AttemptSucceeded(provider=provider.name, embeddings=vectors)

    async def _embed_with_fallback(
        self, texts: list[str]
    ) -> tuple[list[list[float]] | None, list[ProviderAttempt]]:
        """Try providers in order until one succeeds.

        Returns:
            The vectors (None if every provider failed) and all attempts made.
        """
        self._provider_calls += 1
        attempts: list[ProviderAttempt] = []
        for provider in self._providers:
            attempt = await self._attempt(provider, texts)
            attempts.append(attempt)
            if isinstance(attempt, AttemptSucceeded):
                self._texts_embedded += len(texts)
                if len(attempts) > 1:
                    logger.info(
                        f"Embedded with fallback model {provider.name}",
                        extra={"failed": [a.provider for a in attempts[:-1]]},
                    )
                return attempt.embeddings, attempts
        return None, attempts

    async def embed(self, text: str, kind: EmbeddingKind = EmbeddingKind.QUERY) -> list[float]:
        """Embed a single text. Never raises.

        Args:
            text: Text to embed. Truncated to ``max_input_chars``.
            kind: QUERY consults the query cache; DOCUMENT goes through
                content-hash deduplication.

        Returns:
            The vector, or the zero vector if every provider failed.
        """
        if kind is EmbeddingKind.DOCUMENT:
            try:
                return (await self.embed_batch([text]))[0]
            except EmbeddingError as e:
                logger.error(f"Document embedding degraded: {e.message}", extra=e.details)
                self._degraded += 1
                track_embedding_degraded("document")
                return self.zero_vector()

        key = content_hash(text)
        cached = self._query_cache.get(key)
        if cached is not None:
            self._query_cache_hits += 1
            track_cache_lookup(QueryEmbeddingCache.CACHE_NAME, hit=True)
            return cached
        track_cache_lookup(QueryEmbeddingCache.CACHE_NAME, hit=False)

        vectors, attempts = await self._embed_with_fallback([self._truncate(text)])
        if vectors is None:
            logger.error(
                "All embedding models failed, returning zero vector",
                extra={"attempts": [a.provider for a in attempts]},
            )
            self._degraded += 1
            track_embedding_degraded("query")
            return self.zero_vector()

        self._query_cache.set(key, vectors[0])
        return vectors[0]

    async def embed_batch(
        self,
        texts: Sequence[str],
        origin_ids: Sequence[str] | None = None,
    ) -> list[list[float]]:
        """Embed texts, sending each distinct content to a provider once.

        Texts are grouped by content hash. Hashes already in the content
        cache are reused, the rest go to the provider chain in a single
        fold. Positions sharing a hash receive the same list object.

        Args:
            texts: Texts to embed.
            origin_ids: Optional ids recorded with first-seen content.

        Returns:
            One vector per input, in input order.

        Raises:
            ValidationError: If origin_ids does not match texts in length.
            EmbeddingError: If every provider failed.
        """
        if not texts:
            return []
        if origin_ids is not None and len(origin_ids) != len(texts):
            raise ValidationError(
                "origin_ids must match texts in length",
                details={"texts": len(texts), "origin_ids": len(origin_ids)},
            )

        hashes = [content_hash(text) for text in texts]
        positions: dict[str, list[int]] = {}
        for index, key in enumerate(hashes):
            positions.setdefault(key, []).append(index)

        pending = [key for key in positions if key not in self._content_cache]
        track_cache_lookup(ContentHashCache.CACHE_NAME, hit=True, count=len(positions) - len(pending))
        track_cache_lookup(ContentHashCache.CACHE_NAME, hit=False, count=len(pending))

        if pending:
            inputs = [self._truncate(texts[positions[key][0]]) for key in pending]
            vectors, attempts = await self._embed_with_fallback(inputs)
            if vectors is None:
                self._degraded += 1
                track_embedding_degraded("batch")
                raise EmbeddingError(
                    "All embedding models failed",
                    code=ErrorCode.EMBEDDING_PROVIDERS_EXHAUSTED,
                    details={
                        "attempts": [a.model_dump() for a in attempts],
                        "texts": len(inputs),
                    },
                )
            for key, vector in zip(pending, vectors):
                origin = origin_ids[positions[key][0]] if origin_ids is not None else None
                self._content_cache.set(key, vector, origin)

        reused = len(texts) - len(pending)
        self._duplicates_reused += reused
        if reused:
            logger.debug(
                f"Reused {reused} of {len(texts)} embeddings",
                extra={"unique": len(positions), "embedded": len(pending)},
            )

        return [self._content_cache[key].embedding for key in hashes]

    def stats(self) -> EmbeddingStats:
        return EmbeddingStats(
            query_cache_size=len(self._query_cache),
            content_cache_size=len(self._content_cache),
            provider_calls=self._provider_calls,
            texts_embedded=self._texts_embedded,
            duplicates_reused=self._duplicates_reused,
            query_cache_hits=self._query_cache_hits,
            degraded=self._degraded,
        )

    def estimate_cost_savings(self) -> CostEstimate:
        """Cost estimate for everything this adapter has embedded so far."""
        total = self._texts_embedded + self._duplicates_reused + self._query_cache_hits
        return estimate_cost_savings(
            total_texts=total,
            api_calls=self._texts_embedded,
            cache_hits=self._duplicates_reused + self._query_cache_hits,
            model=self._providers[0].name,
        )

    def clear_caches(self) -> None:
        """Empty both caches and reset counters."""
        self._query_cache.clear()
        self._content_cache.clear()
        self._provider_calls = 0
        self._texts_embedded = 0
        self._duplicates_reused = 0
        self._query_cache_hits = 0
        self._degraded = 0
        logger.info("Embedding caches cleared")
