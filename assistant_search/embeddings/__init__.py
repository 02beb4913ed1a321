"""Embedding module."""

from assistant_search.embeddings.adapter import EmbeddingAdapter, estimate_cost_savings
from assistant_search.embeddings.cache import ContentHashCache, QueryEmbeddingCache, content_hash
from assistant_search.embeddings.models import (
    AttemptFailed,
    AttemptSucceeded,
    EmbeddingKind,
    EmbeddingStats,
    ProviderAttempt,
)
from assistant_search.embeddings.provider import EmbeddingProvider, HTTPEmbeddingProvider

__all__ = [
    "AttemptFailed",
    "AttemptSucceeded",
    "ContentHashCache",
    "EmbeddingAdapter",
    "EmbeddingKind",
    "EmbeddingProvider",
    "EmbeddingStats",
    "HTTPEmbeddingProvider",
    "ProviderAttempt",
    "QueryEmbeddingCache",
    "content_hash",
    "estimate_cost_savings",
]
