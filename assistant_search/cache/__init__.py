"""In-process caches."""

from assistant_search.cache.semantic import (
    AnswerPayload,
    CachedResponse,
    CachedSource,
    SemanticResponseCache,
)
from assistant_search.cache.similarity import (
    cosine_similarities,
    cosine_similarity,
    is_zero_vector,
)
from assistant_search.cache.sweeper import PeriodicSweeper

__all__ = [
    "AnswerPayload",
    "CachedResponse",
    "CachedSource",
    "PeriodicSweeper",
    "SemanticResponseCache",
    "cosine_similarities",
    "cosine_similarity",
    "is_zero_vector",
]
