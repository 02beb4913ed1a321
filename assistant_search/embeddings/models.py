"""Embedding data models."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class EmbeddingKind(str, Enum):
    """What an embedding is used for.

    Query embeddings go through the query-embedding cache; document
    embeddings go through content-hash deduplication.
    """

    QUERY = "query"
    DOCUMENT = "document"


class AttemptSucceeded(BaseModel):
    """A provider returned one vector per input."""

    status: Literal["ok"] = "ok"
    provider: str
    embeddings: list[list[float]]


class AttemptFailed(BaseModel):
    """A provider raised; the next one in the chain is tried."""

    status: Literal["failed"] = "failed"
    provider: str
    error: str


ProviderAttempt = Annotated[
    AttemptSucceeded | AttemptFailed,
    Field(discriminator="status"),
]


class EmbeddingStats(BaseModel):
    """Adapter counters since start or the last ``clear_caches()``."""

    query_cache_size: int = Field(description="Live query embeddings")
    content_cache_size: int = Field(description="Content-hash cache entries")
    provider_calls: int = Field(description="Provider folds performed")
    texts_embedded: int = Field(description="Texts sent to a provider")
    duplicates_reused: int = Field(
        description="Batch inputs served from dedup or content cache"
    )
    query_cache_hits: int = Field(description="Query embeddings served from cache")
    degraded: int = Field(description="Zero vectors returned after exhaustion")


class CostEstimate(BaseModel):
    """Rough embedding spend for a batch of texts."""

    total_texts: int
    api_calls: int
    saved: int
    cache_hit_rate: float
    estimated_cost: float
    estimated_savings: float
