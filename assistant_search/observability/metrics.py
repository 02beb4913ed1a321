"""Prometheus metrics for the knowledge search service.

Provides metrics instrumentation for:
- HTTP request latency and counts
- Embedding provider latency, batch sizes and fallbacks
- Cache lookups (query embeddings, content hashes, semantic responses)
- Per-source retrieval result counts and failures
- Unified search latency
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from assistant_search.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100],
)

EMBEDDING_DEGRADED_TOTAL = Counter(
    "embedding_degraded_total",
    "Times every embedding model failed",
    ["path"],  # "query" returns the zero vector, "batch" raises
)

# Cache Metrics
CACHE_LOOKUPS_TOTAL = Counter(
    "cache_lookups_total",
    "Cache lookups by cache and outcome",
    ["cache", "result"],  # "result" label values: hit, miss
)

CACHE_ENTRIES = Gauge(
    "cache_entries",
    "Current number of cache entries",
    ["cache"],
)

CACHE_EVICTIONS_TOTAL = Counter(
    "cache_evictions_total",
    "Entries removed by eviction or expiry",
    ["cache", "reason"],
)

# Retrieval Metrics
RETRIEVAL_SOURCE_RESULTS = Histogram(
    "retrieval_source_results",
    "Number of results returned per source",
    ["source"],
    buckets=[0, 1, 2, 3, 5, 10, 20, 50],
)

RETRIEVAL_SOURCE_FAILURES = Counter(
    "retrieval_source_failures_total",
    "Per-source retrieval failures",
    ["source", "reason"],  # "reason" label values: error, timeout
)

RETRIEVAL_FALLBACK_TOTAL = Counter(
    "retrieval_fallback_total",
    "Vector search fallbacks to keyword search",
    ["reason"],
)

SEARCH_DURATION = Histogram(
    "search_duration_seconds",
    "Unified search duration in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

SEARCH_TOP_SCORE = Histogram(
    "search_top_score",
    "Top score per unified search",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0, 1.6],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware."""
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        if path.startswith("/api/v1/"):
            parts = path.split("/")
            if len(parts) >= 4:
                return f"/api/v1/{parts[3]}"
        return path


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


def track_embedding_degraded(path: str) -> None:
    """Record that the whole model chain failed on a call path."""
    EMBEDDING_DEGRADED_TOTAL.labels(path=path).inc()


def track_cache_lookup(cache: str, hit: bool, count: int = 1) -> None:
    """Track cache lookups.

    Args:
        cache: Cache name (query_embedding, content_hash, semantic, expansion).
        hit: Whether the lookup was served from the cache.
        count: Number of lookups to record.
    """
    if count <= 0:
        return
    CACHE_LOOKUPS_TOTAL.labels(cache=cache, result="hit" if hit else "miss").inc(count)


def track_cache_size(cache: str, size: int) -> None:
    """Publish the current entry count of a cache."""
    CACHE_ENTRIES.labels(cache=cache).set(size)


def track_cache_eviction(cache: str, reason: str, count: int) -> None:
    """Track entries removed from a cache.

    Args:
        cache: Cache name.
        reason: "evicted" for size pressure, "expired" for TTL sweeps.
        count: Number of entries removed.
    """
    if count > 0:
        CACHE_EVICTIONS_TOTAL.labels(cache=cache, reason=reason).inc(count)


def track_source_results(source: str, results_returned: int) -> None:
    """Track how many results a single source contributed."""
    RETRIEVAL_SOURCE_RESULTS.labels(source=source).observe(results_returned)


def track_source_failure(source: str, reason: str) -> None:
    """Track a source that failed or timed out."""
    RETRIEVAL_SOURCE_FAILURES.labels(source=source, reason=reason).inc()


def track_retrieval_fallback(reason: str) -> None:
    """Track a vector-to-keyword fallback.

    Args:
        reason: zero_embedding, no_rows, zero_similarity or error.
    """
    RETRIEVAL_FALLBACK_TOTAL.labels(reason=reason).inc()


def track_search_request(duration: float, top_score: float) -> None:
    """Track unified search metrics.

    Args:
        duration: Search duration in seconds.
        top_score: Highest score in the final list (0 when empty).
    """
    SEARCH_DURATION.observe(duration)
    if top_score > 0:
        SEARCH_TOP_SCORE.observe(top_score)
