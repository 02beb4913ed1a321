"""Observability module for metrics and monitoring."""

from assistant_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    track_cache_lookup,
    track_embedding_request,
    track_search_request,
    track_source_failure,
    track_source_results,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "track_cache_lookup",
    "track_embedding_request",
    "track_search_request",
    "track_source_failure",
    "track_source_results",
]
