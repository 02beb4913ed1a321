"""Retrieval pipeline module."""

from assistant_search.retrieval.context import format_context
from assistant_search.retrieval.documents import (
    ZERO_SIMILARITY_EPSILON,
    DocumentKeywordRetriever,
    DocumentVectorRetriever,
    HybridDocumentRetriever,
)
from assistant_search.retrieval.expansion import QueryExpander, expand_with_synonyms
from assistant_search.retrieval.fusion import reciprocal_rank_fusion
from assistant_search.retrieval.models import SearchOptions, SearchResult, SourceType
from assistant_search.retrieval.orchestrator import FusionMode, UnifiedSearch
from assistant_search.retrieval.preprocess import effective_query, preprocess_query
from assistant_search.retrieval.reranker import (
    DEFAULT_STRATEGIES,
    Domain,
    QueryType,
    RerankingContext,
    RerankingStrategy,
    create_domain_strategies,
    detect_query_type,
    explain_reranking,
    rerank,
)
from assistant_search.retrieval.retriever import (
    FAQRetriever,
    KnowledgeFileRetriever,
    Retriever,
    WebsitePageRetriever,
    WebsiteRetriever,
)

__all__ = [
    "DEFAULT_STRATEGIES",
    "ZERO_SIMILARITY_EPSILON",
    "DocumentKeywordRetriever",
    "DocumentVectorRetriever",
    "Domain",
    "FAQRetriever",
    "FusionMode",
    "HybridDocumentRetriever",
    "KnowledgeFileRetriever",
    "QueryExpander",
    "QueryType",
    "RerankingContext",
    "RerankingStrategy",
    "Retriever",
    "SearchOptions",
    "SearchResult",
    "SourceType",
    "UnifiedSearch",
    "WebsitePageRetriever",
    "WebsiteRetriever",
    "create_domain_strategies",
    "detect_query_type",
    "effective_query",
    "expand_with_synonyms",
    "explain_reranking",
    "format_context",
    "preprocess_query",
    "reciprocal_rank_fusion",
    "rerank",
]
