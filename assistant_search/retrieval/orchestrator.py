"""Unified search across every knowledge source."""

import asyncio
import math
import time
import uuid
from collections.abc import Sequence
from enum import Enum

from assistant_search.config import SearchSettings, get_settings
from assistant_search.embeddings.adapter import EmbeddingAdapter
from assistant_search.knowledge.store import KnowledgeStore
from assistant_search.logging_config import get_logger, search_id_var
from assistant_search.observability.metrics import (
    track_search_request,
    track_source_failure,
    track_source_results,
)
from assistant_search.retrieval.documents import (
    DocumentKeywordRetriever,
    DocumentVectorRetriever,
    HybridDocumentRetriever,
)
from assistant_search.retrieval.fusion import reciprocal_rank_fusion
from assistant_search.retrieval.models import SearchOptions, SearchResult, SourceType
from assistant_search.retrieval.preprocess import effective_query
from assistant_search.retrieval.reranker import (
    DEFAULT_STRATEGIES,
    RerankingContext,
    RerankingStrategy,
    rerank,
)
from assistant_search.retrieval.retriever import (
    FAQRetriever,
    KnowledgeFileRetriever,
    Retriever,
    WebsitePageRetriever,
    WebsiteRetriever,
)
from assistant_search.vectorstore.service import VectorStore

logger = get_logger(__name__)

# Sources other than documents get this share of the overall limit
SOURCE_SHARE = 5


class FusionMode(str, Enum):
    """How per-source lists are combined."""

    CONCAT = "concat"
    RRF = "rrf"


class UnifiedSearch:
    """Fans a query out to all sources and merges the results.

    A source that raises or exceeds ``retriever_timeout`` contributes no
    results; the search as a whole always returns a list.
    """

    def __init__(
        self,
        retrievers: dict[SourceType, Retriever],
        settings: SearchSettings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            retrievers: One retriever per source type, searched in this order.
            settings: Search configuration.
        """
        self._retrievers = retrievers
        self._settings = settings or get_settings().search

    @classmethod
    def from_services(
        cls,
        store: KnowledgeStore,
        embeddings: EmbeddingAdapter,
        vector_store: VectorStore,
        settings: SearchSettings | None = None,
    ) -> "UnifiedSearch":
        """Wire the standard retriever set."""
        settings = settings or get_settings().search
        keyword = DocumentKeywordRetriever(store)
        vector = DocumentVectorRetriever(
            store, embeddings, vector_store, fallback=keyword, settings=settings
        )
        return cls(
            {
                SourceType.FAQ: FAQRetriever(store, settings),
                SourceType.DOCUMENT: HybridDocumentRetriever(vector, keyword, settings),
                SourceType.KNOWLEDGE_FILE: KnowledgeFileRetriever(store),
                SourceType.WEBSITE: WebsiteRetriever(store),
                SourceType.WEBSITE_PAGE: WebsitePageRetriever(store),
            },
            settings,
        )

    def _source_limit(self, source: SourceType, limit: int) -> int:
        if source is SourceType.DOCUMENT:
            return limit * 2
        return math.ceil(limit / SOURCE_SHARE)

    async def _run_source(
        self,
        source: SourceType,
        retriever: Retriever,
        query: str,
        options: SearchOptions,
    ) -> list[SearchResult]:
        try:
            results = await asyncio.wait_for(
                retriever.search(query, options),
                timeout=self._settings.retriever_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Source {source.value} timed out",
                extra={"source": source.value, "timeout": self._settings.retriever_timeout},
            )
            track_source_failure(source.value, "timeout")
            return []
        except Exception as e:
            logger.error(
                f"Source {source.value} failed: {e}",
                extra={"source": source.value, "error_type": type(e).__name__},
            )
            track_source_failure(source.value, "error")
            return []

        track_source_results(source.value, len(results))
        return results

    async def search(
        self,
        query: str,
        options: SearchOptions,
        reranking: RerankingContext | None = None,
        strategies: Sequence[RerankingStrategy] = DEFAULT_STRATEGIES,
        fusion: FusionMode = FusionMode.CONCAT,
    ) -> list[SearchResult]:
        """Search every source for a query.

        Args:
            query: The user's query.
            options: Tenant, overall limit and threshold.
            reranking: Rerank the merged candidates with this context.
            strategies: Strategies used when reranking.
            fusion: CONCAT sorts the concatenated lists by score; RRF fuses
                them by rank.

        Returns:
            At most ``options.limit`` results, best first.
        """
        search_query = effective_query(query)
        if not search_query:
            return []

        token = search_id_var.set(uuid.uuid4().hex[:12])
        start = time.perf_counter()
        try:
            sources = list(self._retrievers.items())
            per_source = await asyncio.gather(
                *(
                    self._run_source(
                        source,
                        retriever,
                        search_query,
                        options.with_limit(self._source_limit(source, options.limit)),
                    )
                    for source, retriever in sources
                )
            )

            if fusion is FusionMode.RRF:
                merged = reciprocal_rank_fusion(per_source, k=self._settings.rrf_k)
            else:
                merged = [result for results in per_source for result in results]
                merged.sort(key=lambda r: r.score, reverse=True)

            if reranking is not None:
                merged = rerank(merged, reranking, strategies)

            final = merged[: options.limit]

            logger.info(
                "Unified search completed",
                extra={
                    "assistant_id": options.assistant_id,
                    "per_source": {
                        source.value: len(results)
                        for (source, _), results in zip(sources, per_source)
                    },
                    "returned": len(final),
                    "fusion": fusion.value,
                    "reranked": reranking is not None,
                },
            )
            track_search_request(
                time.perf_counter() - start,
                final[0].score if final else 0.0,
            )
            return final
        finally:
            search_id_var.reset(token)

    async def search_relevant_context(
        self,
        query: str,
        assistant_id: str,
        limit: int | None = None,
        threshold: float | None = 0.7,
        include_disabled: bool = False,
        reranking: RerankingContext | None = None,
    ) -> list[SearchResult]:
        """Knowledge for a chat turn, with the chat handler's defaults.

        ``limit`` falls back to ``SearchSettings.default_limit``.
        """
        options = SearchOptions(
            assistant_id=assistant_id,
            limit=limit if limit is not None else self._settings.default_limit,
            threshold=threshold,
            include_disabled=include_disabled,
        )
        return await self.search(query, options, reranking=reranking)
