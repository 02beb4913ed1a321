"""Document-chunk retrieval: vector search, keyword search and their fusion.

Vector search degrades to keyword search whenever it cannot produce a
meaningful ranking: the query embedding is the zero sentinel, the vector
store fails, returns nothing, or returns only near-zero similarities.
"""

import asyncio
import re

from assistant_search.cache.similarity import is_zero_vector
from assistant_search.config import SearchSettings, get_settings
from assistant_search.embeddings.adapter import EmbeddingAdapter
from assistant_search.embeddings.models import EmbeddingKind
from assistant_search.exceptions import VectorStoreError
from assistant_search.knowledge.models import ChunkHit
from assistant_search.knowledge.store import KnowledgeStore
from assistant_search.logging_config import get_logger
from assistant_search.observability.metrics import track_retrieval_fallback
from assistant_search.retrieval.fusion import reciprocal_rank_fusion
from assistant_search.retrieval.models import (
    DocumentChunkMetadata,
    SearchOptions,
    SearchResult,
    SourceType,
)
from assistant_search.retrieval.retriever import Retriever
from assistant_search.vectorstore.models import ChunkMatch
from assistant_search.vectorstore.service import VectorStore

logger = get_logger(__name__)

# Similarities below this are treated as zero
ZERO_SIMILARITY_EPSILON = 0.01

KEYWORD_CANDIDATE_FACTOR = 5
NO_KEYWORD_SCORE = 0.5
ALL_KEYWORDS_BOOST = 1.5
PHRASE_BONUS = 0.3
HEADING_BONUS = 0.4
LINE_START_BONUS = 0.15

KEYWORD_STOP_WORDS = frozenset(
    {
        "de", "het", "een", "is", "was", "zijn", "wat", "wie", "waar", "hoe",
        "hoeveel", "kan", "ik", "heb", "met", "voor", "op", "in", "aan", "van",
        "te", "dit", "dat",
    }
)

_PUNCTUATION = re.compile(r"[?.,!]")


def extract_keywords(query: str) -> list[str]:
    """Lowercased tokens over two characters that are not stop words."""
    cleaned = _PUNCTUATION.sub(" ", query.lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in KEYWORD_STOP_WORDS]


def score_chunk(query: str, keywords: list[str], content: str) -> float:
    """Keyword relevance of a chunk in [0, 1].

    Starts from the matched fraction, boosts a full match, then adds
    bonuses for the verbatim phrase, a keyword near a Markdown heading and
    a keyword at the start of a line.
    """
    lowered = content.lower()
    matched = sum(1 for k in keywords if k in lowered)

    score = matched / len(keywords) if keywords else NO_KEYWORD_SCORE
    if matched == len(keywords):
        score = min(score * ALL_KEYWORDS_BOOST, 1.0)

    if _PUNCTUATION.sub("", query.lower()) in lowered:
        score = min(score + PHRASE_BONUS, 1.0)

    flags = re.IGNORECASE | re.MULTILINE
    for keyword in keywords:
        if re.search(rf"##+[^#]{{0,50}}{re.escape(keyword)}", content, flags):
            score = min(score + HEADING_BONUS, 1.0)
            break

    for keyword in keywords:
        escaped = re.escape(keyword)
        if re.search(rf"^{escaped}|\n{escaped}", content, flags):
            score = min(score + LINE_START_BONUS, 1.0)
            break

    return score


def _keyword_result(hit: ChunkHit, score: float, assistant_id: str) -> SearchResult:
    return SearchResult(
        id=hit.chunk.id,
        type=SourceType.DOCUMENT,
        title=hit.document.name,
        content=hit.chunk.content,
        base_score=score,
        assistant_id=assistant_id,
        metadata=DocumentChunkMetadata(
            document_id=hit.document.id,
            document_type=hit.document.type,
            chunk_index=hit.chunk.chunk_index,
            created_at=hit.document.created_at,
            retrieval="keyword",
        ),
    )


def _vector_result(match: ChunkMatch, assistant_id: str) -> SearchResult:
    return SearchResult(
        id=match.chunk_id,
        type=SourceType.DOCUMENT,
        title=match.document_name,
        content=match.content,
        base_score=match.similarity,
        assistant_id=assistant_id,
        metadata=DocumentChunkMetadata(
            document_id=match.document_id,
            document_type=match.document_type,
            chunk_index=match.chunk_index,
            created_at=match.created_at,
            retrieval="vector",
        ),
    )


class DocumentKeywordRetriever(Retriever):
    """Keyword search over the tenant's document chunks."""

    source = SourceType.DOCUMENT

    def __init__(self, store: KnowledgeStore) -> None:
        self._store = store

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        document_ids = await self._store.resolve_document_ids(options.assistant_id)
        if not document_ids:
            return []

        keywords = extract_keywords(query)
        hits = await self._store.search_chunks(
            keywords or [query],
            document_ids,
            options.limit * KEYWORD_CANDIDATE_FACTOR,
        )

        scored = [(hit, score_chunk(query, keywords, hit.chunk.content)) for hit in hits]
        scored.sort(key=lambda item: item[1], reverse=True)

        logger.debug(
            f"Keyword search found {len(hits)} chunks",
            extra={"keywords": keywords, "assistant_id": options.assistant_id},
        )
        return [
            _keyword_result(hit, score, options.assistant_id)
            for hit, score in scored[: options.limit]
        ]


class DocumentVectorRetriever(Retriever):
    """Similarity search over chunk embeddings with keyword fallback."""

    source = SourceType.DOCUMENT

    def __init__(
        self,
        store: KnowledgeStore,
        embeddings: EmbeddingAdapter,
        vector_store: VectorStore,
        fallback: DocumentKeywordRetriever | None = None,
        settings: SearchSettings | None = None,
    ) -> None:
        """Initialize the retriever.

        Args:
            store: Knowledge store used for tenant scoping.
            embeddings: Adapter that embeds the query.
            vector_store: Chunk vector store.
            fallback: Keyword retriever used when vector search degrades.
            settings: Search configuration.
        """
        self._store = store
        self._embeddings = embeddings
        self._vector_store = vector_store
        self._fallback = fallback or DocumentKeywordRetriever(store)
        self._settings = settings or get_settings().search

    async def _fall_back(
        self, reason: str, query: str, options: SearchOptions
    ) -> list[SearchResult]:
        track_retrieval_fallback(reason)
        logger.info(
            "Vector search degraded to keyword search",
            extra={"reason": reason, "assistant_id": options.assistant_id},
        )
        return await self._fallback.search(query, options)

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        vector = await self._embeddings.embed(query, EmbeddingKind.QUERY)
        if is_zero_vector(vector):
            return await self._fall_back("zero_embedding", query, options)

        document_ids = await self._store.resolve_document_ids(options.assistant_id)
        if not document_ids:
            return []

        threshold = (
            options.threshold
            if options.threshold is not None
            else self._settings.vector_threshold
        )
        try:
            matches = await self._vector_store.search_chunks(
                vector,
                document_ids,
                options.limit,
                min_similarity=threshold,
            )
        except VectorStoreError as e:
            logger.error(f"Vector search failed: {e.message}", extra=e.details)
            return await self._fall_back("error", query, options)

        if not matches:
            return await self._fall_back("no_rows", query, options)
        if all(m.similarity < ZERO_SIMILARITY_EPSILON for m in matches):
            return await self._fall_back("zero_similarity", query, options)

        return [_vector_result(m, options.assistant_id) for m in matches]


class HybridDocumentRetriever(Retriever):
    """Runs vector and keyword search concurrently and fuses them with RRF."""

    source = SourceType.DOCUMENT

    def __init__(
        self,
        vector: DocumentVectorRetriever,
        keyword: DocumentKeywordRetriever,
        settings: SearchSettings | None = None,
    ) -> None:
        self._vector = vector
        self._keyword = keyword
        self._settings = settings or get_settings().search

    async def _guarded(
        self, name: str, retriever: Retriever, query: str, options: SearchOptions
    ) -> list[SearchResult]:
        try:
            return await retriever.search(query, options)
        except Exception as e:
            logger.warning(
                f"{name} document search failed: {e}",
                extra={"assistant_id": options.assistant_id},
            )
            return []

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        widened = options.with_limit(options.limit * 2)
        vector_results, keyword_results = await asyncio.gather(
            self._guarded("Vector", self._vector, query, widened),
            self._guarded("Keyword", self._keyword, query, widened),
        )

        merged = reciprocal_rank_fusion(
            [vector_results, keyword_results],
            k=self._settings.rrf_k,
        )
        logger.debug(
            "Hybrid document search merged",
            extra={
                "vector": len(vector_results),
                "keyword": len(keyword_results),
                "merged": len(merged),
            },
        )
        return merged[: options.limit]
