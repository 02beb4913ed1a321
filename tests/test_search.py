"""Tests for unified search and context formatting."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from assistant_search.config import SearchSettings
from assistant_search.knowledge.store import InMemoryKnowledgeStore
from assistant_search.retrieval.context import (
    CONTEXT_HEADER,
    NO_CONTEXT_MESSAGE,
    format_context,
)
from assistant_search.retrieval.models import (
    FAQMetadata,
    SearchOptions,
    SearchResult,
    SourceType,
    WebsiteMetadata,
)
from assistant_search.retrieval.orchestrator import FusionMode, UnifiedSearch
from assistant_search.retrieval.reranker import RerankingContext
from assistant_search.retrieval.retriever import Retriever
from assistant_search.vectorstore.models import ChunkMatch

TENANT = "assistant-1"


def result(source: SourceType, result_id: str, score: float) -> SearchResult:
    metadata = WebsiteMetadata() if source is SourceType.WEBSITE else FAQMetadata()
    return SearchResult(
        id=result_id,
        type=source if source is SourceType.WEBSITE else SourceType.FAQ,
        title=result_id,
        content=f"content {result_id}",
        base_score=score,
        metadata=metadata,
    )


class StaticRetriever(Retriever):
    """Returns fixed results, optionally failing or stalling."""

    def __init__(
        self,
        results: list[SearchResult] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.results = results or []
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, SearchOptions]] = []

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        self.calls.append((query, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.results[: options.limit]


def static_sources(**overrides: StaticRetriever) -> dict[SourceType, Retriever]:
    sources: dict[SourceType, Retriever] = {source: StaticRetriever() for source in SourceType}
    for name, retriever in overrides.items():
        sources[SourceType(name)] = retriever
    return sources


def options(**kwargs: object) -> SearchOptions:
    return SearchOptions(assistant_id=TENANT, **kwargs)


class TestUnifiedSearchEndToEnd:
    """Searches over the shared in-memory fixture."""

    @pytest.mark.asyncio
    async def test_pricing_faq_ranks_first(
        self,
        knowledge_store: InMemoryKnowledgeStore,
        zero_embeddings: MagicMock,
        vector_store: AsyncMock,
        search_settings: SearchSettings,
    ) -> None:
        """With every embedding provider down the FAQ still answers."""
        search = UnifiedSearch.from_services(
            knowledge_store, zero_embeddings, vector_store, search_settings
        )

        results = await search.search("wat zijn de prijzen?", options())

        assert results
        assert results[0].id == "faq-price"
        assert results[0].type is SourceType.FAQ
        assert all(r.id != "faq-other" for r in results)

    @pytest.mark.asyncio
    async def test_zero_similarity_uses_keyword_results(
        self,
        knowledge_store: InMemoryKnowledgeStore,
        vector_store: AsyncMock,
        search_settings: SearchSettings,
    ) -> None:
        """Near-zero vector similarities are replaced by keyword matches."""
        embeddings = MagicMock()
        embeddings.embed = AsyncMock(return_value=[0.1, 0.2, 0.3, 0.4])
        vector_store.search_chunks.return_value = [
            ChunkMatch(
                chunk_id="chunk-1",
                document_id="doc-1",
                chunk_index=0,
                content="irrelevant",
                document_name="Handleiding installatie.pdf",
                document_type="pdf",
                similarity=0.0,
            )
        ]
        search = UnifiedSearch.from_services(
            knowledge_store, embeddings, vector_store, search_settings
        )

        results = await search.search("installatie", options())
        documents = [r for r in results if r.type is SourceType.DOCUMENT]

        assert documents
        assert all(r.metadata.retrieval == "keyword" for r in documents)
        assert {r.id for r in documents} <= {"chunk-1", "chunk-2"}

    @pytest.mark.asyncio
    async def test_other_tenant_isolated(
        self,
        knowledge_store: InMemoryKnowledgeStore,
        zero_embeddings: MagicMock,
        vector_store: AsyncMock,
        search_settings: SearchSettings,
    ) -> None:
        """Results never leak across assistants."""
        search = UnifiedSearch.from_services(
            knowledge_store, zero_embeddings, vector_store, search_settings
        )

        results = await search.search("installatie", SearchOptions(assistant_id="assistant-2"))

        assert [r.id for r in results] == ["chunk-3"]

    @pytest.mark.asyncio
    async def test_search_relevant_context_defaults(
        self,
        knowledge_store: InMemoryKnowledgeStore,
        zero_embeddings: MagicMock,
        vector_store: AsyncMock,
        search_settings: SearchSettings,
    ) -> None:
        """The chat defaults apply a 0.7 threshold to FAQs."""
        search = UnifiedSearch.from_services(
            knowledge_store, zero_embeddings, vector_store, search_settings
        )

        results = await search.search_relevant_context("wat zijn de prijzen?", TENANT)

        assert all(r.id != "faq-price" for r in results)
        assert len(results) <= 5


class TestUnifiedSearch:
    """Orchestration behaviour with stub retrievers."""

    @pytest.mark.asyncio
    async def test_blank_query(self) -> None:
        """A blank query searches nothing."""
        faq = StaticRetriever([result(SourceType.FAQ, "a", 0.9)])
        search = UnifiedSearch(static_sources(faq=faq), SearchSettings())

        assert await search.search("   ", options()) == []
        assert faq.calls == []

    @pytest.mark.asyncio
    async def test_stop_words_only_uses_raw_query(self) -> None:
        """When preprocessing leaves nothing, the trimmed raw query is searched."""
        faq = StaticRetriever()
        search = UnifiedSearch(static_sources(faq=faq), SearchSettings())

        await search.search("  de het ", options())

        assert faq.calls[0][0] == "de het"

    @pytest.mark.asyncio
    async def test_preprocessed_query_sent(self) -> None:
        faq = StaticRetriever()
        search = UnifiedSearch(static_sources(faq=faq), SearchSettings())

        await search.search("De voorraad", options())

        assert faq.calls[0][0] == "voorraad stock inventaris beschikbaar"

    @pytest.mark.asyncio
    async def test_per_source_limits(self) -> None:
        """Documents get twice the limit; other sources a fifth, rounded up."""
        sources = static_sources()
        search = UnifiedSearch(sources, SearchSettings())

        await search.search("levering", options(limit=7, threshold=0.4))

        limits = {source: r.calls[0][1].limit for source, r in sources.items()}
        assert limits[SourceType.DOCUMENT] == 14
        assert limits[SourceType.FAQ] == 2
        assert limits[SourceType.WEBSITE_PAGE] == 2
        assert all(r.calls[0][1].threshold == 0.4 for r in sources.values())
        assert all(r.calls[0][1].assistant_id == TENANT for r in sources.values())

    @pytest.mark.asyncio
    async def test_relevant_context_uses_configured_limit(self) -> None:
        """Without an explicit limit the configured default applies."""
        faq = StaticRetriever([result(SourceType.FAQ, f"f{i}", 0.9 - i / 10) for i in range(5)])
        sources = static_sources(faq=faq)
        search = UnifiedSearch(sources, SearchSettings(default_limit=3))

        await search.search_relevant_context("levering", TENANT)
        await search.search_relevant_context("levering", TENANT, limit=10)

        documents = sources[SourceType.DOCUMENT]
        assert isinstance(documents, StaticRetriever)
        assert [opts.limit for _, opts in documents.calls] == [6, 20]
        assert faq.calls[0][1].threshold == 0.7

    @pytest.mark.asyncio
    async def test_concat_sorts_by_score(self) -> None:
        """Concatenated lists are sorted by score and truncated."""
        search = UnifiedSearch(
            static_sources(
                faq=StaticRetriever([result(SourceType.FAQ, "f", 0.4)]),
                website=StaticRetriever([result(SourceType.WEBSITE, "w", 0.9)]),
            ),
            SearchSettings(),
        )

        results = await search.search("levering", options(limit=1))

        assert [r.id for r in results] == ["w"]

    @pytest.mark.asyncio
    async def test_rrf_mode(self) -> None:
        """RRF normalizes the merged list to a top score of 1."""
        search = UnifiedSearch(
            static_sources(
                faq=StaticRetriever([result(SourceType.FAQ, "f", 0.4)]),
                website=StaticRetriever([result(SourceType.WEBSITE, "w", 0.9)]),
            ),
            SearchSettings(),
        )

        results = await search.search("levering", options(), fusion=FusionMode.RRF)

        assert results[0].score == 1.0
        assert all(r.fused_score is not None for r in results)

    @pytest.mark.asyncio
    async def test_rerank_sets_scores(self) -> None:
        search = UnifiedSearch(
            static_sources(
                faq=StaticRetriever([result(SourceType.FAQ, "f", 0.4)]),
                website=StaticRetriever([result(SourceType.WEBSITE, "w", 0.45)]),
            ),
            SearchSettings(),
        )

        results = await search.search(
            "hoe werkt levering",
            options(),
            reranking=RerankingContext(query="hoe werkt levering"),
        )

        assert [r.id for r in results] == ["f", "w"]
        assert all(r.rerank_score is not None for r in results)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing", [source.value for source in SourceType])
    async def test_failing_source_is_skipped(self, failing: str) -> None:
        """Any single failing source contributes nothing."""
        sources = {
            source.value: StaticRetriever([result(SourceType.FAQ, source.value, 0.5)])
            for source in SourceType
        }
        sources[failing] = StaticRetriever(error=RuntimeError("down"))
        search = UnifiedSearch(static_sources(**sources), SearchSettings())

        results = await search.search("levering", options(limit=10))

        assert failing not in {r.id for r in results}
        assert len(results) == len(SourceType) - 1

    @pytest.mark.asyncio
    async def test_slow_source_times_out(self) -> None:
        """A source exceeding the timeout is treated as empty."""
        search = UnifiedSearch(
            static_sources(
                faq=StaticRetriever([result(SourceType.FAQ, "f", 0.5)]),
                website=StaticRetriever([result(SourceType.WEBSITE, "w", 0.9)], delay=5),
            ),
            SearchSettings(retriever_timeout=0.05),
        )

        results = await search.search("levering", options())

        assert [r.id for r in results] == ["f"]

    @pytest.mark.asyncio
    async def test_all_sources_fail(self) -> None:
        search = UnifiedSearch(
            {source: StaticRetriever(error=ValueError("x")) for source in SourceType},
            SearchSettings(),
        )
        assert await search.search("levering", options()) == []


class TestFormatContext:
    """Tests for format_context."""

    def test_empty(self) -> None:
        assert format_context([]) == NO_CONTEXT_MESSAGE

    def test_blocks(self) -> None:
        """Each result becomes a numbered block with its relevance."""
        text = format_context(
            [
                result(SourceType.FAQ, "Prijzen", 0.875),
                result(SourceType.WEBSITE, "Site", 0.5),
            ]
        )

        assert text.startswith(f"{CONTEXT_HEADER}\n\n[Bron 1 - FAQ]\n")
        assert "Titel: Prijzen\nContent: content Prijzen\nRelevantie: 87.5%\n" in text
        assert "\n---\n\n[Bron 2 - WEBSITE]\n" in text
        assert text.endswith("Relevantie: 50.0%\n")
