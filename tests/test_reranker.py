"""Tests for result reranking."""

from datetime import UTC, datetime, timedelta

import pytest

from assistant_search.llm.models import Message
from assistant_search.retrieval.models import (
    FAQMetadata,
    SearchResult,
    SourceType,
    WebsiteMetadata,
)
from assistant_search.retrieval.reranker import (
    DEFAULT_STRATEGIES,
    Domain,
    QueryType,
    RerankingContext,
    create_domain_strategies,
    detect_query_type,
    explain_reranking,
    rerank,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def faq(
    result_id: str,
    score: float = 0.5,
    title: str = "Vraag",
    content: str = "Antwoord",
    created_at: datetime | None = None,
) -> SearchResult:
    return SearchResult(
        id=result_id,
        type=SourceType.FAQ,
        title=title,
        content=content,
        base_score=score,
        metadata=FAQMetadata(created_at=created_at),
    )


def website(result_id: str, score: float = 0.5) -> SearchResult:
    return SearchResult(
        id=result_id,
        type=SourceType.WEBSITE,
        title="Site",
        content="Antwoord",
        base_score=score,
        metadata=WebsiteMetadata(),
        url="https://example.nl",
    )


class TestDetectQueryType:
    """Tests for query classification."""

    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("Hoe werkt de installatie?", QueryType.QUESTION),
            ("what is the price", QueryType.QUESTION),
            ("toon alle prijzen", QueryType.COMMAND),
            ("Find invoices", QueryType.COMMAND),
            ("prijzen abonnement", QueryType.KEYWORD),
        ],
    )
    def test_leading_word(self, query: str, expected: QueryType) -> None:
        assert detect_query_type(query) is expected

    def test_context_resolves_type(self) -> None:
        """A missing query type is detected from the query."""
        context = RerankingContext(query="wat kost het").resolved()
        assert context.query_type is QueryType.QUESTION


class TestStrategies:
    """Tests for individual strategy scores via explain_reranking."""

    def test_explain_includes_original(self) -> None:
        """The incoming score is reported as ``original``."""
        scores = explain_reranking(faq("a", score=0.42), RerankingContext(query="x", now=NOW))
        assert scores["original"] == 0.42
        assert set(scores) == {"original"} | {s.name for s in DEFAULT_STRATEGIES}

    def test_title_match(self) -> None:
        """Matched query terms over two characters, scaled by 1.5 and capped."""
        context = RerankingContext(query="prijzen abonnement jaar", now=NOW)
        scores = explain_reranking(faq("a", title="Prijzen per jaar"), context)
        assert scores["title_match"] == 1.0

        scores = explain_reranking(faq("a", title="Prijzen"), context)
        assert scores["title_match"] == pytest.approx(0.5)

    def test_source_type_by_query_type(self) -> None:
        """Questions favour FAQs; keyword queries favour documents and pages."""
        question = RerankingContext(query="wat kost het", now=NOW)
        keyword = RerankingContext(query="prijzen", now=NOW)

        assert explain_reranking(faq("a"), question)["source_type"] == 1.0
        assert explain_reranking(website("w"), question)["source_type"] == 0.4
        assert explain_reranking(website("w"), keyword)["source_type"] == 0.7
        assert explain_reranking(faq("a"), keyword)["source_type"] == 0.5

    def test_conversation_context(self) -> None:
        """Long terms from the last three turns that appear in the result."""
        context = RerankingContext(
            query="en verder",
            conversation_history=[
                Message(role="user", content="Ik wil graag iets weten over levering"),
            ],
            now=NOW,
        )
        scores = explain_reranking(faq("a", content="De levering is gratis"), context)
        assert scores["conversation_context"] == pytest.approx(0.5 + 1 / 6)

        empty = RerankingContext(query="en verder", now=NOW)
        assert explain_reranking(faq("a"), empty)["conversation_context"] == 0.5

    def test_recency_buckets(self) -> None:
        """Age in days maps to a stepped score."""
        context = RerankingContext(query="x", now=NOW)

        def recency(age: timedelta) -> float:
            return explain_reranking(faq("a", created_at=NOW - age), context)["recency"]

        assert recency(timedelta(days=1)) == 1.0
        assert recency(timedelta(days=10)) == 0.8
        assert recency(timedelta(days=60)) == 0.6
        assert recency(timedelta(days=200)) == 0.4
        assert recency(timedelta(days=800)) == 0.2

    def test_recency_without_timestamp(self) -> None:
        context = RerankingContext(query="x", now=NOW)
        assert explain_reranking(website("w"), context)["recency"] == 0.5

    def test_recency_naive_timestamp(self) -> None:
        """Naive timestamps are read as UTC."""
        context = RerankingContext(query="x", now=NOW)
        naive = (NOW - timedelta(days=2)).replace(tzinfo=None)
        assert explain_reranking(faq("a", created_at=naive), context)["recency"] == 1.0

    def test_content_length(self) -> None:
        """Short queries prefer short content; long queries prefer long content."""
        short = RerankingContext(query="prijs", now=NOW)
        long = RerankingContext(query="x" * 60, now=NOW)

        assert explain_reranking(faq("a", content="kort"), short)["content_length"] == 1.0
        assert explain_reranking(faq("a", content="y" * 600), short)["content_length"] == 0.6
        assert explain_reranking(faq("a", content="y" * 600), long)["content_length"] == 1.0
        assert explain_reranking(faq("a", content="kort"), long)["content_length"] == 0.5

    def test_diversity_is_flat(self) -> None:
        """Every result gets the same diversity score."""
        context = RerankingContext(query="prijs", now=NOW)

        scores = {
            explain_reranking(result, context)["diversity"]
            for result in (faq("a"), faq("b", content="Antwoord"), website("w"))
        }

        assert scores == {0.8}

    def test_pricing(self) -> None:
        """The ecommerce strategy rewards price mentions."""
        strategies = create_domain_strategies(Domain.ECOMMERCE)
        context = RerankingContext(query="abonnement", now=NOW)

        priced = explain_reranking(faq("a", content="Slechts 10 euro"), context, strategies)
        plain = explain_reranking(faq("a", content="Gratis"), context, strategies)

        assert priced["ecommerce"] == 1.0
        assert plain["ecommerce"] == 0.5


class TestDomainStrategies:
    """Tests for create_domain_strategies."""

    def test_general_matches_defaults(self) -> None:
        assert create_domain_strategies("general") == list(DEFAULT_STRATEGIES)

    def test_ecommerce_adds_pricing(self) -> None:
        strategies = create_domain_strategies(Domain.ECOMMERCE)
        assert len(strategies) == len(DEFAULT_STRATEGIES) + 1
        assert strategies[-1].name == "ecommerce"
        assert strategies[-1].weight == 0.25

    def test_support_and_documentation_weights(self) -> None:
        support = {s.name: s.weight for s in create_domain_strategies("support")}
        docs = {s.name: s.weight for s in create_domain_strategies("documentation")}

        assert support["source_type"] == 0.35
        assert docs["content_length"] == 0.25

    def test_custom_weights_applied_last(self) -> None:
        strategies = create_domain_strategies("support", {"source_type": 0.1, "recency": 0.0})
        weights = {s.name: s.weight for s in strategies}
        assert weights["source_type"] == 0.1
        assert weights["recency"] == 0.0

    def test_defaults_unchanged(self) -> None:
        """Presets never mutate the shared defaults."""
        before = [(s.name, s.weight) for s in DEFAULT_STRATEGIES]
        create_domain_strategies("support", {"title_match": 0.9})
        create_domain_strategies("ecommerce")
        assert [(s.name, s.weight) for s in DEFAULT_STRATEGIES] == before

    def test_unknown_domain(self) -> None:
        with pytest.raises(ValueError):
            create_domain_strategies("retail")


class TestRerank:
    """Tests for rerank."""

    def test_composite_score(self) -> None:
        """0.3 times the incoming score plus every weighted strategy."""
        result = faq(
            "a",
            score=0.5,
            title="Wat zijn de prijzen?",
            content="Een abonnement kost 10 euro per maand.",
            created_at=NOW - timedelta(days=1),
        )
        context = RerankingContext(query="wat zijn de prijzen?", now=NOW)

        [reranked] = rerank([result], context)

        # 0.15 + 0.25 + 0.2 + 0.1 + 0.15 + 0.07 + 0.08
        assert reranked.score == pytest.approx(1.0)
        assert reranked.rerank_score == reranked.score
        assert reranked.base_score == 0.5

    def test_question_prefers_faq(self) -> None:
        """Equal incoming scores are separated by source type."""
        context = RerankingContext(query="hoe werkt het", now=NOW)
        reranked = rerank([website("w"), faq("a")], context)
        assert [r.id for r in reranked] == ["a", "w"]

    def test_stable_for_equal_composites(self) -> None:
        """Equal composite scores keep incoming order."""
        results = [faq(str(i)) for i in range(5)]
        context = RerankingContext(query="prijs", now=NOW)

        assert [r.id for r in rerank(results, context)] == ["0", "1", "2", "3", "4"]
        assert [r.id for r in rerank(results, context, [])] == ["0", "1", "2", "3", "4"]

    def test_empty(self) -> None:
        assert rerank([], RerankingContext(query="x")) == []
