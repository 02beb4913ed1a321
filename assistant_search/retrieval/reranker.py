"""Weighted, domain-aware reranking of search results.

Each strategy scores a result in [0, 1]. The composite score is
``0.3 * score + sum(weight * strategy)``; it is not renormalized.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from assistant_search.llm.models import Message
from assistant_search.logging_config import get_logger
from assistant_search.retrieval.models import SearchResult, SourceType

logger = get_logger(__name__)

ORIGINAL_SCORE_WEIGHT = 0.3

QUESTION_WORDS = (
    "wat", "hoe", "waarom", "wanneer", "waar", "wie", "welke",
    "what", "how", "why", "when", "where", "who", "which",
)
COMMAND_WORDS = ("toon", "geef", "show", "give", "list", "zoek", "search", "vind", "find")
PRICING_TERMS = ("prijs", "price", "kost", "cost", "€", "$", "euro")


class QueryType(str, Enum):
    QUESTION = "question"
    KEYWORD = "keyword"
    COMMAND = "command"


class Domain(str, Enum):
    """Strategy presets."""

    ECOMMERCE = "ecommerce"
    SUPPORT = "support"
    DOCUMENTATION = "documentation"
    GENERAL = "general"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RerankingContext(BaseModel):
    """Signals available to the strategies.

    Attributes:
        query: The user's query.
        query_type: Detected from the query when not given.
        conversation_history: Prior turns, oldest first.
        preferred_sources: Source types the caller favours.
        now: Reference time for recency.
    """

    query: str
    query_type: QueryType | None = None
    conversation_history: list[Message] | None = None
    preferred_sources: list[SourceType] | None = None
    now: datetime = Field(default_factory=_utcnow)

    def resolved(self) -> "RerankingContext":
        """Copy with ``query_type`` filled in."""
        if self.query_type is not None:
            return self
        return self.model_copy(update={"query_type": detect_query_type(self.query)})


Scorer = Callable[[SearchResult, RerankingContext], float]


@dataclass(frozen=True)
class RerankingStrategy:
    name: str
    weight: float
    scorer: Scorer


def detect_query_type(query: str) -> QueryType:
    """Classify a query by its leading word."""
    lowered = query.lower()
    if lowered.startswith(QUESTION_WORDS):
        return QueryType.QUESTION
    if lowered.startswith(COMMAND_WORDS):
        return QueryType.COMMAND
    return QueryType.KEYWORD


def _title_match(result: SearchResult, context: RerankingContext) -> float:
    terms = [t for t in context.query.lower().split() if len(t) > 2]
    if not terms:
        return 0.0
    title = result.title.lower()
    ratio = sum(1 for t in terms if t in title) / len(terms)
    return min(ratio * 1.5, 1.0)


_QUESTION_SOURCE_SCORES = {
    SourceType.FAQ: 1.0,
    SourceType.DOCUMENT: 0.8,
    SourceType.WEBSITE_PAGE: 0.6,
}
_KEYWORD_SOURCE_SCORES = {
    SourceType.DOCUMENT: 1.0,
    SourceType.WEBSITE_PAGE: 0.9,
    SourceType.WEBSITE: 0.7,
}


def _source_type(result: SearchResult, context: RerankingContext) -> float:
    query_type = context.query_type or detect_query_type(context.query)
    if query_type is QueryType.QUESTION:
        return _QUESTION_SOURCE_SCORES.get(result.type, 0.4)
    if query_type is QueryType.KEYWORD:
        return _KEYWORD_SOURCE_SCORES.get(result.type, 0.5)
    return 0.7


def _conversation_context(result: SearchResult, context: RerankingContext) -> float:
    if not context.conversation_history:
        return 0.5

    recent = " ".join(m.content for m in context.conversation_history[-3:]).lower()
    terms = dict.fromkeys(t for t in recent.split() if len(t) > 4)
    text = f"{result.title} {result.content}".lower()
    matches = sum(1 for t in terms if t in text)

    if matches == 0:
        return 0.5
    if matches >= 3:
        return 1.0
    return 0.5 + matches / 6


def _timestamp(result: SearchResult) -> datetime | None:
    metadata = result.metadata
    for field in ("created_at", "updated_at", "scraped_at"):
        value = getattr(metadata, field, None)
        if value is not None:
            return value
    return None


def _recency(result: SearchResult, context: RerankingContext) -> float:
    timestamp = _timestamp(result)
    if timestamp is None:
        return 0.5
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    now = context.now if context.now.tzinfo else context.now.replace(tzinfo=timezone.utc)

    age_days = (now - timestamp).total_seconds() / 86400
    if age_days < 7:
        return 1.0
    if age_days < 30:
        return 0.8
    if age_days < 90:
        return 0.6
    if age_days < 365:
        return 0.4
    return 0.2


def _content_length(result: SearchResult, context: RerankingContext) -> float:
    content_length = len(result.content)
    query_length = len(context.query)

    if query_length < 20:
        if content_length < 200:
            return 1.0
        if content_length < 500:
            return 0.8
        return 0.6

    if query_length > 50:
        if content_length > 500:
            return 1.0
        if content_length > 200:
            return 0.8
        return 0.5

    if 150 <= content_length <= 500:
        return 1.0
    return 0.7


def _diversity(result: SearchResult, context: RerankingContext) -> float:
    """Flat score; results are scored independently of one another."""
    return 0.8


def _pricing(result: SearchResult, context: RerankingContext) -> float:
    content = result.content.lower()
    return 1.0 if any(term in content for term in PRICING_TERMS) else 0.5


DEFAULT_STRATEGIES: tuple[RerankingStrategy, ...] = (
    RerankingStrategy("title_match", 0.25, _title_match),
    RerankingStrategy("source_type", 0.2, _source_type),
    RerankingStrategy("conversation_context", 0.2, _conversation_context),
    RerankingStrategy("recency", 0.15, _recency),
    RerankingStrategy("content_length", 0.1, _content_length),
    RerankingStrategy("diversity", 0.1, _diversity),
)


def create_domain_strategies(
    domain: Domain | str,
    custom_weights: dict[str, float] | None = None,
) -> list[RerankingStrategy]:
    """Build a strategy list for a domain preset.

    Args:
        domain: ecommerce, support, documentation or general.
        custom_weights: Weight overrides by strategy name, applied last.

    Returns:
        A new list; the defaults are never modified.
    """
    domain = Domain(domain)
    overrides: dict[str, float] = {}
    strategies = list(DEFAULT_STRATEGIES)

    if domain is Domain.ECOMMERCE:
        strategies.append(RerankingStrategy("ecommerce", 0.25, _pricing))
    elif domain is Domain.SUPPORT:
        overrides["source_type"] = 0.35
    elif domain is Domain.DOCUMENTATION:
        overrides["content_length"] = 0.25

    overrides.update(custom_weights or {})
    return [
        replace(s, weight=overrides[s.name]) if s.name in overrides else s
        for s in strategies
    ]


def rerank(
    results: Sequence[SearchResult],
    context: RerankingContext,
    strategies: Sequence[RerankingStrategy] = DEFAULT_STRATEGIES,
) -> list[SearchResult]:
    """Reorder results by composite score.

    Sorting is stable: equal composites keep their incoming order.

    Args:
        results: Results from retrieval or fusion.
        context: Reranking signals.
        strategies: Strategies to apply.

    Returns:
        New results with ``rerank_score`` and ``score`` set.
    """
    context = context.resolved()
    scored = []
    for result in results:
        composite = ORIGINAL_SCORE_WEIGHT * result.score
        for strategy in strategies:
            composite += strategy.weight * strategy.scorer(result, context)
        scored.append(result.with_rerank_score(composite))

    scored.sort(key=lambda r: r.score, reverse=True)

    logger.debug(
        "Reranked results",
        extra={
            "query_type": context.query_type.value if context.query_type else None,
            "top": [(r.type.value, r.id, round(r.score, 3)) for r in scored[:5]],
        },
    )
    return scored


def explain_reranking(
    result: SearchResult,
    context: RerankingContext,
    strategies: Sequence[RerankingStrategy] = DEFAULT_STRATEGIES,
) -> dict[str, float]:
    """Per-strategy scores for one result, plus its incoming score as ``original``."""
    context = context.resolved()
    scores = {"original": result.score}
    for strategy in strategies:
        scores[strategy.name] = strategy.scorer(result, context)
    return scores
