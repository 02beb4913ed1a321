"""Retriever interface and the FAQ, file and website retrievers."""

from abc import ABC, abstractmethod

from assistant_search.config import SearchSettings, get_settings
from assistant_search.exceptions import KnowledgeStoreError
from assistant_search.knowledge.models import FAQ
from assistant_search.knowledge.store import KnowledgeStore
from assistant_search.logging_config import get_logger
from assistant_search.retrieval.models import (
    FAQMetadata,
    KnowledgeFileMetadata,
    SearchOptions,
    SearchResult,
    SourceType,
    WebsiteMetadata,
    WebsitePageMetadata,
)

logger = get_logger(__name__)

PREVIEW_CHARS = 500

FAQ_TEXT_WEIGHT = 0.4
FAQ_KEYWORD_WEIGHT = 0.2
FAQ_SYNONYM_WEIGHT = 0.4
SYNONYM_GROUP_BONUS = 0.3

FAQ_SYNONYM_GROUPS: tuple[tuple[str, ...], ...] = (
    ("prijs", "kosten", "tarief", "bedrag", "betalen", "betaling", "geld"),
    ("contact", "bellen", "telefoon", "mail", "email", "bereikbaar", "bereiken"),
    ("bestellen", "kopen", "order", "aankoop", "winkelwagen", "winkelmandje"),
    ("verzenden", "verzending", "levering", "leveren", "bezorgen", "bezorging", "shipping"),
    ("retour", "terugsturen", "terugbrengen", "ruilen", "omruilen", "retourneren"),
    ("account", "profiel", "inloggen", "registreren", "aanmelden", "wachtwoord"),
    ("hulp", "help", "ondersteuning", "support", "assistentie", "probleem"),
    ("openingstijden", "open", "gesloten", "wanneer", "uren", "tijden"),
    ("garantie", "reparatie", "defect", "kapot", "beschadigd"),
    ("korting", "aanbieding", "actie", "sale", "uitverkoop", "promotie", "voucher", "code"),
)


def rank_score(index: int, total: int) -> float:
    """Position score for sources without a relevance signal."""
    return 1 - index / total


class Retriever(ABC):
    """Abstract base class for retrievers.

    Every retriever scopes its results to ``options.assistant_id`` and
    returns at most ``options.limit`` results, best first.
    """

    source: SourceType

    @abstractmethod
    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        """Retrieve results for a query.

        Args:
            query: The search query. Never empty.
            options: Tenant, limit and threshold.

        Returns:
            Results ordered by score descending.
        """
        ...


def text_match_score(query: str, question: str, answer: str) -> float:
    """Containment and per-word match of a lowercased query against a FAQ."""
    score = 0.0
    if query in question:
        score += 0.8
    if query in answer:
        score += 0.4

    query_words = [w for w in query.split() if len(w) > 2]
    if query_words:
        question_words = question.split()
        answer_words = answer.split()
        in_question = sum(1 for w in query_words if any(w in qw for qw in question_words))
        in_answer = sum(1 for w in query_words if any(w in aw for aw in answer_words))
        score += in_question / len(query_words) * 0.5
        score += in_answer / len(query_words) * 0.3

    return min(score, 1.0)


def keyword_overlap(query: str, content: str) -> float:
    """Fraction of distinct query words (over two characters) present in content."""
    query_words = {w for w in query.split() if len(w) > 2}
    if not query_words:
        return 0.0
    content_words = {w for w in content.lower().split() if len(w) > 2}
    return len(query_words & content_words) / len(query_words)


def synonym_group_score(query: str, text: str) -> float:
    """Bonus per synonym group present in both the query and the FAQ text."""
    score = 0.0
    for group in FAQ_SYNONYM_GROUPS:
        if any(w in query for w in group) and any(w in text for w in group):
            score += SYNONYM_GROUP_BONUS
    return min(score, 1.0)


def score_faq(query: str, faq: FAQ) -> float:
    """Hybrid FAQ relevance in [0, 1]."""
    query = query.lower()
    question = faq.question.lower()
    answer = faq.answer.lower()
    score = (
        FAQ_TEXT_WEIGHT * text_match_score(query, question, answer)
        + FAQ_KEYWORD_WEIGHT * keyword_overlap(query, f"{question} {answer}")
        + FAQ_SYNONYM_WEIGHT * synonym_group_score(query, f"{question} {answer}")
    )
    return min(score, 1.0)


def _faq_result(faq: FAQ, score: float) -> SearchResult:
    return SearchResult(
        id=faq.id,
        type=SourceType.FAQ,
        title=faq.question,
        content=faq.answer,
        base_score=score,
        metadata=FAQMetadata(created_at=faq.created_at, updated_at=faq.updated_at),
        assistant_id=faq.assistant_id,
    )


class FAQRetriever(Retriever):
    """Scores every tenant FAQ with text, keyword and synonym-group signals.

    Falls back to plain substring search when the store cannot list FAQs.
    """

    source = SourceType.FAQ

    def __init__(
        self,
        store: KnowledgeStore,
        settings: SearchSettings | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings().search

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        threshold = (
            options.threshold if options.threshold is not None else self._settings.faq_threshold
        )
        try:
            faqs = await self._store.list_faqs(options.assistant_id, options.include_disabled)
        except KnowledgeStoreError as e:
            logger.error(
                f"Hybrid FAQ search failed, using text search: {e.message}",
                extra={"assistant_id": options.assistant_id},
            )
            return await self.search_text(query, options)

        scored = [(faq, score_faq(query, faq)) for faq in faqs]
        kept = [item for item in scored if item[1] >= threshold]
        kept.sort(key=lambda item: item[1], reverse=True)

        return [_faq_result(faq, score) for faq, score in kept[: options.limit]]

    async def search_text(self, query: str, options: SearchOptions) -> list[SearchResult]:
        """Substring match on question or answer, scored by position."""
        faqs = await self._store.search_faqs(
            options.assistant_id,
            query,
            options.limit,
            options.include_disabled,
        )
        return [_faq_result(faq, rank_score(i, len(faqs))) for i, faq in enumerate(faqs)]


class KnowledgeFileRetriever(Retriever):
    """Matches file names and descriptions."""

    source = SourceType.KNOWLEDGE_FILE

    def __init__(self, store: KnowledgeStore) -> None:
        self._store = store

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        files = await self._store.search_knowledge_files(
            options.assistant_id,
            query,
            options.limit,
            options.include_disabled,
        )
        return [
            SearchResult(
                id=f.id,
                type=SourceType.KNOWLEDGE_FILE,
                title=f.original_name,
                content=f.description or "",
                base_score=rank_score(i, len(files)),
                metadata=KnowledgeFileMetadata(
                    file_name=f.file_name,
                    mime_type=f.mime_type,
                    file_size=f.file_size,
                    created_at=f.created_at,
                ),
                assistant_id=f.assistant_id,
            )
            for i, f in enumerate(files)
        ]


class WebsiteRetriever(Retriever):
    """Matches crawled websites as a whole."""

    source = SourceType.WEBSITE

    def __init__(self, store: KnowledgeStore) -> None:
        self._store = store

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        websites = await self._store.search_websites(options.assistant_id, query, options.limit)
        return [
            SearchResult(
                id=w.id,
                type=SourceType.WEBSITE,
                title=w.name or w.url,
                content=(w.scraped_content or "")[:PREVIEW_CHARS] or w.description or "",
                base_score=rank_score(i, len(websites)),
                metadata=WebsiteMetadata(
                    page_count=w.page_count,
                    last_sync=w.last_sync,
                    sync_interval=w.sync_interval,
                ),
                assistant_id=w.assistant_id,
                url=w.url,
            )
            for i, w in enumerate(websites)
        ]


class WebsitePageRetriever(Retriever):
    """Matches individual crawled pages."""

    source = SourceType.WEBSITE_PAGE

    def __init__(self, store: KnowledgeStore) -> None:
        self._store = store

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        hits = await self._store.search_website_pages(options.assistant_id, query, options.limit)
        return [
            SearchResult(
                id=hit.page.id,
                type=SourceType.WEBSITE_PAGE,
                title=hit.page.title or hit.page.url,
                content=hit.page.content[:PREVIEW_CHARS],
                base_score=rank_score(i, len(hits)),
                metadata=WebsitePageMetadata(
                    website_id=hit.website.id,
                    website_name=hit.website.name,
                    website_url=hit.website.url,
                    scraped_at=hit.page.scraped_at,
                ),
                assistant_id=hit.website.assistant_id,
                url=hit.page.url,
            )
            for i, hit in enumerate(hits)
        ]
