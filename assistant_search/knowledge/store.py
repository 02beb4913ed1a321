"""Knowledge store interface and in-memory implementation.

Every query method is tenant-scoped and matches case-insensitively by
containment, the way the relational store answers ``ILIKE '%q%'``.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TypeVar

from assistant_search.exceptions import ErrorCode, KnowledgeStoreError
from assistant_search.knowledge.models import (
    FAQ,
    ChunkHit,
    Document,
    DocumentChunk,
    KnowledgeFile,
    PageHit,
    ProcessingStatus,
    Website,
    WebsitePage,
)
from assistant_search.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _contains(needle: str, *haystacks: str | None) -> bool:
    needle = needle.lower()
    return any(h is not None and needle in h.lower() for h in haystacks)


def _newest_first(items: list[T], key: Callable[[T], datetime | None]) -> list[T]:
    """Sort by timestamp descending; records without one go last."""
    dated = [item for item in items if key(item) is not None]
    undated = [item for item in items if key(item) is None]
    dated.sort(key=key, reverse=True)  # type: ignore[arg-type, return-value]
    return dated + undated


class KnowledgeStore(ABC):
    """Read interface over tenant knowledge.

    Implementations raise KnowledgeStoreError on backend failure.
    """

    @abstractmethod
    async def list_faqs(self, assistant_id: str, include_disabled: bool = False) -> list[FAQ]:
        """All FAQs of a tenant ordered by ``order`` ascending."""
        ...

    @abstractmethod
    async def search_faqs(
        self,
        assistant_id: str,
        query: str,
        limit: int,
        include_disabled: bool = False,
    ) -> list[FAQ]:
        """FAQs whose question or answer contains the query, by ``order``."""
        ...

    @abstractmethod
    async def list_enabled_file_ids(self, assistant_id: str) -> list[str]:
        """Ids of the tenant's enabled knowledge files."""
        ...

    @abstractmethod
    async def list_completed_documents(self) -> list[Document]:
        """Documents whose processing completed."""
        ...

    @abstractmethod
    async def search_chunks(
        self,
        terms: list[str],
        document_ids: list[str] | None,
        limit: int,
    ) -> list[ChunkHit]:
        """Chunks of completed documents containing any of the terms.

        Args:
            terms: Match if the chunk content contains at least one term.
            document_ids: Restrict to these documents. None means no restriction.
            limit: Maximum chunks returned.
        """
        ...

    @abstractmethod
    async def get_chunks(self, document_id: str) -> list[DocumentChunk]:
        """Chunks of one document ordered by ``chunk_index``."""
        ...

    @abstractmethod
    async def get_document(self, document_id: str) -> Document:
        """Fetch a document.

        Raises:
            KnowledgeStoreError: If the document does not exist.
        """
        ...

    @abstractmethod
    async def search_knowledge_files(
        self,
        assistant_id: str,
        query: str,
        limit: int,
        include_disabled: bool = False,
    ) -> list[KnowledgeFile]:
        """Completed files matching name or description, newest first."""
        ...

    @abstractmethod
    async def search_websites(self, assistant_id: str, query: str, limit: int) -> list[Website]:
        """Completed websites matching name, description, content or url, by last sync."""
        ...

    @abstractmethod
    async def search_website_pages(
        self, assistant_id: str, query: str, limit: int
    ) -> list[PageHit]:
        """Completed pages matching title, content or url, newest scrape first."""
        ...

    async def resolve_document_ids(self, assistant_id: str) -> list[str]:
        """Ids of completed documents that belong to the tenant.

        A document belongs to a tenant when its ``metadata.file_id`` points
        at one of the tenant's enabled knowledge files.
        """
        file_ids = set(await self.list_enabled_file_ids(assistant_id))
        if not file_ids:
            logger.debug(
                "No knowledge files for assistant",
                extra={"assistant_id": assistant_id},
            )
            return []

        documents = await self.list_completed_documents()
        return [
            doc.id
            for doc in documents
            if doc.metadata.file_id is not None and doc.metadata.file_id in file_ids
        ]


class InMemoryKnowledgeStore(KnowledgeStore):
    """Dict-backed store used for tests and local runs."""

    def __init__(self) -> None:
        self._faqs: dict[str, FAQ] = {}
        self._files: dict[str, KnowledgeFile] = {}
        self._documents: dict[str, Document] = {}
        self._chunks: dict[str, DocumentChunk] = {}
        self._websites: dict[str, Website] = {}
        self._pages: dict[str, WebsitePage] = {}

    def add_faq(self, faq: FAQ) -> FAQ:
        self._faqs[faq.id] = faq
        return faq

    def add_knowledge_file(self, file: KnowledgeFile) -> KnowledgeFile:
        self._files[file.id] = file
        return file

    def add_document(self, document: Document, chunks: Iterable[DocumentChunk] = ()) -> Document:
        self._documents[document.id] = document
        for chunk in chunks:
            if chunk.document_id != document.id:
                raise KnowledgeStoreError(
                    "Chunk belongs to another document",
                    details={"chunk_id": chunk.id, "document_id": document.id},
                )
            self._chunks[chunk.id] = chunk
        return document

    def add_website(self, website: Website, pages: Iterable[WebsitePage] = ()) -> Website:
        self._websites[website.id] = website
        for page in pages:
            self._pages[page.id] = page
        return website

    async def list_faqs(self, assistant_id: str, include_disabled: bool = False) -> list[FAQ]:
        faqs = [
            faq
            for faq in self._faqs.values()
            if faq.assistant_id == assistant_id and (include_disabled or faq.enabled)
        ]
        return sorted(faqs, key=lambda faq: faq.order)

    async def search_faqs(
        self,
        assistant_id: str,
        query: str,
        limit: int,
        include_disabled: bool = False,
    ) -> list[FAQ]:
        faqs = await self.list_faqs(assistant_id, include_disabled)
        return [faq for faq in faqs if _contains(query, faq.question, faq.answer)][:limit]

    async def list_enabled_file_ids(self, assistant_id: str) -> list[str]:
        return [
            f.id
            for f in self._files.values()
            if f.assistant_id == assistant_id and f.enabled
        ]

    async def list_completed_documents(self) -> list[Document]:
        return [
            doc for doc in self._documents.values() if doc.status == ProcessingStatus.COMPLETED
        ]

    async def search_chunks(
        self,
        terms: list[str],
        document_ids: list[str] | None,
        limit: int,
    ) -> list[ChunkHit]:
        allowed = set(document_ids) if document_ids is not None else None
        hits: list[ChunkHit] = []
        for chunk in self._chunks.values():
            if allowed is not None and chunk.document_id not in allowed:
                continue
            document = self._documents.get(chunk.document_id)
            if document is None or document.status != ProcessingStatus.COMPLETED:
                continue
            if any(_contains(term, chunk.content) for term in terms):
                hits.append(ChunkHit(chunk=chunk, document=document))
                if len(hits) >= limit:
                    break
        return hits

    async def get_chunks(self, document_id: str) -> list[DocumentChunk]:
        chunks = [c for c in self._chunks.values() if c.document_id == document_id]
        return sorted(chunks, key=lambda c: c.chunk_index)

    async def get_document(self, document_id: str) -> Document:
        document = self._documents.get(document_id)
        if document is None:
            raise KnowledgeStoreError(
                f"Document not found: {document_id}",
                code=ErrorCode.RECORD_NOT_FOUND,
                details={"document_id": document_id},
            )
        return document

    async def search_knowledge_files(
        self,
        assistant_id: str,
        query: str,
        limit: int,
        include_disabled: bool = False,
    ) -> list[KnowledgeFile]:
        files = [
            f
            for f in self._files.values()
            if f.assistant_id == assistant_id
            and (include_disabled or f.enabled)
            and f.status == ProcessingStatus.COMPLETED
            and _contains(query, f.original_name, f.description)
        ]
        return _newest_first(files, lambda f: f.created_at)[:limit]

    async def search_websites(self, assistant_id: str, query: str, limit: int) -> list[Website]:
        websites = [
            w
            for w in self._websites.values()
            if w.assistant_id == assistant_id
            and w.status == ProcessingStatus.COMPLETED
            and _contains(query, w.name, w.description, w.scraped_content, w.url)
        ]
        return _newest_first(websites, lambda w: w.last_sync)[:limit]

    async def search_website_pages(
        self, assistant_id: str, query: str, limit: int
    ) -> list[PageHit]:
        hits = []
        for page in self._pages.values():
            website = self._websites.get(page.website_id)
            if website is None or website.assistant_id != assistant_id:
                continue
            if page.status != ProcessingStatus.COMPLETED:
                continue
            if _contains(query, page.title, page.content, page.url):
                hits.append(PageHit(page=page, website=website))
        return _newest_first(hits, lambda hit: hit.page.scraped_at)[:limit]
