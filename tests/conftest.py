"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from assistant_search.api.app import app
from assistant_search.config import SearchSettings
from assistant_search.knowledge.models import (
    FAQ,
    Document,
    DocumentChunk,
    DocumentMetadata,
    KnowledgeFile,
    ProcessingStatus,
    Website,
    WebsitePage,
)
from assistant_search.knowledge.store import InMemoryKnowledgeStore

TENANT = "assistant-1"
OTHER_TENANT = "assistant-2"
DIMS = 4


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def search_settings() -> SearchSettings:
    return SearchSettings(retriever_timeout=1.0)


@pytest.fixture
def knowledge_store() -> InMemoryKnowledgeStore:
    """Two tenants' worth of FAQs, documents, files and websites."""
    store = InMemoryKnowledgeStore()
    now = datetime.now(UTC)

    store.add_faq(
        FAQ(
            id="faq-price",
            assistant_id=TENANT,
            question="Wat zijn de prijzen?",
            answer="Een abonnement kost 10 euro per maand.",
            order=0,
        )
    )
    store.add_faq(
        FAQ(
            id="faq-contact",
            assistant_id=TENANT,
            question="Hoe kan ik contact opnemen?",
            answer="Bel ons of stuur een e-mail naar support.",
            order=1,
        )
    )
    store.add_faq(
        FAQ(
            id="faq-hours",
            assistant_id=TENANT,
            question="Wanneer zijn jullie open?",
            answer="Maandag tot vrijdag van 9 tot 17 uur.",
            order=2,
        )
    )
    store.add_faq(
        FAQ(
            id="faq-other",
            assistant_id=OTHER_TENANT,
            question="Wat zijn de prijzen?",
            answer="Gratis.",
        )
    )

    manual = store.add_knowledge_file(
        KnowledgeFile(
            id="file-1",
            assistant_id=TENANT,
            original_name="Handleiding installatie.pdf",
            file_name="handleiding.pdf",
            description="Installatie handleiding",
            status=ProcessingStatus.COMPLETED,
            created_at=now - timedelta(days=1),
        )
    )
    store.add_document(
        Document(
            id="doc-1",
            name="Handleiding installatie.pdf",
            type="pdf",
            status=ProcessingStatus.COMPLETED,
            metadata=DocumentMetadata(file_id=manual.id),
        ),
        [
            DocumentChunk(
                id="chunk-1",
                document_id="doc-1",
                content="## Installatie\nDownload de installer en volg de stappen.",
                chunk_index=0,
            ),
            DocumentChunk(
                id="chunk-2",
                document_id="doc-1",
                content="Na de installatie kunt u inloggen met uw account.",
                chunk_index=1,
            ),
        ],
    )

    other_file = store.add_knowledge_file(
        KnowledgeFile(
            id="file-2",
            assistant_id=OTHER_TENANT,
            original_name="Geheim.pdf",
            file_name="geheim.pdf",
            status=ProcessingStatus.COMPLETED,
        )
    )
    store.add_document(
        Document(
            id="doc-2",
            name="Geheim.pdf",
            type="pdf",
            status=ProcessingStatus.COMPLETED,
            metadata=DocumentMetadata(file_id=other_file.id),
        ),
        [
            DocumentChunk(
                id="chunk-3",
                document_id="doc-2",
                content="## Installatie van het geheime product.",
                chunk_index=0,
            ),
        ],
    )

    store.add_website(
        Website(
            id="site-1",
            assistant_id=TENANT,
            url="https://example.nl",
            name="Example",
            scraped_content="Welkom bij Example. " * 40,
            status=ProcessingStatus.COMPLETED,
            last_sync=now,
        ),
        [
            WebsitePage(
                id="page-1",
                website_id="site-1",
                url="https://example.nl/installatie",
                title="Installatie",
                content="Installatie stap voor stap.",
                status=ProcessingStatus.COMPLETED,
                scraped_at=now,
            ),
        ],
    )
    return store


@pytest.fixture
def zero_embeddings() -> MagicMock:
    """Embedding adapter whose providers are all down."""
    adapter = MagicMock()
    adapter.dimensions = DIMS
    adapter.embed = AsyncMock(return_value=[0.0] * DIMS)
    return adapter


@pytest.fixture
def vector_store() -> AsyncMock:
    store = AsyncMock()
    store.search_chunks = AsyncMock(return_value=[])
    return store
