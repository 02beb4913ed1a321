"""Knowledge store module."""

from assistant_search.knowledge.indexer import ChunkIndexer
from assistant_search.knowledge.models import (
    FAQ,
    ChunkHit,
    Document,
    DocumentChunk,
    DocumentMetadata,
    KnowledgeFile,
    PageHit,
    ProcessingStatus,
    Website,
    WebsitePage,
)
from assistant_search.knowledge.store import InMemoryKnowledgeStore, KnowledgeStore

__all__ = [
    "FAQ",
    "ChunkHit",
    "ChunkIndexer",
    "Document",
    "DocumentChunk",
    "DocumentMetadata",
    "InMemoryKnowledgeStore",
    "KnowledgeFile",
    "KnowledgeStore",
    "PageHit",
    "ProcessingStatus",
    "Website",
    "WebsitePage",
]
