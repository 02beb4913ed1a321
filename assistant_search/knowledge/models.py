"""Knowledge store records.

These mirror the tenant-owned tables the retrievers read from. Only the
fields retrieval needs are modelled.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class ProcessingStatus(str, Enum):
    """Ingestion state of a file, document, website or page."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class FAQ(BaseModel):
    """A curated question/answer pair."""

    id: str = Field(default_factory=_new_id)
    assistant_id: str
    question: str
    answer: str
    enabled: bool = True
    order: int = Field(default=0, description="Display order, ascending")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class KnowledgeFile(BaseModel):
    """An uploaded file attached to an assistant."""

    id: str = Field(default_factory=_new_id)
    assistant_id: str
    original_name: str = Field(description="Name as uploaded")
    file_name: str = Field(description="Stored file name")
    description: str | None = None
    mime_type: str = "application/octet-stream"
    file_size: int = 0
    enabled: bool = True
    status: ProcessingStatus = ProcessingStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)


class DocumentMetadata(BaseModel):
    """Free-form document metadata; ``file_id`` links to a KnowledgeFile."""

    file_id: str | None = None


class Document(BaseModel):
    """Extracted text of a knowledge file, split into chunks."""

    id: str = Field(default_factory=_new_id)
    name: str
    type: str = Field(description="Source format, e.g. pdf or docx")
    status: ProcessingStatus = ProcessingStatus.PENDING
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    created_at: datetime = Field(default_factory=_utcnow)


class DocumentChunk(BaseModel):
    """One chunk of a document."""

    id: str = Field(default_factory=_new_id)
    document_id: str
    content: str
    chunk_index: int


class Website(BaseModel):
    """A crawled website."""

    id: str = Field(default_factory=_new_id)
    assistant_id: str
    url: str
    name: str | None = None
    description: str | None = None
    scraped_content: str | None = None
    status: ProcessingStatus = ProcessingStatus.PENDING
    page_count: int = 0
    last_sync: datetime | None = None
    sync_interval: str | None = Field(default=None, description="e.g. daily, weekly")


class WebsitePage(BaseModel):
    """A single crawled page of a website."""

    id: str = Field(default_factory=_new_id)
    website_id: str
    url: str
    title: str | None = None
    content: str = ""
    status: ProcessingStatus = ProcessingStatus.PENDING
    scraped_at: datetime | None = None


class ChunkHit(BaseModel):
    """A chunk together with its parent document."""

    chunk: DocumentChunk
    document: Document


class PageHit(BaseModel):
    """A page together with its parent website."""

    page: WebsitePage
    website: Website
