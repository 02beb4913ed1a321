"""Retrieval data models."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, model_validator


class SourceType(str, Enum):
    """Knowledge source a result came from."""

    FAQ = "faq"
    DOCUMENT = "document"
    KNOWLEDGE_FILE = "knowledge_file"
    WEBSITE = "website"
    WEBSITE_PAGE = "website_page"


class FAQMetadata(BaseModel):
    kind: Literal["faq"] = "faq"
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DocumentChunkMetadata(BaseModel):
    """Where a chunk lives and which search path found it."""

    kind: Literal["document"] = "document"
    document_id: str
    document_type: str
    chunk_index: int
    created_at: datetime | None = None
    retrieval: Literal["vector", "keyword"] = "vector"


class KnowledgeFileMetadata(BaseModel):
    kind: Literal["knowledge_file"] = "knowledge_file"
    file_name: str
    mime_type: str
    file_size: int
    created_at: datetime | None = None


class WebsiteMetadata(BaseModel):
    kind: Literal["website"] = "website"
    page_count: int = 0
    last_sync: datetime | None = None
    sync_interval: str | None = None


class WebsitePageMetadata(BaseModel):
    kind: Literal["website_page"] = "website_page"
    website_id: str
    website_name: str | None = None
    website_url: str
    scraped_at: datetime | None = None


ResultMetadata = Annotated[
    Union[
        FAQMetadata,
        DocumentChunkMetadata,
        KnowledgeFileMetadata,
        WebsiteMetadata,
        WebsitePageMetadata,
    ],
    Field(discriminator="kind"),
]


class SearchResult(BaseModel):
    """A candidate knowledge fragment.

    ``score`` always mirrors the latest pipeline stage. The stage scores
    are kept alongside it: ``base_score`` from the retriever,
    ``fused_score`` from rank fusion and ``rerank_score`` from the
    reranker. Unset stages are None.

    Attributes:
        id: Identifier, unique within its source type.
        type: Source type.
        title: Display title.
        content: Display content.
        score: Score at the current stage.
        metadata: Source-specific metadata.
        assistant_id: Owning tenant.
        url: Link for web sources.
    """

    id: str = Field(description="Identifier unique within the source type")
    type: SourceType = Field(description="Source type")
    title: str = Field(description="Display title")
    content: str = Field(description="Display content")
    score: float = Field(description="Score at the current pipeline stage")
    base_score: float = Field(description="Score assigned by the retriever")
    fused_score: float | None = Field(default=None, description="RRF score")
    rerank_score: float | None = Field(default=None, description="Composite rerank score")
    metadata: ResultMetadata
    assistant_id: str | None = Field(default=None, description="Owning tenant")
    url: str | None = Field(default=None, description="Source URL for web results")

    @model_validator(mode="before")
    @classmethod
    def _default_score(cls, data: Any) -> Any:
        if isinstance(data, dict) and "score" not in data and "base_score" in data:
            data = {**data, "score": data["base_score"]}
        return data

    @property
    def key(self) -> tuple[SourceType, str]:
        """Identity across result lists."""
        return (self.type, self.id)

    def with_fused_score(self, score: float) -> "SearchResult":
        return self.model_copy(update={"fused_score": score, "score": score})

    def with_rerank_score(self, score: float) -> "SearchResult":
        return self.model_copy(update={"rerank_score": score, "score": score})


class SearchOptions(BaseModel):
    """Per-call retrieval options.

    Attributes:
        assistant_id: Tenant to scope every source to.
        limit: Maximum results.
        threshold: Minimum score. None uses the retriever's default.
        include_disabled: Also search disabled FAQs and files.
    """

    assistant_id: str = Field(min_length=1)
    limit: int = Field(default=10, ge=1)
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    include_disabled: bool = False

    def with_limit(self, limit: int) -> "SearchOptions":
        return self.model_copy(update={"limit": limit})
