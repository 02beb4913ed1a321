"""Vector store data models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ChunkVector(BaseModel):
    """A document chunk with its embedding, ready to upsert.

    Attributes:
        chunk_id: Chunk identifier in the knowledge store.
        document_id: Parent document identifier.
        chunk_index: Position of the chunk in its document.
        content: Chunk text.
        document_name: Parent document display name.
        document_type: Parent document format.
        created_at: Parent document creation time.
        vector: The embedding vector.
    """

    chunk_id: str = Field(description="Chunk identifier")
    document_id: str = Field(description="Parent document identifier")
    chunk_index: int = Field(description="Position within the document")
    content: str = Field(description="Chunk text")
    document_name: str = Field(description="Parent document name")
    document_type: str = Field(description="Parent document type")
    created_at: datetime | None = Field(default=None, description="Document creation time")
    vector: list[float] = Field(description="Embedding vector")

    def payload(self) -> dict[str, Any]:
        """Payload stored alongside the vector."""
        return self.model_dump(mode="json", exclude={"vector"})


class ChunkMatch(BaseModel):
    """A chunk returned by similarity search.

    Attributes:
        chunk_id: Chunk identifier.
        similarity: Cosine similarity to the query (higher is closer).
    """

    chunk_id: str = Field(description="Chunk identifier")
    document_id: str = Field(description="Parent document identifier")
    chunk_index: int = Field(description="Position within the document")
    content: str = Field(description="Chunk text")
    document_name: str = Field(description="Parent document name")
    document_type: str = Field(description="Parent document type")
    created_at: datetime | None = Field(default=None, description="Document creation time")
    similarity: float = Field(description="Cosine similarity")
