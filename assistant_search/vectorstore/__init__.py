"""Vector store module."""

from assistant_search.vectorstore.models import ChunkMatch, ChunkVector
from assistant_search.vectorstore.service import QdrantVectorStore, VectorStore, point_id

__all__ = [
    "ChunkMatch",
    "ChunkVector",
    "QdrantVectorStore",
    "VectorStore",
    "point_id",
]
