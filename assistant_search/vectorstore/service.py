"""Chunk vector store interface and Qdrant implementation."""

from abc import ABC, abstractmethod
from uuid import NAMESPACE_URL, uuid5

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchAny,
    MatchValue,
    PointStruct,
    VectorParams,
)

from assistant_search.config import QdrantSettings, get_settings
from assistant_search.exceptions import ErrorCode, VectorStoreError
from assistant_search.logging_config import get_logger
from assistant_search.vectorstore.models import ChunkMatch, ChunkVector

logger = get_logger(__name__)


def point_id(chunk_id: str) -> str:
    """Stable Qdrant point id for a chunk id.

    Qdrant only accepts UUIDs or integers as point ids.
    """
    return str(uuid5(NAMESPACE_URL, f"chunk:{chunk_id}"))


class VectorStore(ABC):
    """Abstract base class for chunk vector stores."""

    @abstractmethod
    async def ensure_collection(self, dimensions: int) -> bool:
        """Create the chunk collection if it does not exist.

        Args:
            dimensions: Vector dimensions.

        Returns:
            True if the collection was created.

        Raises:
            VectorStoreError: If the backend fails.
        """
        ...

    @abstractmethod
    async def upsert_chunks(self, chunks: list[ChunkVector]) -> int:
        """Insert or update chunk vectors.

        Returns:
            Number of chunks upserted.

        Raises:
            VectorStoreError: If upsert fails.
        """
        ...

    @abstractmethod
    async def search_chunks(
        self,
        vector: list[float],
        document_ids: list[str] | None,
        limit: int,
        min_similarity: float,
    ) -> list[ChunkMatch]:
        """K-nearest chunks by cosine similarity.

        Args:
            vector: Query vector.
            document_ids: Only chunks of these documents. None means all.
            limit: Maximum results to return.
            min_similarity: Results below this similarity are dropped.

        Returns:
            Matches ordered by similarity descending.

        Raises:
            VectorStoreError: If search fails.
        """
        ...

    @abstractmethod
    async def delete_document(self, document_id: str) -> None:
        """Delete every chunk of a document.

        Raises:
            VectorStoreError: If deletion fails.
        """
        ...

    async def close(self) -> None:
        """Release resources held by the store."""


class QdrantVectorStore(VectorStore):
    """Qdrant vector store implementation."""

    def __init__(
        self,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize Qdrant vector store.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
        """
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None

    @property
    def collection(self) -> str:
        return self._settings.collection_name

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def ensure_collection(self, dimensions: int) -> bool:
        """Create the chunk collection with cosine distance if missing."""
        client = await self._get_client()

        try:
            if await client.collection_exists(self.collection):
                return False

            await client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(
                    size=dimensions,
                    distance=Distance.COSINE,
                ),
            )
            logger.info(
                f"Created collection: {self.collection}",
                extra={"dimensions": dimensions},
            )
            return True

        except Exception as e:
            raise VectorStoreError(
                f"Failed to create collection: {e}",
                code=ErrorCode.VECTOR_STORE_ERROR,
                details={"collection": self.collection, "error": str(e)},
            ) from e

    async def upsert_chunks(self, chunks: list[ChunkVector]) -> int:
        """Upsert chunk vectors keyed by a UUID derived from the chunk id."""
        if not chunks:
            return 0

        client = await self._get_client()

        try:
            points = [
                PointStruct(
                    id=point_id(chunk.chunk_id),
                    vector=chunk.vector,
                    payload=chunk.payload(),
                )
                for chunk in chunks
            ]

            await client.upsert(
                collection_name=self.collection,
                points=points,
            )

            logger.debug(
                f"Upserted {len(points)} chunks",
                extra={"collection": self.collection},
            )
            return len(points)

        except Exception as e:
            raise VectorStoreError(
                f"Failed to upsert chunks: {e}",
                code=ErrorCode.VECTOR_STORE_ERROR,
                details={"collection": self.collection, "error": str(e)},
            ) from e

    async def search_chunks(
        self,
        vector: list[float],
        document_ids: list[str] | None,
        limit: int,
        min_similarity: float,
    ) -> list[ChunkMatch]:
        """Search chunks, optionally restricted to a document allow-list."""
        client = await self._get_client()

        query_filter = None
        if document_ids is not None:
            query_filter = Filter(
                must=[FieldCondition(key="document_id", match=MatchAny(any=document_ids))]
            )

        try:
            results = await client.query_points(
                collection_name=self.collection,
                query=vector,
                limit=limit,
                query_filter=query_filter,
                score_threshold=min_similarity,
                with_payload=True,
            )
        except Exception as e:
            raise VectorStoreError(
                f"Failed to search: {e}",
                code=ErrorCode.VECTOR_STORE_ERROR,
                details={"collection": self.collection, "error": str(e)},
            ) from e

        matches: list[ChunkMatch] = []
        for point in results.points:
            payload = point.payload or {}
            try:
                matches.append(
                    ChunkMatch(
                        chunk_id=payload["chunk_id"],
                        document_id=payload["document_id"],
                        chunk_index=payload["chunk_index"],
                        content=payload["content"],
                        document_name=payload.get("document_name", ""),
                        document_type=payload.get("document_type", ""),
                        created_at=payload.get("created_at"),
                        similarity=point.score if point.score is not None else 0.0,
                    )
                )
            except KeyError as e:
                raise VectorStoreError(
                    f"Point {point.id} is missing payload field {e}",
                    code=ErrorCode.VECTOR_STORE_ERROR,
                    details={"collection": self.collection, "point_id": str(point.id)},
                ) from e

        return matches

    async def delete_document(self, document_id: str) -> None:
        """Delete all points whose payload document_id matches."""
        client = await self._get_client()

        try:
            await client.delete(
                collection_name=self.collection,
                points_selector=FilterSelector(
                    filter=Filter(
                        must=[
                            FieldCondition(
                                key="document_id",
                                match=MatchValue(value=document_id),
                            )
                        ]
                    )
                ),
            )
            logger.debug(
                "Deleted document chunks",
                extra={"collection": self.collection, "document_id": document_id},
            )

        except Exception as e:
            raise VectorStoreError(
                f"Failed to delete document chunks: {e}",
                code=ErrorCode.VECTOR_STORE_ERROR,
                details={"collection": self.collection, "document_id": document_id},
            ) from e
