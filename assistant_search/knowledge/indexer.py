"""Chunk indexing into the vector store."""

from assistant_search.embeddings.adapter import EmbeddingAdapter
from assistant_search.knowledge.store import KnowledgeStore
from assistant_search.logging_config import get_logger
from assistant_search.vectorstore.models import ChunkVector
from assistant_search.vectorstore.service import VectorStore

logger = get_logger(__name__)


class ChunkIndexer:
    """Embeds a document's chunks and writes them to the vector store.

    Embedding goes through the batch path, so identical chunks are sent
    to the provider once and a provider outage fails the whole document
    instead of indexing zero vectors.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        embeddings: EmbeddingAdapter,
        vector_store: VectorStore,
    ) -> None:
        self._store = store
        self._embeddings = embeddings
        self._vector_store = vector_store

    async def index_document(self, document_id: str) -> int:
        """Re-index every chunk of a document.

        Args:
            document_id: Document to index.

        Returns:
            Number of chunks written.

        Raises:
            KnowledgeStoreError: If the document does not exist.
            EmbeddingError: If every embedding provider failed.
            VectorStoreError: If the vector store rejects the write.
        """
        document = await self._store.get_document(document_id)
        chunks = await self._store.get_chunks(document_id)
        if not chunks:
            logger.info("Document has no chunks", extra={"document_id": document_id})
            return 0

        vectors = await self._embeddings.embed_batch(
            [chunk.content for chunk in chunks],
            origin_ids=[chunk.id for chunk in chunks],
        )

        records = [
            ChunkVector(
                chunk_id=chunk.id,
                document_id=document.id,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                document_name=document.name,
                document_type=document.type,
                created_at=document.created_at,
                vector=vector,
            )
            for chunk, vector in zip(chunks, vectors)
        ]

        await self._vector_store.delete_document(document.id)
        written = await self._vector_store.upsert_chunks(records)
        logger.info(
            f"Indexed {written} chunks",
            extra={"document_id": document.id, "document_name": document.name},
        )
        return written
