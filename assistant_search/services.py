"""Service container wiring the search stack together."""

from dataclasses import dataclass

from assistant_search.cache.semantic import SemanticResponseCache
from assistant_search.config import Settings, get_settings
from assistant_search.embeddings.adapter import EmbeddingAdapter
from assistant_search.exceptions import VectorStoreError
from assistant_search.knowledge.indexer import ChunkIndexer
from assistant_search.knowledge.store import InMemoryKnowledgeStore, KnowledgeStore
from assistant_search.llm.client import LLMClient, OpenAICompatibleClient
from assistant_search.logging_config import get_logger
from assistant_search.retrieval.expansion import QueryExpander
from assistant_search.retrieval.orchestrator import UnifiedSearch
from assistant_search.vectorstore.service import QdrantVectorStore, VectorStore

logger = get_logger(__name__)


@dataclass
class SearchServices:
    """Every long-lived component of the search stack.

    The caches live here rather than in module globals; ``start()`` begins
    their expiry sweeps and ``aclose()`` stops them and releases clients.
    """

    store: KnowledgeStore
    embeddings: EmbeddingAdapter
    vector_store: VectorStore
    semantic_cache: SemanticResponseCache
    expander: QueryExpander
    search: UnifiedSearch
    indexer: ChunkIndexer
    llm: LLMClient | None = None
    vector_store_ready: bool = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        store: KnowledgeStore | None = None,
    ) -> "SearchServices":
        """Build the default stack.

        Args:
            settings: Application settings.
            store: Knowledge store. Defaults to an in-memory store.
        """
        settings = settings or get_settings()
        store = store or InMemoryKnowledgeStore()
        embeddings = EmbeddingAdapter.from_settings(settings.embedding, settings.cache)
        vector_store = QdrantVectorStore(settings.qdrant)
        llm = OpenAICompatibleClient(settings.llm)

        return cls(
            store=store,
            embeddings=embeddings,
            vector_store=vector_store,
            semantic_cache=SemanticResponseCache(settings.cache),
            expander=QueryExpander(llm, settings.cache),
            search=UnifiedSearch.from_services(
                store, embeddings, vector_store, settings.search
            ),
            indexer=ChunkIndexer(store, embeddings, vector_store),
            llm=llm,
        )

    async def start(self) -> None:
        """Start cache sweeps and make sure the chunk collection exists.

        An unreachable vector store is logged, not raised: document search
        falls back to keyword matching until it is back.
        """
        self.embeddings.start()
        self.semantic_cache.start()
        self.expander.start()

        try:
            await self.vector_store.ensure_collection(self.embeddings.dimensions)
            self.vector_store_ready = True
        except VectorStoreError as e:
            logger.warning(
                f"Vector store unavailable at startup: {e.message}",
                extra=e.details,
            )

    async def aclose(self) -> None:
        """Stop sweeps and close every client."""
        await self.semantic_cache.shutdown()
        await self.expander.shutdown()
        await self.embeddings.close()
        await self.vector_store.close()
        if self.llm is not None:
            await self.llm.close()
