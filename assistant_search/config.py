"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMSettings(BaseSettings):
    """LLM service configuration.

    Only used for AI-assisted query expansion; answer generation
    happens outside this service.
    """

    model_config = SettingsConfigDict(env_prefix="LLM_")

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible API base URL",
    )
    model: str = Field(
        default="gpt-4o-mini",
        description="Model name used for query expansion",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key",
    )
    timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds",
    )
    max_tokens: int = Field(
        default=150,
        description="Maximum tokens in response",
    )
    temperature: float = Field(
        default=0.7,
        description="Sampling temperature",
    )


class EmbeddingSettings(BaseSettings):
    """Embedding provider configuration.

    ``models`` is the ordered fallback chain: the first model is tried
    first and the next one only after it fails.
    """

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible embedding API base URL",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key",
    )
    models: list[str] = Field(
        default_factory=lambda: [
            "text-embedding-3-small",
            "text-embedding-ada-002",
            "text-embedding-3-large",
        ],
        description="Embedding models in fallback order",
    )
    dimensions: int = Field(
        default=1536,
        description="Vector dimension of the primary model",
    )
    batch_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Maximum inputs per provider request",
    )
    max_input_chars: int = Field(
        default=8000,
        description="Inputs are truncated to this many characters",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection_name: str = Field(
        default="document_chunks",
        description="Collection holding chunk embeddings",
    )


class SearchSettings(BaseSettings):
    """Retrieval defaults."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    default_limit: int = Field(default=5, description="Results per search")
    faq_threshold: float = Field(
        default=0.3,
        description="Minimum hybrid FAQ score",
    )
    vector_threshold: float = Field(
        default=0.7,
        description="Minimum cosine similarity for chunk search",
    )
    retriever_timeout: float = Field(
        default=10.0,
        description="Seconds before a single source is treated as failed",
    )
    rrf_k: int = Field(default=60, description="RRF smoothing constant")


class CacheSettings(BaseSettings):
    """In-process cache configuration."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    query_embedding_ttl: float = Field(
        default=24 * 60 * 60,
        description="Query embedding TTL in seconds",
    )
    semantic_max_size: int = Field(
        default=1000,
        description="Maximum semantic cache entries",
    )
    semantic_ttl: float = Field(
        default=7 * 24 * 60 * 60,
        description="Semantic cache TTL in seconds",
    )
    semantic_similarity_threshold: float = Field(
        default=0.92,
        ge=0.0,
        le=1.0,
        description="Minimum cosine similarity for a semantic hit",
    )
    sweep_interval: float = Field(
        default=6 * 60 * 60,
        description="Seconds between expired-entry sweeps",
    )
    expansion_ttl: float = Field(
        default=7 * 24 * 60 * 60,
        description="AI query expansion cache TTL in seconds",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
