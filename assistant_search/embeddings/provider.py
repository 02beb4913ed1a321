"""Embedding provider interface and HTTP implementation."""

import time
from abc import ABC, abstractmethod

import httpx

from assistant_search.config import EmbeddingSettings, get_settings
from assistant_search.exceptions import EmbeddingError, ErrorCode
from assistant_search.logging_config import get_logger
from assistant_search.observability.metrics import track_embedding_request

logger = get_logger(__name__)


class EmbeddingProvider(ABC):
    """Abstract base class for a single embedding backend.

    A provider wraps exactly one model. Fallback across models is the
    adapter's job, so providers raise instead of degrading.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Model name, used to label attempts and metrics."""
        ...

    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed texts, one vector per input in input order.

        Args:
            texts: Texts to embed.

        Returns:
            List of vectors.

        Raises:
            EmbeddingError: If the backend fails or returns a malformed response.
        """
        ...

    async def close(self) -> None:
        """Release resources held by the provider."""


class HTTPEmbeddingProvider(EmbeddingProvider):
    """Provider for OpenAI-compatible ``/embeddings`` endpoints."""

    def __init__(
        self,
        model: str,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding provider.

        Args:
            model: Model name sent with every request.
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._model = model
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return self._model

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.api_key.get_secret_value()}",
            "Content-Type": "application/json",
        }

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in requests of at most ``batch_size`` inputs.

        Args:
            texts: Texts to embed.

        Returns:
            One vector per input.

        Raises:
            EmbeddingError: If any request fails.
        """
        if not texts:
            return []

        client = await self._get_client()
        url = f"{self._settings.base_url}/embeddings"
        batch_size = self._settings.batch_size

        vectors: list[list[float]] = []
        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            vectors.extend(await self._request(client, url, batch))
        return vectors

    async def _request(
        self,
        client: httpx.AsyncClient,
        url: str,
        texts: list[str],
    ) -> list[list[float]]:
        """Make one embedding request.

        Raises:
            EmbeddingError: If the request fails or the response is malformed.
        """
        payload: dict[str, object] = {"model": self._model, "input": texts}
        if self._model.startswith("text-embedding-3"):
            # v3 models can be shortened to the configured dimension
            payload["dimensions"] = self._settings.dimensions
        start = time.perf_counter()

        try:
            response = await client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            track_embedding_request(
                self._model, time.perf_counter() - start, len(texts), success=False
            )
            logger.warning(
                f"Embedding request failed: {e.response.status_code}",
                extra={"model": self._model, "status": e.response.status_code},
            )
            raise EmbeddingError(
                f"Embedding service returned {e.response.status_code}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"model": self._model, "status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            track_embedding_request(
                self._model, time.perf_counter() - start, len(texts), success=False
            )
            logger.warning(
                f"Embedding request error: {e}",
                extra={"model": self._model, "url": url},
            )
            raise EmbeddingError(
                f"Failed to connect to embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"model": self._model, "url": url},
            ) from e

        try:
            data = response.json()["data"]
            # Some backends do not guarantee input order
            ordered = sorted(data, key=lambda item: item.get("index", 0))
            vectors = [list(item["embedding"]) for item in ordered]
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingError(
                f"Invalid response from embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"model": self._model, "error": str(e)},
            ) from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"model": self._model},
            )

        track_embedding_request(self._model, time.perf_counter() - start, len(texts))
        return vectors
