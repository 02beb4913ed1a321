"""Chat completion client interface and OpenAI-compatible implementation."""

from abc import ABC, abstractmethod

import httpx

from assistant_search.config import LLMSettings, get_settings
from assistant_search.exceptions import ErrorCode, LLMError
from assistant_search.llm.models import Completion, Message, Role
from assistant_search.logging_config import get_logger

logger = get_logger(__name__)


class LLMClient(ABC):
    """Abstract base class for chat completion clients."""

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Complete a conversation.

        Args:
            messages: Conversation messages.
            temperature: Sampling temperature override.
            max_tokens: Maximum tokens override.

        Returns:
            Completion with generated text.

        Raises:
            LLMError: If the call fails.
        """
        ...

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Complete a single user prompt."""
        messages: list[Message] = []
        if system_prompt:
            messages.append(Message(role=Role.SYSTEM, content=system_prompt))
        messages.append(Message(role=Role.USER, content=prompt))
        return await self.chat(messages, temperature=temperature, max_tokens=max_tokens)

    async def close(self) -> None:
        """Release resources held by the client."""


class OpenAICompatibleClient(LLMClient):
    """Client for ``/chat/completions`` endpoints (OpenAI, vLLM, Ollama)."""

    def __init__(
        self,
        settings: LLMSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: LLM configuration.
            client: HTTP client (for testing).
        """
        self._settings = settings or get_settings().llm
        self._client = client
        self._owns_client = client is None

    @property
    def model_name(self) -> str:
        return self._settings.model

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
        api_key = self._settings.api_key.get_secret_value()
        if api_key == "not-required":
            return {}
        return {"Authorization": f"Bearer {api_key}"}

    async def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Call the chat completions API."""
        client = await self._get_client()
        url = f"{self._settings.base_url}/chat/completions"

        payload = {
            "model": self._settings.model,
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
            "temperature": (
                temperature if temperature is not None else self._settings.temperature
            ),
            "max_tokens": max_tokens if max_tokens is not None else self._settings.max_tokens,
        }

        try:
            response = await client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()

        except httpx.TimeoutException as e:
            logger.warning(f"LLM request timed out: {e}")
            raise LLMError(
                "LLM request timed out",
                code=ErrorCode.LLM_TIMEOUT,
                details={"timeout": self._settings.timeout},
            ) from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"LLM request failed: {status}")
            code = ErrorCode.LLM_RATE_LIMIT if status == 429 else ErrorCode.LLM_SERVICE_ERROR
            raise LLMError(
                f"LLM service returned {status}",
                code=code,
                details={"status_code": status},
            ) from e

        except httpx.RequestError as e:
            logger.warning(f"LLM connection error: {e}")
            raise LLMError(
                f"Failed to connect to LLM service: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"url": url},
            ) from e

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise LLMError(
                f"Invalid response from LLM: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e

        return Completion(
            content=content,
            model=data.get("model", self._settings.model),
            total_tokens=data.get("usage", {}).get("total_tokens", 0),
        )
