"""Application exception hierarchy.

All custom exceptions inherit from AssistantSearchError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "SEARCH-1000"
    CONFIGURATION_ERROR = "SEARCH-1001"
    VALIDATION_ERROR = "SEARCH-1002"

    # Knowledge store errors (2xxx)
    KNOWLEDGE_STORE_ERROR = "SEARCH-2000"
    RECORD_NOT_FOUND = "SEARCH-2001"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "SEARCH-3000"
    EMBEDDING_DIMENSION_MISMATCH = "SEARCH-3001"
    EMBEDDING_PROVIDERS_EXHAUSTED = "SEARCH-3002"

    # Vector store errors (4xxx)
    VECTOR_STORE_ERROR = "SEARCH-4000"

    # LLM errors (5xxx)
    LLM_SERVICE_ERROR = "SEARCH-5000"
    LLM_TIMEOUT = "SEARCH-5001"
    LLM_RATE_LIMIT = "SEARCH-5002"


class AssistantSearchError(Exception):
    """Base exception for all knowledge search errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(AssistantSearchError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(AssistantSearchError):
    """Input validation error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class KnowledgeStoreError(AssistantSearchError):
    """Relational knowledge store error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.KNOWLEDGE_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmbeddingError(AssistantSearchError):
    """Embedding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class VectorStoreError(AssistantSearchError):
    """Vector store operation error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VECTOR_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class LLMError(AssistantSearchError):
    """LLM service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


