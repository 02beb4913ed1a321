"""LLM data models."""

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A chat message.

    Also used for the conversation history handed to the reranker.
    """

    role: Role = Field(description="Message role")
    content: str = Field(description="Message content")


class Completion(BaseModel):
    """Result of a chat completion.

    Attributes:
        content: The generated text.
        model: Model that produced it.
        total_tokens: Tokens billed for the call.
    """

    content: str = Field(description="Generated text")
    model: str = Field(description="Model used")
    total_tokens: int = Field(default=0, description="Total token count")

    def lines(self) -> list[str]:
        """Non-empty, stripped lines of the generated text."""
        return [line.strip() for line in self.content.splitlines() if line.strip()]
