"""LLM client module."""

from assistant_search.llm.client import LLMClient, OpenAICompatibleClient
from assistant_search.llm.models import Completion, Message, Role
from assistant_search.llm.prompts import PromptTemplate, QueryExpansionPrompt

__all__ = [
    "Completion",
    "LLMClient",
    "Message",
    "OpenAICompatibleClient",
    "PromptTemplate",
    "QueryExpansionPrompt",
    "Role",
]
