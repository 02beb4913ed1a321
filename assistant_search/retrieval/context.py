"""Grounding text for the chat-turn prompt."""

from collections.abc import Sequence

from assistant_search.retrieval.models import SearchResult

NO_CONTEXT_MESSAGE = "Geen relevante informatie gevonden in de kennisbank."
CONTEXT_HEADER = "Relevante informatie uit de kennisbank:"


def format_context(results: Sequence[SearchResult]) -> str:
    """Render results as numbered source blocks.

    Returns:
        The blocks under a header, or a fixed message when there are none.
    """
    if not results:
        return NO_CONTEXT_MESSAGE

    parts = [
        f"[Bron {i} - {result.type.value.upper()}]\n"
        f"Titel: {result.title}\n"
        f"Content: {result.content}\n"
        f"Relevantie: {result.score * 100:.1f}%\n"
        for i, result in enumerate(results, start=1)
    ]
    return f"{CONTEXT_HEADER}\n\n" + "\n---\n\n".join(parts)
