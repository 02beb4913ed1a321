"""Prompt templates."""

from abc import ABC, abstractmethod
from typing import Any


class PromptTemplate(ABC):
    """Abstract base class for prompt templates."""

    @abstractmethod
    def format(self, **kwargs: Any) -> str:
        """Format the template with provided variables.

        Args:
            **kwargs: Template variables.

        Returns:
            Formatted prompt string.
        """
        ...


class QueryExpansionPrompt(PromptTemplate):
    """Asks the model for alternative search phrasings, one per line."""

    DEFAULT_TEMPLATE = """Genereer {count} alternatieve zoektermen voor de volgende vraag.
Deze zoektermen moeten semantisch gerelateerd zijn en helpen om relevante documenten te vinden.

Originele vraag: "{query}"
Taal: {language}
Domein: {domain}

Geef alleen de alternatieve zoektermen, gescheiden door newlines.
Geen uitleg, nummering of extra tekst - alleen de zoektermen.

Voorbeelden:
Input: "Hoe werkt de integratie?"
Output:
Hoe functioneert de koppeling?
Integratie uitleg
Setup en configuratie
Verbinding maken

Alternatieve zoektermen:"""

    def __init__(self, template: str | None = None) -> None:
        self.template = template or self.DEFAULT_TEMPLATE

    def format(self, **kwargs: Any) -> str:
        """Format the prompt.

        Args:
            **kwargs: Must include 'query', 'count', 'language' and 'domain'.
        """
        return self.template.format(**kwargs)
