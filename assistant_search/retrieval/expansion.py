"""Query expansion with a synonym dictionary and, optionally, an LLM."""

import hashlib
import time
from collections.abc import Callable
from dataclasses import dataclass

from assistant_search.cache.sweeper import PeriodicSweeper
from assistant_search.config import CacheSettings, get_settings
from assistant_search.exceptions import LLMError
from assistant_search.llm.client import LLMClient
from assistant_search.llm.prompts import QueryExpansionPrompt
from assistant_search.logging_config import get_logger
from assistant_search.observability.metrics import (
    track_cache_eviction,
    track_cache_lookup,
    track_cache_size,
)

logger = get_logger(__name__)

MAX_SYNONYM_EXPANSIONS = 5
SYNONYMS_PER_TERM = 3

EXPANSION_SYNONYMS: dict[str, tuple[str, ...]] = {
    # Pricing
    "prijs": ("kosten", "tarief", "prijzen", "betaling", "bedrag", "geld", "tarievenlijst", "kostenplaatje"),
    "betalen": ("betaling", "factuur", "rekening", "kosten", "afrekenen", "voldoen", "incasseren"),
    "korting": ("discount", "aanbieding", "actie", "voordeel", "reductie", "sale", "promotie"),
    "gratis": ("free", "kosteloos", "zonder kosten", "voor niets", "om niet"),
    # Technical
    "werkt": ("functioneert", "werking", "functionaliteit", "gebruik", "draait", "loopt", "opereert"),
    "integratie": ("koppeling", "verbinding", "samenwerking", "connectie", "interface", "plugin", "add-on"),
    "installatie": ("installeren", "setup", "configuratie", "instellen", "implementatie", "deployment"),
    "synchronisatie": ("sync", "synchroniseren", "updaten", "verversen", "bijwerken"),
    # Support
    "contact": ("bereikbaar", "telefoon", "email", "adres", "contactpersoon", "bereikbaarheid", "klantenservice"),
    "ondersteuning": ("support", "hulp", "assistentie", "service", "helpdesk", "klantenservice", "customer service"),
    "probleem": ("issue", "error", "fout", "storing", "bug", "defect", "incident"),
    "vraag": ("question", "vragen", "informatie", "uitleg", "toelichting"),
    # Account
    "account": ("gebruiker", "profiel", "inloggen", "registreren", "aanmelden", "user"),
    "wachtwoord": ("password", "pass", "login", "credentials", "authenticatie", "inloggegevens"),
    "toegang": ("access", "rechten", "permissies", "autorisatie", "privileges"),
    # Availability
    "openingstijden": ("open", "uren", "tijd", "geopend", "beschikbaarheid", "kantooruren", "werktijden"),
    "wanneer": ("when", "tijd", "moment", "planning", "schema", "tijdstip"),
    "beschikbaar": ("available", "voorradig", "verkrijgbaar", "leverbaar", "in stock"),
    # Products
    "product": ("producten", "artikel", "artikelen", "item", "goods", "dienst"),
    "bestelling": ("bestellen", "order", "aanvragen", "aanvraag", "reserveren", "kopen"),
    "levering": ("leverancier", "verzending", "leveren", "transport", "shipping", "delivery"),
    "voorraad": ("stock", "inventaris", "beschikbaar", "op voorraad", "inventory"),
    # General
    "informatie": ("info", "gegevens", "data", "details", "toelichting", "uitleg"),
    "website": ("site", "webpagina", "portal", "platform", "online"),
    "document": ("bestand", "file", "pdf", "documentatie", "handleiding"),
    "download": ("downloaden", "bestand", "software", "app", "application"),
}


def expand_with_synonyms(query: str) -> list[str]:
    """Rule-based variants of a query.

    For every dictionary term in the lowercased query, the first occurrence
    is replaced by each of its first three synonyms.

    Returns:
        The original query followed by unique variants, at most five in total.
    """
    lowered = query.lower()
    expansions = [query]
    for term, synonyms in EXPANSION_SYNONYMS.items():
        if term not in lowered:
            continue
        for synonym in synonyms[:SYNONYMS_PER_TERM]:
            variant = lowered.replace(term, synonym, 1)
            if variant != lowered and variant not in expansions:
                expansions.append(variant)
    return expansions[:MAX_SYNONYM_EXPANSIONS]


@dataclass
class _ExpansionEntry:
    expansions: list[str]
    created_at: float


class QueryExpander:
    """Combines dictionary expansion with cached LLM expansion.

    LLM results are cached per ``(query, language, domain)`` and swept
    once they pass the TTL.
    """

    CACHE_NAME = "expansion"

    def __init__(
        self,
        llm: LLMClient | None = None,
        settings: CacheSettings | None = None,
        prompt: QueryExpansionPrompt | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the expander.

        Args:
            llm: Chat client. Without one only dictionary expansion is used.
            settings: Cache configuration.
            prompt: Expansion prompt template.
            clock: Time source returning seconds (for testing).
        """
        self._llm = llm
        self._settings = settings or get_settings().cache
        self._prompt = prompt or QueryExpansionPrompt()
        self._clock = clock
        self._cache: dict[str, _ExpansionEntry] = {}
        self._sweeper = PeriodicSweeper(
            self.CACHE_NAME,
            self.clean_expired,
            self._settings.sweep_interval,
        )

    def __len__(self) -> int:
        return len(self._cache)

    def start(self) -> None:
        self._sweeper.start()

    async def shutdown(self) -> None:
        await self._sweeper.shutdown()

    @staticmethod
    def _cache_key(query: str, language: str, domain: str) -> str:
        return hashlib.md5(f"{query}:{language}:{domain}".encode()).hexdigest()

    async def expand_with_ai(
        self,
        query: str,
        max_expansions: int = 5,
        language: str = "nl",
        domain: str = "general",
    ) -> list[str]:
        """Ask the LLM for alternative phrasings.

        Returns:
            ``[query, *alternatives]``, or ``[query]`` if the LLM is
            unavailable or fails.
        """
        key = self._cache_key(query, language, domain)
        entry = self._cache.get(key)
        if entry is not None and self._clock() - entry.created_at < self._settings.expansion_ttl:
            track_cache_lookup(self.CACHE_NAME, hit=True)
            return list(entry.expansions)
        track_cache_lookup(self.CACHE_NAME, hit=False)

        if self._llm is None:
            return [query]

        prompt = self._prompt.format(
            query=query, count=max_expansions, language=language, domain=domain
        )
        try:
            completion = await self._llm.complete(prompt)
        except LLMError as e:
            logger.warning(
                f"Query expansion failed: {e.message}",
                extra={"code": e.code.value},
            )
            return [query]

        alternatives = [
            line for line in completion.lines() if len(line) > 3 and ":" not in line
        ][:max_expansions]
        result = [query, *alternatives]

        self._cache[key] = _ExpansionEntry(expansions=result, created_at=self._clock())
        track_cache_size(self.CACHE_NAME, len(self._cache))
        logger.debug(
            f"Expanded query to {len(result)} variations",
            extra={"language": language, "domain": domain},
        )
        return list(result)

    async def expand(
        self,
        query: str,
        use_ai: bool = True,
        max_expansions: int = 5,
        language: str = "nl",
        domain: str = "general",
    ) -> list[str]:
        """Dictionary variants, topped up from the LLM when there are too few.

        Args:
            query: The user's query.
            use_ai: Allow the LLM top-up.
            max_expansions: Maximum queries returned, original included.
            language: Language hint for the LLM.
            domain: Domain hint for the LLM.

        Returns:
            Unique queries, the original first.
        """
        expansions = expand_with_synonyms(query)
        if use_ai and len(expansions) < max_expansions:
            generated = await self.expand_with_ai(
                query,
                max_expansions=max_expansions - len(expansions),
                language=language,
                domain=domain,
            )
            for candidate in generated:
                if candidate not in expansions:
                    expansions.append(candidate)
        return expansions[:max_expansions]

    def clean_expired(self) -> int:
        """Drop LLM expansions older than the TTL."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._cache.items()
            if now - entry.created_at > self._settings.expansion_ttl
        ]
        for key in expired:
            del self._cache[key]

        track_cache_eviction(self.CACHE_NAME, "expired", len(expired))
        track_cache_size(self.CACHE_NAME, len(self._cache))
        return len(expired)

    def clear(self) -> None:
        self._cache.clear()
