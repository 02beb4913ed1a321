"""Query normalization applied before fan-out."""

QUERY_SYNONYMS: dict[str, tuple[str, ...]] = {
    "prijs": ("kosten", "tarief", "prijzen", "betalen"),
    "werkt": ("functioneert", "werking", "functionaliteit", "gebruik"),
    "integratie": ("koppeling", "verbinding", "samenwerking", "connectie"),
    "contact": ("bereikbaar", "telefoon", "email", "adres"),
    "openingstijden": ("open", "uren", "tijd", "geopend"),
    "betalen": ("betaling", "factuur", "rekening", "kosten"),
    "installatie": ("installeren", "setup", "configuratie", "instellen"),
    "ondersteuning": ("support", "hulp", "assistentie", "service"),
    "account": ("gebruiker", "profiel", "inloggen", "registreren"),
    "download": ("downloaden", "bestand", "software", "app"),
    "bestelling": ("bestellen", "order", "aanvragen"),
    "product": ("producten", "artikel", "artikelen", "item"),
    "levering": ("leverancier", "verzending", "leveren", "transport"),
    "voorraad": ("stock", "inventaris", "beschikbaar"),
}

STOP_WORDS = frozenset(
    {
        "een", "het", "de", "van", "met", "voor", "aan", "op", "in", "bij",
        "naar", "over", "onder", "tussen", "door", "zonder", "tijdens", "na",
        "om", "te", "dat", "die", "dit",
    }
)


def preprocess_query(raw: str) -> str:
    """Normalize a query for retrieval.

    Lowercases and trims, appends the synonyms of every dictionary term the
    query contains, then drops stop words and tokens of two characters or
    fewer.

    Args:
        raw: The user's query.

    Returns:
        Space-joined remaining tokens. May be empty.
    """
    processed = raw.lower().strip()

    # Terms are checked in dictionary order against the growing text, so a
    # synonym appended earlier ("betalen" for "prijs") can pull in its own.
    for term, synonyms in QUERY_SYNONYMS.items():
        if term in processed:
            processed = f"{processed} {' '.join(synonyms)}"

    words = [w for w in processed.split() if len(w) > 2 and w not in STOP_WORDS]
    return " ".join(words)


def effective_query(raw: str) -> str:
    """The preprocessed query, or the trimmed raw query if nothing survives."""
    return preprocess_query(raw) or raw.strip()
