"""Deterministic query cleanup for search engines.

``optimize`` is pure and idempotent: the cleanup loop runs to a fixed point
and synonym expansion only appends tokens that are missing and still fit.
"""
from __future__ import annotations

import re
import unicodedata

MAX_QUERY_CHARS = 400

_QUOTE_TABLE = str.maketrans(
    {
        "„": '"',
        "“": '"',
        "”": '"',
        "«": '"',
        "»": '"',
        "‚": "'",
        "‘": "'",
        "’": "'",
    }
)

# Longest phrases first so "suche nach" wins over "suche".
FILLER_PHRASES = tuple(
    sorted(
        (
            "bitte",
            "kannst du mir sagen",
            "kannst du",
            "könntest du",
            "ich möchte wissen",
            "ich will wissen",
            "ich suche",
            "suche nach",
            "suche",
            "finde",
            "recherchiere",
            "informationen zu",
            "informationen über",
            "infos zu",
            "was weißt du über",
            "erzähl mir etwas über",
            "please",
            "search for",
            "look up",
            "find",
            "tell me about",
            "i want to know",
        ),
        key=len,
        reverse=True,
    )
)

SYNONYM_EXPANSIONS: dict[str, tuple[str, ...]] = {
    "verkehrswende": ("mobilität", "nachhaltiger", "verkehr"),
    "nahverkehr": ("öpnv", "öffentlicher", "verkehr"),
    "radverkehr": ("fahrrad", "radwege"),
    "klimaschutz": ("umweltschutz", "nachhaltigkeit"),
    "energie": ("erneuerbare", "energien", "energiewende"),
}

_TRAILING_PUNCT = "?!.;:, "
_TOKEN_STRIP = "\"'()[]{}.,;:!?"


def _normalize(query: str) -> str:
    text = unicodedata.normalize("NFC", query).translate(_QUOTE_TABLE)
    return re.sub(r"\s+", " ", text).strip()


def _token_key(token: str) -> str:
    return token.strip(_TOKEN_STRIP).lower()


def _strip_filler(text: str) -> str:
    lowered = text.lower()
    for phrase in FILLER_PHRASES:
        if lowered.startswith(phrase + " ") and len(text) > len(phrase) + 1:
            return text[len(phrase) + 1 :].lstrip()
    return text


def _dedupe_tokens(text: str) -> str:
    seen: set[str] = set()
    kept: list[str] = []
    for token in text.split(" "):
        key = _token_key(token) or token
        if key in seen:
            continue
        seen.add(key)
        kept.append(token)
    return " ".join(kept)


def _truncate_words(text: str, limit: int = MAX_QUERY_CHARS) -> str:
    if len(text) <= limit:
        return text
    cut = text[:limit]
    if text[limit] != " ":
        boundary = cut.rfind(" ")
        if boundary > 0:
            cut = cut[:boundary]
    return cut.rstrip()


def _cleanup_pass(text: str) -> str:
    text = _strip_filler(text)
    text = text.rstrip(_TRAILING_PUNCT)
    text = _dedupe_tokens(text)
    return _truncate_words(text)


def _expand_synonyms(text: str) -> str:
    present = {_token_key(token) for token in text.split(" ")}
    tokens = [token for token in text.split(" ") if token]
    length = len(text)
    for key, expansions in SYNONYM_EXPANSIONS.items():
        if key not in present:
            continue
        for extra in expansions:
            if extra in present:
                continue
            if length + 1 + len(extra) > MAX_QUERY_CHARS:
                continue
            tokens.append(extra)
            present.add(extra)
            length += 1 + len(extra)
    return " ".join(tokens)


def optimize(query: str) -> str:
    """Rewrite a raw user query into a search-engine friendly form."""
    normalized = _normalize(query)
    if not normalized:
        return query
    current = normalized
    while True:
        cleaned = _cleanup_pass(current)
        if cleaned == current:
            break
        current = cleaned

    if not current:
        return normalized
    return _expand_synonyms(current)
