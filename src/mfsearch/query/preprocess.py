"""Query normalisation and acronym expansion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from mfsearch.errors import ValidationError
from mfsearch.query.acronyms import lookup

LOGGER = logging.getLogger(__name__)

MAX_QUERY_CHARS = 500
ADVANCED_OPERATORS = ("&", "|", "!", "*", '"')
_TRAILING_PUNCTUATION = "?,;:"
_LEADING_OPERATORS = '!("'
_TRAILING_OPERATORS = '*)"'


@dataclass(slots=True)
class PreparedQuery:
    """Result of preprocessing a raw query.

    ``expanded`` is natural-language text when ``advanced`` is false and a
    boolean expression (``&``, ``|``, ``!``, ``*``, ``"..."``, ``a<->b``)
    otherwise.
    """

    original: str
    expanded: str
    advanced: bool
    expansions: Dict[str, str] = field(default_factory=dict)


def has_advanced_syntax(text: str) -> bool:
    return any(op in text for op in ADVANCED_OPERATORS)


def _split_operators(word: str) -> Tuple[str, str, str]:
    """Split ``!(WEL*)`` into ``("!(", "WEL", "*)")``."""
    core = word.lstrip(_LEADING_OPERATORS)
    lead = word[: len(word) - len(core)]
    key = core.rstrip(_TRAILING_OPERATORS)
    return lead, key, core[len(key):]


def validate_query(query: object, *, max_chars: int = MAX_QUERY_CHARS) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("Search query is required and cannot be empty")
    if len(query) > max_chars:
        raise ValidationError(f"Search query too long. Please limit to {max_chars} characters")
    return query.strip()


def preprocess_query(query: object, *, max_chars: int = MAX_QUERY_CHARS) -> PreparedQuery:
    text = validate_query(query, max_chars=max_chars)
    advanced = has_advanced_syntax(text)

    terms: List[str] = []
    expansions: Dict[str, str] = {}
    in_phrase = False
    for word in text.split():
        if not advanced:
            key = word.rstrip(_TRAILING_PUNCTUATION)
            full = lookup(key) if key else None
            if full is None:
                terms.append(word)
                continue
            LOGGER.debug("Expanding acronym: %s -> %s", key, full)
            expansions[key] = full
            terms.append(f"{word} {full}")
            continue

        # words of a multi-word phrase stay verbatim
        unbalanced = word.count('"') % 2 == 1
        inside_phrase = in_phrase or unbalanced
        if unbalanced:
            in_phrase = not in_phrase
        lead, key, trail = _split_operators(word)
        full = lookup(key) if key and not inside_phrase else None
        if full is None:
            terms.append(word)
            continue

        LOGGER.debug("Expanding acronym: %s -> %s", key, full)
        expansions[key] = full
        phrase = "<->".join(full.lower().split())
        prefix = "*" if "*" in trail else ""
        lead = lead.replace('"', "")
        trail = trail.replace('"', "").replace("*", "")
        terms.append(f"{lead}({key}{prefix} | {phrase}){trail}")

    return PreparedQuery(
        original=text,
        expanded=" ".join(terms),
        advanced=advanced,
        expansions=expansions,
    )
