"""Deterministic choice between text, semantic and hybrid search."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional, Pattern

from mfsearch.errors import ValidationError
from mfsearch.models import SearchMethod

SEARCH_TYPES = ("auto", "text", "semantic", "hybrid")

_QUOTED = re.compile(r"\"[^\"]+\"|(?<!\w)'[^']+'(?!\w)")
_CODE_LIKE = re.compile(
    r"\w\.\w|[()]|\bdef\s+\w|\bclass\s+\w|\bimport\s+\w|\bfrom\s+\S+\s+import\b"
)
_PACKAGE_CODES = re.compile(
    r"\b(wel|riv|ghb|maw|uzf|sfr|lak|drn|evt|rch|bcf|lpf|hfb|chd|npf|sto)\b", re.IGNORECASE
)


@dataclass(frozen=True, slots=True)
class MethodProfile:
    """Per-tool heuristics; ``conceptual_method`` resolves the natural-language tie-break."""

    name: str
    conceptual: Pattern[str]
    conceptual_method: SearchMethod
    exact: Optional[Pattern[str]] = None


DOCUMENTATION_PROFILE = MethodProfile(
    name="documentation",
    conceptual=re.compile(
        r"\b(how to|similar|concept|theory|principle|approach|method|understand|explain"
        r"|equation|formula|derivative|integral|matrix|solve|calculate)\b",
        re.IGNORECASE,
    ),
    conceptual_method="semantic",
    exact=re.compile(r"\b[A-Z]{2,}\b"),
)

CODE_PROFILE = MethodProfile(
    name="code",
    conceptual=re.compile(
        r"\b(how to|similar|like|related|concept|approach|theory)\b", re.IGNORECASE
    ),
    conceptual_method="text",
    exact=_PACKAGE_CODES,
)

EXAMPLES_PROFILE = MethodProfile(
    name="examples",
    conceptual=re.compile(
        r"\b(how to|similar|concept|example|tutorial|workflow|guide|learn)\b", re.IGNORECASE
    ),
    conceptual_method="semantic",
    exact=re.compile(r"\b(package|function|parameter|class|method|API)\b", re.IGNORECASE),
)


def normalize_search_type(search_type: object) -> str:
    value = "auto" if search_type is None else str(search_type).strip().lower()
    if value not in SEARCH_TYPES:
        raise ValidationError(
            f"Invalid search_type '{search_type}'. Valid options: {', '.join(SEARCH_TYPES)}"
        )
    return value


def select_method(
    query: str,
    search_type: object = "auto",
    *,
    profile: MethodProfile = DOCUMENTATION_PROFILE,
    acronyms: Mapping[str, str] | None = None,
) -> SearchMethod:
    override = normalize_search_type(search_type)
    if override != "auto":
        return override  # type: ignore[return-value]

    if _QUOTED.search(query) or _CODE_LIKE.search(query) or acronyms:
        return "text"
    if profile.exact is not None and profile.exact.search(query):
        return "text"
    if profile.conceptual.search(query):
        return profile.conceptual_method
    return "hybrid"
