"""Tests for search method selection."""

from __future__ import annotations

import pytest

from mfsearch.errors import ValidationError
from mfsearch.query.method import (
    CODE_PROFILE,
    DOCUMENTATION_PROFILE,
    EXAMPLES_PROFILE,
    normalize_search_type,
    select_method,
)


class TestNormalizeSearchType:
    def test_default_is_auto(self) -> None:
        assert normalize_search_type(None) == "auto"

    def test_case_insensitive(self) -> None:
        assert normalize_search_type(" Hybrid ") == "hybrid"

    def test_invalid(self) -> None:
        with pytest.raises(ValidationError, match="Invalid search_type"):
            normalize_search_type("fuzzy")


class TestSelectMethod:
    """Heuristic order: exact markers, then conceptual markers, then hybrid."""

    @pytest.mark.parametrize("override", ["text", "semantic", "hybrid"])
    def test_override_wins(self, override) -> None:
        assert select_method('"quoted phrase"', override) == override

    def test_quoted_phrase_is_text(self) -> None:
        assert select_method('"stress period data" explanation') == "text"

    @pytest.mark.parametrize(
        "query",
        ["flopy.mf6.ModflowGwfwel", "def write_file", "from pyemu import Pst", "get_data()"],
    )
    def test_code_like_is_text(self, query) -> None:
        assert select_method(query, profile=CODE_PROFILE) == "text"

    def test_acronym_is_text(self) -> None:
        assert select_method("boundary setup", acronyms={"GHB": "general head boundary"}) == "text"

    def test_uppercase_marker_in_documentation(self) -> None:
        assert select_method("ModFlow NAM file", profile=DOCUMENTATION_PROFILE) == "text"

    def test_package_code_in_code_profile(self) -> None:
        assert select_method("sfr reach data", profile=CODE_PROFILE) == "text"

    def test_conceptual_documentation_is_semantic(self) -> None:
        assert select_method("explain the theory of storage", profile=DOCUMENTATION_PROFILE) == "semantic"

    def test_conceptual_code_resolves_to_text(self) -> None:
        assert select_method("similar approach to particle tracking", profile=CODE_PROFILE) == "text"

    def test_conceptual_examples_is_semantic(self) -> None:
        assert select_method("tutorial on history matching", profile=EXAMPLES_PROFILE) == "semantic"

    def test_examples_specific_terms_are_text(self) -> None:
        assert select_method("which parameter sets recharge", profile=EXAMPLES_PROFILE) == "text"

    def test_fallback_is_hybrid(self) -> None:
        assert select_method("groundwater pumping wells", profile=CODE_PROFILE) == "hybrid"
