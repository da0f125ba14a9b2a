"""Tests for FTS5 MATCH compilation and the SELECT builder."""

from __future__ import annotations

from mfsearch.index.query_builder import (
    SelectBuilder,
    compile_advanced,
    compile_match,
    compile_plain,
    escape_like,
)


class TestEscapeLike:
    def test_wildcards_are_escaped(self) -> None:
        assert escape_like("a_b%c") == "a\\_b\\%c"

    def test_escape_char_is_doubled(self) -> None:
        assert escape_like("a\\b") == "a\\\\b"


class TestCompilePlain:
    def test_or_of_quoted_terms(self) -> None:
        assert compile_plain("WEL well package") == '"wel" OR "well" OR "package"'

    def test_duplicates_dropped(self) -> None:
        assert compile_plain("well Well WELL") == '"well"'

    def test_punctuation_ignored(self) -> None:
        assert compile_plain("what is IES?") == '"what" OR "is" OR "ies"'

    def test_empty(self) -> None:
        assert compile_plain("?!") == ""


class TestCompileAdvanced:
    """Boolean expressions become FTS5 syntax."""

    def test_and_or(self) -> None:
        assert compile_advanced("wel & (pump | well)") == '"wel" AND ( "pump" OR "well" )'

    def test_expanded_acronym_group(self) -> None:
        assert compile_advanced("(WEL | well<->package) & rates") == (
            '( "WEL" OR "well package" ) AND "rates"'
        )

    def test_expanded_acronym_keeps_prefix_and_negation(self) -> None:
        assert compile_advanced("rates & !(WEL* | well<->package)") == (
            '"rates" NOT ( "WEL"* OR "well package" )'
        )

    def test_phrase(self) -> None:
        assert compile_advanced('"stress period" & data') == '"stress period" AND "data"'

    def test_prefix(self) -> None:
        assert compile_advanced("pump*") == '"pump"*'

    def test_negation(self) -> None:
        assert compile_advanced("river & !stream") == '"river" NOT "stream"'

    def test_unanchored_negation_drops_its_operand(self) -> None:
        assert compile_advanced("!stream & river") == '"river"'
        assert compile_advanced("!pumping") == ""
        assert compile_advanced("river | !pumping") == '"river"'

    def test_unanchored_negation_drops_group(self) -> None:
        assert compile_advanced("!(WEL | well<->package) & rates") == '"rates"'
        assert compile_advanced("(!wel) river") == '"river"'

    def test_implicit_and(self) -> None:
        assert compile_advanced('"well package" rates') == '"well package" AND "rates"'

    def test_dangling_operators_and_parens(self) -> None:
        assert compile_advanced("(wel | ") == '( "wel" )'
        assert compile_advanced("wel &") == '"wel"'
        assert compile_advanced("wel)") == '"wel"'

    def test_compile_match_dispatch(self) -> None:
        assert compile_match("a b", advanced=False) == '"a" OR "b"'
        assert compile_match("a & b", advanced=True) == '"a" AND "b"'


class TestSelectBuilder:
    def test_build_orders_params(self) -> None:
        sql, params = (
            SelectBuilder("modules t")
            .select("t.path", "substr(t.source_code, ?, ?) AS part", params=(1, 10))
            .where("t.collection = ?", "flopy")
            .where_ieq("t.family", "MF6")
            .order_by("t.path")
            .limit_to(5)
            .build()
        )
        assert sql.splitlines() == [
            "SELECT t.path, substr(t.source_code, ?, ?) AS part",
            "FROM modules t",
            "WHERE (t.collection = ?) AND (LOWER(t.family) = LOWER(?))",
            "ORDER BY t.path",
            "LIMIT ?",
        ]
        assert params == [1, 10, "flopy", "MF6", 5]

    def test_where_in(self) -> None:
        sql, params = SelectBuilder("documents").where_in("collection", ["mf6", "pest"]).build()
        assert "(collection IN (?, ?))" in sql
        assert params == ["mf6", "pest"]

    def test_where_in_empty_matches_nothing(self) -> None:
        sql, params = SelectBuilder("documents").where_in("collection", []).build()
        assert "WHERE (0)" in sql
        assert params == []

    def test_no_limit(self) -> None:
        sql, _ = SelectBuilder("documents").limit_to(None).build()
        assert "LIMIT" not in sql
