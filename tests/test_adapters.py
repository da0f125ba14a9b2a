"""Tests for the store adapters."""

from __future__ import annotations

import pytest

from mfsearch.index.adapters import AdapterSet
from mfsearch.models import Document
from mfsearch.query.preprocess import preprocess_query


@pytest.fixture
def adapters(store):
    return AdapterSet(store)


class TestTextSearch:
    """bm25 ranking, snippets and filters."""

    def test_documentation_hits(self, adapters) -> None:
        results = adapters.documentation.search_text(
            preprocess_query("pumping wells"), ["mf6", "pestpp"], {}, 10
        )
        assert [r.path for r in results] == ["mf6io/wel.tex"]
        result = results[0]
        assert result.source_kind == "documentation"
        assert result.score > 0
        assert "**[" in result.snippet
        assert result.metadata["file_type"] == "tex"
        assert result.metadata["key_concepts"] == ["pumping", "wells"]

    def test_without_content(self, adapters) -> None:
        results = adapters.documentation.search_text(
            preprocess_query("pumping"), ["mf6"], {}, 10, include_content=False
        )
        assert results[0].snippet is None
        assert results[0].metadata["content_preview"] is None

    def test_acronym_expansion_reaches_title(self, adapters) -> None:
        results = adapters.documentation.search_text(preprocess_query("RIV"), ["mf6"], {}, 10)
        assert results[0].path == "mf6io/riv.tex"

    def test_advanced_query(self, adapters) -> None:
        results = adapters.documentation.search_text(
            preprocess_query("package & !river"), ["mf6"], {}, 10
        )
        assert [r.path for r in results] == ["mf6io/wel.tex"]

    def test_collection_scope(self, adapters) -> None:
        results = adapters.documentation.search_text(preprocess_query("pumping"), ["pestpp"], {}, 10)
        assert results == []

    def test_file_type_filter_case_insensitive(self, adapters) -> None:
        prepared = preprocess_query("package smoother")
        kept = adapters.documentation.search_text(prepared, ["mf6", "pestpp"], {"file_type": "MD"}, 10)
        assert [r.path for r in kept] == ["manual/ies.md"]

    def test_unknown_filter_keys_are_ignored(self, adapters) -> None:
        results = adapters.documentation.search_text(
            preprocess_query("pumping"), ["mf6"], {"colour": "blue"}, 10
        )
        assert len(results) == 1

    def test_module_projection(self, adapters) -> None:
        results = adapters.modules.search_text(preprocess_query("pumping"), ["flopy"], {}, 10)
        result = results[0]
        assert result.path == "flopy/mf6/modflow/mfgwfwel.py"
        assert result.metadata["stored_path"] == "/src/flopy/mf6/modflow/mfgwfwel.py"
        assert result.metadata["package_code"] == "WEL"
        assert result.metadata["model_family"] == "mf6"
        assert result.metadata["source_snippet"] == "class ModflowGwfwel:\n    pass\n"

    def test_module_shape_specific_filter(self, adapters) -> None:
        prepared = preprocess_query("package ensemble pumping")
        results = adapters.modules.search_text(prepared, ["flopy", "pyemu"], {"package_code": "riv"}, 10)
        assert [r.collection for r in results] == ["pyemu"]
        assert "package_code" not in results[0].metadata
        assert results[0].metadata["category"] == "ensemble"

    def test_filter_for_other_shape_is_ignored(self, adapters) -> None:
        results = adapters.modules.search_text(
            preprocess_query("pumping"), ["flopy"], {"category": "ensemble"}, 10
        )
        assert len(results) == 1

    def test_workflow_projection(self, adapters) -> None:
        results = adapters.workflows.search_text(preprocess_query("ensemble"), ["pyemu"], {}, 10)
        meta = results[0].metadata
        assert meta["file_type"] == "ipynb"
        assert meta["workflow_type"] == "ies"
        assert meta["complexity"] == "advanced"

    def test_workflow_complexity_filter(self, adapters) -> None:
        prepared = preprocess_query("pumping ensemble")
        results = adapters.workflows.search_text(prepared, ["flopy", "pyemu"], {"complexity": "Beginner"}, 10)
        assert [r.collection for r in results] == ["flopy"]

    def test_limit(self, adapters) -> None:
        results = adapters.documentation.search_text(
            preprocess_query("package smoother river"), ["mf6", "pestpp"], {}, 2
        )
        assert len(results) == 2

    def test_zero_limit(self, adapters) -> None:
        assert adapters.documentation.search_text(preprocess_query("well"), ["mf6"], {}, 0) == []


class TestVectorSearch:
    """Cosine similarity over stored embeddings."""

    def test_ranking(self, adapters) -> None:
        results = adapters.documentation.search_vector([1.0, 0.0, 0.0], ["mf6", "pestpp"], {}, 10)
        assert results[0].path == "mf6io/wel.tex"
        assert results[0].score == pytest.approx(1.0)
        assert all(a.score >= b.score for a, b in zip(results, results[1:]))

    def test_threshold(self, adapters) -> None:
        results = adapters.documentation.search_vector(
            [1.0, 0.0, 0.0], ["mf6", "pestpp"], {}, 10, threshold=0.5
        )
        assert [r.path for r in results] == ["mf6io/wel.tex"]

    def test_unembedded_and_mismatched_rows_are_skipped(self, store, adapters) -> None:
        store.upsert_document(Document(path="plain.md", collection="mf6", kind="md", title="no vector"))
        store.upsert_document(
            Document(path="short.md", collection="mf6", kind="md", title="2d", embedding=[1.0, 0.0])
        )
        results = adapters.documentation.search_vector([1.0, 0.0, 0.0], ["mf6"], {}, 10)
        assert {r.path for r in results} == {"mf6io/wel.tex", "mf6io/riv.tex"}

    def test_empty_eligible_set(self, adapters) -> None:
        assert adapters.documentation.search_vector([1.0, 0.0, 0.0], ["gwutils"], {}, 10) == []

    def test_module_filter(self, adapters) -> None:
        results = adapters.modules.search_vector(
            [0.0, 0.0, 1.0], ["flopy", "pyemu"], {"package_code": "riv"}, 10
        )
        assert [r.collection for r in results] == ["pyemu"]

    def test_workflow_type_filter(self, adapters) -> None:
        results = adapters.workflows.search_vector([1.0, 0.0, 0.0], ["flopy"], {"model_type": "MF6"}, 10)
        assert [r.path for r in results] == ["examples/Tutorials/mf6_wel_tutorial.py"]


class TestFileLookup:
    def test_exact_document(self, adapters) -> None:
        locator = adapters.documentation.find_metadata("mf6", "mf6io/wel.tex", "exact")
        assert locator.store == "documentation"
        assert locator.resolved_key == "mf6io/wel.tex"
        assert locator.size_hint == len("The well package simulates pumping wells that extract groundwater.")
        assert locator.metadata["title"] == "WEL Package"

    def test_module_by_relative_path(self, adapters) -> None:
        locator = adapters.modules.find_metadata("flopy", "flopy/mf6/modflow/mfgwfwel.py", "exact")
        assert locator.resolved_key == "/src/flopy/mf6/modflow/mfgwfwel.py"

    def test_prefix_pattern(self, adapters) -> None:
        locator = adapters.modules.find_metadata("flopy", "mf6/modflow/mfgwfwel.py", "prefixPattern")
        assert locator.resolved_key == "/src/flopy/mf6/modflow/mfgwfwel.py"
        assert locator.match_mode == "prefixPattern"

    def test_pattern_escapes_wildcards(self, adapters) -> None:
        assert adapters.modules.find_metadata("flopy", "mf6/modflow/mfgwf_el.py", "prefixPattern") is None

    def test_missing(self, adapters) -> None:
        assert adapters.documentation.find_metadata("mf6", "nope.tex", "exact") is None

    def test_read_content_window(self, adapters) -> None:
        locator = adapters.modules.find_metadata("flopy", "flopy/mf6/modflow/mfgwfwel.py", "exact")
        assert adapters.modules.read_content(locator, 0, 5) == "class"
        assert adapters.modules.read_content(locator) == "class ModflowGwfwel:\n    pass\n"
