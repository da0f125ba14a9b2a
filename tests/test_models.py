"""Tests for core data models."""

from __future__ import annotations

from mfsearch.models import (
    Document,
    FileLocator,
    PageWindow,
    SearchResponse,
    SearchResult,
)


class TestDocument:
    def test_defaults(self) -> None:
        document = Document(path="mf6io/wel.tex", collection="mf6", kind="tex", title="WEL")
        assert document.key_concepts == []
        assert document.embedding is None

    def test_lists_not_shared(self) -> None:
        first = Document(path="a", collection="mf6", kind="md", title="a")
        second = Document(path="b", collection="mf6", kind="md", title="b")
        first.key_concepts.append("wells")
        assert second.key_concepts == []


class TestSearchResult:
    def test_key(self) -> None:
        result = SearchResult(path="x.py", collection="flopy", source_kind="modules", score=1.0)
        assert result.key == ("flopy", "x.py")

    def test_to_dict(self) -> None:
        result = SearchResult(
            path="x.py", collection="flopy", source_kind="modules", score=0.5, metadata={"module_name": "x"}
        )
        data = result.to_dict()
        assert data["metadata"] == {"module_name": "x"}
        assert data["score"] == 0.5


def test_page_window() -> None:
    window = PageWindow(requested_page=3, total_pages=3, chunk_size=100, content_length=250)
    assert window.paginated
    assert window.start == 200
    assert not PageWindow(1, 1, 100, 50).paginated


def test_response_total_results() -> None:
    response = SearchResponse(query="q", query_analyzed="q", method_used="text", results=[])
    assert response.total_results == 0
    assert response.embedding_fallback is False


def test_file_locator_metadata_default() -> None:
    locator = FileLocator(
        store="documentation", match_mode="exact", resolved_key="a.md", size_hint=10, collection="mf6"
    )
    assert locator.metadata == {}
