"""Store adapters: text and vector search plus metadata lookup per record shape."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from mfsearch.catalog import COLLECTIONS
from mfsearch.index.query_builder import SelectBuilder, compile_match, escape_like
from mfsearch.index.storage import SQLiteStore, decode_list, decode_vector
from mfsearch.models import FileLocator, MatchMode, SearchResult, SourceKind
from mfsearch.query.preprocess import PreparedQuery

LOGGER = logging.getLogger(__name__)

PREVIEW_CHARS = 300
SOURCE_SNIPPET_CHARS = 500
SNIPPET_TOKENS = 32


def _preview(column: str) -> str:
    return (
        f"CASE WHEN length({column}) > {PREVIEW_CHARS} "
        f"THEN substr({column}, 1, {PREVIEW_CHARS}) || '...' ELSE {column} END AS content_preview"
    )


class StoreAdapter:
    """Uniform search interface over one table family.

    Subclasses declare their table, the columns they project, the FTS column
    weights and how filter keys map to columns; ``project`` turns a row into a
    ``SearchResult``.
    """

    kind: SourceKind
    table: str
    content_column: str = "source_code"
    preview_column: str = "embedding_text"
    fts_weights: Tuple[float, ...] = ()
    metadata_columns: Tuple[str, ...] = ()
    # filter key -> (column, collections accepting it or None for all)
    filter_columns: Mapping[str, Tuple[str, Optional[Tuple[str, ...]]]] = {}

    def __init__(self, store: SQLiteStore) -> None:
        self.store = store

    # -- query helpers -------------------------------------------------
    def _base(self, table: str) -> SelectBuilder:
        builder = SelectBuilder(table)
        builder.select(*(f"t.{column}" for column in self.metadata_columns))
        return builder

    def _apply_scope(
        self,
        builder: SelectBuilder,
        collections: Sequence[str],
        filters: Mapping[str, Any] | None,
    ) -> SelectBuilder:
        builder.where_in("t.collection", list(collections))
        for key, value in (filters or {}).items():
            if value is None or value == "" or key not in self.filter_columns:
                continue
            column, accepting = self.filter_columns[key]
            if accepting is None:
                builder.where_ieq(f"t.{column}", value)
                continue
            applicable = [c for c in collections if c in accepting]
            if not applicable:
                LOGGER.debug("Filter %s does not apply to %s", key, collections)
                continue
            untouched = [c for c in collections if c not in accepting]
            if untouched:
                placeholders = ", ".join("?" for _ in untouched)
                builder.where(
                    f"t.collection IN ({placeholders}) OR LOWER(t.{column}) = LOWER(?)",
                    *untouched,
                    value,
                )
            else:
                builder.where_ieq(f"t.{column}", value)
        return builder

    # -- search --------------------------------------------------------
    def search_text(
        self,
        prepared: PreparedQuery,
        collections: Sequence[str],
        filters: Mapping[str, Any] | None = None,
        limit: int = 10,
        *,
        include_content: bool = True,
    ) -> List[SearchResult]:
        """Rank rows with FTS5 bm25; higher score is better."""
        if limit <= 0 or not collections:
            return []
        match = compile_match(prepared.expanded, prepared.advanced)
        if not match:
            return []

        fts = f"{self.table}_fts"
        weights = ", ".join(str(w) for w in self.fts_weights)
        builder = self._base(fts).join(f"JOIN {self.table} t ON t.id = {fts}.rowid")
        builder.select(f"-bm25({fts}, {weights}) AS score")
        if include_content:
            builder.select(
                f"snippet({fts}, -1, '**[', ']**', '...', {SNIPPET_TOKENS}) AS snippet",
                _preview(f"t.{self.preview_column}"),
            )
        else:
            builder.select("NULL AS snippet", "NULL AS content_preview")
        builder.where(f"{fts} MATCH ?", match)
        self._apply_scope(builder, collections, filters)
        builder.order_by("score DESC").limit_to(limit)

        sql, params = builder.build()
        rows = self.store.fetch_all(sql, params)
        return [self.project(row, float(row["score"]), row["snippet"]) for row in rows]

    def search_vector(
        self,
        vector: np.ndarray,
        collections: Sequence[str],
        filters: Mapping[str, Any] | None = None,
        limit: int = 10,
        *,
        threshold: float | None = None,
    ) -> List[SearchResult]:
        """Rank rows by cosine similarity; rows without an embedding are skipped."""
        if limit <= 0 or not collections:
            return []
        query = np.asarray(vector, dtype="float32").ravel()
        query_norm = float(np.linalg.norm(query))
        if query_norm == 0.0:
            return []

        builder = self._base(f"{self.table} t").select("t.embedding", _preview(f"t.{self.preview_column}"))
        builder.where("t.embedding IS NOT NULL")
        self._apply_scope(builder, collections, filters)
        sql, params = builder.build()
        rows = self.store.fetch_all(sql, params)

        expected = query.shape[0] * 4
        eligible = [row for row in rows if len(row["embedding"]) == expected]
        if len(eligible) != len(rows):
            LOGGER.warning(
                "Skipped %d %s rows with mismatched embedding dimension",
                len(rows) - len(eligible),
                self.table,
            )
        if not eligible:
            return []

        embeddings = np.vstack([decode_vector(row["embedding"]) for row in eligible])
        norms = np.linalg.norm(embeddings, axis=1)
        norms[norms == 0.0] = np.inf
        scores = (embeddings @ query) / (norms * query_norm)

        if threshold is not None:
            candidates = np.flatnonzero(scores >= threshold)
        else:
            candidates = np.arange(len(scores))
        if candidates.size == 0:
            return []
        order = candidates[np.argsort(-scores[candidates], kind="stable")][:limit]

        return [
            self.project(eligible[idx], float(scores[idx]), None)
            for idx in order
        ]

    # -- file lookup ---------------------------------------------------
    def _path_condition(self, builder: SelectBuilder, path: str, match_mode: MatchMode) -> None:
        if match_mode == "exact":
            builder.where("t.path = ?", path)
        else:
            builder.where("t.path LIKE ? ESCAPE '\\'", "%/" + escape_like(path.lstrip("/")))

    def find_metadata(
        self, collection: str, path: str, match_mode: MatchMode = "exact"
    ) -> Optional[FileLocator]:
        """Locate a row by path without loading its content."""
        builder = self._base(f"{self.table} t").select(f"length(t.{self.content_column}) AS size_hint")
        builder.where("t.collection = ?", collection)
        self._path_condition(builder, path, match_mode)
        builder.order_by("length(t.path)").limit_to(1)
        sql, params = builder.build()
        row = self.store.fetch_one(sql, params)
        if row is None:
            return None

        result = self.project(row, 0.0, None)
        metadata = dict(result.metadata)
        metadata["title"] = result.title
        return FileLocator(
            store=self.kind,
            match_mode=match_mode,
            resolved_key=row["path"],
            size_hint=int(row["size_hint"] or 0),
            collection=collection,
            metadata=metadata,
        )

    def read_content(self, locator: FileLocator, start: int | None = None, length: int | None = None) -> Optional[str]:
        """Read the whole content, or ``length`` characters from 0-based ``start``."""
        builder = SelectBuilder(f"{self.table} t")
        if start is None:
            builder.select(f"t.{self.content_column} AS content")
        else:
            builder.select(f"substr(t.{self.content_column}, ?, ?) AS content", params=(start + 1, length))
        builder.where("t.collection = ?", locator.collection).where("t.path = ?", locator.resolved_key)
        sql, params = builder.build()
        row = self.store.fetch_one(sql, params)
        if row is None:
            return None
        return row["content"] or ""

    def count(self, collection: str) -> int:
        row = self.store.fetch_one(
            f"SELECT COUNT(*) AS n FROM {self.table} WHERE collection = ?", (collection,)
        )
        return int(row["n"]) if row else 0

    def project(self, row: sqlite3.Row, score: float, snippet: Optional[str]) -> SearchResult:
        raise NotImplementedError


def _get(row: sqlite3.Row, key: str) -> Any:
    return row[key] if key in row.keys() else None


class DocumentationAdapter(StoreAdapter):
    kind: SourceKind = "documentation"
    table = "documents"
    content_column = "body"
    preview_column = "body"
    fts_weights = (10.0, 5.0, 1.0)
    metadata_columns = (
        "collection",
        "path",
        "kind",
        "title",
        "summary",
        "key_concepts",
        "technical_level",
        "purpose",
        "created_at",
    )
    filter_columns = {"file_type": ("kind", None)}

    def project(self, row: sqlite3.Row, score: float, snippet: Optional[str]) -> SearchResult:
        metadata: Dict[str, Any] = {
            "file_type": row["kind"],
            "summary": row["summary"] or None,
            "key_concepts": decode_list(row["key_concepts"]),
            "technical_level": row["technical_level"],
            "purpose": row["purpose"],
            "created_at": row["created_at"],
            "content_preview": _get(row, "content_preview"),
        }
        return SearchResult(
            path=row["path"],
            collection=row["collection"],
            source_kind=self.kind,
            score=score,
            title=row["title"] or None,
            snippet=snippet,
            metadata=metadata,
        )


class ModuleAdapter(StoreAdapter):
    kind: SourceKind = "modules"
    table = "modules"
    fts_weights = (8.0, 6.0, 2.0, 3.0, 1.0)
    metadata_columns = (
        "collection",
        "path",
        "relative_path",
        "module_name",
        "package_code",
        "family",
        "purpose",
        "docstring",
        "related_concepts",
        "scenarios",
        "github_url",
    )
    filter_columns = {
        "package_code": ("package_code", ("flopy",)),
        "model_family": ("family", ("flopy",)),
        "category": ("family", ("pyemu",)),
    }

    def _path_condition(self, builder: SelectBuilder, path: str, match_mode: MatchMode) -> None:
        if match_mode == "exact":
            builder.where("t.path = ? OR t.relative_path = ?", path, path)
        else:
            super()._path_condition(builder, path, match_mode)

    def _base(self, table: str) -> SelectBuilder:
        return super()._base(table).select(
            f"substr(t.source_code, 1, {SOURCE_SNIPPET_CHARS}) AS source_snippet"
        )

    def project(self, row: sqlite3.Row, score: float, snippet: Optional[str]) -> SearchResult:
        collection = row["collection"]
        shape = COLLECTIONS[collection].module_shape if collection in COLLECTIONS else None
        metadata: Dict[str, Any] = {
            "file_type": "py",
            "module_name": row["module_name"],
            "stored_path": row["path"],
            "purpose": row["purpose"] or None,
            "docstring": row["docstring"] or None,
            "related_concepts": decode_list(row["related_concepts"]),
            "user_scenarios": decode_list(row["scenarios"]),
            "github_url": row["github_url"],
            "content_preview": _get(row, "content_preview"),
            "source_snippet": _get(row, "source_snippet") or None,
        }
        if shape is None or shape.has_package_code:
            metadata["package_code"] = row["package_code"]
        metadata[shape.family_label if shape and shape.family_label else "family"] = row["family"]
        return SearchResult(
            path=row["relative_path"] or row["path"],
            collection=collection,
            source_kind=self.kind,
            score=score,
            title=row["purpose"] or row["module_name"],
            snippet=snippet,
            metadata=metadata,
        )


class WorkflowAdapter(StoreAdapter):
    kind: SourceKind = "workflows"
    table = "workflows"
    fts_weights = (10.0, 4.0, 4.0, 3.0, 1.0)
    metadata_columns = (
        "collection",
        "path",
        "title",
        "description",
        "complexity",
        "workflow_type",
        "packages_used",
        "tags",
        "purpose",
        "use_cases",
        "prerequisites",
    )
    filter_columns = {
        "complexity": ("complexity", None),
        "model_type": ("workflow_type", ("flopy",)),
        "workflow_type": ("workflow_type", ("pyemu",)),
    }

    def project(self, row: sqlite3.Row, score: float, snippet: Optional[str]) -> SearchResult:
        collection = row["collection"]
        shape = COLLECTIONS[collection].workflow_shape if collection in COLLECTIONS else None
        metadata: Dict[str, Any] = {
            "file_type": shape.file_type if shape else None,
            "description": row["description"] or None,
            "complexity": row["complexity"],
            shape.type_label if shape else "workflow_type": row["workflow_type"],
            "packages_used": decode_list(row["packages_used"]),
            "tags": decode_list(row["tags"]),
            "workflow_purpose": row["purpose"] or None,
            "use_cases": decode_list(row["use_cases"]),
            "prerequisites": decode_list(row["prerequisites"]),
            "content_preview": _get(row, "content_preview"),
        }
        return SearchResult(
            path=row["path"],
            collection=collection,
            source_kind=self.kind,
            score=score,
            title=row["title"] or None,
            snippet=snippet,
            metadata=metadata,
        )


class AdapterSet:
    """The three adapters sharing one store."""

    def __init__(self, store: SQLiteStore) -> None:
        self.store = store
        self.documentation = DocumentationAdapter(store)
        self.modules = ModuleAdapter(store)
        self.workflows = WorkflowAdapter(store)

    def by_kind(self, kind: SourceKind) -> StoreAdapter:
        return {
            "documentation": self.documentation,
            "modules": self.modules,
            "workflows": self.workflows,
        }[kind]
