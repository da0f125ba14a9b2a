"""Federated search and retrieval over the documentation, module and workflow stores."""

from __future__ import annotations

import asyncio
import logging
import math
import re
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from mfsearch.catalog import (
    CODE_COLLECTIONS,
    COLLECTIONS,
    DOC_COLLECTIONS,
    Collection,
    get_collection,
    validate_collection,
)
from mfsearch.config import AppConfig
from mfsearch.embedding.client import Embedder, build_embedder
from mfsearch.errors import EmbeddingUnavailableError, ValidationError
from mfsearch.files.paginator import ContentPaginator
from mfsearch.files.resolver import FileResolver
from mfsearch.index.adapters import AdapterSet
from mfsearch.index.storage import SQLiteStore
from mfsearch.models import FileContent, SearchMethod, SearchResponse, SearchResult, SourceKind
from mfsearch.query.method import (
    CODE_PROFILE,
    DOCUMENTATION_PROFILE,
    EXAMPLES_PROFILE,
    MethodProfile,
    select_method,
)
from mfsearch.query.preprocess import PreparedQuery, preprocess_query, validate_query
from mfsearch.search.fusion import fuse, split_limit

LOGGER = logging.getLogger(__name__)

MODULE_SHARE = 0.85
MODULE_DOC_SHARE = 0.15
WORKFLOW_SHARE = 0.8
WORKFLOW_DOC_SHARE = 0.2

_API_TERMS = re.compile(r"\b(parameter|function|method|class|constructor)\b", re.IGNORECASE)
_PACKAGE_TERMS = re.compile(r"\b(wel|riv|ghb|maw|uzf|sfr|lak|drn|evt|rch)\b", re.IGNORECASE)

Branch = Tuple[str, Callable[[], List[SearchResult]]]


def _validate_limit(value: Any, default: int, maximum: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(f"Limit must be between 1 and {maximum}")
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Limit must be between 1 and {maximum}") from None
    if limit < 1 or limit > maximum:
        raise ValidationError(f"Limit must be between 1 and {maximum}")
    return limit


def _validate_threshold(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        raise ValidationError("similarity_threshold must be a number between 0 and 1") from None
    if not 0.0 <= threshold <= 1.0:
        raise ValidationError("similarity_threshold must be between 0 and 1")
    return threshold


def _clean_filters(**values: Any) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value not in (None, "")}


def docs_recommendations(prepared: PreparedQuery) -> Optional[Dict[str, str]]:
    """Steer conceptual questions from keyword search to vector search."""
    method = select_method(
        prepared.original, profile=DOCUMENTATION_PROFILE, acronyms=prepared.expansions
    )
    if method != "semantic":
        return None
    return {
        "try_also": "semantic_search_docs",
        "reason": "Conceptual questions match better by meaning than by keywords",
        "suggested_query": prepared.original,
    }


def code_recommendations(query: str, results: Sequence[SearchResult]) -> Optional[Dict[str, str]]:
    """Point the caller at a complementary tool based on what came back."""
    package = next((r.metadata.get("package_code") for r in results if r.metadata.get("package_code")), None)
    if package and not _API_TERMS.search(query):
        return {
            "try_also": "search_examples",
            "reason": "For complete tutorials and working implementations",
            "suggested_query": f"{package} package tutorial example",
        }
    if results:
        return {
            "try_also": "search_docs",
            "reason": "For mathematical theory and conceptual background",
            "suggested_query": f"{query} mathematical formulation theory",
        }
    return None


def example_recommendations(
    query: str, results: Sequence[SearchResult], method: SearchMethod
) -> Optional[Dict[str, str]]:
    has_packages = any(r.metadata.get("packages_used") for r in results)
    has_advanced = any(r.metadata.get("complexity") == "advanced" for r in results)
    if _PACKAGE_TERMS.search(query) and has_packages and method != "hybrid":
        return {
            "try_also": "search_code",
            "reason": "For specific API parameters and implementation details",
            "suggested_query": f"{query.split()[0]} package constructor parameters",
        }
    if results and not has_advanced:
        return {
            "try_also": "search_docs",
            "reason": "For theoretical background and detailed explanations",
            "suggested_query": f"{query} theory mathematical background",
        }
    return None


class SearchEngine:
    """Entry point for every search and retrieval operation.

    Each request validates its arguments, prepares the query, then runs its
    branches concurrently on worker threads. A branch that raises is logged
    and contributes no results; the surviving branches are fused.
    """

    def __init__(
        self,
        store: SQLiteStore,
        embedder: Embedder | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = store
        self.embedder = embedder
        self.adapters = AdapterSet(store)
        self.resolver = FileResolver(self.adapters)
        self.paginator = ContentPaginator(self.adapters, chunk_size=self.config.safe_chunk_chars)

    @classmethod
    def from_config(cls, config: AppConfig, *, base_dir: Path | None = None) -> "SearchEngine":
        db_path = config.resolve_db_path(base_dir or Path.cwd())
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return cls(SQLiteStore(db_path), build_embedder(config), config)

    def close(self) -> None:
        self.store.close()

    # -- plumbing ------------------------------------------------------
    def _prepare(self, query: Any) -> PreparedQuery:
        return preprocess_query(query, max_chars=self.config.max_query_chars)

    async def _embed(self, text: str) -> np.ndarray:
        if self.embedder is None:
            raise EmbeddingUnavailableError("No embedding provider configured")
        return await asyncio.to_thread(self.embedder.embed, text)

    async def _run_branches(self, branches: Sequence[Branch]) -> List[List[SearchResult]]:
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(run) for _, run in branches), return_exceptions=True
        )
        batches: List[List[SearchResult]] = []
        for (label, _), outcome in zip(branches, outcomes):
            if isinstance(outcome, Exception):
                LOGGER.warning("Search branch %s failed: %s", label, outcome)
                batches.append([])
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                LOGGER.debug("Search branch %s returned %d results", label, len(outcome))
                batches.append(outcome)
        return batches

    def _layout(self, collection: Collection | None, limit: int) -> List[Tuple[SourceKind, Tuple[str, ...], int]]:
        """Per-branch (store, collections, limit) for the cross-collection tools."""
        if collection is None:
            docs, modules, workflows = split_limit(limit, 3)
            flopy_m, pyemu_m = split_limit(modules, 2)
            flopy_w, pyemu_w = split_limit(workflows, 2)
            layout: List[Tuple[SourceKind, Tuple[str, ...], int]] = [
                ("documentation", DOC_COLLECTIONS, docs),
                ("modules", ("flopy",), flopy_m),
                ("modules", ("pyemu",), pyemu_m),
                ("workflows", ("flopy",), flopy_w),
                ("workflows", ("pyemu",), pyemu_w),
            ]
        elif collection.is_code:
            modules, workflows = split_limit(limit, 2)
            layout = [
                ("modules", (collection.name,), modules),
                ("workflows", (collection.name,), workflows),
            ]
        else:
            layout = [("documentation", (collection.name,), limit)]
        return [entry for entry in layout if entry[2] > 0]

    def _per_collection(
        self,
        kind: SourceKind,
        collections: Sequence[str],
        limit: int,
        label: str,
        run: Callable[..., List[SearchResult]],
    ) -> List[Branch]:
        if limit <= 0 or not collections:
            return []
        adapter_branches: List[Branch] = []
        for name, share in zip(collections, split_limit(limit, len(collections))):
            if share > 0:
                adapter_branches.append((f"{label}:{kind}:{name}", partial(run, (name,), share)))
        return adapter_branches

    async def _choose_vector(
        self, prepared: PreparedQuery, search_type: Any, profile: MethodProfile
    ) -> Tuple[SearchMethod, Optional[np.ndarray], bool]:
        """Select the method and embed when it needs vectors.

        An unavailable embedding degrades the request to text search.
        """
        method = select_method(
            prepared.original, search_type, profile=profile, acronyms=prepared.expansions
        )
        if method == "text":
            return method, None, False
        try:
            vector = await self._embed(prepared.original)
        except EmbeddingUnavailableError as exc:
            LOGGER.warning("Embedding unavailable, falling back to text search: %s", exc)
            return "text", None, True
        return method, vector, False

    # -- operations ----------------------------------------------------
    async def search_docs(
        self,
        query: Any,
        repository: str | None = None,
        file_type: str | None = None,
        limit: Any = 15,
        include_content: bool = True,
    ) -> SearchResponse:
        """Full-text search across every store of one or all collections."""
        prepared = self._prepare(query)
        collection = validate_collection(repository)
        limit = _validate_limit(limit, 15, 50)
        filters = _clean_filters(file_type=file_type)

        branches: List[Branch] = []
        for kind, collections, share in self._layout(collection, limit):
            adapter = self.adapters.by_kind(kind)
            run = partial(
                adapter.search_text,
                prepared,
                collections,
                filters,
                share,
                include_content=include_content,
            )
            branches.append((f"text:{kind}:{','.join(collections)}", run))

        LOGGER.info("search_docs %r across %d branches", prepared.original, len(branches))
        results = fuse(await self._run_branches(branches), limit)
        return SearchResponse(
            query=prepared.original,
            query_analyzed=prepared.expanded,
            method_used="text",
            results=results,
            acronyms_detected=dict(prepared.expansions),
            collection=collection.name if collection else None,
            recommendations=docs_recommendations(prepared),
        )

    async def semantic_search_docs(
        self,
        query: Any,
        repository: str | None = None,
        filter: Mapping[str, Any] | None = None,
        limit: Any = 10,
    ) -> SearchResponse:
        """Vector search across one or all collections; embedding failures propagate."""
        text = validate_query(query, max_chars=self.config.max_query_chars)
        collection = validate_collection(repository)
        limit = _validate_limit(limit, 10, 50)
        if filter is not None and not isinstance(filter, Mapping):
            raise ValidationError("filter must be an object of field/value pairs")
        filters = _clean_filters(**dict(filter or {}))

        vector = await self._embed(text)
        branches: List[Branch] = []
        for kind, collections, share in self._layout(collection, limit):
            adapter = self.adapters.by_kind(kind)
            run = partial(adapter.search_vector, vector, collections, filters, share)
            branches.append((f"vector:{kind}:{','.join(collections)}", run))

        LOGGER.info("semantic_search_docs %r across %d branches", text, len(branches))
        results = fuse(await self._run_branches(branches), limit)
        return SearchResponse(
            query=text,
            query_analyzed=text,
            method_used="semantic",
            results=results,
            collection=collection.name if collection else None,
        )

    async def _search_primary(
        self,
        *,
        label: str,
        kind: SourceKind,
        prepared: PreparedQuery,
        collection: Collection | None,
        search_type: Any,
        profile: MethodProfile,
        filters: Mapping[str, Any],
        limit: int,
        primary_share: float,
        doc_share: float,
    ) -> SearchResponse:
        """Shared body of the code and example tools.

        The primary store gets ``floor(primary_share * limit)`` rows; matching
        documentation gets ``ceil(doc_share * limit)`` unless a code collection
        was named.
        """
        if collection is None:
            primary_collections: Tuple[str, ...] = CODE_COLLECTIONS
        elif collection.is_code:
            primary_collections = (collection.name,)
        else:
            primary_collections = ()
        primary_limit = math.floor(round(primary_share * limit, 9))
        doc_limit = 0
        if collection is None or not collection.is_code:
            doc_limit = math.ceil(round(limit * doc_share, 9))
        doc_collections = (collection.name,) if collection is not None else DOC_COLLECTIONS

        method, vector, fallback = await self._choose_vector(prepared, search_type, profile)
        adapter = self.adapters.by_kind(kind)
        text_run = partial(_text_search, adapter, prepared, filters)

        branches: List[Branch] = []
        if method == "semantic":
            vector_run = partial(_vector_search, adapter, vector, filters)
            branches += self._per_collection(kind, primary_collections, primary_limit, "vector", vector_run)
        elif method == "hybrid":
            half = math.ceil(primary_limit / 2)
            vector_run = partial(_vector_search, adapter, vector, filters)
            branches += self._per_collection(kind, primary_collections, half, "vector", vector_run)
            branches += self._per_collection(kind, primary_collections, half, "text", text_run)
        else:
            branches += self._per_collection(kind, primary_collections, primary_limit, "text", text_run)

        if doc_limit > 0:
            docs = self.adapters.documentation
            branches.append(
                (
                    f"text:documentation:{label}",
                    partial(docs.search_text, prepared, doc_collections, {}, doc_limit),
                )
            )

        LOGGER.info("%s %r method=%s branches=%d", label, prepared.original, method, len(branches))
        results = fuse(await self._run_branches(branches), limit)
        return SearchResponse(
            query=prepared.original,
            query_analyzed=prepared.expanded,
            method_used=method,
            results=results,
            acronyms_detected=dict(prepared.expansions),
            collection=collection.name if collection else None,
            embedding_fallback=fallback,
        )

    async def search_code(
        self,
        query: Any,
        repository: str | None = None,
        search_type: Any = "auto",
        package_code: str | None = None,
        model_family: str | None = None,
        category: str | None = None,
        limit: Any = 10,
    ) -> SearchResponse:
        """Search code modules, with a share of documentation code references."""
        prepared = self._prepare(query)
        collection = validate_collection(repository)
        limit = _validate_limit(limit, 10, 50)
        filters = _clean_filters(package_code=package_code, model_family=model_family, category=category)

        response = await self._search_primary(
            label="search_code",
            kind="modules",
            prepared=prepared,
            collection=collection,
            search_type=search_type,
            profile=CODE_PROFILE,
            filters=filters,
            limit=limit,
            primary_share=MODULE_SHARE,
            doc_share=MODULE_DOC_SHARE,
        )
        response.recommendations = code_recommendations(prepared.original, response.results)
        return response

    async def search_examples(
        self,
        query: Any,
        repository: str | None = None,
        search_type: Any = "auto",
        complexity: str | None = None,
        model_type: str | None = None,
        workflow_type: str | None = None,
        limit: Any = 10,
    ) -> SearchResponse:
        """Search tutorials and notebooks, with a share of documentation examples."""
        prepared = self._prepare(query)
        collection = validate_collection(repository)
        limit = _validate_limit(limit, 10, 50)
        filters = _clean_filters(complexity=complexity, model_type=model_type, workflow_type=workflow_type)

        response = await self._search_primary(
            label="search_examples",
            kind="workflows",
            prepared=prepared,
            collection=collection,
            search_type=search_type,
            profile=EXAMPLES_PROFILE,
            filters=filters,
            limit=limit,
            primary_share=WORKFLOW_SHARE,
            doc_share=WORKFLOW_DOC_SHARE,
        )
        response.recommendations = example_recommendations(
            prepared.original, response.results, response.method_used
        )
        return response

    async def semantic_search_tutorials(
        self, query: Any, limit: Any = 5, similarity_threshold: Any = 0.0
    ) -> SearchResponse:
        """Vector search over tutorials; each code collection may fill the whole limit."""
        text = validate_query(query, max_chars=self.config.max_query_chars)
        limit = _validate_limit(limit, 5, 20)
        threshold = _validate_threshold(similarity_threshold)

        vector = await self._embed(text)
        workflows = self.adapters.workflows
        branches: List[Branch] = [
            (
                f"vector:workflows:{name}",
                partial(workflows.search_vector, vector, (name,), {}, limit, threshold=threshold),
            )
            for name in CODE_COLLECTIONS
        ]
        results = fuse(await self._run_branches(branches), limit)
        return SearchResponse(
            query=text,
            query_analyzed=text,
            method_used="semantic",
            results=results,
        )

    async def get_file_content(
        self,
        repository: Any,
        filepath: Any,
        page: Any = None,
        force_full: bool = False,
    ) -> FileContent:
        """Locate a file and return the requested page of its content."""
        if not isinstance(repository, str) or not repository.strip():
            raise ValidationError("Repository parameter is required")
        collection = get_collection(repository.strip())
        if not isinstance(filepath, str) or not filepath.strip():
            raise ValidationError("Filepath parameter is required and cannot be empty")
        if page is not None:
            if isinstance(page, bool):
                raise ValidationError("page must be a positive integer")
            try:
                page = int(page)
            except (TypeError, ValueError):
                raise ValidationError("page must be a positive integer") from None

        path = filepath.strip()
        locator = await asyncio.to_thread(self.resolver.resolve, collection, path)
        content = await asyncio.to_thread(self.paginator.load, locator, page, force_full=force_full)
        return FileContent(collection=collection.name, path=path, locator=locator, page=content)

    async def get_info(self, include_stats: bool = True) -> Dict[str, Any]:
        """Catalog of collections, optionally with row counts per store."""
        stats = await asyncio.to_thread(self.store.get_stats) if include_stats else None
        return {
            "collections": [
                {"name": c.name, "label": c.label, "group": c.group} for c in COLLECTIONS.values()
            ],
            "stats": stats,
            "embedding": {
                "provider": self.config.embedding_provider,
                "model": self.config.embedding_model,
                "configured": self.embedder is not None,
            },
        }


def _text_search(adapter, prepared, filters, collections, limit):
    return adapter.search_text(prepared, collections, filters, limit)


def _vector_search(adapter, vector, filters, collections, limit):
    return adapter.search_vector(vector, collections, filters, limit)
