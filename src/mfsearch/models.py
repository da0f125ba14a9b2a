"""Core mfsearch data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence

SourceKind = Literal["documentation", "modules", "workflows"]
SearchMethod = Literal["text", "semantic", "hybrid"]
MatchMode = Literal["exact", "prefixPattern"]


@dataclass(slots=True)
class Document:
    """One documentation file."""

    path: str
    collection: str
    kind: str
    title: str
    summary: str = ""
    body: str = ""
    key_concepts: List[str] = field(default_factory=list)
    technical_level: Optional[str] = None
    purpose: Optional[str] = None
    embedding: Optional[Sequence[float]] = None
    created_at: Optional[str] = None


@dataclass(slots=True)
class ModuleRecord:
    """One code module. ``family`` holds the model family (flopy) or category (pyemu)."""

    path: str
    collection: str
    module_name: str
    purpose: str = ""
    relative_path: Optional[str] = None
    package_code: Optional[str] = None
    family: Optional[str] = None
    docstring: str = ""
    related_concepts: List[str] = field(default_factory=list)
    scenarios: List[str] = field(default_factory=list)
    embedding_text: str = ""
    source_code: str = ""
    github_url: Optional[str] = None
    embedding: Optional[Sequence[float]] = None


@dataclass(slots=True)
class WorkflowRecord:
    """One tutorial script or notebook."""

    path: str
    collection: str
    title: str
    description: str = ""
    complexity: Optional[str] = None
    workflow_type: Optional[str] = None
    packages_used: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    purpose: str = ""
    use_cases: List[str] = field(default_factory=list)
    prerequisites: List[str] = field(default_factory=list)
    embedding_text: str = ""
    source_code: str = ""
    embedding: Optional[Sequence[float]] = None


@dataclass(slots=True)
class SearchResult:
    """Unified projection of a row from any store adapter."""

    path: str
    collection: str
    source_kind: SourceKind
    score: float
    title: Optional[str] = None
    snippet: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.collection, self.path)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class FileLocator:
    """Store-specific address of a file, found without loading its content."""

    store: SourceKind
    match_mode: MatchMode
    resolved_key: str
    size_hint: int
    collection: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PageWindow:
    requested_page: int
    total_pages: int
    chunk_size: int
    content_length: int

    @property
    def paginated(self) -> bool:
        return self.total_pages > 1

    @property
    def start(self) -> int:
        return (self.requested_page - 1) * self.chunk_size


@dataclass(slots=True)
class PageContent:
    content: str
    page: int
    total_pages: int
    actual_length: int
    paginated: bool


@dataclass(slots=True)
class FileContent:
    """Resolved file with one page of its content."""

    collection: str
    path: str
    locator: FileLocator
    page: PageContent


@dataclass(slots=True)
class SearchResponse:
    query: str
    query_analyzed: str
    method_used: SearchMethod
    results: List[SearchResult]
    acronyms_detected: Dict[str, str] = field(default_factory=dict)
    collection: Optional[str] = None
    embedding_fallback: bool = False
    recommendations: Optional[Dict[str, str]] = None

    @property
    def total_results(self) -> int:
        return len(self.results)
