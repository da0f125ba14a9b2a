"""Tool registry: argument parsing, dispatch and error rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence, Tuple

from mfsearch.errors import MfsearchError, NotFoundError, ValidationError
from mfsearch.search.engine import SearchEngine
from mfsearch.search.formatting import (
    format_file_content,
    format_info,
    format_search_results,
    format_structured,
    format_tutorials,
)

LOGGER = logging.getLogger(__name__)

Handler = Callable[[SearchEngine, Mapping[str, Any]], Awaitable[str]]


@dataclass(frozen=True, slots=True)
class Tool:
    name: str
    description: str
    handler: Handler


# (argument, result field, default)
CODE_DISPLAY_OPTIONS: Tuple[Tuple[str, str, bool], ...] = (
    ("include_scenarios", "user_scenarios", False),
    ("include_concepts", "related_concepts", False),
    ("include_source", "source_snippet", False),
    ("include_github", "github_url", True),
)
EXAMPLE_DISPLAY_OPTIONS: Tuple[Tuple[str, str, bool], ...] = (
    ("include_use_cases", "use_cases", False),
    ("include_prerequisites", "prerequisites", False),
    ("include_purpose", "workflow_purpose", False),
    ("include_tags", "tags", False),
)


def parse_bool(value: Any, default: bool) -> bool:
    """Accept JSON booleans and the usual string spellings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    if isinstance(value, int):
        return bool(value)
    raise ValidationError(f"Expected a boolean, got {value!r}")


def parse_display(
    args: Mapping[str, Any], options: Sequence[Tuple[str, str, bool]]
) -> Tuple[List[str], List[str]]:
    """Split display toggles into (requested option names, hidden result fields)."""
    active: List[str] = []
    hidden: List[str] = []
    for name, result_field, default in options:
        if parse_bool(args.get(name), default):
            active.append(name.removeprefix("include_"))
        else:
            hidden.append(result_field)
    return active, hidden


async def _search_docs(engine: SearchEngine, args: Mapping[str, Any]) -> str:
    response = await engine.search_docs(
        args.get("query"),
        repository=args.get("repository"),
        file_type=args.get("file_type"),
        limit=args.get("limit", 15),
        include_content=parse_bool(args.get("include_content"), True),
    )
    return format_search_results(response)


async def _semantic_search_docs(engine: SearchEngine, args: Mapping[str, Any]) -> str:
    response = await engine.semantic_search_docs(
        args.get("query"),
        repository=args.get("repository"),
        filter=args.get("filter"),
        limit=args.get("limit", 10),
    )
    return format_search_results(response, semantic=True)


async def _search_code(engine: SearchEngine, args: Mapping[str, Any]) -> str:
    active, hidden = parse_display(args, CODE_DISPLAY_OPTIONS)
    response = await engine.search_code(
        args.get("query"),
        repository=args.get("repository"),
        search_type=args.get("search_type", "auto"),
        package_code=args.get("package_code"),
        model_family=args.get("model_family"),
        category=args.get("category"),
        limit=args.get("limit", 10),
    )
    return format_structured(response, "code", hidden=hidden, display_options=active)


async def _search_examples(engine: SearchEngine, args: Mapping[str, Any]) -> str:
    active, hidden = parse_display(args, EXAMPLE_DISPLAY_OPTIONS)
    response = await engine.search_examples(
        args.get("query"),
        repository=args.get("repository"),
        search_type=args.get("search_type", "auto"),
        complexity=args.get("complexity"),
        model_type=args.get("model_type"),
        workflow_type=args.get("workflow_type"),
        limit=args.get("limit", 10),
    )
    return format_structured(response, "examples", hidden=hidden, display_options=active)


async def _semantic_search_tutorials(engine: SearchEngine, args: Mapping[str, Any]) -> str:
    limit = 5 if args.get("limit") is None else args["limit"]
    threshold = 0.0 if args.get("similarity_threshold") is None else args["similarity_threshold"]
    response = await engine.semantic_search_tutorials(
        args.get("query"), limit=limit, similarity_threshold=threshold
    )
    return format_tutorials(response, limit=int(limit), threshold=float(threshold))


async def _get_file_content(engine: SearchEngine, args: Mapping[str, Any]) -> str:
    file = await engine.get_file_content(
        args.get("repository"),
        args.get("filepath"),
        page=args.get("page"),
        force_full=parse_bool(args.get("force_full"), False),
    )
    return format_file_content(file)


async def _get_info(engine: SearchEngine, args: Mapping[str, Any]) -> str:
    info = await engine.get_info(include_stats=parse_bool(args.get("include_stats"), True))
    return format_info(info, ((tool.name, tool.description) for tool in TOOLS.values()))


TOOLS: Dict[str, Tool] = {
    tool.name: tool
    for tool in (
        Tool(
            "search_docs",
            "Full-text search across documentation, code modules and tutorials with acronym expansion.",
            _search_docs,
        ),
        Tool(
            "semantic_search_docs",
            "Embedding similarity search across documentation, code modules and tutorials.",
            _semantic_search_docs,
        ),
        Tool(
            "search_code",
            "Search FloPy and pyEMU modules; returns JSON with search metadata. "
            "Optional fields: include_scenarios, include_concepts, include_source, include_github.",
            _search_code,
        ),
        Tool(
            "search_examples",
            "Search FloPy tutorials and pyEMU notebooks; returns JSON with search metadata. "
            "Optional fields: include_use_cases, include_prerequisites, include_purpose, include_tags.",
            _search_examples,
        ),
        Tool(
            "semantic_search_tutorials",
            "Find tutorials conceptually similar to a query.",
            _semantic_search_tutorials,
        ),
        Tool(
            "get_file_content",
            "Retrieve a file by repository and path, one page at a time for large files.",
            _get_file_content,
        ),
        Tool(
            "get_info",
            "Describe the available collections, their sizes and the tools.",
            _get_info,
        ),
    )
}


def get_tool(name: str) -> Tool:
    try:
        return TOOLS[name]
    except KeyError:
        raise NotFoundError(f"Unknown tool '{name}'. Available tools: {', '.join(TOOLS)}") from None


async def invoke_tool(engine: SearchEngine, name: str, arguments: Mapping[str, Any] | None = None) -> str:
    """Run a tool and return its text; failures come back as ``Error: ...`` text."""
    try:
        tool = get_tool(name)
        return await tool.handler(engine, dict(arguments or {}))
    except MfsearchError as exc:
        LOGGER.info("Tool %s failed: %s", name, exc)
        return f"Error: {exc}"
    except Exception as exc:
        LOGGER.exception("Unexpected failure in tool %s", name)
        return f"Error: {exc}"
