"""Rendering of search responses and file content for tool callers."""

from __future__ import annotations

import json
from typing import Any, Collection, Dict, Iterable, List, Sequence, Tuple

from mfsearch.models import FileContent, SearchResponse, SearchResult
from mfsearch.utils.text import (
    code_fence_language,
    file_extension,
    join_preview,
    single_line,
    truncate,
)

REMINDER = (
    "\n**IMPORTANT REMINDER**: These are only previews and snippets. For complete, accurate "
    "file content without truncation, always use the `get_file_content` tool with the exact "
    "filepath shown above.\n"
)

_LABELS: Tuple[Tuple[str, str], ...] = (
    ("module_name", "Module"),
    ("package_code", "Package"),
    ("model_family", "Model Family"),
    ("category", "Category"),
    ("model_type", "Model Type"),
    ("workflow_type", "Workflow Type"),
    ("complexity", "Complexity"),
)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _summary(results: Sequence[SearchResult], score_label: str) -> List[str]:
    average = sum(r.score for r in results) / len(results) if results else 0.0
    repos = list(dict.fromkeys(r.collection for r in results))
    file_types = list(dict.fromkeys(r.metadata.get("file_type") for r in results if r.metadata.get("file_type")))
    counts = {kind: sum(1 for r in results if r.source_kind == kind) for kind in ("documentation", "modules", "workflows")}
    lines = [
        "Summary:",
        f"- Average {score_label}: {average:.3f}",
        f"- Sources: {counts['documentation']} docs, {counts['modules']} modules, {counts['workflows']} workflows",
        f"- Repositories: {', '.join(repos)}",
    ]
    if file_types:
        lines.append(f"- File types: {', '.join(file_types)}")
    return lines


def _result_lines(index: int, result: SearchResult, score_label: str) -> List[str]:
    meta = result.metadata
    lines = [f"{index}. **{result.path}** ({result.collection} - {result.source_kind})"]
    for key, label in _LABELS:
        if meta.get(key):
            lines.append(f"   {label}: {meta[key]}")
    if meta.get("packages_used"):
        lines.append(f"   Packages: {join_preview(meta['packages_used'], 5)}")
    if meta.get("tags"):
        lines.append(f"   Tags: {join_preview(meta['tags'], 5)}")
    if result.title:
        lines.append(f"   Title: {result.title}")
    if meta.get("summary"):
        lines.append(f"   Summary: {truncate(meta['summary'], 200)}")
    lines.append(f"   {score_label.capitalize()}: {result.score:.3f}")
    if result.snippet:
        lines.append(f"   Snippet: {single_line(result.snippet)}")
    elif meta.get("content_preview"):
        lines.append(f"   Preview: {single_line(meta['content_preview'])}")
    if meta.get("user_scenarios"):
        lines.append(f"   Use Cases: {join_preview(meta['user_scenarios'], 2)}")
    if meta.get("related_concepts"):
        lines.append(f"   Concepts: {join_preview(meta['related_concepts'], 3)}")
    return lines


def _tip(recommendation: Dict[str, str]) -> str:
    return (
        f"Tip: try `{recommendation['try_also']}` with \"{recommendation['suggested_query']}\". "
        f"{recommendation['reason']}."
    )


def format_search_results(response: SearchResponse, *, semantic: bool = False) -> str:
    """Text block with summary statistics followed by one entry per result."""
    where = f" in {response.collection}" if response.collection else ""
    if not response.results:
        text = f'No results found for "{response.query}"{where}'
        if response.recommendations:
            text += "\n" + _tip(response.recommendations)
        return text

    score_label = "similarity" if semantic else "relevance"
    kind = "semantic result" if semantic else "result"
    lines = [f'Found {_plural(response.total_results, kind)} for "{response.query}"{where}', ""]
    lines += _summary(response.results, score_label)
    if semantic:
        lines.append("- Search method: vector_similarity")
    if response.acronyms_detected:
        expanded = ", ".join(f"{k} = {v}" for k, v in response.acronyms_detected.items())
        lines.append(f"- Acronyms expanded: {expanded}")
    if response.recommendations:
        lines.append("- " + _tip(response.recommendations))
    lines += ["", "Results:"]
    for index, result in enumerate(response.results, start=1):
        lines += _result_lines(index, result, score_label)
        lines.append("")
    return "\n".join(lines) + REMINDER


def _result_payload(result: SearchResult, hidden: Collection[str] = ()) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "filepath": result.path,
        "repository": result.collection,
        "search_source": result.source_kind,
        "title": result.title,
        "score": round(result.score, 4),
    }
    if result.snippet:
        payload["snippet"] = result.snippet
    for key, value in result.metadata.items():
        if value in (None, "", []) or key in payload or key in hidden:
            continue
        payload[key] = value
    return payload


def format_structured(
    response: SearchResponse,
    coverage: str,
    *,
    hidden: Collection[str] = (),
    display_options: Sequence[str] | None = None,
) -> str:
    """JSON document with results, search metadata and recommendations.

    Metadata keys listed in ``hidden`` are left out of every result;
    ``display_options`` names the optional field groups that were requested.
    """
    metadata: Dict[str, Any] = {
        "method_used": response.method_used,
        "total_results": response.total_results,
        "coverage": coverage,
        "query_analyzed": response.query_analyzed,
        "embedding_fallback": response.embedding_fallback,
    }
    if response.acronyms_detected:
        metadata["acronyms_detected"] = dict(response.acronyms_detected)
    if display_options is not None:
        metadata["display_options"] = list(display_options)
    document: Dict[str, Any] = {
        "results": [_result_payload(r, hidden) for r in response.results],
        "search_metadata": metadata,
    }
    if response.recommendations:
        document["recommendations"] = response.recommendations
    return json.dumps(document, indent=2, ensure_ascii=False)


def format_tutorials(response: SearchResponse, *, limit: int, threshold: float) -> str:
    results = response.results
    if not results:
        return (
            f'No semantically similar tutorials found for query: "{response.query}"\n'
            f"Try lowering the similarity threshold (currently {threshold}) or using different terms."
        )

    lines = [f'Found {_plural(len(results), "semantically similar tutorial")} for "{response.query}"', ""]
    for index, result in enumerate(results, start=1):
        meta = result.metadata
        lines.append(f"{index}. **{result.title or result.path}** ({result.collection})")
        lines.append(f"   File: {result.path}")
        if meta.get("complexity"):
            lines.append(f"   Complexity: {meta['complexity']}")
        workflow_type = meta.get("model_type") or meta.get("workflow_type")
        if workflow_type:
            lines.append(f"   Type: {workflow_type}")
        if meta.get("packages_used"):
            lines.append(f"   Packages: {join_preview(meta['packages_used'], 5)}")
        if meta.get("description"):
            lines.append(f"   Description: {truncate(meta['description'], 200)}")
        lines.append(f"   Similarity: {result.score:.3f}")
        lines.append("")

    average = sum(r.score for r in results) / len(results)
    lines += [
        "Semantic Search Info:",
        f'- Query: "{response.query}"',
        f"- Results found: {len(results)}/{limit}",
        f"- Similarity threshold: {threshold}",
        f"- Average similarity: {average:.3f}",
    ]
    return "\n".join(lines) + "\n" + REMINDER


def _call(repository: str, filepath: str, **extra: Any) -> str:
    args = [f'repository="{repository}"', f'filepath="{filepath}"']
    args += [f"{key}={str(value).lower() if isinstance(value, bool) else value}" for key, value in extra.items()]
    return f"`get_file_content({', '.join(args)})`"


def format_file_content(file: FileContent) -> str:
    """Header, metadata, navigation hints for paginated files, then the content."""
    page = file.page
    meta = file.locator.metadata
    size = file.locator.size_hint
    filename = file.path.rsplit("/", 1)[-1]
    extension = file_extension(file.path)

    lines = [f"# File Content: {file.path}" + (f" (Part {page.page}/{page.total_pages})" if page.paginated else ""), ""]
    if page.paginated:
        lines.append(
            f"**Large file notice:** This file is {size:,} characters. Showing part {page.page} "
            f"of {page.total_pages} ({page.actual_length:,} characters loaded)."
        )
        if page.page < page.total_pages:
            lines.append(f"- **Next part:** {_call(file.collection, file.path, page=page.page + 1)}")
        if page.page > 1:
            lines.append(f"- **Previous part:** {_call(file.collection, file.path, page=page.page - 1)}")
        lines.append(
            f"- **Force full file:** {_call(file.collection, file.path, force_full=True)} "
            "(may exceed token limits)"
        )
        lines.append("")

    lines += [
        f"**Repository:** {file.collection}",
        f"**File:** {filename}",
        f"**Type:** {meta.get('file_type') or extension or 'unknown'}",
        f"**Size:** {size:,} characters",
    ]
    for key, label in (
        ("created_at", "Created"),
        ("title", "Title"),
        ("summary", "Summary"),
        ("purpose", "Purpose"),
        ("technical_level", "Technical Level"),
        ("complexity", "Complexity"),
        ("workflow_type", "Workflow Type"),
        ("model_type", "Model Type"),
        ("workflow_purpose", "Workflow Purpose"),
        ("package_code", "Package Code"),
        ("model_family", "Model Family"),
        ("category", "Category"),
    ):
        if meta.get(key):
            lines.append(f"**{label}:** {meta[key]}")
    for key, label in (
        ("key_concepts", "Key Concepts"),
        ("packages_used", "Packages Used"),
    ):
        if meta.get(key):
            lines.append(f"**{label}:** {', '.join(meta[key])}")
    if meta.get("use_cases"):
        lines.append("**Use Cases:**")
        lines += [f"  - {case}" for case in meta["use_cases"]]
    lines += ["", "---", ""]

    body = page.content
    if not body:
        lines.append("*No content available for this file.*")
        return "\n".join(lines)
    if page.paginated and page.page == 1 and page.total_pages > 1:
        lines.append(
            f"**Reminder:** This is only part 1 of {page.total_pages}. To understand the full "
            "context, retrieve the remaining parts using the commands shown above."
        )
        lines.append("")
    language = code_fence_language(file.path)
    if language:
        lines.append(f"```{language}\n{body}\n```")
    else:
        lines.append(body)
    return "\n".join(lines)


def format_info(info: Dict[str, Any], tools: Iterable[Tuple[str, str]]) -> str:
    lines = [
        "# mfsearch",
        "",
        "Search and retrieval over MODFLOW and PEST documentation, FloPy and pyEMU code, "
        "and their tutorials.",
        "",
        "## Collections",
    ]
    stats = info.get("stats")
    for entry in info["collections"]:
        line = f"- **{entry['name']}** ({entry['label']}, {entry['group']})"
        counts = (stats or {}).get(entry["name"])
        if stats is not None:
            if counts:
                parts = [
                    f"{counts[table]} {table}"
                    for table in ("documents", "modules", "workflows")
                    if table in counts
                ]
                line += ": " + ", ".join(parts)
            else:
                line += ": empty"
        lines.append(line)

    lines += ["", "## Tools"]
    lines += [f"- `{name}`: {description}" for name, description in tools]

    embedding = info.get("embedding") or {}
    if embedding:
        lines += [
            "",
            "## Embeddings",
            f"- Provider: {embedding.get('provider')}",
            f"- Model: {embedding.get('model')}",
        ]
    return "\n".join(lines)
