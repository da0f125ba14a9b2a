"""Small text helpers shared by the result formatters."""

from __future__ import annotations

from typing import Sequence

CODE_FENCE_LANGUAGES = {
    "py": "python",
    "ts": "typescript",
    "js": "javascript",
    "f90": "fortran",
    "json": "json",
    "yaml": "yaml",
    "yml": "yml",
    "toml": "toml",
    "txt": "txt",
    "c": "c",
    "cpp": "cpp",
    "h": "h",
}


def truncate(text: str | None, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` and mark the cut with an ellipsis."""
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def join_preview(items: Sequence[str] | None, max_items: int) -> str:
    """Comma-join the first ``max_items`` entries, with ``...`` when more exist."""
    if not items:
        return ""
    joined = ", ".join(str(item) for item in items[:max_items])
    return joined + ("..." if len(items) > max_items else "")


def single_line(text: str | None) -> str:
    return " ".join((text or "").split())


def file_extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def code_fence_language(path: str) -> str | None:
    """Fence language for a file, or ``None`` when the content goes in verbatim.

    Markdown and unknown extensions are not fenced.
    """
    return CODE_FENCE_LANGUAGES.get(file_extension(path))
