"""Merging of per-branch result lists."""

from __future__ import annotations

from typing import Iterable, List, Sequence, Set, Tuple

from mfsearch.models import SearchResult


def split_limit(total: int, shares: int) -> List[int]:
    """Apportion ``total`` across ``shares`` branches.

    Every share but the last is rounded up and the last is rounded down, so
    ``split_limit(10, 3) == [4, 4, 3]`` and ``split_limit(5, 2) == [3, 2]``.
    The parts may exceed ``total`` by at most ``shares - 1``; the fused list is
    truncated afterwards.
    """
    if shares <= 0:
        return []
    if total <= 0:
        return [0] * shares
    quotient, remainder = divmod(total, shares)
    upper = quotient + (1 if remainder else 0)
    return [upper] * (shares - 1) + [quotient]


def fuse(batches: Iterable[Sequence[SearchResult]], limit: int) -> List[SearchResult]:
    """Concatenate in branch order, drop repeated ``(collection, path)`` keys,
    sort by descending score (stable) and keep the first ``limit``."""
    seen: Set[Tuple[str, str]] = set()
    merged: List[SearchResult] = []
    for batch in batches:
        for result in batch:
            if result.key in seen:
                continue
            seen.add(result.key)
            merged.append(result)
    merged.sort(key=lambda r: r.score, reverse=True)
    return merged[: max(limit, 0)]
