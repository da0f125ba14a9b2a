"""Locating a file by path across the stores of one collection."""

from __future__ import annotations

import logging
from typing import List, Tuple

from mfsearch.catalog import Collection
from mfsearch.errors import NotFoundError, StoreQueryError
from mfsearch.index.adapters import AdapterSet
from mfsearch.models import FileLocator, MatchMode, SourceKind

LOGGER = logging.getLogger(__name__)

Strategy = Tuple[SourceKind, MatchMode]


def primary_store(collection: Collection, filepath: str) -> SourceKind:
    """Guess which table a code-collection path most likely lives in."""
    if f"/{collection.name}/" in filepath or (
        filepath.endswith(".py") and "Notebooks/" not in filepath and ".ipynb" not in filepath
    ):
        return "modules"
    if "Notebooks/" in filepath or filepath.endswith(".ipynb") or "example" in filepath:
        return "workflows"
    return "documentation"


def plan_strategies(collection: Collection, filepath: str) -> List[Strategy]:
    """Ordered lookups for ``filepath``; the first one that hits wins."""
    if not collection.is_code:
        return [("documentation", "exact"), ("documentation", "prefixPattern")]

    primary = primary_store(collection, filepath)
    strategies: List[Strategy] = [(primary, "exact")]
    if primary == "modules":
        strategies.append(("workflows", "exact"))
    elif primary == "workflows":
        strategies.append(("modules", "exact"))
    else:
        strategies.extend([("modules", "exact"), ("workflows", "exact")])
    strategies.extend([("modules", "prefixPattern"), ("workflows", "prefixPattern")])
    if primary != "documentation":
        strategies.append(("documentation", "exact"))
    return strategies


class FileResolver:
    """Runs lookup strategies in order and returns the first locator found.

    Only metadata is read here; content is left to the paginator.
    """

    def __init__(self, adapters: AdapterSet) -> None:
        self.adapters = adapters

    def resolve(self, collection: Collection, filepath: str) -> FileLocator:
        path = filepath.strip()
        strategies = plan_strategies(collection, path)
        for store, match_mode in strategies:
            adapter = self.adapters.by_kind(store)
            try:
                locator = adapter.find_metadata(collection.name, path, match_mode)
            except StoreQueryError as exc:
                LOGGER.warning("Lookup %s/%s in %s failed: %s", store, match_mode, collection.name, exc)
                continue
            if locator is not None:
                LOGGER.debug("Resolved %s via %s/%s -> %s", path, store, match_mode, locator.resolved_key)
                return locator

        LOGGER.warning("File %s not found in %s", path, collection.name)
        raise NotFoundError(
            f'File not found: "{path}" in repository "{collection.name}". '
            f"Searched {len(strategies)} strategies; verify the exact path using the search tools."
        )
