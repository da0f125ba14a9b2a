"""Page-bounded content delivery for oversized files."""

from __future__ import annotations

import logging
import math

from mfsearch.errors import NotFoundError, PaginationRangeError
from mfsearch.index.adapters import AdapterSet
from mfsearch.models import FileLocator, PageContent, PageWindow

LOGGER = logging.getLogger(__name__)

SAFE_CHUNK = 70_000


def needs_pagination(size: int, *, force_full: bool = False, chunk_size: int = SAFE_CHUNK) -> bool:
    return size > chunk_size and not force_full


def plan_window(size: int, page: int | None, *, chunk_size: int = SAFE_CHUNK) -> PageWindow:
    """Validate ``page`` against the number of pages ``size`` splits into."""
    total_pages = max(1, math.ceil(size / chunk_size))
    requested = 1 if page is None else int(page)
    if requested < 1 or requested > total_pages:
        raise PaginationRangeError(requested, total_pages)
    return PageWindow(
        requested_page=requested,
        total_pages=total_pages,
        chunk_size=chunk_size,
        content_length=size,
    )


class ContentPaginator:
    """Loads either the whole file or exactly one ``SAFE_CHUNK`` window of it."""

    def __init__(self, adapters: AdapterSet, *, chunk_size: int = SAFE_CHUNK) -> None:
        self.adapters = adapters
        self.chunk_size = chunk_size

    def load(self, locator: FileLocator, page: int | None = None, *, force_full: bool = False) -> PageContent:
        adapter = self.adapters.by_kind(locator.store)
        size = locator.size_hint

        if not needs_pagination(size, force_full=force_full, chunk_size=self.chunk_size):
            content = adapter.read_content(locator)
            if content is None:
                raise NotFoundError(f"No content found for {locator.collection}/{locator.resolved_key}")
            return PageContent(
                content=content,
                page=1,
                total_pages=1,
                actual_length=len(content),
                paginated=False,
            )

        window = plan_window(size, page, chunk_size=self.chunk_size)
        LOGGER.info(
            "Loading page %d/%d of %s (%d chars)",
            window.requested_page,
            window.total_pages,
            locator.resolved_key,
            size,
        )
        content = adapter.read_content(locator, window.start, window.chunk_size)
        if content is None:
            raise NotFoundError(f"No content found for {locator.collection}/{locator.resolved_key}")
        return PageContent(
            content=content,
            page=window.requested_page,
            total_pages=window.total_pages,
            actual_length=len(content),
            paginated=True,
        )
