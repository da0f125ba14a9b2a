"""Error taxonomy shared by the search engine and its surfaces."""

from __future__ import annotations


class MfsearchError(Exception):
    """Base class for errors that are rendered to the caller as plain text."""


class ValidationError(MfsearchError):
    """Invalid tool arguments: empty or oversized query, bad limit, unknown collection."""


class NotFoundError(MfsearchError):
    """No file or no content for the requested key."""


class EmbeddingUnavailableError(MfsearchError):
    """The embedding call failed or no provider is configured."""


class PaginationRangeError(MfsearchError):
    """Requested page lies outside ``[1, total_pages]``."""

    def __init__(self, page: int, total_pages: int) -> None:
        self.page = page
        self.total_pages = total_pages
        super().__init__(
            f"Invalid page number {page}. File has {total_pages} pages. "
            f"Please specify a page between 1 and {total_pages}."
        )


class StoreQueryError(MfsearchError):
    """Wrapped failure of the underlying datastore."""
