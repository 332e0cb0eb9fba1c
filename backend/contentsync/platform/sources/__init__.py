"""Content sources and the paginated fetcher."""

from .contentstack import ContentSourceError, ContentstackSource
from .fetcher import FailedPair, FetchReport, PaginatedSourceFetcher

__all__ = [
    "ContentSourceError",
    "ContentstackSource",
    "FailedPair",
    "FetchReport",
    "PaginatedSourceFetcher",
]
