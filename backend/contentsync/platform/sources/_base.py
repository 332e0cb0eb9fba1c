"""Base content source class."""

from abc import ABC, abstractmethod
from typing import List, Optional

from contentsync.core.logging import ContextualLogger
from contentsync.core.logging import logger as default_logger
from contentsync.platform.entities.content import ContentCategory, RecordPage


class BaseContentSource(ABC):
    """Interface of the upstream content source.

    Implementations must raise errors the classifier can categorize: either
    exceptions carrying ``status_code`` / ``error_code``, or the HTTP library's
    own transport exceptions.
    """

    def __init__(self):
        """Initialize the base source."""
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self):
        """Get the logger for this source, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this source."""
        self._logger = logger

    @abstractmethod
    async def list_categories(self) -> List[ContentCategory]:
        """List every content category the source knows about."""
        pass

    @abstractmethod
    async def list_records(
        self, category: str, locale: str, limit: int, skip: int
    ) -> RecordPage:
        """Fetch one page of raw records for a (category, locale) pair.

        Args:
            category: Category uid
            locale: Locale code
            limit: Maximum records to return
            skip: Records to skip from the start

        Returns:
            RecordPage with the records and the pair's total count
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the source."""
        pass
