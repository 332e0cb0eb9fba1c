"""Base content store class."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from contentsync.core.logging import ContextualLogger
from contentsync.core.logging import logger as default_logger
from contentsync.platform.entities.content import EmbeddedRecord


class WriteResult(BaseModel):
    """Rows a store acknowledged for one upsert call."""

    inserted: int = 0
    updated: int = 0

    @property
    def acknowledged(self) -> int:
        """Rows the store confirmed as written."""
        return self.inserted + self.updated


class BaseContentStore(ABC):
    """Interface of the vector-capable store that receives embedded records."""

    def __init__(self):
        """Initialize the base store."""
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self):
        """Get the logger for this store, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this store."""
        self._logger = logger

    @abstractmethod
    async def upsert(self, rows: List[EmbeddedRecord], conflict_key: str = "id") -> WriteResult:
        """Insert or overwrite rows keyed by ``conflict_key``.

        Args:
            rows: Embedded records to write
            conflict_key: Column identifying a row across writes

        Returns:
            WriteResult with inserted and updated counts

        Raises:
            Exception: On any write failure; nothing is retried here
        """
        pass

    @abstractmethod
    async def delete_stale(self, before: datetime) -> int:
        """Delete rows whose ``updated_at`` is older than ``before``.

        Returns:
            Number of deleted rows
        """
        pass

    @abstractmethod
    async def count_missing_embeddings(self) -> int:
        """Count rows stored without an embedding."""
        pass

    async def close(self) -> None:
        """Release connections held by the store."""
        pass
