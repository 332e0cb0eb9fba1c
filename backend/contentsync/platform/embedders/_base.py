"""Base embedder interface for all embedder implementations."""

from abc import ABC, abstractmethod
from typing import List, Optional

from contentsync.core.logging import ContextualLogger
from contentsync.core.logging import logger as default_logger


class BaseEmbedder(ABC):
    """Base class for embedding provider clients.

    One ``embed_many`` call maps to one provider request. Retries and partial
    failure handling belong to the caller.
    """

    def __init__(self):
        """Initialize the base embedder."""
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self):
        """Get the logger for this embedder, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this embedder."""
        self._logger = logger

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector this embedder returns."""
        pass

    @abstractmethod
    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Embed batch of texts.

        Args:
            texts: List of text strings to embed (never empty)

        Returns:
            List of embeddings (exactly len(texts), in input order)

        Raises:
            EmbeddingBatchError: If the provider response is malformed
            Exception: Provider errors, unchanged, for the error classifier
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the embedder."""
        pass
