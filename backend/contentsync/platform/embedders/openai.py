"""OpenAI dense embedder using text-embedding-3-small."""

import math
from typing import List, Optional

from openai import AsyncOpenAI

from contentsync.core.config import settings
from contentsync.core.exceptions import ConfigurationError
from contentsync.platform.sync.exceptions import EmbeddingBatchError

from ._base import BaseEmbedder


class OpenAIEmbedder(BaseEmbedder):
    """OpenAI dense embedder.

    Features:
    - One request per batch, returned in input order
    - Response validation (count, dimensions, finite values)
    - No client-side retries: the pipeline's retry engine owns backoff
    """

    MAX_BATCH_SIZE = 2048  # OpenAI limit per request

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize the OpenAI embedder.

        Args:
            api_key: OpenAI API key, defaults to settings
            model: Embedding model, defaults to settings
            dimensions: Expected vector length, defaults to settings
            client: Preconfigured client (mainly for tests)

        Raises:
            ConfigurationError: If no API key is available and no client is given
        """
        super().__init__()
        self.model = model or settings.OPENAI_EMBEDDING_MODEL
        self._dimensions = dimensions or settings.EMBEDDING_DIMENSIONS

        if client is None:
            api_key = api_key or settings.OPENAI_API_KEY
            if not api_key:
                raise ConfigurationError(
                    "OPENAI_API_KEY required for embeddings.",
                    missing_env_vars=["OPENAI_API_KEY"],
                )
            client = AsyncOpenAI(api_key=api_key, timeout=60.0, max_retries=0)
        self._client = client

    @property
    def dimensions(self) -> int:
        """Configured vector length."""
        return self._dimensions

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts in a single request.

        Args:
            texts: Texts to embed (at most ``MAX_BATCH_SIZE``)

        Returns:
            One vector per text, in input order

        Raises:
            EmbeddingBatchError: If the response does not match the request
            openai.OpenAIError: On API failures
        """
        if not texts:
            return []
        if len(texts) > self.MAX_BATCH_SIZE:
            raise ValueError(
                f"Batch of {len(texts)} texts exceeds the {self.MAX_BATCH_SIZE} text limit"
            )

        response = await self._client.embeddings.create(
            input=texts,
            model=self.model,
            encoding_format="float",
        )

        # Sort by index, order is not guaranteed by the API contract
        data = sorted(response.data, key=lambda item: item.index)
        embeddings = [item.embedding for item in data]

        if len(embeddings) != len(texts):
            raise EmbeddingBatchError(
                f"OpenAI returned {len(embeddings)} embeddings for {len(texts)} texts"
            )
        for position, embedding in enumerate(embeddings):
            if len(embedding) != self._dimensions:
                raise EmbeddingBatchError(
                    f"OpenAI returned a {len(embedding)}-dim vector at position {position}, "
                    f"expected {self._dimensions}"
                )
            if not all(math.isfinite(x) for x in embedding):
                raise EmbeddingBatchError(
                    f"OpenAI returned non-finite values at position {position}"
                )

        self.logger.debug(f"Embedded {len(texts)} texts with {self.model}")
        return embeddings

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()
