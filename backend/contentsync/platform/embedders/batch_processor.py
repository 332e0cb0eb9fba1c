"""Batch embedding of canonical records.

Records are embedded in fixed-size batches, one provider call per batch under
the retry engine. A batch that still fails after its retries is dropped: its
records get no embedding and are left out of the result, while the remaining
batches carry on.
"""

import asyncio
from typing import List, Optional

from pydantic import ValidationError

from contentsync.core.config import settings
from contentsync.core.logging import ContextualLogger
from contentsync.core.logging import logger as default_logger
from contentsync.platform.embedders._base import BaseEmbedder
from contentsync.platform.entities.content import CanonicalRecord, EmbeddedRecord
from contentsync.platform.sync.retry_helpers import (
    RetryPolicy,
    categorize_error,
    retry_with_policy,
)
from contentsync.platform.transformers.field_values import (
    extract_field_value,
    truncate_at_word_boundary,
)
from contentsync.platform.transformers.record_transformer import RecordTransformer

BASIC_CONTENT_FIELDS = ("content", "body", "text", "details")
BASIC_CONTENT_MAX_TOKENS = 1000
LOW_SUCCESS_RATE = 0.5
LOW_SUCCESS_MIN_RECORDS = 10


class EmbeddingBatchProcessor:
    """Turns canonical records into embedded records."""

    def __init__(
        self,
        embedder: BaseEmbedder,
        transformer: Optional[RecordTransformer] = None,
        retry_policy: Optional[RetryPolicy] = None,
        batch_delay: Optional[float] = None,
        max_tokens: Optional[int] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the processor.

        Args:
            embedder: Embedding provider client
            transformer: Supplies the per-category embedding text policy
            retry_policy: Backoff applied to every provider call
            batch_delay: Seconds to wait between provider calls
            max_tokens: Token budget per embedding text
            logger: Logger to use, defaults to the module logger
        """
        self.embedder = embedder
        self.transformer = transformer or RecordTransformer()
        self.retry_policy = retry_policy or RetryPolicy()
        self.batch_delay = settings.EMBEDDING_BATCH_DELAY if batch_delay is None else batch_delay
        self.max_tokens = max_tokens or settings.EMBEDDING_MAX_TOKENS
        self.logger = logger or default_logger

    async def embed_all(
        self, records: List[CanonicalRecord], batch_size: Optional[int] = None
    ) -> List[EmbeddedRecord]:
        """Embed records batch by batch, dropping records whose batch failed.

        Args:
            records: Records to embed
            batch_size: Records per provider call, defaults to settings

        Returns:
            Embedded records, in input order, without the failed ones
        """
        if not records:
            return []
        batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE

        texts = [self.build_embedding_text(record) for record in records]
        embeddings: List[Optional[List[float]]] = []
        total_batches = (len(records) + batch_size - 1) // batch_size
        self.logger.info(
            f"Generating embeddings for {len(records)} records in {total_batches} batches"
        )

        for batch_number, start in enumerate(range(0, len(texts), batch_size), start=1):
            batch = texts[start : start + batch_size]
            embeddings.extend(await self._embed_batch(batch, batch_number, total_batches))

            if start + batch_size < len(texts) and self.batch_delay:
                await asyncio.sleep(self.batch_delay)

        embedded = []
        for record, embedding in zip(records, embeddings):
            if embedding is None:
                continue
            if len(embedding) != self.embedder.dimensions:
                self.logger.warning(
                    f"Dropping record {record.id}: embedding has {len(embedding)} dimensions, "
                    f"expected {self.embedder.dimensions}"
                )
                continue
            try:
                embedded.append(EmbeddedRecord.from_canonical(record, embedding))
            except ValidationError as e:
                self.logger.warning(f"Dropping record {record.id} with an unusable embedding: {e}")

        self.logger.info(f"Embedded {len(embedded)}/{len(records)} records successfully")
        if (
            len(records) > LOW_SUCCESS_MIN_RECORDS
            and len(embedded) / len(records) < LOW_SUCCESS_RATE
        ):
            self.logger.warning(
                f"Low embedding success rate: {len(embedded)}/{len(records)} records embedded"
            )
        return embedded

    async def _embed_batch(
        self, batch: List[str], batch_number: int, total_batches: int
    ) -> List[Optional[List[float]]]:
        """Embed one batch, returning ``None`` placeholders if it fails terminally."""
        try:
            vectors = await retry_with_policy(
                lambda: self.embedder.embed_many(batch),
                self.retry_policy,
                operation_name=f"embed batch {batch_number}/{total_batches}",
                logger=self.logger,
            )
        except Exception as e:
            self.logger.error(
                f"Dropping embedding batch {batch_number}/{total_batches} "
                f"({len(batch)} records): {e} (category={categorize_error(e).value})"
            )
            return [None] * len(batch)

        if len(vectors) != len(batch):
            self.logger.error(
                f"Dropping embedding batch {batch_number}/{total_batches}: "
                f"got {len(vectors)} vectors for {len(batch)} texts"
            )
            return [None] * len(batch)

        self.logger.debug(f"Batch {batch_number}/{total_batches} embedded ({len(batch)} texts)")
        return list(vectors)

    def build_embedding_text(self, record: CanonicalRecord) -> str:
        """Embedding text for a record, truncated to the token budget.

        Uses the category's weighted field policy, then a labeled summary of
        the canonical fields, then the title.
        """
        text = ""
        if record.raw_data:
            text = self.transformer.generate_embedding_text(record.raw_data, record.category)
        if not text.strip():
            text = self.build_basic_text(record)
        if not text.strip():
            text = record.title or record.snippet or "No content available"
        return truncate_at_word_boundary(text, self.max_tokens)

    @staticmethod
    def build_basic_text(record: CanonicalRecord) -> str:
        """Labeled summary of a record's canonical fields plus one content field."""
        parts = []
        if record.title:
            parts.append(f"Title: {record.title}")
        if record.snippet:
            parts.append(f"Description: {record.snippet}")
        parts.append(f"Type: {record.category}")
        if record.tags:
            parts.append(f"Tags: {', '.join(record.tags)}")
        if record.category_label:
            parts.append(f"Category: {record.category_label}")

        for field in BASIC_CONTENT_FIELDS:
            content = extract_field_value(record.raw_data, field)
            if content:
                parts.append(
                    f"Content: {truncate_at_word_boundary(content, BASIC_CONTENT_MAX_TOKENS)}"
                )
                break

        return "\n\n".join(parts)
