"""Idempotent upsert sink.

Splits embedded records into bounded batches and upserts each one keyed by
record id. Retries already happened below this layer, so the first failing
batch aborts the call and the error propagates to the caller.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel

from contentsync.core.config import settings
from contentsync.core.logging import ContextualLogger
from contentsync.core.logging import logger as default_logger
from contentsync.platform.destinations._base import BaseContentStore
from contentsync.platform.entities.content import EmbeddedRecord

CONFLICT_KEY = "id"


class UpsertResult(BaseModel):
    """Totals of one ``upsert_all`` call."""

    inserted: int = 0
    updated: int = 0
    errors: int = 0

    @property
    def written(self) -> int:
        """Rows the store acknowledged."""
        return self.inserted + self.updated


class UpsertSink:
    """Writes embedded records to a content store in batches."""

    def __init__(
        self,
        store: BaseContentStore,
        batch_size: Optional[int] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the sink.

        Args:
            store: Destination store
            batch_size: Rows per upsert call, defaults to settings
            logger: Logger to use, defaults to the module logger
        """
        self.store = store
        self.batch_size = batch_size or settings.UPSERT_BATCH_SIZE
        self.logger = logger or default_logger

    async def upsert_all(self, records: List[EmbeddedRecord]) -> UpsertResult:
        """Upsert every record, batch by batch.

        Args:
            records: Embedded records to write

        Returns:
            UpsertResult with inserted, updated and unacknowledged row counts

        Raises:
            Exception: The store error of the first failing batch
        """
        result = UpsertResult()
        if not records:
            return result

        records = self._deduplicate(records)
        total_batches = (len(records) + self.batch_size - 1) // self.batch_size
        for batch_number, start in enumerate(range(0, len(records), self.batch_size), start=1):
            batch = records[start : start + self.batch_size]
            try:
                write = await self.store.upsert(batch, conflict_key=CONFLICT_KEY)
            except Exception as e:
                self.logger.error(
                    f"Upsert batch {batch_number}/{total_batches} ({len(batch)} rows) failed, "
                    f"aborting remaining batches: {e}"
                )
                raise

            result.inserted += write.inserted
            result.updated += write.updated
            result.errors += max(0, len(batch) - write.acknowledged)
            self.logger.debug(
                f"Upserted batch {batch_number}/{total_batches}: "
                f"{write.inserted} inserted, {write.updated} updated"
            )

        self.logger.info(
            f"Upserted {len(records)} records: {result.inserted} inserted, "
            f"{result.updated} updated, {result.errors} unacknowledged"
        )
        return result

    def _deduplicate(self, records: List[EmbeddedRecord]) -> List[EmbeddedRecord]:
        """Collapse records sharing a conflict key; the last one wins.

        A statement may not touch the same row twice, so duplicates cannot share a batch.
        Keys keep the position of their first occurrence.
        """
        by_key: Dict[str, EmbeddedRecord] = {}
        for record in records:
            by_key[getattr(record, CONFLICT_KEY)] = record

        collapsed = len(records) - len(by_key)
        if collapsed:
            self.logger.warning(
                f"Collapsed {collapsed} duplicate records sharing an {CONFLICT_KEY} before upsert"
            )
        return list(by_key.values())
