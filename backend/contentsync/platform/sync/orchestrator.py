"""Sync orchestrator: fetch, embed and upsert as one guarded run.

A run moves IDLE -> RUNNING -> {SUCCESS, ERROR, NO_CONTENT, NO_EMBEDDINGS} -> IDLE.
Only one run may be in flight per orchestrator. The guard is a check-and-set
of ``SyncRunState.is_running`` with no ``await`` in between, which makes it
atomic on the event loop.
"""

import time
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Tuple
from uuid import uuid4

from contentsync.core.config import settings
from contentsync.core.datetime_utils import utc_now
from contentsync.core.exceptions import SyncAlreadyRunningError
from contentsync.core.logging import ContextualLogger, LoggerConfigurator
from contentsync.core.logging import logger as default_logger
from contentsync.core.shared_models import SyncRunStatus
from contentsync.platform.destinations._base import BaseContentStore
from contentsync.platform.destinations.sink import UpsertSink
from contentsync.platform.embedders.batch_processor import EmbeddingBatchProcessor
from contentsync.platform.entities.content import CanonicalRecord
from contentsync.platform.sources.fetcher import PaginatedSourceFetcher
from contentsync.platform.sync.exceptions import SyncValidationError
from contentsync.platform.sync.retry_helpers import categorize_error
from contentsync.platform.sync.state import (
    IntegrityReport,
    LastError,
    RunCounts,
    SyncRunState,
)
from contentsync.platform.sync.validation import partition_writable, validate_fetch_result

PRIORITY_CATEGORIES = ("blog_post", "page", "article", "product", "news")
DEFAULT_FALLBACK_CATEGORIES = ("blog_post", "page")
FALLBACK_CATEGORY_LIMIT = 3
FALLBACK_EXHAUSTED = "exhausted"


class ContentSyncOrchestrator:
    """Runs the content sync pipeline and owns its run state."""

    def __init__(
        self,
        fetcher: PaginatedSourceFetcher,
        embedding_processor: EmbeddingBatchProcessor,
        sink: UpsertSink,
        store: Optional[BaseContentStore] = None,
        locales: Optional[List[str]] = None,
        page_size: Optional[int] = None,
        fallback_page_size: Optional[int] = None,
        default_locale: Optional[str] = None,
        embedding_batch_size: Optional[int] = None,
        sync_interval_minutes: Optional[int] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the orchestrator.

        Args:
            fetcher: Paginated source fetcher
            embedding_processor: Batch embedding processor
            sink: Upsert sink
            store: Store used by maintenance operations, defaults to the sink's
            locales: Locales to sync, defaults to settings
            page_size: Page size of the primary fetch
            fallback_page_size: Page size of the first fallback strategy
            default_locale: Locale used by the single-locale fallbacks
            embedding_batch_size: Records per embedding call
            sync_interval_minutes: Schedule interval used for the next-run estimate
            logger: Base logger, defaults to the module logger
        """
        self.fetcher = fetcher
        self.embedding_processor = embedding_processor
        self.sink = sink
        self.store = store or sink.store
        self.locales = locales or settings.locales
        self.page_size = page_size or settings.SYNC_PAGE_SIZE
        self.fallback_page_size = fallback_page_size or settings.FALLBACK_PAGE_SIZE
        self.default_locale = default_locale or settings.DEFAULT_LOCALE
        self.embedding_batch_size = embedding_batch_size or settings.EMBEDDING_BATCH_SIZE
        self.sync_interval_minutes = sync_interval_minutes or settings.SYNC_INTERVAL_MINUTES
        self.logger = logger or default_logger
        self._state = SyncRunState()

    @property
    def is_running(self) -> bool:
        """Whether a run is in flight."""
        return self._state.is_running

    def get_status(self) -> SyncRunState:
        """Snapshot of the run state; later runs never modify the returned object."""
        snapshot = self._state.snapshot()
        snapshot.next_scheduled_run = self.get_next_scheduled_run()
        return snapshot

    def get_next_scheduled_run(self) -> Optional[datetime]:
        """Expected time of the next scheduled run, None before the first success."""
        if self._state.last_sync_time is None:
            return None
        return self._state.last_sync_time + timedelta(minutes=self.sync_interval_minutes)

    async def run(self) -> None:
        """Run a full sync across every category and configured locale.

        Returns immediately, without raising, when a run is already in flight.

        Raises:
            Exception: Any failure that ends the run in ERROR, re-raised unchanged
        """
        if not self._try_start():
            self.logger.warning("Sync job already running, skipping this execution")
            return

        log = self._start_run("full")
        await self._guarded(log, lambda: self._run_full(log))

    async def sync_content_types(self, categories: List[str]) -> None:
        """Run a sync restricted to the given categories, without discovery.

        Raises:
            SyncAlreadyRunningError: If a run is already in flight
            Exception: Any failure that ends the run in ERROR, re-raised unchanged
        """
        if not self._try_start():
            raise SyncAlreadyRunningError()

        log = self._start_run("targeted")
        log.info(f"Starting selective sync for content types: {', '.join(categories)}")
        await self._guarded(log, lambda: self._run_targeted(categories, log))

    async def trigger_manual_sync(
        self, content_types: Optional[List[str]] = None, force: bool = False
    ) -> SyncRunState:
        """Manually trigger a targeted or full sync and return the resulting status.

        ``force`` skips the in-flight pre-check only; the concurrency guard still
        applies, so a forced full sync during a run is a no-op and a forced
        targeted sync raises.

        Raises:
            SyncAlreadyRunningError: If a run is in flight and ``force`` is False
        """
        if self._state.is_running and not force:
            raise SyncAlreadyRunningError(
                "Sync job is already running. Use force=True to override."
            )

        if content_types:
            await self.sync_content_types(content_types)
        else:
            await self.run()
        return self.get_status()

    async def cleanup_entries(self, retention_days: Optional[int] = None) -> int:
        """Delete stored entries not updated within the retention window.

        Returns:
            Number of deleted entries
        """
        retention_days = retention_days or settings.CLEANUP_RETENTION_DAYS
        cutoff = utc_now() - timedelta(days=retention_days)
        self.logger.info(f"Cleaning up entries not updated since {cutoff.isoformat()}")
        deleted = await self.store.delete_stale(cutoff)
        self.logger.info(f"Cleanup completed: {deleted} entries removed")
        return deleted

    async def validate_content_integrity(self) -> IntegrityReport:
        """Count stored entries that have no embedding."""
        missing = await self.store.count_missing_embeddings()
        report = IntegrityReport(missing_embeddings=missing, checked_at=utc_now())
        if report.is_healthy:
            self.logger.info("All entries have valid embeddings")
        else:
            self.logger.warning(f"Found {missing} entries without embeddings")
        return report

    def _try_start(self) -> bool:
        # No await between the check and the set
        if self._state.is_running:
            return False
        self._state.is_running = True
        return True

    def _start_run(self, trigger: str) -> ContextualLogger:
        """Reset per-run state and build the run's logger."""
        state = self._state
        state.stats.total_runs += 1
        state.last_run_started_at = utc_now()
        state.last_run_counts = RunCounts()
        state.last_fallback_strategy = None

        log = LoggerConfigurator.configure_logger(
            "contentsync.sync",
            dimensions={"sync_run_id": str(uuid4()), "trigger": trigger},
        )
        self.fetcher.logger = log
        self.embedding_processor.logger = log
        self.sink.logger = log
        return log

    async def _guarded(
        self, log: ContextualLogger, body: Callable[[], Awaitable[SyncRunStatus]]
    ) -> None:
        """Run ``body``, recording its terminal status, and always release the guard."""
        started = time.monotonic()
        try:
            status = await body()
            self._state.last_run_status = status
            if status == SyncRunStatus.SUCCESS:
                self._state.stats.successful_runs += 1
                self._state.stats.last_error = None
                self._state.last_sync_time = utc_now()
        except Exception as e:
            category = categorize_error(e)
            self._state.last_run_status = SyncRunStatus.ERROR
            self._state.stats.last_error = LastError(
                message=str(e),
                category=category,
                timestamp=utc_now(),
                type=type(e).__name__,
            )
            log.error(
                f"Content sync failed after {time.monotonic() - started:.2f}s: {e} "
                f"(category={category.value})"
            )
            raise
        finally:
            self._state.last_run_duration = time.monotonic() - started
            self._state.is_running = False

        log.info(
            f"Content sync finished with status {status.value} "
            f"in {self._state.last_run_duration:.2f}s"
        )

    async def _run_full(self, log: ContextualLogger) -> SyncRunStatus:
        log.info(f"Starting content sync for locales {self.locales}")
        records = await self.fetcher.fetch_all_records(self.locales, self.page_size)

        if not validate_fetch_result(records, log):
            log.warning("Fetch result failed validation, attempting fallback strategies")
            records = await self._run_fallback_ladder(log)

        return await self._embed_and_write(records, log)

    async def _run_targeted(self, categories: List[str], log: ContextualLogger) -> SyncRunStatus:
        records = await self.fetcher.fetch_categories(categories, self.locales, self.page_size)
        if not validate_fetch_result(records, log):
            raise SyncValidationError(
                f"Fetch result for content types {categories} failed validation"
            )
        return await self._embed_and_write(records, log)

    async def _embed_and_write(
        self, records: List[CanonicalRecord], log: ContextualLogger
    ) -> SyncRunStatus:
        counts = self._state.last_run_counts
        counts.fetched = len(records)
        if not records:
            log.warning("No content entries found")
            return SyncRunStatus.NO_CONTENT

        embedded = await self.embedding_processor.embed_all(records, self.embedding_batch_size)
        counts.embedded = len(embedded)
        if not embedded:
            log.warning("No entries could be processed with embeddings")
            return SyncRunStatus.NO_EMBEDDINGS

        writable, discarded = partition_writable(embedded, log)
        counts.skipped = discarded
        if not writable:
            raise SyncValidationError("No valid entries to write after validation")

        result = await self.sink.upsert_all(writable)
        counts.written = result.written
        counts.inserted = result.inserted
        counts.updated = result.updated
        log.info(
            f"Synced {result.written} entries ({len(records)} fetched, "
            f"{len(embedded)} embedded, {discarded} discarded)"
        )
        return SyncRunStatus.SUCCESS

    async def _run_fallback_ladder(self, log: ContextualLogger) -> List[CanonicalRecord]:
        """Try progressively narrower fetches; the first valid, non-empty result wins.

        Returns an empty list when every strategy fails, which the caller
        resolves to NO_CONTENT. Exhaustion is logged at ERROR and counted.
        """
        self._state.stats.fallback_runs += 1
        strategies: List[Tuple[str, Callable[[], Awaitable[List[CanonicalRecord]]]]] = [
            (
                "reduced_page_size",
                lambda: self.fetcher.fetch_all_records(self.locales, self.fallback_page_size),
            ),
            (
                "single_locale",
                lambda: self.fetcher.fetch_all_records([self.default_locale], self.page_size),
            ),
            ("priority_categories", lambda: self._fetch_priority_categories(log)),
        ]

        for name, strategy in strategies:
            log.debug(f"Attempting fallback strategy {name}")
            try:
                records = await strategy()
            except Exception as e:
                log.warning(
                    f"Fallback strategy {name} failed: {e} "
                    f"(category={categorize_error(e).value})"
                )
                continue

            if validate_fetch_result(records, log) and records:
                log.info(f"Fallback strategy {name} succeeded with {len(records)} entries")
                self._state.last_fallback_strategy = name
                return records
            log.warning(f"Fallback strategy {name} yielded no usable entries")

        self._state.stats.fallback_exhausted_runs += 1
        self._state.last_fallback_strategy = FALLBACK_EXHAUSTED
        log.error("All fallback strategies exhausted, continuing with an empty result")
        return []

    async def _fetch_priority_categories(self, log: ContextualLogger) -> List[CanonicalRecord]:
        categories = await self._core_categories(log)
        return await self.fetcher.fetch_categories(
            categories, [self.default_locale], self.page_size
        )

    async def _core_categories(self, log: ContextualLogger) -> List[str]:
        """Priority categories that exist upstream, else the first few discovered."""
        try:
            discovered = [category.uid for category in await self.fetcher.list_categories()]
        except Exception as e:
            log.warning(f"Failed to list content types, using defaults: {e}")
            return list(DEFAULT_FALLBACK_CATEGORIES)

        core = [uid for uid in discovered if uid in PRIORITY_CATEGORIES]
        if not core:
            core = discovered[:FALLBACK_CATEGORY_LIMIT]
        log.debug(f"Using core content types for fallback: {core}")
        return core
