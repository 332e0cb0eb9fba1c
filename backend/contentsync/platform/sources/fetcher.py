"""Paginated fetcher over a content source.

Walks every (category, locale) pair page by page, transforming each page into
canonical records as it arrives. A pair that keeps failing after retries is
recorded and skipped so the rest of the run still gets its data.
"""

import asyncio
from typing import List, Optional

from pydantic import BaseModel, Field

from contentsync.core.config import settings
from contentsync.core.logging import ContextualLogger
from contentsync.core.logging import logger as default_logger
from contentsync.core.shared_models import ErrorCategory
from contentsync.platform.entities.content import CanonicalRecord, ContentCategory, RawRecord
from contentsync.platform.sources._base import BaseContentSource
from contentsync.platform.sync.exceptions import RecordTransformError
from contentsync.platform.sync.retry_helpers import (
    RetryPolicy,
    categorize_error,
    retry_with_policy,
)
from contentsync.platform.transformers.record_transformer import RecordTransformer


class FailedPair(BaseModel):
    """A (category, locale) pair abandoned after its retries were exhausted."""

    category: str
    locale: str
    page: int = Field(..., description="1-based page number that failed.")
    error: str
    error_category: ErrorCategory


class FetchReport(BaseModel):
    """Summary of one fetch pass."""

    pairs_attempted: int = 0
    pages_fetched: int = 0
    record_count: int = 0
    skipped_records: int = 0
    failed_pairs: List[FailedPair] = Field(default_factory=list)
    ceiling_hits: List[str] = Field(default_factory=list)


class PaginatedSourceFetcher:
    """Fetches and transforms every record for a set of categories and locales."""

    def __init__(
        self,
        source: BaseContentSource,
        transformer: Optional[RecordTransformer] = None,
        retry_policy: Optional[RetryPolicy] = None,
        page_delay: Optional[float] = None,
        max_pages: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the fetcher.

        Args:
            source: Content source client
            transformer: Raw-to-canonical transformer
            retry_policy: Backoff applied to every source call
            page_delay: Seconds to wait between page requests
            max_pages: Page ceiling per (category, locale) pair
            max_concurrency: Pairs fetched in parallel
            logger: Logger to use, defaults to the module logger
        """
        self.source = source
        self.transformer = transformer or RecordTransformer()
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=settings.CONTENTSTACK_RETRY_LIMIT,
            base_delay=settings.CONTENTSTACK_RETRY_DELAY,
        )
        self.page_delay = settings.SYNC_PAGE_DELAY if page_delay is None else page_delay
        self.max_pages = max_pages or settings.SYNC_MAX_PAGES
        self.max_concurrency = max_concurrency or settings.SYNC_MAX_CONCURRENCY
        self.logger = logger or default_logger
        self.last_report: Optional[FetchReport] = None

    async def list_categories(self) -> List[ContentCategory]:
        """Discover the source's categories under the retry policy.

        Raises:
            Exception: The source error, once retries are exhausted
        """
        return await retry_with_policy(
            self.source.list_categories,
            self.retry_policy,
            operation_name="list_categories",
            logger=self.logger,
        )

    async def fetch_all_records(
        self, locales: List[str], page_size: int
    ) -> List[CanonicalRecord]:
        """Fetch every record of every discovered category in the given locales.

        Args:
            locales: Locales to fetch, in output order
            page_size: Records requested per page

        Returns:
            Canonical records ordered by category, then locale, then page

        Raises:
            Exception: If category discovery fails after retries
        """
        categories = await self.list_categories()
        self.logger.info(
            f"Discovered {len(categories)} content types: {[c.uid for c in categories]}"
        )
        return await self.fetch_categories([c.uid for c in categories], locales, page_size)

    async def fetch_categories(
        self, categories: List[str], locales: List[str], page_size: int
    ) -> List[CanonicalRecord]:
        """Fetch every record of the given categories, without discovery.

        Args:
            categories: Category uids, in output order
            locales: Locales to fetch, in output order
            page_size: Records requested per page

        Returns:
            Canonical records ordered by category, then locale, then page
        """
        report = FetchReport()
        self.last_report = report
        pairs = [(category, locale) for category in categories for locale in locales]
        report.pairs_attempted = len(pairs)
        if not pairs:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(category: str, locale: str) -> List[CanonicalRecord]:
            async with semaphore:
                return await self._fetch_pair(category, locale, page_size, report)

        results = await asyncio.gather(*(_bounded(c, loc) for c, loc in pairs))

        records = [record for pair_records in results for record in pair_records]
        report.record_count = len(records)
        self.logger.info(
            f"Fetched {len(records)} records from {len(pairs)} content type/locale pairs "
            f"({len(report.failed_pairs)} failed, {report.pages_fetched} pages)"
        )
        return records

    async def _fetch_pair(
        self, category: str, locale: str, page_size: int, report: FetchReport
    ) -> List[CanonicalRecord]:
        """Page through one (category, locale) pair.

        Returns whatever the pair yielded; on a terminal page failure the pair
        is recorded in ``report`` and contributes no records.
        """
        records: List[CanonicalRecord] = []
        skip = 0
        page_number = 0

        while True:
            if page_number >= self.max_pages:
                self.logger.warning(
                    f"Reached page ceiling ({self.max_pages}) for {category} ({locale}), "
                    f"stopping with {len(records)} records"
                )
                report.ceiling_hits.append(f"{category}:{locale}")
                break

            page_number += 1
            try:
                page = await retry_with_policy(
                    lambda: self.source.list_records(category, locale, page_size, skip),
                    self.retry_policy,
                    operation_name=f"list_records({category}, {locale}, skip={skip})",
                    logger=self.logger,
                )
            except Exception as e:
                error_category = categorize_error(e)
                self.logger.error(
                    f"Skipping {category} ({locale}) after page {page_number} failed: {e} "
                    f"(category={error_category.value})"
                )
                report.failed_pairs.append(
                    FailedPair(
                        category=category,
                        locale=locale,
                        page=page_number,
                        error=str(e),
                        error_category=error_category,
                    )
                )
                return []

            report.pages_fetched += 1
            if not page.records:
                break

            records.extend(self._transform_page(page.records, category, locale, report))
            skip += page_size
            self.logger.debug(
                f"Fetched page {page_number} of {category} ({locale}): "
                f"{len(page.records)} records, {skip}/{page.total_count}"
            )

            if len(page.records) < page_size or skip >= page.total_count:
                break

            if self.page_delay:
                await asyncio.sleep(self.page_delay)

        return records

    def _transform_page(
        self, raw_records: List[RawRecord], category: str, locale: str, report: FetchReport
    ) -> List[CanonicalRecord]:
        transformed = []
        for raw in raw_records:
            try:
                transformed.append(self.transformer.transform(raw, category, locale))
            except RecordTransformError as e:
                report.skipped_records += 1
                self.logger.warning(f"Skipping record: {e}")
        return transformed
