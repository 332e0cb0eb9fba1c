"""Tests for PaginatedSourceFetcher paging, ordering and partial-failure handling."""

import httpx
import pytest
from fakes import FakeContentSource, make_raw

from contentsync.core.shared_models import ErrorCategory
from contentsync.platform.sources.contentstack import ContentSourceError
from contentsync.platform.sources.fetcher import PaginatedSourceFetcher


def _records(prefix: str, count: int):
    return [make_raw(f"{prefix}{i}") for i in range(count)]


def _fetcher(source, policy, **kwargs) -> PaginatedSourceFetcher:
    return PaginatedSourceFetcher(source, retry_policy=policy, page_delay=0, **kwargs)


@pytest.mark.asyncio
async def test_pages_until_short_page(fast_retry_policy):
    """Test that paging advances by page size and stops on a short page."""
    source = FakeContentSource({("blog_post", "en-us"): _records("b", 7)})
    fetcher = _fetcher(source, fast_retry_policy)

    records = await fetcher.fetch_all_records(["en-us"], page_size=3)

    assert [r.source_id for r in records] == [f"b{i}" for i in range(7)]
    assert [call[3] for call in source.record_calls] == [0, 3, 6]
    assert all(call[2] == 3 for call in source.record_calls)


@pytest.mark.asyncio
async def test_stops_when_skip_reaches_total_count(fast_retry_policy):
    """Test that an exact multiple of the page size needs no trailing empty request."""
    source = FakeContentSource({("page", "en-us"): _records("p", 6)})
    fetcher = _fetcher(source, fast_retry_policy)

    records = await fetcher.fetch_all_records(["en-us"], page_size=3)

    assert len(records) == 6
    assert len(source.record_calls) == 2


@pytest.mark.asyncio
async def test_stops_on_empty_page(fast_retry_policy):
    """Test that an empty first page ends the pair."""
    source = FakeContentSource(categories=["faq"])
    fetcher = _fetcher(source, fast_retry_policy)

    records = await fetcher.fetch_all_records(["en-us"], page_size=10)

    assert records == []
    assert len(source.record_calls) == 1


@pytest.mark.asyncio
async def test_page_ceiling_stops_misbehaving_source(fast_retry_policy):
    """Test that a source that never runs out is cut off at the page ceiling."""

    class EndlessSource(FakeContentSource):
        async def list_records(self, category, locale, limit, skip):
            page = await super().list_records(category, locale, limit, 0)
            page.total_count = 10**9
            return page

    source = EndlessSource({("news", "en-us"): _records("n", 2)})
    fetcher = _fetcher(source, fast_retry_policy, max_pages=5)

    records = await fetcher.fetch_all_records(["en-us"], page_size=2)

    assert len(source.record_calls) == 5
    assert len(records) == 10
    assert fetcher.last_report.ceiling_hits == ["news:en-us"]


@pytest.mark.asyncio
async def test_failed_pair_is_skipped_and_recorded(fast_retry_policy):
    """Test that one pair failing every retry does not stop the other pairs."""
    source = FakeContentSource(
        {
            ("blog_post", "en-us"): _records("b", 2),
            ("page", "en-us"): _records("p", 2),
            ("product", "en-us"): _records("x", 2),
        },
        failures={("page", "en-us"): ContentSourceError("unavailable", status_code=503)},
    )
    fetcher = _fetcher(source, fast_retry_policy)

    records = await fetcher.fetch_all_records(["en-us"], page_size=10)

    assert [r.category for r in records] == ["blog_post", "blog_post", "product", "product"]
    page_calls = [call for call in source.record_calls if call[0] == "page"]
    assert len(page_calls) == fast_retry_policy.max_retries + 1

    report = fetcher.last_report
    assert report.pairs_attempted == 3
    assert len(report.failed_pairs) == 1
    failed = report.failed_pairs[0]
    assert (failed.category, failed.locale, failed.page) == ("page", "en-us", 1)
    assert failed.error_category == ErrorCategory.SERVER_ERROR


@pytest.mark.asyncio
async def test_failure_after_first_page_drops_the_pair(fast_retry_policy):
    """Test that a pair failing mid-way contributes nothing."""

    class FlakySource(FakeContentSource):
        async def list_records(self, category, locale, limit, skip):
            if skip > 0:
                raise ContentSourceError("forbidden", status_code=403)
            return await super().list_records(category, locale, limit, skip)

    source = FlakySource({("blog_post", "en-us"): _records("b", 5)})
    fetcher = _fetcher(source, fast_retry_policy)

    records = await fetcher.fetch_all_records(["en-us"], page_size=2)

    assert records == []
    assert fetcher.last_report.failed_pairs[0].page == 2
    assert fetcher.last_report.failed_pairs[0].error_category == ErrorCategory.AUTHORIZATION


@pytest.mark.asyncio
async def test_discovery_failure_propagates(fast_retry_policy):
    """Test that category discovery errors are raised after retries."""
    source = FakeContentSource(
        category_error=httpx.ConnectError("connection refused", request=None)
    )
    fetcher = _fetcher(source, fast_retry_policy)

    with pytest.raises(httpx.ConnectError):
        await fetcher.fetch_all_records(["en-us"], page_size=10)

    assert source.category_calls == fast_retry_policy.max_retries + 1


@pytest.mark.asyncio
async def test_output_order_is_category_then_locale_then_page(fast_retry_policy):
    """Test the concatenation order across pairs."""
    source = FakeContentSource(
        {
            ("blog_post", "en-us"): _records("be", 3),
            ("blog_post", "fr-fr"): _records("bf", 1),
            ("page", "en-us"): _records("pe", 1),
            ("page", "fr-fr"): _records("pf", 2),
        }
    )
    fetcher = _fetcher(source, fast_retry_policy)

    records = await fetcher.fetch_all_records(["en-us", "fr-fr"], page_size=2)

    assert [r.source_id for r in records] == ["be0", "be1", "be2", "bf0", "pe0", "pf0", "pf1"]
    assert records[3].id == "blog_post_bf0_fr-fr"


@pytest.mark.asyncio
async def test_concurrent_fetch_keeps_pair_order(fast_retry_policy):
    """Test that bounded concurrency does not change the output order."""
    data = {(f"type{i}", "en-us"): _records(f"t{i}_", 3) for i in range(5)}
    source = FakeContentSource(data)
    fetcher = _fetcher(source, fast_retry_policy, max_concurrency=3)

    records = await fetcher.fetch_all_records(["en-us"], page_size=2)

    expected = [f"t{i}_{j}" for i in range(5) for j in range(3)]
    assert [r.source_id for r in records] == expected


@pytest.mark.asyncio
async def test_records_without_uid_are_skipped(fast_retry_policy):
    """Test that untransformable records are counted and skipped."""
    source = FakeContentSource({("faq", "en-us"): [make_raw("q1"), {"question": "no uid"}]})
    fetcher = _fetcher(source, fast_retry_policy)

    records = await fetcher.fetch_all_records(["en-us"], page_size=10)

    assert [r.source_id for r in records] == ["q1"]
    assert fetcher.last_report.skipped_records == 1


@pytest.mark.asyncio
async def test_fetch_categories_skips_discovery(fast_retry_policy):
    """Test that an explicit category list is fetched without listing categories."""
    source = FakeContentSource(
        {("blog_post", "en-us"): _records("b", 1), ("page", "en-us"): _records("p", 1)}
    )
    fetcher = _fetcher(source, fast_retry_policy)

    records = await fetcher.fetch_categories(["page"], ["en-us"], page_size=10)

    assert [r.category for r in records] == ["page"]
    assert source.category_calls == 0
