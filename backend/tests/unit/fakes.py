"""In-memory collaborators and record builders shared by the unit tests."""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from contentsync.platform.destinations._base import BaseContentStore, WriteResult
from contentsync.platform.embedders._base import BaseEmbedder
from contentsync.platform.entities.content import (
    CanonicalRecord,
    ContentCategory,
    EmbeddedRecord,
    RecordPage,
)
from contentsync.platform.sources._base import BaseContentSource

TEST_DIMENSIONS = 4


def make_raw(uid: str, title: Optional[str] = None, **fields) -> dict:
    """Build a raw source record."""
    raw = {"uid": uid, "title": title if title is not None else f"Title {uid}"}
    raw.update(fields)
    return raw


def make_canonical(
    uid: str, category: str = "blog_post", locale: str = "en-us", **overrides
) -> CanonicalRecord:
    """Build a canonical record without going through the transformer."""
    data = {
        "id": f"{category}_{uid}_{locale}",
        "source_id": uid,
        "title": f"Title {uid}",
        "snippet": f"Snippet {uid}",
        "url": f"https://example.com/blog/{uid}",
        "category": category,
        "locale": locale,
        "updated_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "raw_data": make_raw(uid, description=f"Description {uid}"),
    }
    data.update(overrides)
    return CanonicalRecord(**data)


def make_embedded(uid: str, **overrides) -> EmbeddedRecord:
    """Build an embedded record with a constant vector."""
    return EmbeddedRecord.from_canonical(
        make_canonical(uid, **overrides), [0.5] * TEST_DIMENSIONS
    )


class FakeContentSource(BaseContentSource):
    """In-memory content source.

    ``records`` maps (category, locale) to the full record list of the pair;
    ``failures`` maps a pair to the exception every page request raises.
    """

    def __init__(
        self,
        records: Optional[Dict[Tuple[str, str], List[dict]]] = None,
        categories: Optional[Sequence[str]] = None,
        failures: Optional[Dict[Tuple[str, str], Exception]] = None,
        category_error: Optional[Exception] = None,
    ):
        super().__init__()
        self.records = records or {}
        if categories is None:
            categories = list(dict.fromkeys(category for category, _ in self.records))
        self.categories = list(categories)
        self.failures = failures or {}
        self.category_error = category_error
        self.record_calls: List[Tuple[str, str, int, int]] = []
        self.category_calls = 0

    async def list_categories(self) -> List[ContentCategory]:
        self.category_calls += 1
        if self.category_error is not None:
            raise self.category_error
        return [ContentCategory(uid=uid, title=uid.title()) for uid in self.categories]

    async def list_records(self, category: str, locale: str, limit: int, skip: int) -> RecordPage:
        self.record_calls.append((category, locale, limit, skip))
        if (category, locale) in self.failures:
            raise self.failures[(category, locale)]
        records = self.records.get((category, locale), [])
        return RecordPage(records=records[skip : skip + limit], total_count=len(records))


class FakeEmbedder(BaseEmbedder):
    """Deterministic embedder; call numbers in ``failing_calls`` raise ``error``."""

    def __init__(
        self,
        dimensions: int = TEST_DIMENSIONS,
        failing_calls: Sequence[int] = (),
        error: Optional[Exception] = None,
    ):
        super().__init__()
        self._dimensions = dimensions
        self.failing_calls = set(failing_calls)
        self.error = error or ValueError("invalid input")
        self.calls: List[List[str]] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if len(self.calls) in self.failing_calls:
            raise self.error
        return [[float(len(text) % 7), 0.1, 0.2, 0.3][: self._dimensions] for text in texts]


class InMemoryContentStore(BaseContentStore):
    """Content store keyed by record id; call numbers in ``failing_calls`` raise."""

    def __init__(self, failing_calls: Sequence[int] = (), error: Optional[Exception] = None):
        super().__init__()
        self.rows: Dict[str, EmbeddedRecord] = {}
        self.missing_embeddings = 0
        self.failing_calls = set(failing_calls)
        self.error = error or RuntimeError("connection refused")
        self.upsert_calls: List[List[str]] = []
        self.deleted_before: List[datetime] = []

    async def upsert(self, rows: List[EmbeddedRecord], conflict_key: str = "id") -> WriteResult:
        self.upsert_calls.append([getattr(row, conflict_key) for row in rows])
        if len(self.upsert_calls) in self.failing_calls:
            raise self.error
        result = WriteResult()
        for row in rows:
            key = getattr(row, conflict_key)
            if key in self.rows:
                result.updated += 1
            else:
                result.inserted += 1
            self.rows[key] = row
        return result

    async def delete_stale(self, before: datetime) -> int:
        self.deleted_before.append(before)
        stale = [key for key, row in self.rows.items() if row.updated_at < before]
        for key in stale:
            del self.rows[key]
        return len(stale)

    async def count_missing_embeddings(self) -> int:
        return self.missing_embeddings


