"""Canonical record transformer.

Runs the generic "first non-empty candidate wins" resolution over the
accessor tables supplied by ``ContentTypeRegistry``. The transformer has no
knowledge of what any particular category means.
"""

from typing import List, Optional

from contentsync.core.config import settings
from contentsync.core.datetime_utils import parse_datetime, utc_now
from contentsync.platform.entities.content import CanonicalRecord, RawRecord, build_record_id
from contentsync.platform.sync.exceptions import RecordTransformError
from contentsync.platform.transformers.content_types import (
    ContentTypeRegistry,
    ResolvedContentType,
)
from contentsync.platform.transformers.field_values import truncate_text

SNIPPET_MAX_LENGTH = 500
DEFAULT_SNIPPET = "No description available"


class RecordTransformer:
    """Converts raw source records into canonical records."""

    def __init__(
        self,
        registry: Optional[ContentTypeRegistry] = None,
        base_url: Optional[str] = None,
    ):
        """Initialize the transformer.

        Args:
            registry: Per-category policies, defaults to the built-in registry
            base_url: Public site URL for rendered links, defaults to settings
        """
        self.registry = registry or ContentTypeRegistry()
        self.base_url = (base_url if base_url is not None else settings.CONTENT_BASE_URL).rstrip(
            "/"
        )

    def transform(self, raw: RawRecord, category: str, locale: str) -> CanonicalRecord:
        """Transform one raw record.

        Args:
            raw: Record as returned by the source
            category: Content category the record was fetched from
            locale: Locale the record was fetched in

        Returns:
            CanonicalRecord with a deterministic id

        Raises:
            RecordTransformError: If the record has no source uid
        """
        source_id = raw.get("uid") if isinstance(raw, dict) else None
        if not source_id:
            raise RecordTransformError(f"Record in {category} ({locale}) has no uid")

        policy = self.registry.get(category)
        return CanonicalRecord(
            id=build_record_id(category, str(source_id), locale),
            source_id=str(source_id),
            title=self.extract_title(raw, policy),
            snippet=self.extract_snippet(raw, policy),
            url=self.generate_url(raw, policy),
            category=category,
            locale=locale,
            updated_at=self._extract_updated_at(raw),
            tags=self.extract_tags(raw, policy),
            category_label=self.extract_category_label(raw, policy),
            raw_data=raw,
        )

    def extract_title(self, raw: RawRecord, policy: ResolvedContentType) -> str:
        """First non-empty title candidate, else the source uid."""
        for accessor in policy.title_accessors:
            value = accessor(raw)
            if value:
                return value
        return str(raw.get("uid") or "Untitled")

    def extract_snippet(
        self, raw: RawRecord, policy: ResolvedContentType, max_length: int = SNIPPET_MAX_LENGTH
    ) -> str:
        """First non-empty snippet candidate, truncated."""
        for accessor in policy.snippet_accessors:
            value = accessor(raw)
            if value:
                return truncate_text(value, max_length)
        return DEFAULT_SNIPPET

    def extract_tags(self, raw: RawRecord, policy: ResolvedContentType) -> List[str]:
        """First non-empty tag candidate, else an empty list."""
        for accessor in policy.tag_accessors:
            tags = accessor(raw)
            if tags:
                return tags
        return []

    def extract_category_label(
        self, raw: RawRecord, policy: ResolvedContentType
    ) -> Optional[str]:
        """First non-empty category label candidate."""
        for accessor in policy.category_accessors:
            value = accessor(raw)
            if value:
                return value
        return None

    def generate_url(self, raw: RawRecord, policy: ResolvedContentType) -> str:
        """Render the category's URL template for this record."""
        uid = str(raw.get("uid") or "")
        slug = str(raw.get("url") or raw.get("slug") or uid)
        return policy.config.url_template.format(
            base_url=self.base_url,
            content_type=policy.uid,
            slug=slug,
            uid=uid,
        )

    def generate_embedding_text(self, raw: RawRecord, category: str) -> str:
        """Concatenate the category's embedding fields, repeating weighted ones.

        A field with weight 2.0 appears twice, biasing the embedding toward it.
        """
        policy = self.registry.get(category)
        texts = []
        for accessor, repetitions in policy.embedding_accessors:
            value = accessor(raw)
            if value:
                texts.extend([value] * repetitions)
        return " ".join(texts)

    @staticmethod
    def _extract_updated_at(raw: RawRecord):
        metadata = raw.get("_metadata") if isinstance(raw.get("_metadata"), dict) else {}
        return (
            parse_datetime(raw.get("updated_at"))
            or parse_datetime(metadata.get("updated_at"))
            or utc_now()
        )
