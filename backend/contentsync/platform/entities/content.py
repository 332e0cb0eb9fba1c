"""Record models flowing through the sync pipeline.

A raw record (plain dict from the content source) is transformed into a
``CanonicalRecord``; once an embedding is computed it becomes an
``EmbeddedRecord``, the only shape the store ever receives.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

RawRecord = Dict[str, Any]


def build_record_id(category: str, source_id: str, locale: str) -> str:
    """Build the stable record id used as the store's conflict key.

    The same (category, source_id, locale) always yields the same id, which is
    what makes repeated syncs overwrite rather than duplicate rows.
    """
    return f"{category}_{source_id}_{locale}"


class ContentCategory(BaseModel):
    """A content category (content type) known to the source."""

    uid: str = Field(..., description="Category identifier in the source.")
    title: Optional[str] = Field(None, description="Human-readable category name.")


class RecordPage(BaseModel):
    """One page of raw records for a (category, locale) pair."""

    records: List[RawRecord] = Field(default_factory=list)
    total_count: int = Field(0, description="Total records available for the pair.")


class CanonicalRecord(BaseModel):
    """Normalized, category-agnostic representation of one item in one locale."""

    id: str = Field(..., description="Stable id: {category}_{source_id}_{locale}.")
    source_id: str = Field(..., description="Id of the item in the content source.")
    title: str = Field(..., description="Display title.")
    snippet: str = Field("", description="Truncated description or body.")
    url: str = Field("", description="Public URL of the item.")
    category: str = Field(..., description="Content category (content type uid).")
    locale: str = Field(..., description="Locale code, e.g. en-us.")
    updated_at: datetime = Field(..., description="Last update time reported by the source.")
    tags: List[str] = Field(default_factory=list, description="Ordered tags, may be empty.")
    category_label: Optional[str] = Field(
        None, description="Editorial category label extracted from the record."
    )
    raw_data: RawRecord = Field(
        default_factory=dict, description="Originating raw record, kept for reprocessing."
    )


class EmbeddedRecord(CanonicalRecord):
    """A canonical record with its embedding vector."""

    embedding: List[float] = Field(..., description="Embedding vector.")

    @field_validator("embedding")
    @classmethod
    def validate_embedding(cls, v: List[float]) -> List[float]:
        """Reject empty vectors and non-finite elements."""
        if not v:
            raise ValueError("embedding must not be empty")
        if not all(math.isfinite(x) for x in v):
            raise ValueError("embedding contains non-finite values")
        return v

    @classmethod
    def from_canonical(cls, record: CanonicalRecord, embedding: List[float]) -> "EmbeddedRecord":
        """Attach an embedding to a canonical record."""
        return cls(**record.model_dump(), embedding=embedding)
