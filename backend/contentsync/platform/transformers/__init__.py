"""Canonical record transformation.

Key Classes:
- ContentTypeConfig: Per-category field mapping policy
- ContentTypeRegistry: Lookup table of resolved policies
- RecordTransformer: Converts raw records into canonical records
"""

from .content_types import ContentTypeConfig, ContentTypeRegistry, ResolvedContentType
from .record_transformer import RecordTransformer

__all__ = [
    "ContentTypeConfig",
    "ContentTypeRegistry",
    "RecordTransformer",
    "ResolvedContentType",
]
