"""Per-category field mapping configuration.

Each content category declares ordered candidate field names for title,
snippet, tags, category label and embedding text. Configurations are resolved
once, at registration, into tuples of accessor functions so that record
transformation only walks precomputed lookups. Supporting a new category is a
matter of registering a configuration; transformer code does not change.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from contentsync.core.logging import logger
from contentsync.platform.entities.content import RawRecord
from contentsync.platform.transformers.field_values import extract_field_value, label_of

TextAccessor = Callable[[RawRecord], Optional[str]]
TagsAccessor = Callable[[RawRecord], Optional[List[str]]]


class ContentTypeConfig(BaseModel):
    """Field mapping policy for one content category."""

    name: str = Field(..., min_length=1)
    embedding_fields: List[str] = Field(..., min_length=1)
    title_fields: List[str] = Field(..., min_length=1)
    snippet_fields: List[str] = Field(..., min_length=1)
    tag_fields: List[str] = Field(default_factory=list)
    category_fields: List[str] = Field(default_factory=list)
    url_template: str = "{base_url}/{content_type}/{slug}"
    search_weight: Dict[str, float] = Field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedContentType:
    """A configuration resolved into accessor tables."""

    uid: str
    config: ContentTypeConfig
    title_accessors: Tuple[TextAccessor, ...]
    snippet_accessors: Tuple[TextAccessor, ...]
    tag_accessors: Tuple[TagsAccessor, ...]
    category_accessors: Tuple[TextAccessor, ...]
    embedding_accessors: Tuple[Tuple[TextAccessor, int], ...]


def _text_accessor(field: str) -> TextAccessor:
    def accessor(record: RawRecord) -> Optional[str]:
        return extract_field_value(record, field)

    return accessor


def _tags_accessor(field: str) -> TagsAccessor:
    def accessor(record: RawRecord) -> Optional[List[str]]:
        value = record.get(field)
        if not value:
            return None
        if isinstance(value, list):
            tags = [label_of(tag).strip() for tag in value]
        elif isinstance(value, str):
            tags = [tag.strip() for tag in value.split(",")]
        else:
            return None
        tags = [tag for tag in tags if tag]
        return tags or None

    return accessor


def _category_accessor(field: str) -> TextAccessor:
    def accessor(record: RawRecord) -> Optional[str]:
        value = record.get(field)
        if not value:
            return None
        if isinstance(value, list):
            value = value[0]
        label = label_of(value).strip()
        return label or None

    return accessor


def resolve_content_type(uid: str, config: ContentTypeConfig) -> ResolvedContentType:
    """Resolve a configuration's field names into accessor tables."""
    return ResolvedContentType(
        uid=uid,
        config=config,
        title_accessors=tuple(_text_accessor(f) for f in config.title_fields),
        snippet_accessors=tuple(_text_accessor(f) for f in config.snippet_fields),
        tag_accessors=tuple(_tags_accessor(f) for f in config.tag_fields),
        category_accessors=tuple(_category_accessor(f) for f in config.category_fields),
        embedding_accessors=tuple(
            (_text_accessor(f), max(1, math.ceil(config.search_weight.get(f, 1.0))))
            for f in config.embedding_fields
        ),
    )


DEFAULT_CONTENT_TYPES: Dict[str, ContentTypeConfig] = {
    "blog_post": ContentTypeConfig(
        name="Blog Post",
        embedding_fields=["title", "description", "content"],
        title_fields=["title"],
        snippet_fields=["description", "content"],
        tag_fields=["tag", "tags", "keywords"],
        category_fields=["category", "type"],
        url_template="{base_url}/blog/{slug}",
        search_weight={"title": 2.0, "content": 1.0, "tags": 0.5},
    ),
    "product": ContentTypeConfig(
        name="Product",
        embedding_fields=["name", "description", "features"],
        title_fields=["name", "title"],
        snippet_fields=["description", "summary"],
        tag_fields=["tags", "features"],
        category_fields=["category", "type"],
        url_template="{base_url}/products/{slug}",
        search_weight={"name": 2.5, "description": 1.5, "features": 1.0, "tags": 0.8},
    ),
    "documentation": ContentTypeConfig(
        name="Documentation",
        embedding_fields=["title", "content", "summary"],
        title_fields=["title", "heading"],
        snippet_fields=["summary", "content"],
        tag_fields=["tags", "topics"],
        category_fields=["category", "section"],
        url_template="{base_url}/docs/{slug}",
        search_weight={"title": 2.0, "content": 1.5, "summary": 1.0},
    ),
    "faq": ContentTypeConfig(
        name="FAQ",
        embedding_fields=["question", "answer"],
        title_fields=["question"],
        snippet_fields=["answer"],
        tag_fields=["tags", "topics"],
        category_fields=["category"],
        url_template="{base_url}/faq#{uid}",
        search_weight={"question": 3.0, "answer": 1.0},
    ),
    "page": ContentTypeConfig(
        name="Page",
        embedding_fields=["title", "description", "rich_text"],
        title_fields=["title"],
        snippet_fields=["description"],
        url_template="{base_url}{slug}",
        search_weight={"title": 2.0, "description": 1.0, "content": 0.8},
    ),
}


def default_config_for(uid: str) -> ContentTypeConfig:
    """Generic policy for categories without a registered configuration."""
    return ContentTypeConfig(
        name=uid.replace("_", " ").title(),
        embedding_fields=["title", "description", "content"],
        title_fields=["title", "name"],
        snippet_fields=["description", "summary", "content"],
        tag_fields=["tags", "tag"],
        category_fields=["category", "type"],
        url_template="{base_url}/{content_type}/{slug}",
        search_weight={"title": 2.0, "content": 1.0},
    )


class ContentTypeRegistry:
    """Lookup table of resolved per-category policies."""

    def __init__(self, configs: Optional[Dict[str, ContentTypeConfig]] = None):
        """Initialize the registry.

        Args:
            configs: Configurations to register, defaults to the built-in set
        """
        self._resolved: Dict[str, ResolvedContentType] = {}
        self._fallbacks: Dict[str, ResolvedContentType] = {}
        for uid, config in (DEFAULT_CONTENT_TYPES if configs is None else configs).items():
            self._resolved[uid] = resolve_content_type(uid, config)
        logger.debug(f"Initialized {len(self._resolved)} content type configurations")

    def register_content_type(
        self, uid: str, config: Union[ContentTypeConfig, dict]
    ) -> ResolvedContentType:
        """Register (or replace) the policy for a category.

        Args:
            uid: Category identifier
            config: Configuration model or a dict validated into one

        Returns:
            The resolved configuration

        Raises:
            pydantic.ValidationError: If required fields are missing or empty
        """
        if not isinstance(config, ContentTypeConfig):
            config = ContentTypeConfig.model_validate(config)
        resolved = resolve_content_type(uid, config)
        self._resolved[uid] = resolved
        self._fallbacks.pop(uid, None)
        logger.info(f"Registered content type configuration: {uid}")
        return resolved

    def get(self, uid: str) -> ResolvedContentType:
        """Resolved policy for a category, falling back to the generic default."""
        resolved = self._resolved.get(uid)
        if resolved is not None:
            return resolved
        fallback = self._fallbacks.get(uid)
        if fallback is None:
            fallback = resolve_content_type(uid, default_config_for(uid))
            self._fallbacks[uid] = fallback
        return fallback

    def is_registered(self, uid: str) -> bool:
        """Whether the category has an explicit configuration."""
        return uid in self._resolved

    @property
    def registered_types(self) -> List[str]:
        """Uids of explicitly configured categories."""
        return list(self._resolved)
