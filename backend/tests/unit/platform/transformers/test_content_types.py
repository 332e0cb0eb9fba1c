"""Tests for ContentTypeRegistry and configuration resolution."""

import pytest
from pydantic import ValidationError

from contentsync.platform.transformers.content_types import (
    DEFAULT_CONTENT_TYPES,
    ContentTypeConfig,
    ContentTypeRegistry,
    resolve_content_type,
)


def test_builtin_types_are_registered():
    """Test the built-in configurations."""
    registry = ContentTypeRegistry()

    assert set(registry.registered_types) == {
        "blog_post",
        "product",
        "documentation",
        "faq",
        "page",
    }
    assert registry.is_registered("faq")
    assert not registry.is_registered("event")


def test_unknown_category_gets_cached_generic_default():
    """Test the fallback policy for unconfigured categories."""
    registry = ContentTypeRegistry()

    first = registry.get("press_release")
    second = registry.get("press_release")

    assert first is second
    assert first.config.name == "Press Release"
    assert first.config.title_fields == ["title", "name"]
    assert not registry.is_registered("press_release")


def test_register_rejects_missing_required_fields():
    """Test that a configuration without embedding fields is invalid."""
    registry = ContentTypeRegistry()

    with pytest.raises(ValidationError):
        registry.register_content_type(
            "broken", {"name": "Broken", "title_fields": ["title"], "snippet_fields": ["body"]}
        )
    with pytest.raises(ValidationError):
        registry.register_content_type(
            "empty",
            {
                "name": "Empty",
                "embedding_fields": [],
                "title_fields": ["title"],
                "snippet_fields": ["body"],
            },
        )


def test_register_replaces_cached_default():
    """Test that registering a category overrides a previously used default."""
    registry = ContentTypeRegistry()
    registry.get("event")

    resolved = registry.register_content_type(
        "event",
        ContentTypeConfig(
            name="Event",
            embedding_fields=["headline"],
            title_fields=["headline"],
            snippet_fields=["summary"],
        ),
    )

    assert registry.get("event") is resolved
    assert registry.is_registered("event")


def test_resolution_builds_accessor_tables():
    """Test that configurations resolve into accessors and repetition counts."""
    resolved = resolve_content_type("product", DEFAULT_CONTENT_TYPES["product"])
    raw = {"uid": "p1", "name": "Widget", "description": "Small", "features": ["a", "b"]}

    assert len(resolved.title_accessors) == 2
    assert resolved.title_accessors[0](raw) == "Widget"
    assert [count for _, count in resolved.embedding_accessors] == [3, 2, 1]


def test_fractional_weights_round_up_and_never_drop_fields():
    """Test that weights below one still include the field once."""
    config = ContentTypeConfig(
        name="Note",
        embedding_fields=["body", "tags"],
        title_fields=["title"],
        snippet_fields=["body"],
        search_weight={"body": 1.2, "tags": 0.3},
    )

    resolved = resolve_content_type("note", config)

    assert [count for _, count in resolved.embedding_accessors] == [2, 1]


def test_empty_registry():
    """Test a registry built without the defaults."""
    registry = ContentTypeRegistry(configs={})

    assert registry.registered_types == []
    assert registry.get("blog_post").config.name == "Blog Post"
