"""Tests for RecordTransformer field resolution."""

from datetime import datetime, timezone

import pytest
from fakes import make_raw

from contentsync.platform.sync.exceptions import RecordTransformError
from contentsync.platform.transformers.content_types import ContentTypeRegistry
from contentsync.platform.transformers.field_values import (
    extract_text_from_rich_text,
    truncate_at_word_boundary,
)
from contentsync.platform.transformers.record_transformer import (
    DEFAULT_SNIPPET,
    RecordTransformer,
)

RICH_TEXT = {
    "json": {
        "type": "doc",
        "children": [
            {"type": "p", "children": [{"text": "Hello "}, {"text": "rich", "bold": True}]},
            {"type": "p", "children": [{"type": "a", "children": [{"text": " world"}]}]},
        ],
    }
}


@pytest.fixture
def transformer():
    """Transformer with the built-in registry and a fixed base URL."""
    return RecordTransformer(base_url="https://site.test/")


def test_id_is_deterministic_and_locale_specific(transformer):
    """Test that the id depends only on category, uid and locale."""
    raw = make_raw("blt123", description="About things")

    first = transformer.transform(raw, "blog_post", "en-us")
    second = transformer.transform(raw, "blog_post", "en-us")
    french = transformer.transform(raw, "blog_post", "fr-fr")

    assert first.id == second.id == "blog_post_blt123_en-us"
    assert french.id == "blog_post_blt123_fr-fr"
    assert first.id != french.id


def test_record_without_uid_is_rejected(transformer):
    """Test that a raw record without uid cannot be transformed."""
    with pytest.raises(RecordTransformError):
        transformer.transform({"title": "Orphan"}, "blog_post", "en-us")


def test_title_uses_first_non_empty_candidate(transformer):
    """Test candidate order for product titles (name before title)."""
    raw = make_raw("p1", title="Fallback title", name="Widget")

    record = transformer.transform(raw, "product", "en-us")

    assert record.title == "Widget"


def test_title_falls_back_to_uid(transformer):
    """Test the generic default when no title candidate matches."""
    raw = {"uid": "q42", "answer": "Yes."}

    record = transformer.transform(raw, "faq", "en-us")

    assert record.title == "q42"


def test_snippet_is_truncated(transformer):
    """Test that snippets are capped at 500 characters with an ellipsis."""
    raw = make_raw("b1", description="x" * 800)

    record = transformer.transform(raw, "blog_post", "en-us")

    assert len(record.snippet) == 500
    assert record.snippet.endswith("...")


def test_snippet_default(transformer):
    """Test the snippet placeholder when no candidate has content."""
    record = transformer.transform(make_raw("b1"), "blog_post", "en-us")

    assert record.snippet == DEFAULT_SNIPPET


def test_rich_text_is_flattened(transformer):
    """Test that rich text fields become plain text."""
    raw = make_raw("b1", content=RICH_TEXT)

    record = transformer.transform(raw, "blog_post", "en-us")

    assert record.snippet == "Hello rich world"
    assert extract_text_from_rich_text(RICH_TEXT) == "Hello rich world"


def test_tags_from_reference_objects_and_strings(transformer):
    """Test tags as a list of referenced objects and as a comma-separated string."""
    listed = make_raw("b1", tags=[{"title": "python"}, {"name": "sync"}, "  "])
    comma = make_raw("b2", keywords="alpha, beta ,,gamma")

    assert transformer.transform(listed, "blog_post", "en-us").tags == ["python", "sync"]
    assert transformer.transform(comma, "blog_post", "en-us").tags == ["alpha", "beta", "gamma"]
    assert transformer.transform(make_raw("b3"), "blog_post", "en-us").tags == []


def test_category_label_from_reference(transformer):
    """Test that the first referenced category's title becomes the label."""
    raw = make_raw("b1", category=[{"title": "Engineering"}, {"title": "News"}])

    record = transformer.transform(raw, "blog_post", "en-us")

    assert record.category_label == "Engineering"


@pytest.mark.parametrize(
    "category,raw,url",
    [
        ("blog_post", make_raw("b1", url="hello-world"), "https://site.test/blog/hello-world"),
        ("product", make_raw("p1", slug="widget"), "https://site.test/products/widget"),
        ("faq", make_raw("q1"), "https://site.test/faq#q1"),
        ("page", make_raw("pg", url="/about"), "https://site.test/about"),
        ("event", make_raw("ev1"), "https://site.test/event/ev1"),
    ],
)
def test_url_templates(transformer, category, raw, url):
    """Test URL rendering per category, including the generic default."""
    assert transformer.transform(raw, category, "en-us").url == url


def test_updated_at_sources(transformer):
    """Test updated_at resolution from the record and its metadata."""
    direct = make_raw("b1", updated_at="2024-03-01T10:00:00Z")
    nested = make_raw("b2", _metadata={"updated_at": "2024-02-01T00:00:00.000Z"})

    assert transformer.transform(direct, "blog_post", "en-us").updated_at == datetime(
        2024, 3, 1, 10, tzinfo=timezone.utc
    )
    assert transformer.transform(nested, "blog_post", "en-us").updated_at == datetime(
        2024, 2, 1, tzinfo=timezone.utc
    )
    assert transformer.transform(make_raw("b3"), "blog_post", "en-us").updated_at.tzinfo


def test_raw_data_is_retained(transformer):
    """Test that the originating record travels with the canonical record."""
    raw = make_raw("b1", description="d")

    assert transformer.transform(raw, "blog_post", "en-us").raw_data == raw


def test_new_category_needs_only_configuration():
    """Test that registering a configuration changes resolution without code changes."""
    registry = ContentTypeRegistry()
    registry.register_content_type(
        "recipe",
        {
            "name": "Recipe",
            "embedding_fields": ["dish"],
            "title_fields": ["dish"],
            "snippet_fields": ["steps"],
            "url_template": "{base_url}/recipes/{uid}",
        },
    )
    transformer = RecordTransformer(registry=registry, base_url="https://site.test")

    record = transformer.transform(
        {"uid": "r1", "dish": "Soup", "steps": "Boil."}, "recipe", "en-us"
    )

    assert (record.title, record.snippet, record.url) == (
        "Soup",
        "Boil.",
        "https://site.test/recipes/r1",
    )


def test_embedding_text_repeats_weighted_fields(transformer):
    """Test that field weights repeat text ceil(weight) times."""
    raw = {"uid": "q1", "question": "Why?", "answer": "Because."}

    text = transformer.generate_embedding_text(raw, "faq")

    assert text == "Why? Why? Why? Because."


def test_truncate_at_word_boundary():
    """Test the four-characters-per-token budget and the 80% word-boundary rule."""
    assert truncate_at_word_boundary("short text", 10) == "short text"

    # Last space at index 36 of a 40-character cut: past 80%, cut there
    words = "a" * 36 + " " + "b" * 20
    assert truncate_at_word_boundary(words, 10) == "a" * 36 + "..."

    # Last space at index 5: before 80%, hard cut at the limit
    early = "aaaaa " + "b" * 60
    assert truncate_at_word_boundary(early, 10) == early[:40] + "..."
