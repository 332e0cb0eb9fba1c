"""Helpers that turn raw field values into plain text."""

import json
from typing import Any, Dict, List, Optional


def extract_text_from_rich_text(value: Dict[str, Any]) -> str:
    """Flatten a JSON rich-text document into plain text.

    Accepts either the wrapped form ``{"json": {"children": [...]}}`` or a bare
    document node. Leaf ``text`` nodes are concatenated depth-first.
    """
    document = value.get("json") if "json" in value else value
    if not isinstance(document, dict):
        return ""
    children = document.get("children")
    if not isinstance(children, list):
        return ""
    return _walk_nodes(children)


def _walk_nodes(nodes: List[Any]) -> str:
    parts = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        if node.get("type") == "text" or ("text" in node and "children" not in node):
            parts.append(str(node.get("text") or ""))
        elif isinstance(node.get("children"), list):
            parts.append(_walk_nodes(node["children"]))
    return "".join(parts)


def is_rich_text(value: Any) -> bool:
    """Whether a field value looks like a JSON rich-text document."""
    if not isinstance(value, dict):
        return False
    if isinstance(value.get("json"), dict):
        return True
    return value.get("type") == "doc" and isinstance(value.get("children"), list)


def label_of(item: Any) -> str:
    """Display label of a scalar or a referenced object (``title``, then ``name``)."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return str(item.get("title") or item.get("name") or json.dumps(item, default=str))
    return str(item)


def extract_field_value(record: Dict[str, Any], field: str) -> Optional[str]:
    """Read ``field`` from a raw record as plain text.

    Returns None when the field is missing or renders to an empty string.
    """
    value = record.get(field)
    if not value:
        return None

    if is_rich_text(value):
        text = extract_text_from_rich_text(value)
    elif isinstance(value, list):
        text = " ".join(label_of(item) for item in value)
    elif isinstance(value, dict):
        text = label_of(value)
    else:
        text = str(value)

    return text if text.strip() else None


def truncate_text(text: str, max_length: int) -> str:
    """Cut ``text`` to at most ``max_length`` characters, ending with an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def truncate_at_word_boundary(text: str, max_tokens: int) -> str:
    """Fit ``text`` into a token budget, approximating one token as four characters.

    The cut moves back to the last space when that space lies past 80% of the
    character limit; an ellipsis marks the truncation.
    """
    if not text:
        return ""
    max_chars = max_tokens * 4
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    last_space = truncated.rfind(" ")
    if last_space > max_chars * 0.8:
        truncated = truncated[:last_space]
    return truncated + "..."
