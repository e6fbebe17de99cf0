"""Tagged-block parsing for model output.

Multi-step prompts ask the model to wrap each section in XML-like tags
(``<summary>...</summary>``). These helpers pull those sections out and
decode embedded JSON leniently: callers fall back to degraded results
rather than raising.
"""

import json
import re
from typing import Any, TypeVar

T = TypeVar("T")

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*|\s*```")


def _tag_pattern(tag: str) -> re.Pattern[str]:
    escaped = re.escape(tag)
    return re.compile(rf"<{escaped}(?:\s[^>]*)?>(.*?)</{escaped}>", re.DOTALL | re.IGNORECASE)


def extract_tag(text: str, tag: str) -> str:
    """Return the stripped content of the first ``<tag>`` block, or ""."""
    match = _tag_pattern(tag).search(text)
    return match.group(1).strip() if match else ""


def extract_all(text: str, tag: str) -> list[str]:
    """Return the stripped contents of every ``<tag>`` block, in order."""
    return [m.group(1).strip() for m in _tag_pattern(tag).finditer(text)]


def parse_json_block(text: str, fallback: T) -> Any:
    """Decode JSON from model output.

    Markdown code fences are removed first. When the text is not valid JSON
    as a whole, the first ``{...}`` or ``[...]`` span is tried.

    Args:
        text: Raw text
        fallback: Value returned when nothing decodes

    Returns:
        Decoded value or ``fallback``
    """
    cleaned = _FENCE_PATTERN.sub("", text or "").strip()
    if not cleaned:
        return fallback
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    for opener, closer in (("{", "}"), ("[", "]")):
        start = cleaned.find(opener)
        end = cleaned.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError:
                continue
    return fallback


def parse_bullets(text: str) -> list[str]:
    """Split a bulleted or numbered block into items."""
    items = []
    for line in text.splitlines():
        item = re.sub(r"^\s*(?:[-*•]|\d+[.)])\s*", "", line).strip()
        if item:
            items.append(item)
    return items
