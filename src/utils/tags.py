"""Tag vocabulary validation.

Tags arrive either as a list (JSON bodies) or as a JSON-encoded string
(multipart form fields). Anything outside the vocabulary is dropped rather
than rejected, both on write and when used as a query filter.
"""

import json
from typing import Any

from utils.constants import VALID_TAGS


class InvalidTagFormatError(ValueError):
    """Tags could not be parsed as a list."""


def validate_tags(candidate: Any) -> list[str]:
    """Reduce candidate tags to members of the vocabulary.

    Args:
        candidate: None, a list of tags, or a JSON-encoded list of tags

    Returns:
        Recognised tags in first-seen order, without duplicates

    Raises:
        InvalidTagFormatError: If a string is not a JSON list, or the value is
            neither a list nor a string
    """
    if candidate is None:
        return []

    if isinstance(candidate, str):
        raw = candidate.strip()
        if not raw:
            return []
        try:
            candidate = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidTagFormatError(f"Tags must be a JSON list: {e.msg}")

    if not isinstance(candidate, (list, tuple, set)):
        raise InvalidTagFormatError("Tags must be a list")

    tags: list[str] = []
    for tag in candidate:
        if isinstance(tag, str) and tag in VALID_TAGS and tag not in tags:
            tags.append(tag)
    return tags


def parse_tag_filter(tag: str | None) -> str | None:
    """Return the tag to filter on, or None when no filter should apply."""
    if tag and tag in VALID_TAGS:
        return tag
    return None
