"""Case-insensitive tag helpers.

Tags are compared by their lower-cased value; the stored casing is
preserved and treated as authoritative by callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def tag_key(value: str) -> str:
    """Return the case-insensitive comparison key for a tag value."""
    return value.lower()


def tags_equal(left: str, right: str) -> bool:
    return tag_key(left) == tag_key(right)


def clean_tag(value: str) -> str:
    """Strip surrounding whitespace from a raw tag string."""
    return value.strip()


def dedupe_tags(tags: Iterable[str]) -> list[str]:
    """Remove blank and case-insensitive duplicate tags, keeping first-seen order and casing."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in tags:
        tag = clean_tag(raw)
        if not tag:
            continue
        key = tag_key(tag)
        if key in seen:
            continue
        seen.add(key)
        result.append(tag)
    return result


def resolve_casing(candidate: str, existing: Iterable[str]) -> str:
    """Return the existing casing of ``candidate`` if one exists, else ``candidate`` itself.

    When ``existing`` holds several case variants the first one wins, so
    callers pass values ordered by creation time.
    """
    key = tag_key(candidate)
    for value in existing:
        if tag_key(value) == key:
            return value
    return candidate


def rewrite_tags(tags: Iterable[str], canonical: str) -> list[str]:
    """Replace every case variant of ``canonical`` and drop resulting duplicates.

    Example:
        >>> rewrite_tags(["swift", "ios", "SWIFT"], "Swift")
        ['Swift', 'ios']
    """
    key = tag_key(canonical)
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        value = canonical if tag_key(tag) == key else tag
        lowered = tag_key(value)
        if lowered in seen:
            continue
        seen.add(lowered)
        result.append(value)
    return result
