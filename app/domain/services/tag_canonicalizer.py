"""Tag casing canonicalization.

Tags form case-insensitive equivalence classes per owner. The canonical
member of a class is its earliest-created record; every other casing either
resolves to it (during import) or is merged into it (maintenance).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from app.core.tag_utils import clean_tag, rewrite_tags, tag_key
from app.core.time_utils import UTC

if TYPE_CHECKING:
    from collections.abc import Iterable

    from app.domain.models.records import BookmarkRecord, TagRecord

_UNDATED = datetime.min.replace(tzinfo=UTC)


def sort_by_creation(tags: Iterable[TagRecord]) -> list[TagRecord]:
    """Order tag records oldest first; undated records sort first, ties keep input order."""
    return sorted(tags, key=lambda record: record.created_at or _UNDATED)


class TagCanonicalizer:
    """Resolve candidate tags to the casing already stored for the owner.

    Casings first seen through :meth:`resolve_all` become canonical for the
    rest of this instance's lifetime and are reported by :attr:`new_tags`,
    so one import chunk never asks for two records that differ only in case.
    """

    def __init__(self, existing: Iterable[TagRecord] = ()) -> None:
        self._canonical: dict[str, str] = {}
        for record in sort_by_creation(existing):
            self._canonical.setdefault(tag_key(record.value), record.value)
        self._new: list[str] = []

    def resolve(self, candidate: str) -> str:
        """Return the canonical casing for ``candidate`` without registering it."""
        tag = clean_tag(candidate)
        return self._canonical.get(tag_key(tag), tag)

    def resolve_all(self, candidates: Iterable[str]) -> list[str]:
        """Canonicalize a tag list, dropping blanks and case-insensitive repeats."""
        seen: set[str] = set()
        resolved: list[str] = []
        for candidate in candidates:
            tag = clean_tag(candidate)
            if not tag:
                continue
            key = tag_key(tag)
            if key in seen:
                continue
            seen.add(key)
            if key not in self._canonical:
                self._canonical[key] = tag
                self._new.append(tag)
            resolved.append(self._canonical[key])
        return resolved

    @property
    def new_tags(self) -> list[str]:
        """Casings registered by this instance that have no stored record yet."""
        return list(self._new)


@dataclass
class TagMergeGroup:
    """One case-insensitive equivalence class with more than one record."""

    canonical: TagRecord
    duplicates: list[TagRecord]
    affected: list[BookmarkRecord] = field(default_factory=list)

    @property
    def merged_values(self) -> list[str]:
        return [record.value for record in self.duplicates]


@dataclass
class BookmarkRewrite:
    record: BookmarkRecord
    tags: list[str]


@dataclass
class TagMergePlan:
    groups: list[TagMergeGroup] = field(default_factory=list)
    rewrites: list[BookmarkRewrite] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.groups


def _uses_variant(record: BookmarkRecord, canonical: str) -> bool:
    key = tag_key(canonical)
    return any(tag_key(tag) == key and tag != canonical for tag in record.tags)


def plan_tag_merge(tags: Iterable[TagRecord], bookmarks: Iterable[BookmarkRecord]) -> TagMergePlan:
    """Compute which tag records to delete and how each bookmark's tags change.

    Groups are reported in the order their first member appears in ``tags``.
    A bookmark touched by several groups gets one rewrite with all of them
    applied, replacing casings and removing duplicates in first-seen order.
    """
    classes: dict[str, list[TagRecord]] = {}
    for record in tags:
        classes.setdefault(tag_key(record.value), []).append(record)

    bookmark_list = list(bookmarks)
    plan = TagMergePlan()
    pending: dict[str, list[str]] = {}
    touched: list[BookmarkRecord] = []

    for members in classes.values():
        if len(members) < 2:
            continue
        ordered = sort_by_creation(members)
        group = TagMergeGroup(canonical=ordered[0], duplicates=ordered[1:])
        canonical_value = group.canonical.value

        for bookmark in bookmark_list:
            if not _uses_variant(bookmark, canonical_value):
                continue
            group.affected.append(bookmark)
            if bookmark.uri not in pending:
                pending[bookmark.uri] = list(bookmark.tags)
                touched.append(bookmark)
            pending[bookmark.uri] = rewrite_tags(pending[bookmark.uri], canonical_value)

        plan.groups.append(group)

    plan.rewrites = [BookmarkRewrite(record=rec, tags=pending[rec.uri]) for rec in touched]
    return plan
